from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the business database, its API and the terminal UI.

    Values are loaded from environment variables and `.env`.

    Notes:
    - The API and the TUI share one SQLite file; point both at the same path.
    - The TUI never logs to the console, only to the rotating file.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    BIZ_DB_PATH: Path = Field(default=Path("data/business.sqlite"))

    # API
    BIZ_API_HOST: str = Field(default="127.0.0.1")
    BIZ_API_PORT: int = Field(default=3000)
    BIZ_API_CORS_ALLOW_ALL: bool = Field(default=True)

    # Logging (diagnostic; rotating file)
    BIZ_LOG_DIR: Path = Field(default=Path("_logs"))
    BIZ_LOG_LEVEL: str = Field(default="INFO")
    # If enabled, uvicorn logs every request.
    BIZ_API_LOG_ACCESS: bool = Field(default=False)
    # Timed rotation retention count (days). Old log files are auto-deleted.
    BIZ_LOG_BACKUP_COUNT: int = Field(default=14)

    # Terminal UI: seconds before transient screens return on their own
    BIZ_TUI_MESSAGE_DELAY: float = Field(default=2.0)
    BIZ_TUI_STATS_DELAY: float = Field(default=3.0)


def load_settings() -> Settings:
    s = Settings()
    # Ensure parent dir exists
    s.BIZ_DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    return s
