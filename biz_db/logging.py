from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _resolve_log_dir(settings: object) -> Path:
    """Resolve the log directory.

    - If BIZ_LOG_DIR is absolute, use it directly.
    - Otherwise it is relative to the current working directory, so
      `biz_db tui` and `biz_db run` write their logs under the directory
      they were launched from.
    """

    raw = getattr(settings, "BIZ_LOG_DIR", Path("_logs"))
    p = raw if isinstance(raw, Path) else Path(str(raw))
    if p.is_absolute():
        return p
    return Path.cwd() / p


def setup_logging(settings: object, *, console: bool = True) -> Path:
    """Configure Python + uvicorn logging to write to a rotating log file.

    Returns the resolved log file path.

    Rotation:
      - Daily rotation at midnight.
      - Keep the last `BIZ_LOG_BACKUP_COUNT` rotated files.

    Notes:
      - Pass console=False while the terminal UI owns the screen.
      - This function is safe to call multiple times (it resets handlers).
    """

    log_dir = _resolve_log_dir(settings)
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "biz_db.log"

    level_name = str(getattr(settings, "BIZ_LOG_LEVEL", "INFO") or "INFO").upper().strip()
    level = getattr(logging, level_name, logging.INFO)

    file_handler = TimedRotatingFileHandler(
        filename=str(log_file),
        when="midnight",
        interval=1,
        backupCount=max(0, int(getattr(settings, "BIZ_LOG_BACKUP_COUNT", 14) or 0)),
        encoding="utf-8",
        utc=False,
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # Reset root handlers so we don't duplicate logs on repeated starts.
    root = logging.getLogger()
    root.handlers = []
    root.setLevel(level)
    root.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(console_handler)

    # Uvicorn loggers.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.setLevel(level)
        lg.propagate = True

    access = bool(getattr(settings, "BIZ_API_LOG_ACCESS", False))
    if not access:
        # Keep error logs, drop access logs.
        logging.getLogger("uvicorn.access").disabled = True

    logging.getLogger("biz_db").info(
        "biz_db logging enabled (file=%s, level=%s, console=%s, access=%s)",
        os.fspath(log_file),
        level_name,
        console,
        access,
    )

    return log_file
