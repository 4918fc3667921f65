"""biz_db: customer and product records over SQLite, with a REST API and a terminal UI."""

__version__ = "0.1.0"
