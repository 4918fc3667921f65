from __future__ import annotations

import re
import sqlite3
from pathlib import Path


SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS customers (
    id TEXT PRIMARY KEY,
    CustomerName TEXT NOT NULL,
    CustomerPhone TEXT,
    CustomerAddress TEXT,
    CustomerTCKN TEXT,
    CustomerVD TEXT,
    CustomerDebt REAL DEFAULT 0,
    CustomerBalance REAL DEFAULT 0,
    CustomerPayments TEXT,
    CustomerOrders TEXT,
    CustomerShipments TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS products (
    id TEXT PRIMARY KEY,
    ProductCode TEXT UNIQUE NOT NULL,
    Details TEXT,
    Barcode TEXT,
    Price REAL NOT NULL,
    Category TEXT,
    ActualInventory INTEGER DEFAULT 0,
    ReservedInventory INTEGER DEFAULT 0,
    AwaitingInventory INTEGER DEFAULT 0,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS orders (
    id TEXT PRIMARY KEY,
    OrderDate TEXT NOT NULL,
    CustomerId TEXT NOT NULL,
    CustomerInfo TEXT NOT NULL,
    OrderItems TEXT NOT NULL,
    TotalCost REAL NOT NULL,
    Discount REAL DEFAULT 0,
    GeneralSum REAL NOT NULL,
    PaymentType TEXT,
    OrderNotes TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (CustomerId) REFERENCES customers (id)
);

CREATE TABLE IF NOT EXISTS payments (
    id TEXT PRIMARY KEY,
    IncomeOrExpense BOOLEAN NOT NULL,
    ResponsibleId TEXT NOT NULL,
    PaymentDate TEXT NOT NULL,
    PaymentCost REAL NOT NULL,
    IsDone BOOLEAN DEFAULT FALSE,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""

# Tables shown on the stats screen and the /stats endpoint, in display order.
STATS_TABLES = ("customers", "products", "orders", "payments")


def connect(db_path: Path) -> sqlite3.Connection:
    # The API serves requests from a worker thread pool; connections are short-lived.
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(SCHEMA_SQL)
    conn.commit()


_SAFE_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def safe_ident(name: str) -> str:
    s = str(name or "").strip()
    if not _SAFE_IDENT.match(s):
        raise ValueError(f"invalid SQL identifier: {name!r}")
    return s


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()
    return row is not None


def table_counts(conn: sqlite3.Connection, tables=STATS_TABLES) -> dict[str, int | None]:
    """Row count per table; None when the table does not exist."""
    counts: dict[str, int | None] = {}
    for table in tables:
        if not table_exists(conn, table):
            counts[table] = None
            continue
        counts[table] = int(conn.execute(f"SELECT COUNT(*) FROM {safe_ident(table)}").fetchone()[0])
    return counts
