from __future__ import annotations

import json
import sqlite3
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from .db import STATS_TABLES, connect, init_db, safe_ident, table_counts
from .settings import Settings


Record = dict[str, Any]


class RecordNotFound(LookupError):
    """The record an operation targets no longer exists."""

    def __init__(self, entity: str, record_id: str):
        super().__init__(f"{entity} {record_id} not found")
        self.entity = entity
        self.record_id = record_id


class EntityStore(Protocol):
    """Synchronous CRUD for one entity type."""

    entity: str

    def get_all(self) -> list[Record]: ...

    def get_by_id(self, record_id: str) -> Record | None: ...

    def create(self, fields: Mapping[str, Any]) -> Record: ...

    def update(self, record_id: str, fields: Mapping[str, Any]) -> Record | None: ...

    def delete(self, record_id: str) -> bool: ...


@dataclass(frozen=True)
class TableSpec:
    entity: str
    table: str
    columns: tuple[str, ...]
    json_columns: tuple[str, ...] = field(default_factory=tuple)


CUSTOMERS = TableSpec(
    entity="customer",
    table="customers",
    columns=(
        "CustomerName",
        "CustomerPhone",
        "CustomerAddress",
        "CustomerTCKN",
        "CustomerVD",
        "CustomerDebt",
        "CustomerBalance",
        "CustomerPayments",
        "CustomerOrders",
        "CustomerShipments",
    ),
    json_columns=("CustomerPayments", "CustomerOrders", "CustomerShipments"),
)

PRODUCTS = TableSpec(
    entity="product",
    table="products",
    columns=(
        "ProductCode",
        "Details",
        "Barcode",
        "Price",
        "Category",
        "ActualInventory",
        "ReservedInventory",
        "AwaitingInventory",
    ),
)


class SqliteEntityStore:
    """EntityStore over one SQLite table.

    Each call opens its own connection so the API worker threads and the
    terminal UI can share the database file.
    """

    def __init__(self, settings: Settings, spec: TableSpec):
        self.settings = settings
        self.spec = spec
        self.entity = spec.entity

    def _conn(self) -> sqlite3.Connection:
        conn = connect(self.settings.BIZ_DB_PATH)
        init_db(conn)
        return conn

    def _decode(self, row: sqlite3.Row) -> Record:
        rec = dict(row)
        for col in self.spec.json_columns:
            raw = rec.get(col)
            try:
                rec[col] = json.loads(raw) if raw else []
            except (TypeError, ValueError):
                rec[col] = []
        return rec

    def _encode(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for col in self.spec.columns:
            if col not in fields:
                continue
            value = fields[col]
            if col in self.spec.json_columns:
                value = json.dumps(list(value or []))
            out[col] = value
        return out

    def get_all(self) -> list[Record]:
        table = safe_ident(self.spec.table)
        conn = self._conn()
        try:
            rows = conn.execute(f"SELECT * FROM {table} ORDER BY created_at, rowid").fetchall()
        finally:
            conn.close()
        return [self._decode(r) for r in rows]

    def get_by_id(self, record_id: str) -> Record | None:
        table = safe_ident(self.spec.table)
        conn = self._conn()
        try:
            row = conn.execute(f"SELECT * FROM {table} WHERE id=?", (record_id,)).fetchone()
        finally:
            conn.close()
        return self._decode(row) if row else None

    def create(self, fields: Mapping[str, Any]) -> Record:
        table = safe_ident(self.spec.table)
        values = self._encode(fields)
        # Customer list columns always start as empty JSON arrays.
        for col in self.spec.json_columns:
            values.setdefault(col, "[]")
        record_id = str(uuid.uuid4())
        cols = ["id", *values.keys()]
        placeholders = ", ".join("?" for _ in cols)
        conn = self._conn()
        try:
            conn.execute(
                f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({placeholders})",
                (record_id, *values.values()),
            )
            conn.commit()
        finally:
            conn.close()
        created = self.get_by_id(record_id)
        if created is None:
            raise RecordNotFound(self.entity, record_id)
        return created

    def update(self, record_id: str, fields: Mapping[str, Any]) -> Record | None:
        """Merge `fields` over the stored record; None when the id is unknown."""
        table = safe_ident(self.spec.table)
        values = self._encode(fields)
        conn = self._conn()
        try:
            exists = conn.execute(f"SELECT 1 FROM {table} WHERE id=?", (record_id,)).fetchone()
            if not exists:
                return None
            if values:
                assignments = ", ".join(f"{col}=?" for col in values)
                conn.execute(
                    f"UPDATE {table} SET {assignments} WHERE id=?",
                    (*values.values(), record_id),
                )
                conn.commit()
        finally:
            conn.close()
        return self.get_by_id(record_id)

    def delete(self, record_id: str) -> bool:
        table = safe_ident(self.spec.table)
        conn = self._conn()
        try:
            cur = conn.execute(f"DELETE FROM {table} WHERE id=?", (record_id,))
            conn.commit()
            removed = cur.rowcount > 0
        finally:
            conn.close()
        return removed


class SqliteStats:
    def __init__(self, settings: Settings):
        self.settings = settings

    def table_counts(self) -> dict[str, int | None]:
        conn = connect(self.settings.BIZ_DB_PATH)
        try:
            return table_counts(conn, STATS_TABLES)
        finally:
            conn.close()


def customer_store(settings: Settings) -> SqliteEntityStore:
    return SqliteEntityStore(settings, CUSTOMERS)


def product_store(settings: Settings) -> SqliteEntityStore:
    return SqliteEntityStore(settings, PRODUCTS)
