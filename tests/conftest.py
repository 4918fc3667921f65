from __future__ import annotations

import itertools
import os
import sys
from typing import Any

import pytest


def _ensure_project_root_on_path() -> None:
    # When running via the venv's pytest entrypoint, the CWD is not guaranteed to
    # be on sys.path. Ensure the repository root (containing `biz_db/`) is importable.
    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_path()


class FakeStore:
    """In-memory EntityStore; `fail_with` makes every write raise."""

    def __init__(self, entity: str, records: list[dict[str, Any]] | None = None):
        self.entity = entity
        self.records: dict[str, dict[str, Any]] = {r["id"]: dict(r) for r in records or []}
        self.calls: list[tuple] = []
        self.fail_with: Exception | None = None
        self._ids = itertools.count(1)

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def get_all(self) -> list[dict[str, Any]]:
        self.calls.append(("get_all",))
        return [dict(r) for r in self.records.values()]

    def get_by_id(self, record_id: str) -> dict[str, Any] | None:
        r = self.records.get(record_id)
        return dict(r) if r is not None else None

    def create(self, fields):
        self.calls.append(("create", dict(fields)))
        self._check()
        record_id = f"{self.entity}-{next(self._ids)}"
        self.records[record_id] = {"id": record_id, **fields}
        return dict(self.records[record_id])

    def update(self, record_id: str, fields):
        self.calls.append(("update", record_id, dict(fields)))
        self._check()
        if record_id not in self.records:
            return None
        self.records[record_id].update(fields)
        return dict(self.records[record_id])

    def delete(self, record_id: str) -> bool:
        self.calls.append(("delete", record_id))
        self._check()
        return self.records.pop(record_id, None) is not None

    def writes(self) -> list[tuple]:
        return [c for c in self.calls if c[0] != "get_all"]


class FakeStats:
    def __init__(self, counts: dict[str, int | None] | None = None):
        self.counts = counts if counts is not None else {"customers": 2, "products": 1, "orders": 0, "payments": None}

    def table_counts(self) -> dict[str, int | None]:
        return dict(self.counts)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def customer_records() -> list[dict[str, Any]]:
    return [
        {"id": "c1", "CustomerName": "Ada Lovelace", "CustomerPhone": "555-0101", "CustomerDebt": 0, "CustomerBalance": 42.0},
        {"id": "c2", "CustomerName": "Alan Turing", "CustomerPhone": "555-0202", "CustomerDebt": 10.5, "CustomerBalance": 0},
    ]


@pytest.fixture
def product_records() -> list[dict[str, Any]]:
    return [
        {"id": "p1", "ProductCode": "AB-100", "Details": "Steel bolt", "Price": 2.5, "ActualInventory": 40},
    ]


@pytest.fixture
def stores(customer_records, product_records):
    from biz_db.tui.state import Entity

    return {
        Entity.CUSTOMER: FakeStore("customer", customer_records),
        Entity.PRODUCT: FakeStore("product", product_records),
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def machine(stores, clock):
    from biz_db.tui.machine import ViewStateMachine

    return ViewStateMachine(stores, FakeStats(), message_delay=2.0, stats_delay=3.0, clock=clock)
