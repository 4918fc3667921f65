"""Live substring filtering for the list views."""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .state import Entity


SEARCH_FIELDS: dict[Entity, tuple[str, ...]] = {
    Entity.CUSTOMER: ("CustomerName", "CustomerPhone", "CustomerTCKN"),
    Entity.PRODUCT: ("ProductCode", "Details", "Barcode"),
}


def matches(record: dict[str, Any], term: str, fields: Sequence[str]) -> bool:
    """Case-insensitive substring match over `fields`; `term` must be lowercased."""
    for name in fields:
        value = record.get(name)
        if value is None:
            continue
        if term in str(value).lower():
            return True
    return False


def filter_records(
    records: Sequence[dict[str, Any]],
    search: str,
    entity: Entity,
) -> list[dict[str, Any]]:
    """Records whose search fields contain `search`, in their original order.

    Re-scans the full record set on every call; fine for the record counts
    this tool manages, but there is no index to keep it fast on large tables.
    """
    if not search:
        return list(records)
    term = search.lower()
    fields = SEARCH_FIELDS[entity]
    return [r for r in records if matches(r, term, fields)]


def clamp_index(index: int, count: int) -> int:
    """Keep a cursor within [0, count-1], or 0 for an empty list."""
    if count <= 0:
        return 0
    return max(0, min(index, count - 1))
