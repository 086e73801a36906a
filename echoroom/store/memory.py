"""In-process record store.

Used by the test suite and for local runs without a database. Records
are copied in and out so callers can never mutate stored state.
"""

from __future__ import annotations

import uuid
from typing import Any

from loguru import logger

from echoroom.store.base import Record, RecordStore, StoreError


def _matches(record: Record, filters: Record | None) -> bool:
    if not filters:
        return True
    return all(record.get(k) == v for k, v in filters.items())


def _sort_key(column: str):
    def key(record: Record) -> tuple[bool, Any]:
        value = record.get(column)
        return (value is None, value if value is not None else "")
    return key


class InMemoryStore(RecordStore):
    """Dict-of-lists store keyed by table name."""

    def __init__(self, tables: dict[str, list[Record]] | None = None) -> None:
        self._tables: dict[str, list[Record]] = {
            name: [dict(r) for r in rows] for name, rows in (tables or {}).items()
        }

    def _rows(self, table: str) -> list[Record]:
        if not table:
            raise StoreError("table name is required")
        return self._tables.setdefault(table, [])

    async def insert(self, table: str, record: Record) -> Record:
        stored = dict(record)
        stored.setdefault("id", uuid.uuid4().hex)
        self._rows(table).append(stored)
        logger.debug(f"Store: inserted into {table} (id={stored['id']})")
        return dict(stored)

    async def select(
        self,
        table: str,
        filters: Record | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Record]:
        rows = [r for r in self._rows(table) if _matches(r, filters)]
        if order_by:
            rows.sort(key=_sort_key(order_by), reverse=descending)
        if limit is not None:
            rows = rows[: max(0, limit)]
        return [dict(r) for r in rows]

    async def update(self, table: str, filters: Record, values: Record) -> list[Record]:
        updated: list[Record] = []
        for row in self._rows(table):
            if _matches(row, filters):
                row.update(values)
                updated.append(dict(row))
        return updated

    async def delete(self, table: str, filters: Record) -> int:
        rows = self._rows(table)
        keep = [r for r in rows if not _matches(r, filters)]
        removed = len(rows) - len(keep)
        self._tables[table] = keep
        return removed
