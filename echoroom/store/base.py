"""Record store interface.

Simple key-filtered CRUD over named tables. Filters are column → value
equality; ordering is by one column. Every failure surfaces as
``StoreError`` so callers only have one thing to catch.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from echoroom.errors import PersistenceError

Record = dict[str, Any]


class StoreError(PersistenceError):
    """An insert/select/update/delete failed."""


class RecordStore(ABC):
    """Async CRUD over named tables."""

    @abstractmethod
    async def insert(self, table: str, record: Record) -> Record:
        """Insert one record and return it as stored (with its id)."""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Record | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Record]:
        """Return records matching every filter, optionally ordered and limited."""

    @abstractmethod
    async def update(self, table: str, filters: Record, values: Record) -> list[Record]:
        """Apply ``values`` to every matching record; return the updated records."""

    @abstractmethod
    async def delete(self, table: str, filters: Record) -> int:
        """Delete every matching record; return how many were removed."""

    async def close(self) -> None:
        """Release resources. Default is a no-op."""
