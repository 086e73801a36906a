"""Record stores — the persistence seam."""

from echoroom.store.base import RecordStore, StoreError
from echoroom.store.memory import InMemoryStore

__all__ = ["RecordStore", "StoreError", "InMemoryStore"]
