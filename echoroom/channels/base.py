"""Base channel interface for the real-time transport."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseChannel(ABC):
    """Publish/subscribe channel keyed by room id.

    Implementations own connection bookkeeping. The moderation core only
    ever addresses a room (broadcast) or a single connection (send_to).
    """

    name: str = "base"

    @abstractmethod
    async def join(self, connection_id: str, room_id: str) -> None:
        """Subscribe a connection to a room's broadcasts."""

    @abstractmethod
    async def leave(self, connection_id: str, room_id: str) -> None:
        """Unsubscribe a connection from a room."""

    @abstractmethod
    async def broadcast(
        self,
        room_id: str,
        event: str,
        payload: dict[str, Any],
        skip: str | None = None,
    ) -> None:
        """Emit an event to every connection in the room except ``skip``."""

    @abstractmethod
    async def send_to(self, connection_id: str, event: str, payload: dict[str, Any]) -> None:
        """Emit an event to a single connection."""

    @abstractmethod
    async def disconnect(self, connection_id: str) -> None:
        """Terminate a connection."""
