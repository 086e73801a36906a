"""Mock channel for tests and local scripted runs.

Implements BaseChannel in memory: tracks room membership and captures
every emitted event so tests can assert on exactly what each connection
would have received.

Usage:
    mock = MockChannel()
    await coordinator.on_join("sid-1", room_id, "u1", "Ana", "calm")
    assert mock.events_named("room-joined")
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from loguru import logger

from echoroom.channels.base import BaseChannel


@dataclass
class EmittedEvent:
    """One outbound event, addressed to a room or a single connection."""
    event: str
    payload: dict[str, Any]
    room_id: str | None = None          # Set for broadcasts
    connection_id: str | None = None    # Set for direct sends
    skip: str | None = None             # Broadcast exclusion


class MockChannel(BaseChannel):
    """Programmatic channel that records membership and emitted events."""

    name = "mock"

    def __init__(self) -> None:
        self._rooms: dict[str, set[str]] = {}
        self._events: list[EmittedEvent] = []
        self._event_signal: asyncio.Event = asyncio.Event()
        self.disconnected: list[str] = []

    # ── BaseChannel ───────────────────────────────────────

    async def join(self, connection_id: str, room_id: str) -> None:
        self._rooms.setdefault(room_id, set()).add(connection_id)

    async def leave(self, connection_id: str, room_id: str) -> None:
        members = self._rooms.get(room_id)
        if members is not None:
            members.discard(connection_id)
            if not members:
                self._rooms.pop(room_id, None)

    async def broadcast(
        self,
        room_id: str,
        event: str,
        payload: dict[str, Any],
        skip: str | None = None,
    ) -> None:
        self._record(EmittedEvent(event=event, payload=payload, room_id=room_id, skip=skip))

    async def send_to(self, connection_id: str, event: str, payload: dict[str, Any]) -> None:
        self._record(EmittedEvent(event=event, payload=payload, connection_id=connection_id))

    async def disconnect(self, connection_id: str) -> None:
        for room_id in list(self._rooms):
            await self.leave(connection_id, room_id)
        self.disconnected.append(connection_id)
        logger.debug(f"MockChannel: disconnected {connection_id}")

    # ── Capture ───────────────────────────────────────────

    def _record(self, emitted: EmittedEvent) -> None:
        self._events.append(emitted)
        self._event_signal.set()

    @property
    def events(self) -> list[EmittedEvent]:
        return list(self._events)

    def events_named(self, event: str) -> list[EmittedEvent]:
        return [e for e in self._events if e.event == event]

    def received_by(self, connection_id: str) -> list[EmittedEvent]:
        """Events a connection would see: direct sends plus room broadcasts."""
        rooms = {r for r, members in self._rooms.items() if connection_id in members}
        return [
            e for e in self._events
            if e.connection_id == connection_id
            or (e.room_id in rooms and e.skip != connection_id)
        ]

    def members(self, room_id: str) -> set[str]:
        return set(self._rooms.get(room_id, set()))

    def clear_events(self) -> None:
        self._events.clear()
        self._event_signal.clear()

    async def wait_for_event(self, event: str, timeout: float = 5.0) -> EmittedEvent | None:
        """Wait until an event with this name has been emitted.

        Returns the first matching event, or None on timeout.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            matches = self.events_named(event)
            if matches:
                return matches[0]
            remaining = deadline - loop.time()
            if remaining <= 0:
                return None
            self._event_signal.clear()
            try:
                await asyncio.wait_for(self._event_signal.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                return self.events_named(event)[0] if self.events_named(event) else None
