"""Per-room last-activity bookkeeping."""

from __future__ import annotations

import time
from typing import Callable

from loguru import logger


class ActivityTracker:
    """Maps room id → Unix timestamp of the last observed activity.

    Activity is anything that shows the room is alive: a chat message,
    typing, speaking, or the moderator's own speech. Only the inactivity
    tick reads it.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last: dict[str, float] = {}

    def touch(self, room_id: str) -> None:
        """Record 'now' as the room's last activity."""
        self._last[room_id] = self._clock()
        logger.debug(f"Activity: touched {room_id}")

    def last_activity(self, room_id: str) -> float | None:
        return self._last.get(room_id)

    def idle_duration(self, room_id: str) -> float | None:
        """Seconds since last activity, or None if the room was never touched."""
        last = self._last.get(room_id)
        if last is None:
            return None
        return max(0.0, self._clock() - last)

    def clear(self, room_id: str) -> None:
        """Forget the room (called on teardown)."""
        self._last.pop(room_id, None)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._last

    def __len__(self) -> int:
        return len(self._last)
