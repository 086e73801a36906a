"""Typed access to the sessions / messages / participants tables.

Write failures are logged and reported as ``None`` / ``False`` so the
caller can abort just the operation at hand. Room lookup is the one read
that raises, because a missing room has to reach the joiner as an error.
"""

from __future__ import annotations

import time
from typing import Any, Callable

from loguru import logger

from echoroom.errors import RoomNotFoundError
from echoroom.moderation.models import (
    MESSAGES_TABLE,
    PARTICIPANTS_TABLE,
    SESSIONS_TABLE,
    ChatMessage,
    Participant,
    Room,
    to_iso,
)
from echoroom.store.base import RecordStore, StoreError


class RoomRepository:
    """Thin domain layer over a RecordStore."""

    def __init__(self, store: RecordStore, clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._clock = clock

    @property
    def store(self) -> RecordStore:
        return self._store

    # ── Rooms ────────────────────────────────────────────────

    async def get_room(self, room_id: str) -> Room:
        """Fetch a room. Raises RoomNotFoundError or StoreError."""
        rows = await self._store.select(SESSIONS_TABLE, {"id": room_id}, limit=1)
        if not rows:
            raise RoomNotFoundError(room_id)
        return Room.from_record(rows[0])

    async def create_room(self, category: str, room_id: str | None = None, title: str = "") -> Room:
        """Create a room record. Rooms are normally created outside this core."""
        record: dict[str, Any] = {
            "category": category,
            "title": title,
            "created_at": to_iso(self._clock()),
        }
        if room_id:
            record["id"] = room_id
        stored = await self._store.insert(SESSIONS_TABLE, record)
        return Room.from_record(stored)

    # ── Messages ─────────────────────────────────────────────

    async def save_message(
        self,
        room_id: str,
        sender: str,
        user_id: str,
        text: str,
    ) -> ChatMessage | None:
        """Persist a message stamped with 'now'. None on failure."""
        message = ChatMessage(
            session_id=room_id,
            sender=sender,
            user_id=user_id,
            text=text,
            timestamp=self._clock(),
        )
        try:
            stored = await self._store.insert(MESSAGES_TABLE, message.to_record())
        except StoreError as e:
            logger.error(f"Repository: failed to save message in {room_id}: {e}")
            return None
        return ChatMessage.from_record(stored)

    async def recent_messages(self, room_id: str, limit: int) -> list[ChatMessage] | None:
        """Most recent messages, newest first. None on failure."""
        try:
            rows = await self._store.select(
                MESSAGES_TABLE,
                {"session_id": room_id},
                order_by="timestamp",
                descending=True,
                limit=limit,
            )
        except StoreError as e:
            logger.error(f"Repository: failed to fetch messages for {room_id}: {e}")
            return None
        return [ChatMessage.from_record(r) for r in rows]

    # ── Participants ─────────────────────────────────────────

    async def upsert_participant(self, participant: Participant) -> dict[str, Any] | None:
        """Create or refresh the (user_id, session_id) participant record.

        A refresh keeps the original ``joined_at`` so join order is stable.
        """
        key = {"user_id": participant.user_id, "session_id": participant.session_id}
        refresh = participant.to_record()
        refresh.pop("joined_at")
        try:
            updated = await self._store.update(PARTICIPANTS_TABLE, key, refresh)
            if updated:
                return updated[0]
            if not participant.joined_at:
                participant.joined_at = to_iso(self._clock())
            return await self._store.insert(PARTICIPANTS_TABLE, participant.to_record())
        except StoreError as e:
            logger.error(
                f"Repository: failed to upsert participant {participant.user_id} "
                f"in {participant.session_id}: {e}"
            )
            return None

    async def list_participants(self, room_id: str) -> list[dict[str, Any]] | None:
        """Participants in join order. None on failure."""
        try:
            return await self._store.select(
                PARTICIPANTS_TABLE,
                {"session_id": room_id},
                order_by="joined_at",
            )
        except StoreError as e:
            logger.error(f"Repository: failed to fetch participants for {room_id}: {e}")
            return None

    async def remove_participant(self, room_id: str, user_id: str) -> bool:
        try:
            removed = await self._store.delete(
                PARTICIPANTS_TABLE, {"user_id": user_id, "session_id": room_id}
            )
        except StoreError as e:
            logger.error(f"Repository: failed to remove participant {user_id} from {room_id}: {e}")
            return False
        logger.debug(f"Repository: removed {removed} participant record(s) for {user_id} in {room_id}")
        return True

    async def count_participants(self, room_id: str) -> int | None:
        rows = await self.list_participants(room_id)
        return None if rows is None else len(rows)

    async def update_voice_status(
        self,
        room_id: str,
        user_id: str,
        is_speaking: bool,
        is_muted: bool,
    ) -> bool:
        try:
            await self._store.update(
                PARTICIPANTS_TABLE,
                {"user_id": user_id, "session_id": room_id},
                {"is_speaking": bool(is_speaking), "is_muted": bool(is_muted)},
            )
        except StoreError as e:
            logger.error(f"Repository: failed to update voice status for {user_id}: {e}")
            return False
        return True
