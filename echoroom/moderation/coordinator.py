"""RoomCoordinator — routes transport events into per-room moderation.

Owns every piece of cross-room state as plain instance attributes: the
activity tracker, the strike ledger, the engine registry and the live
connection table. Two coordinators never share anything, so tests can run
as many as they like side by side.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any, Callable

from loguru import logger

from echoroom.config.schema import ModerationConfig
from echoroom.errors import RoomNotFoundError
from echoroom.moderation.activity import ActivityTracker
from echoroom.moderation.content_filter import ContentFilter, default_filter
from echoroom.moderation.engine import MessageOutcome, ModerationEngine
from echoroom.moderation.models import (
    DEFAULT_AVATAR,
    MODERATOR_ID,
    ConnectionInfo,
    Participant,
    Room,
)
from echoroom.moderation.strikes import StrikeLedger
from echoroom.store.base import StoreError

if TYPE_CHECKING:
    from echoroom.channels.base import BaseChannel
    from echoroom.moderation.oracle import ReplyOracle
    from echoroom.moderation.repository import RoomRepository


class RoomCoordinator:
    """Entry point for join / leave / message / typing / voice events."""

    def __init__(
        self,
        repository: RoomRepository,
        oracle: ReplyOracle,
        channel: BaseChannel,
        config: ModerationConfig | None = None,
        content_filter: ContentFilter | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.repository = repository
        self.oracle = oracle
        self.channel = channel
        self.config = config or ModerationConfig()
        self.content_filter = content_filter or default_filter
        self._clock = clock

        self.activity = ActivityTracker(clock=clock)
        self.strikes = StrikeLedger(self.config.strike_threshold)
        self._engines: dict[str, ModerationEngine] = {}
        self._connections: dict[str, ConnectionInfo] = {}

    # ── Registry ─────────────────────────────────────────────

    def engine_for(self, room_id: str) -> ModerationEngine | None:
        return self._engines.get(room_id)

    @property
    def active_rooms(self) -> list[str]:
        return list(self._engines)

    def connection(self, connection_id: str) -> ConnectionInfo | None:
        return self._connections.get(connection_id)

    def _build_engine(self, room: Room, activity: ActivityTracker) -> ModerationEngine:
        return ModerationEngine(
            room=room,
            repository=self.repository,
            oracle=self.oracle,
            channel=self.channel,
            activity=activity,
            strikes=self.strikes,
            content_filter=self.content_filter,
            config=self.config,
            clock=self._clock,
        )

    def ensure_engine(self, room: Room) -> ModerationEngine:
        """Return the room's engine, creating and arming it if there is none.

        No await between the lookup and the insert: at most one engine per room.
        """
        engine = self._engines.get(room.id)
        if engine is None:
            engine = self._build_engine(room, self.activity)
            self._engines[room.id] = engine
        engine.start()
        return engine

    def teardown(self, room_id: str) -> bool:
        """Stop and forget the room's engine. Returns False if there was none."""
        engine = self._engines.pop(room_id, None)
        self.activity.clear(room_id)
        if engine is None:
            return False
        engine.stop()
        return True

    async def shutdown(self) -> None:
        """Stop every engine and wait out in-flight ticks (process exit)."""
        engines = list(self._engines.values())
        for room_id in list(self._engines):
            self.teardown(room_id)
        await asyncio.gather(*(engine.drain() for engine in engines))
        logger.info("Coordinator: all rooms torn down")

    def _touch(self, room_id: str) -> None:
        # Rooms without a live engine keep no activity record
        if room_id in self._engines:
            self.activity.touch(room_id)

    def _has_live_connection(self, room_id: str) -> bool:
        return any(info.session_id == room_id for info in self._connections.values())

    # ── Join / leave ─────────────────────────────────────────

    async def on_join(
        self,
        connection_id: str,
        room_id: str,
        user_id: str,
        display_name: str,
        mood: str = "calm",
    ) -> bool:
        """Join a room. Returns False if the joiner got an error event instead."""
        if user_id == MODERATOR_ID:
            logger.warning(f"Coordinator: {connection_id} tried to join {room_id} as the moderator")
            await self.channel.send_to(connection_id, "error", {"message": "Failed to join room"})
            return False

        try:
            room = await self.repository.get_room(room_id)
        except RoomNotFoundError:
            logger.warning(f"Coordinator: {user_id} tried to join missing room {room_id}")
            await self.channel.send_to(connection_id, "error", {"message": "Session not found"})
            return False
        except StoreError as e:
            logger.error(f"Coordinator: room lookup failed for {room_id}: {e}")
            await self.channel.send_to(connection_id, "error", {"message": "Failed to join room"})
            return False

        await self.channel.join(connection_id, room_id)
        self._connections[connection_id] = ConnectionInfo(
            connection_id=connection_id,
            session_id=room_id,
            user_id=user_id,
            username=display_name,
        )

        participant = Participant(
            user_id=user_id,
            session_id=room_id,
            user_name=display_name,
            mood=mood or "calm",
        )
        await self.repository.upsert_participant(participant)

        # Armed only once the participant record exists, so a concurrent last
        # leave either sees this joiner or tears down before the engine exists
        self.ensure_engine(room)
        self.activity.touch(room_id)
        logger.info(f"Coordinator: {display_name} ({user_id}) joined {room_id}")

        participants = await self.repository.list_participants(room_id)
        if participants is None:
            await self.channel.send_to(
                connection_id, "error", {"message": "Failed to fetch participants"}
            )
            return False

        await self.channel.send_to(
            connection_id,
            "room-joined",
            {"session_id": room_id, "participants": participants},
        )
        await self.channel.broadcast(
            room_id,
            "user-joined",
            {
                "user_id": user_id,
                "user_name": display_name,
                "username": display_name,
                "mood": participant.mood,
                "avatar": DEFAULT_AVATAR,
                "is_speaking": False,
                "is_muted": False,
            },
            skip=connection_id,
        )
        return True

    async def on_leave(self, connection_id: str, room_id: str, user_id: str) -> None:
        await self.channel.leave(connection_id, room_id)
        info = self._connections.get(connection_id)
        if info is not None and info.session_id == room_id:
            info.session_id = None
        logger.info(f"Coordinator: {user_id} left {room_id}")

        await self.repository.remove_participant(room_id, user_id)
        await self._teardown_if_empty(room_id)
        await self.channel.broadcast(room_id, "user-left", {"user_id": user_id})

    async def on_disconnect(self, connection_id: str) -> None:
        self.strikes.clear(connection_id)
        info = self._connections.pop(connection_id, None)
        logger.info(f"Coordinator: connection {connection_id} closed")
        if info is None or not info.session_id or not info.user_id:
            return

        removed = await self.repository.remove_participant(info.session_id, info.user_id)
        if not removed:
            return
        await self._teardown_if_empty(info.session_id)
        await self.channel.broadcast(info.session_id, "user-left", {"user_id": info.user_id})

    async def _teardown_if_empty(self, room_id: str) -> None:
        remaining = await self.repository.count_participants(room_id)
        if remaining is None:
            logger.warning(f"Coordinator: could not count participants in {room_id}, keeping timer")
            return
        if remaining > 0:
            return
        if self._has_live_connection(room_id):
            # A join is still writing its participant record
            logger.debug(f"Coordinator: {room_id} has a joiner in flight, keeping timer")
            return
        logger.info(f"Coordinator: {room_id} is empty, clearing its timer")
        self.teardown(room_id)

    # ── Messages ─────────────────────────────────────────────

    async def on_message(
        self,
        connection_id: str,
        room_id: str,
        sender: str,
        user_id: str,
        text: str,
    ) -> MessageOutcome | None:
        """Persist, broadcast, then moderate one chat message.

        The sender's id comes from their join when the connection is known.
        Returns None when the message was dropped (unsaved, or claiming the
        moderator identity).
        """
        info = self._connections.get(connection_id)
        if info is not None and info.user_id:
            user_id = info.user_id
        if user_id == MODERATOR_ID:
            logger.warning(f"Coordinator: {connection_id} posted as the moderator in {room_id}, dropped")
            return None

        redacted = self.content_filter.redact(text)
        saved = await self.repository.save_message(room_id, sender, user_id, redacted)
        if saved is None:
            return None

        await self.channel.broadcast(room_id, "receiveMessage", saved.to_record())

        engine = self._engines.get(room_id)
        if engine is None:
            # No live engine (nobody joined through us, or already torn down):
            # moderate through a throwaway engine that leaves no state behind
            try:
                room = await self.repository.get_room(room_id)
            except (RoomNotFoundError, StoreError) as e:
                logger.warning(f"Coordinator: not moderating message in {room_id}: {e}")
                return None
            engine = self._build_engine(room, ActivityTracker(clock=self._clock))

        try:
            return await engine.on_message_received(saved, text, connection_id)
        except Exception as e:
            logger.error(f"Coordinator: moderation failed in {room_id}: {e}")
            return None

    # ── Presence signals ─────────────────────────────────────

    async def on_typing_start(
        self,
        connection_id: str,
        room_id: str,
        user_id: str,
        username: str,
    ) -> None:
        self._touch(room_id)
        await self.channel.broadcast(
            room_id, "typing-start", {"user_id": user_id, "username": username},
            skip=connection_id,
        )

    async def on_typing_stop(self, connection_id: str, room_id: str, user_id: str) -> None:
        await self.channel.broadcast(
            room_id, "typing-stop", {"user_id": user_id}, skip=connection_id,
        )

    async def on_voice_status(
        self,
        connection_id: str,
        user_id: str,
        is_speaking: bool,
        is_muted: bool,
    ) -> None:
        info = self._connections.get(connection_id)
        room_id = info.session_id if info else None
        if not room_id:
            logger.debug(f"Coordinator: voice-status from {connection_id} outside any room")
            return

        await self.repository.update_voice_status(room_id, user_id, is_speaking, is_muted)
        await self.channel.broadcast(
            room_id,
            "voice-status",
            {"user_id": user_id, "isSpeaking": bool(is_speaking), "isMuted": bool(is_muted)},
        )
        if is_speaking:
            self._touch(room_id)

    async def on_reaction(
        self,
        connection_id: str,
        message_id: str,
        reaction: str,
        user_id: str,
    ) -> None:
        info = self._connections.get(connection_id)
        room_id = info.session_id if info else None
        if not room_id:
            return
        payload: dict[str, Any] = {"messageId": message_id, "reaction": reaction, "userId": user_id}
        await self.channel.broadcast(room_id, "message-reaction", payload)
