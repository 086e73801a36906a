"""ModerationEngine — one per live room.

Owns the room's inactivity timer and the two message-driven moderation
paths (``@mod`` summons and denylist strikes). Every moderator utterance
goes through ``emit``: persisted first, broadcast only if the write
succeeded, then counted as room activity.
"""

from __future__ import annotations

import asyncio
import time
from enum import Enum
from typing import TYPE_CHECKING, Callable

from loguru import logger

from echoroom.config.schema import ModerationConfig
from echoroom.moderation.activity import ActivityTracker
from echoroom.moderation.content_filter import ContentFilter, default_filter
from echoroom.moderation.models import (
    ENGAGEMENT_PROMPT,
    MODERATOR_ID,
    MODERATOR_NAME,
    OPENING_PROMPT,
    ChatMessage,
    EngineState,
    Room,
    ejection_text,
    private_warning_text,
    public_warning_text,
)
from echoroom.moderation.strikes import StrikeLedger

if TYPE_CHECKING:
    from echoroom.channels.base import BaseChannel
    from echoroom.moderation.oracle import ReplyOracle
    from echoroom.moderation.repository import RoomRepository


class MessageOutcome(str, Enum):
    """What the engine did with one participant message."""
    MODERATOR = "moderator"      # Moderator's own message, not evaluated
    SUMMONED = "summoned"        # @mod marker answered
    STRUCK = "struck"            # Violation, strike recorded
    EJECTED = "ejected"          # Violation that reached the threshold
    IGNORED = "ignored"          # Violation from an already-ejected connection
    CLEAN = "clean"


class ModerationEngine:
    """Per-room moderation: inactivity timer, summons, strikes."""

    def __init__(
        self,
        room: Room,
        repository: RoomRepository,
        oracle: ReplyOracle,
        channel: BaseChannel,
        activity: ActivityTracker,
        strikes: StrikeLedger,
        content_filter: ContentFilter | None = None,
        config: ModerationConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.room = room
        self._repo = repository
        self._oracle = oracle
        self._channel = channel
        self._activity = activity
        self._strikes = strikes
        self._filter = content_filter or default_filter
        self._config = config or ModerationConfig()
        self._clock = clock

        self._running = False
        self._torn_down = False
        self._timer_task: asyncio.Task | None = None
        self._tick_task: asyncio.Task | None = None

    @property
    def room_id(self) -> str:
        return self.room.id

    @property
    def state(self) -> EngineState:
        if self._torn_down:
            return EngineState.TORN_DOWN
        if self._timer_task is not None and not self._timer_task.done():
            return EngineState.ACTIVE
        return EngineState.NO_TIMER

    # ── Timer lifecycle ──────────────────────────────────────

    def start(self) -> bool:
        """Arm the inactivity timer. Returns False if already armed or torn down."""
        if self._torn_down:
            logger.debug(f"Engine {self.room_id}: start ignored, already torn down")
            return False
        if self._timer_task is not None and not self._timer_task.done():
            return False
        self._running = True
        self._timer_task = asyncio.create_task(self._inactivity_watcher())
        logger.info(
            f"Engine {self.room_id}: timer started "
            f"(every {self._config.tick_interval}s, category={self.room.category})"
        )
        return True

    def stop(self) -> None:
        """Tear down: cancel the timer and discard the room's activity record.

        Idempotent. A tick already in flight may finish, but nothing re-arms.
        """
        if self._torn_down:
            return
        self._running = False
        self._torn_down = True
        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
        self._activity.clear(self.room_id)
        logger.info(f"Engine {self.room_id}: torn down")

    async def _inactivity_watcher(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._config.tick_interval)
                if not self._running:
                    break
                # Shielded so a teardown mid-tick lets the tick finish on its own
                self._tick_task = asyncio.create_task(self.tick())
                await asyncio.shield(self._tick_task)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Engine {self.room_id}: inactivity tick failed: {e}")

    async def drain(self) -> None:
        """Cancel a tick still in flight after teardown and wait for it to unwind."""
        task = self._tick_task
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        logger.debug(f"Engine {self.room_id}: in-flight tick cancelled")

    # ── Inactivity tick ──────────────────────────────────────

    async def tick(self) -> str | None:
        """Run one inactivity check. Returns the text emitted, if any."""
        cfg = self._config
        now = self._clock()
        room_age = now - self.room.created_at

        idle = self._activity.idle_duration(self.room_id)
        if idle is None:
            # Never touched: only the room's age can make it eligible
            if room_age <= cfg.empty_room_grace:
                return None
        elif idle < cfg.inactivity_threshold:
            return None

        history = await self._repo.recent_messages(self.room_id, cfg.tick_history_window)
        if history is None:
            return None

        if not history:
            if room_age > cfg.empty_room_grace:
                return await self._emit_text(OPENING_PROMPT, reason="opening")
            return None

        newest = history[0]
        if newest.is_moderator and now - newest.timestamp < cfg.moderator_cooldown:
            logger.debug(f"Engine {self.room_id}: moderator spoke recently, staying quiet")
            return None

        last_user = next((m for m in history if not m.is_moderator), None)
        if last_user is None:
            return await self._emit_text(ENGAGEMENT_PROMPT, reason="engagement")

        if now - last_user.timestamp <= cfg.inactivity_threshold:
            return None

        reply = await self._oracle.generate_reply(
            list(reversed(history)), self.room.category, is_direct_summon=False
        )
        return await self._emit_text(reply, reason="revive")

    async def _emit_text(self, text: str, reason: str) -> str | None:
        if self._torn_down:
            return None
        saved = await self.emit(text)
        if saved is None:
            return None
        logger.info(f"Engine {self.room_id}: moderator spoke ({reason})")
        return saved.text

    # ── Message-driven moderation ────────────────────────────

    async def on_message_received(
        self,
        message: ChatMessage,
        raw_text: str,
        connection_id: str,
    ) -> MessageOutcome:
        """Evaluate a participant message after it was saved and broadcast.

        ``message`` is the persisted (redacted) record; ``raw_text`` is what
        the participant actually typed. A summon takes precedence over a
        violation in the same message.
        """
        if not self._torn_down:
            self._activity.touch(self.room_id)
        if message.is_moderator:
            return MessageOutcome.MODERATOR

        if self._config.summon_marker.lower() in raw_text.lower():
            await self._answer_summon()
            return MessageOutcome.SUMMONED

        if not self._filter.contains_violation(raw_text):
            return MessageOutcome.CLEAN

        if self._strikes.reached(connection_id):
            # Already ejected; disconnect may still be in flight
            return MessageOutcome.IGNORED

        return await self._record_strike(message.sender, connection_id)

    async def _answer_summon(self) -> None:
        history = await self._repo.recent_messages(
            self.room_id, self._config.summon_history_window
        )
        reply = await self._oracle.generate_reply(
            list(reversed(history or [])), self.room.category, is_direct_summon=True
        )
        logger.info(f"Engine {self.room_id}: answering @mod summon")
        await self.emit(reply)

    async def _record_strike(self, sender: str, connection_id: str) -> MessageOutcome:
        threshold = self._strikes.threshold
        count = self._strikes.increment(connection_id)
        logger.warning(
            f"Engine {self.room_id}: violation by {sender} ({connection_id}), "
            f"strike {count}/{threshold}"
        )

        await self._channel.send_to(
            connection_id, "warning", {"message": private_warning_text(count, threshold)}
        )
        await self.emit(public_warning_text(sender, count, threshold))

        if count < threshold:
            return MessageOutcome.STRUCK

        await self.emit(ejection_text(sender))
        await self._channel.broadcast(self.room_id, "userKicked", {"user": sender})
        await self._channel.leave(connection_id, self.room_id)
        await self._channel.disconnect(connection_id)
        logger.warning(f"Engine {self.room_id}: ejected {sender} ({connection_id})")
        return MessageOutcome.EJECTED

    # ── Output ───────────────────────────────────────────────

    async def emit(self, text: str) -> ChatMessage | None:
        """Persist a moderator message, then broadcast it to the room.

        Nothing is broadcast if the write fails.
        """
        saved = await self._repo.save_message(self.room_id, MODERATOR_NAME, MODERATOR_ID, text)
        if saved is None:
            logger.error(f"Engine {self.room_id}: moderator message not saved, dropping it")
            return None
        await self._channel.broadcast(self.room_id, "receiveMessage", saved.to_record())
        if not self._torn_down:
            self._activity.touch(self.room_id)
        return saved
