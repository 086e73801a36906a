"""Moderation core: filter, oracle, per-room engines and the coordinator."""

from echoroom.moderation.activity import ActivityTracker
from echoroom.moderation.content_filter import ContentFilter
from echoroom.moderation.coordinator import RoomCoordinator
from echoroom.moderation.engine import MessageOutcome, ModerationEngine
from echoroom.moderation.oracle import ReplyOracle
from echoroom.moderation.repository import RoomRepository
from echoroom.moderation.strikes import StrikeLedger

__all__ = [
    "ActivityTracker",
    "ContentFilter",
    "MessageOutcome",
    "ModerationEngine",
    "ReplyOracle",
    "RoomCoordinator",
    "RoomRepository",
    "StrikeLedger",
]
