"""Error taxonomy shared by the moderation core and its seams.

Only NotFound and persistence failures are exceptions. Provider failures
are absorbed by the ReplyOracle, and profanity strikes are ordinary state
transitions handled by the engine.
"""

from __future__ import annotations


class EchoRoomError(Exception):
    """Base class for all EchoRoom errors."""


class RoomNotFoundError(EchoRoomError):
    """Raised when a room (session record) does not exist."""

    def __init__(self, room_id: str) -> None:
        super().__init__(f"Session not found: {room_id}")
        self.room_id = room_id


class PersistenceError(EchoRoomError):
    """Raised when the record store fails an insert/select/update/delete."""
