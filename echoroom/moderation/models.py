"""Data models for the moderation core.

Room, message and participant records as they come out of the store,
the moderator identity, engine states, and the category → persona table
used to build the moderator's system directive.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ── Moderator identity ──────────────────────────────────────────────────
MODERATOR_ID = "00000000-0000-4000-8000-000000000000"
MODERATOR_NAME = "moderator"

# ── Table names ─────────────────────────────────────────────────────────
SESSIONS_TABLE = "sessions"
MESSAGES_TABLE = "messages"
PARTICIPANTS_TABLE = "participants"

DEFAULT_AVATAR = "/avatars/default-avatar.png"

# ── Fixed moderator phrases ─────────────────────────────────────────────
OPENING_PROMPT = "Hi there 👋 Just checking in, what brings you here today?"
ENGAGEMENT_PROMPT = "I'd love to hear from someone! What's on your mind today?"
EMPTY_REPLY_FALLBACK = "I'm here if anyone wants to talk. 💬"
PROVIDER_FAILURE_FALLBACK = "Just checking in, how's everyone doing so far? 😊"


def private_warning_text(strikes: int, threshold: int) -> str:
    return f"⚠️ Inappropriate language detected. Strike {strikes}/{threshold}"


def public_warning_text(sender: str, strikes: int, threshold: int) -> str:
    return f"@{sender}, please watch your language. This is strike {strikes}/{threshold}."


def ejection_text(sender: str) -> str:
    return f"@{sender} has been removed from the chat for repeated violations."


# ── Engine states ───────────────────────────────────────────────────────


class EngineState(str, Enum):
    """Lifecycle of a room's moderation engine."""
    NO_TIMER = "no_timer"
    ACTIVE = "active"
    TORN_DOWN = "torn_down"


# ── Personas ────────────────────────────────────────────────────────────


class Category(str, Enum):
    """Room categories with a dedicated moderator persona."""
    HOPEFUL = "Hopeful"
    LONELY = "Lonely"
    MOTIVATED = "Motivated"
    CALM = "Calm"
    LOVING = "Loving"
    JOYFUL = "Joyful"
    BOOKS = "Books"


PERSONAS: dict[Category, str] = {
    Category.HOPEFUL: "You are an empathetic moderator bringing hope and optimism to the conversation.",
    Category.LONELY: "You are a kind and supportive friend helping people feel less alone.",
    Category.MOTIVATED: "You are a coach who encourages and energizes people to overcome challenges.",
    Category.CALM: "You help create a peaceful and relaxed environment.",
    Category.LOVING: "You promote warmth, compassion, and acceptance.",
    Category.JOYFUL: "You uplift the mood with fun, positivity, and lighthearted energy.",
    Category.BOOKS: "You moderate thoughtful and curious book discussions.",
}

GENERIC_PERSONA = 'You are a kind and attentive AI moderator in the "{category}" room.'
DEFAULT_CATEGORY = "General"


def persona_for(category: str | None) -> str:
    """Return the persona directive for a category, falling back to the generic one."""
    name = category or DEFAULT_CATEGORY
    try:
        return PERSONAS[Category(name)]
    except ValueError:
        return GENERIC_PERSONA.format(category=name)


# ── Timestamps ──────────────────────────────────────────────────────────


def to_iso(ts: float) -> str:
    """Unix timestamp → ISO 8601 (UTC). Sortable as text."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def from_iso(value: str | None) -> float | None:
    """ISO 8601 → Unix timestamp. Naive values are treated as UTC."""
    if not value:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


# ── Records ─────────────────────────────────────────────────────────────


@dataclass
class Room:
    """A chat room (the ``sessions`` table). Created outside this core."""

    id: str
    created_at: float               # Unix timestamp
    category: str = DEFAULT_CATEGORY

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Room:
        return cls(
            id=str(record["id"]),
            created_at=from_iso(record.get("created_at")) or 0.0,
            category=record.get("category") or DEFAULT_CATEGORY,
        )


@dataclass
class ChatMessage:
    """A persisted chat message. ``text`` is always the redacted copy."""

    session_id: str
    sender: str                     # Display name, or "moderator"
    user_id: str                    # Participant id, or MODERATOR_ID
    text: str
    timestamp: float                # Unix timestamp
    id: str | None = None

    @property
    def is_moderator(self) -> bool:
        return self.user_id == MODERATOR_ID

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> ChatMessage:
        return cls(
            id=record.get("id"),
            session_id=str(record["session_id"]),
            sender=record.get("sender") or "",
            user_id=str(record.get("user_id") or ""),
            text=record.get("text") or "",
            timestamp=from_iso(record.get("timestamp")) or 0.0,
        )

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "session_id": self.session_id,
            "sender": self.sender,
            "user_id": self.user_id,
            "text": self.text,
            "timestamp": to_iso(self.timestamp),
        }
        if self.id is not None:
            record["id"] = self.id
        return record


@dataclass
class Participant:
    """A participant in a room (the ``participants`` table)."""

    user_id: str
    session_id: str
    user_name: str
    mood: str = "calm"
    avatar: str = DEFAULT_AVATAR
    is_speaking: bool = False
    is_muted: bool = False
    joined_at: str = ""

    def to_record(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "session_id": self.session_id,
            "user_name": self.user_name,
            "mood": self.mood,
            "avatar": self.avatar,
            "is_speaking": self.is_speaking,
            "is_muted": self.is_muted,
            "joined_at": self.joined_at,
        }


@dataclass
class ConnectionInfo:
    """What the coordinator knows about a live connection."""

    connection_id: str
    session_id: str | None = None
    user_id: str | None = None
    username: str | None = None
