"""Real-time channels — publish/subscribe keyed by room id."""

from echoroom.channels.base import BaseChannel

__all__ = ["BaseChannel"]
