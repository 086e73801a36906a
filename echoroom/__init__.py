"""EchoRoom — real-time group chat rooms with an automated moderator.

The moderator watches each room for inactivity, profanity and explicit
``@mod`` summons. Everything outside the moderation core (persistence,
completion provider, real-time transport) sits behind a small seam:

    - store/      record CRUD (in-memory or SQLite)
    - providers/  text completion (LiteLLM)
    - channels/   publish/subscribe keyed by room (Socket.IO, mock)
"""

__version__ = "0.1.0"
