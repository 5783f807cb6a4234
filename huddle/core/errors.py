"""Error taxonomy for the chat coordination engine.

Nothing here is fatal: the dispatcher turns ``UnknownRoom``, ``NotFound`` and
``MalformedEvent`` into a dropped event, and ``AuthError`` into a rejected
handshake.
"""

from __future__ import annotations


class ChatError(Exception):
    """Base class for chat engine errors."""


class AuthError(ChatError):
    """Missing, invalid or expired bearer credential, or an unknown session."""


class UnknownRoom(ChatError):
    """Operation referenced a room that is not in the room store."""

    def __init__(self, room: str) -> None:
        super().__init__(f"Unknown room: {room}")
        self.room = room


class NotFound(ChatError):
    """Referenced message (or session) no longer exists, e.g. evicted."""


class MalformedEvent(ChatError):
    """Inbound payload is not a known event or misses required fields."""
