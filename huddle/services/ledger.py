"""Reaction and read-receipt ledger keyed by message id."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from huddle.core.errors import NotFound
from huddle.schemas.chat import Message

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    message: Message
    room: str


class Ledger:
    """
    Owns the mutable part of every live message: ``reactions`` and ``read_by``.

    Messages are indexed by id together with the room (or private room key)
    they were posted to; the room store calls ``forget`` when it evicts one, so
    an evicted id is unreachable here.
    """

    def __init__(self) -> None:
        self._entries: Dict[int, _Entry] = {}

    def track(self, message: Message, room: str) -> None:
        """Index a freshly posted message and seed ``read_by`` with its sender."""
        if message.id in self._entries:
            raise ValueError(f"Message id already tracked: {message.id}")
        if message.sender_id and message.sender_id not in message.read_by:
            message.read_by.insert(0, message.sender_id)
        self._entries[message.id] = _Entry(message=message, room=room)

    def forget(self, message_id: int) -> None:
        self._entries.pop(message_id, None)

    def room_of(self, message_id: int) -> str:
        return self._require(message_id).room

    def react(self, message_id: int, session_id: str, reaction: str) -> Dict[str, str]:
        """
        Toggle ``session_id``'s reaction on a message.

        No reaction yet: set it. Same reaction: clear it. Different reaction:
        replace it. Returns the full reaction mapping after the change.
        """
        message = self._require(message_id).message
        current = message.reactions.get(session_id)
        if current == reaction:
            del message.reactions[session_id]
        else:
            message.reactions[session_id] = reaction
        return dict(message.reactions)

    def mark_read(self, message_id: int, session_id: str) -> Optional[list[str]]:
        """Add ``session_id`` to ``read_by``. Return the new set, or None if unchanged."""
        message = self._require(message_id).message
        if session_id in message.read_by:
            return None
        message.read_by.append(session_id)
        return list(message.read_by)

    def reactions(self, message_id: int) -> Dict[str, str]:
        return dict(self._require(message_id).message.reactions)

    def read_by(self, message_id: int) -> list[str]:
        return list(self._require(message_id).message.read_by)

    def _require(self, message_id: int) -> _Entry:
        entry = self._entries.get(message_id)
        if entry is None:
            logger.debug("Ledger lookup for unknown message %s", message_id)
            raise NotFound(f"Message not found: {message_id}")
        return entry

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
