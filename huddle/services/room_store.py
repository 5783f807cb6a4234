"""Room store: membership, typing sets and per-room message logs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from huddle.constants.chat import MESSAGE_LOG_CAPACITY
from huddle.core.errors import UnknownRoom
from huddle.core.session_key import build_private_room_key, is_private_room
from huddle.schemas.chat import Message
from huddle.services.ledger import Ledger
from huddle.services.message_log import MessageLog

logger = logging.getLogger(__name__)


@dataclass
class Room:
    name: str
    log: MessageLog
    private: bool = False
    participants: tuple[str, ...] = ()
    # Insertion-ordered sets of session ids.
    members: Dict[str, None] = field(default_factory=dict)
    typing: Dict[str, None] = field(default_factory=dict)

    def audience(self) -> list[str]:
        """Sessions that receive room-scoped broadcasts."""
        if self.private:
            return list(self.participants)
        return list(self.members)


@dataclass(frozen=True)
class JoinResult:
    room: str
    previous_room: Optional[str] = None
    was_typing: bool = False


@dataclass(frozen=True)
class LeaveResult:
    room: str
    was_typing: bool = False


class RoomStore:
    """
    Owns every room and the session → room membership index.

    A session is a member of at most one room. Posting a message also
    registers it with the ledger and forgets whatever the log evicts.
    """

    def __init__(
        self,
        public_rooms: Iterable[str],
        ledger: Ledger,
        capacity: int = MESSAGE_LOG_CAPACITY,
    ) -> None:
        self._capacity = capacity
        self._ledger = ledger
        self._rooms: Dict[str, Room] = {}
        self._membership: Dict[str, str] = {}
        for name in public_rooms:
            if is_private_room(name):
                raise ValueError(f"Public room name uses the private prefix: {name}")
            self._rooms[name] = Room(name=name, log=MessageLog(capacity))

    # --- rooms ---

    def get(self, name: str) -> Room:
        room = self._rooms.get(name)
        if room is None:
            raise UnknownRoom(name)
        return room

    def room_names(self, include_private: bool = False) -> list[str]:
        return [
            name
            for name, room in self._rooms.items()
            if include_private or not room.private
        ]

    def ensure_private(self, session_id: str, other_session_id: str) -> Room:
        """Get or lazily create the private room for a pair of sessions."""
        key = build_private_room_key(session_id, other_session_id)
        room = self._rooms.get(key)
        if room is None:
            participants = tuple(dict.fromkeys(sorted((session_id, other_session_id))))
            room = Room(
                name=key,
                log=MessageLog(self._capacity),
                private=True,
                participants=participants,
            )
            self._rooms[key] = room
            logger.debug("Created private room %s", key)
        return room

    def audience(self, name: str) -> list[str]:
        return self.get(name).audience()

    def members(self, name: str) -> list[str]:
        return list(self.get(name).members)

    # --- membership ---

    def room_of(self, session_id: str) -> Optional[str]:
        return self._membership.get(session_id)

    def join(self, session_id: str, room_name: str) -> JoinResult:
        """Move a session into ``room_name``, leaving its current room first."""
        room = self.get(room_name)
        if room.private:
            raise UnknownRoom(room_name)
        previous = self._membership.get(session_id)
        was_typing = False
        if previous is not None and previous != room_name:
            was_typing = self.leave(session_id, previous).was_typing
        room.members[session_id] = None
        self._membership[session_id] = room_name
        return JoinResult(room=room_name, previous_room=previous, was_typing=was_typing)

    def leave(self, session_id: str, room_name: str) -> LeaveResult:
        """Remove a session from a room. Leaving a room you are not in is a no-op."""
        room = self._rooms.get(room_name)
        if room is None or session_id not in room.members:
            return LeaveResult(room=room_name)
        del room.members[session_id]
        was_typing = session_id in room.typing
        room.typing.pop(session_id, None)
        if self._membership.get(session_id) == room_name:
            del self._membership[session_id]
        return LeaveResult(room=room_name, was_typing=was_typing)

    def remove_session(self, session_id: str) -> list[str]:
        """Drop a session from every room's membership and typing set."""
        left = []
        for room in self._rooms.values():
            in_room = session_id in room.members
            room.members.pop(session_id, None)
            room.typing.pop(session_id, None)
            if in_room:
                left.append(room.name)
        self._membership.pop(session_id, None)
        return left

    # --- typing ---

    def set_typing(self, session_id: str, room_name: str, is_typing: bool) -> bool:
        """Mirror the client's typing flag. Return True if the typing set changed."""
        room = self.get(room_name)
        if session_id not in room.members:
            return False
        if is_typing:
            if session_id in room.typing:
                return False
            room.typing[session_id] = None
            return True
        if session_id not in room.typing:
            return False
        del room.typing[session_id]
        return True

    def typing(self, room_name: str) -> list[str]:
        return list(self.get(room_name).typing)

    # --- messages ---

    def post(self, room_name: str, message: Message) -> Optional[Message]:
        """Append to a room log and index it in the ledger; cascade eviction."""
        room = self.get(room_name)
        self._ledger.track(message, room_name)
        evicted = room.log.append(message)
        if evicted is not None:
            self._ledger.forget(evicted.id)
        return evicted

    def log(self, room_name: str) -> MessageLog:
        return self.get(room_name).log
