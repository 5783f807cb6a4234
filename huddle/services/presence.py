"""Room-scoped presence and typing broadcasts (full lists, never diffs)."""

from __future__ import annotations

from huddle.channels.envelope import Delivery
from huddle.constants.events import OutboundEvent
from huddle.core.registry import Session, SessionRegistry
from huddle.schemas.chat import UserPresence, UserSummary
from huddle.services.room_store import RoomStore


class PresenceBroadcaster:
    def __init__(self, registry: SessionRegistry, rooms: RoomStore) -> None:
        self._registry = registry
        self._rooms = rooms

    def member_list(self, room: str) -> list[UserSummary]:
        users = []
        for session_id in self._rooms.members(room):
            session = self._registry.lookup(session_id)
            if session is not None:
                users.append(
                    UserSummary(id=session.id, username=session.username, room=room)
                )
        return users

    def typing_names(self, room: str) -> list[str]:
        names = []
        for session_id in self._rooms.typing(room):
            session = self._registry.lookup(session_id)
            if session is not None:
                names.append(session.username)
        return names

    def user_list(self, room: str) -> Delivery:
        return Delivery(
            OutboundEvent.USER_LIST,
            self.member_list(room),
            tuple(self._rooms.audience(room)),
        )

    def typing_users(self, room: str) -> Delivery:
        return Delivery(
            OutboundEvent.TYPING_USERS,
            self.typing_names(room),
            tuple(self._rooms.audience(room)),
        )

    def user_joined(self, session: Session, room: str) -> Delivery:
        return Delivery(
            OutboundEvent.USER_JOINED,
            UserPresence(id=session.id, username=session.username),
            tuple(self._rooms.audience(room)),
        )

    def user_left(self, session: Session, room: str) -> Delivery:
        return Delivery(
            OutboundEvent.USER_LEFT,
            UserPresence(id=session.id, username=session.username),
            tuple(sid for sid in self._rooms.audience(room) if sid != session.id),
        )
