from __future__ import annotations

from typing import Optional

from huddle.config import Settings, get_settings
from huddle.core.credentials import TokenIssuer
from huddle.core.errors import UnknownRoom
from huddle.core.registry import SessionRegistry
from huddle.core.routing import Dispatcher
from huddle.core.runtime import ConnectionHub
from huddle.schemas.chat import Message, UserSummary
from huddle.services.ledger import Ledger
from huddle.services.presence import PresenceBroadcaster
from huddle.services.room_store import RoomStore
from huddle.services.tracker import Tracker


class AppState:
    """Process-wide chat state, one instance per application."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.tokens = TokenIssuer(self.settings)
        self.registry = SessionRegistry()
        self.ledger = Ledger()
        self.rooms = RoomStore(
            self.settings.room_names,
            self.ledger,
            capacity=self.settings.message_history_limit,
        )
        self.tracker = Tracker(feed_limit=self.settings.notification_feed_limit)
        self.presence = PresenceBroadcaster(self.registry, self.rooms)
        self.dispatcher = Dispatcher(
            self.registry,
            self.rooms,
            self.ledger,
            self.tracker,
            self.tokens,
            settings=self.settings,
        )
        self.hub = ConnectionHub(self.dispatcher)

    def list_rooms(self) -> list[str]:
        return self.rooms.room_names()

    def room_messages(self, room: str) -> list[Message]:
        """Whole retained history of a public room. Raises UnknownRoom."""
        self._public(room)
        return self.rooms.log(room).messages()

    def room_users(self, room: str) -> list[UserSummary]:
        self._public(room)
        return self.presence.member_list(room)

    def _public(self, room: str) -> None:
        if self.rooms.get(room).private:
            raise UnknownRoom(room)
