from __future__ import annotations

from typing import Any, Callable, Dict, Optional
from uuid import uuid4

from huddle.channels.envelope import Delivery
from huddle.config import Settings, get_settings
from huddle.constants.chat import MessageKind, NotificationKind, NotificationRoom
from huddle.constants.events import InboundEvent, OutboundEvent
from huddle.core.credentials import TokenIssuer
from huddle.core.errors import MalformedEvent, NotFound, UnknownRoom
from huddle.core.registry import Session, SessionRegistry
from huddle.infra.logging_config import get_logger
from huddle.schemas.chat import (
    Message,
    Notification,
    PaginationInfo,
    ReactionUpdate,
    ReadReceiptUpdate,
    UnreadCount,
)
from huddle.schemas.events import (
    ChangeRoomEvent,
    ClearUnreadCountEvent,
    ClientEvent,
    JoinEvent,
    LoadMoreMessagesEvent,
    MarkNotificationReadEvent,
    MessageReactionEvent,
    MessageReadEvent,
    PrivateMessageEvent,
    SendFileEvent,
    SendMessageEvent,
    TypingEvent,
    UpdateNotificationSettingsEvent,
    parse_inbound_event,
)
from huddle.services.ledger import Ledger
from huddle.services.message_log import MessageIdSequence
from huddle.services.presence import PresenceBroadcaster
from huddle.services.room_store import RoomStore
from huddle.services.tracker import Tracker

logger = get_logger("routing")

Handler = Callable[[Session, Any], list[Delivery]]


class Dispatcher:
    """
    Single entry point for session lifecycle and inbound events.

    Every call mutates the shared room/ledger/tracker state and returns the
    outbound deliveries it produced, each already addressed to its recipients.
    Calls are synchronous; the connection hub serialises them.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        rooms: RoomStore,
        ledger: Ledger,
        tracker: Tracker,
        tokens: TokenIssuer,
        settings: Optional[Settings] = None,
        ids: Optional[MessageIdSequence] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._registry = registry
        self._rooms = rooms
        self._ledger = ledger
        self._tracker = tracker
        self._tokens = tokens
        self._ids = ids or MessageIdSequence()
        self._presence = PresenceBroadcaster(registry, rooms)
        self._page_size = self._settings.page_size
        self._handlers: Dict[str, Handler] = {
            InboundEvent.JOIN: self._on_join,
            InboundEvent.CHANGE_ROOM: self._on_join,
            InboundEvent.LOAD_MORE_MESSAGES: self._on_load_more,
            InboundEvent.SEND_MESSAGE: self._on_send_message,
            InboundEvent.SEND_FILE: self._on_send_file,
            InboundEvent.MESSAGE_REACTION: self._on_reaction,
            InboundEvent.MESSAGE_READ: self._on_read,
            InboundEvent.TYPING: self._on_typing,
            InboundEvent.PRIVATE_MESSAGE: self._on_private_message,
            InboundEvent.CLEAR_UNREAD_COUNT: self._on_clear_unread,
            InboundEvent.UPDATE_NOTIFICATION_SETTINGS: self._on_notification_settings,
            InboundEvent.GET_NOTIFICATIONS: self._on_get_notifications,
            InboundEvent.MARK_NOTIFICATION_READ: self._on_mark_notification_read,
            InboundEvent.MARK_ALL_NOTIFICATIONS_READ: self._on_mark_all_read,
        }
        registry.add_teardown_hook(self._teardown)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self, token: Optional[str]) -> tuple[Session, list[Delivery]]:
        """
        Authenticate a new connection and join it to the default room.

        Raises AuthError before any state is touched when the credential is
        missing, invalid or expired.
        """
        claims = self._tokens.verify(token)
        session = self._registry.register(claims["username"])
        logger.info("User connected: %s (%s)", session.username, session.id)
        return session, self._join(session, self._settings.default_room)

    def disconnect(self, session_id: str) -> list[Delivery]:
        """Tear down a session and tell its room it left."""
        session = self._registry.lookup(session_id)
        if session is None:
            return []
        room = self._rooms.room_of(session_id)
        self._registry.destroy(session_id)
        logger.info("User disconnected: %s (%s)", session.username, session.id)
        if room is None:
            return []
        return [
            self._presence.user_left(session, room),
            self._presence.user_list(room),
            self._presence.typing_users(room),
        ]

    def _teardown(self, session: Session) -> None:
        self._rooms.remove_session(session.id)
        self._tracker.drop_session(session.id)

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    def handle_raw(self, session_id: str, frame: Any) -> list[Delivery]:
        """Decode a raw frame and dispatch it. Malformed frames are dropped."""
        self._registry.require(session_id)
        try:
            event = parse_inbound_event(frame)
        except MalformedEvent as e:
            logger.warning("Dropped malformed event from %s: %s", session_id, e)
            return []
        return self.handle(session_id, event)

    def handle(self, session_id: str, event: ClientEvent) -> list[Delivery]:
        """Dispatch a decoded event for an authenticated session."""
        session = self._registry.require(session_id)
        handler = self._handlers[event.event]
        try:
            return handler(session, event)
        except (UnknownRoom, NotFound) as e:
            logger.warning("Dropped %s from %s: %s", event.event, session.id, e)
            return []

    def _on_join(
        self, session: Session, event: JoinEvent | ChangeRoomEvent
    ) -> list[Delivery]:
        return self._join(session, event.room)

    def _join(self, session: Session, room: str) -> list[Delivery]:
        result = self._rooms.join(session.id, room)
        self._registry.set_room(session.id, room)
        deliveries: list[Delivery] = []
        previous = result.previous_room
        if previous is not None and previous != room:
            deliveries.append(self._presence.user_list(previous))
            if result.was_typing:
                deliveries.append(self._presence.typing_users(previous))
            logger.info("%s moved from %s to %s", session.username, previous, room)
        else:
            logger.info("%s joined %s", session.username, room)
        deliveries.append(self._presence.user_list(room))
        deliveries.append(self._presence.user_joined(session, room))

        log = self._rooms.log(room)
        recent = log.tail(self._page_size)
        deliveries.append(
            Delivery(OutboundEvent.ROOM_MESSAGES, recent, (session.id,))
        )
        deliveries.append(
            Delivery(
                OutboundEvent.PAGINATION_INFO,
                PaginationInfo(
                    room=room,
                    has_more=len(log) > len(recent),
                    total_messages=len(log),
                    loaded_messages=len(recent),
                ),
                (session.id,),
            )
        )
        return deliveries

    def _on_load_more(
        self, session: Session, event: LoadMoreMessagesEvent
    ) -> list[Delivery]:
        room = self._rooms.get(event.room)
        if room.private and session.id not in room.participants:
            raise UnknownRoom(event.room)
        page = room.log.page(event.loaded_count, self._page_size)
        logger.debug(
            "Loaded %d more messages for %s in %s",
            len(page.messages),
            session.username,
            event.room,
        )
        return [
            Delivery(OutboundEvent.MORE_MESSAGES_LOADED, page.messages, (session.id,)),
            Delivery(
                OutboundEvent.PAGINATION_INFO,
                PaginationInfo(
                    room=event.room,
                    has_more=page.has_more,
                    total_messages=len(room.log),
                    loaded_messages=event.loaded_count + len(page.messages),
                ),
                (session.id,),
            ),
        ]

    def _on_send_message(
        self, session: Session, event: SendMessageEvent
    ) -> list[Delivery]:
        room = self._current_room(session)
        message = Message(
            id=self._ids.next_id(),
            kind=MessageKind.TEXT,
            sender_id=session.id,
            sender=session.username,
            room=room,
            text=event.text,
        )
        return self._publish(
            session,
            room,
            message,
            Notification(
                message=f"New message in #{room} from {session.username}",
                room=room,
                sender=session.username,
                type=NotificationKind.MESSAGE,
            ),
        )

    def _on_send_file(self, session: Session, event: SendFileEvent) -> list[Delivery]:
        room = self._current_room(session)
        message = Message(
            id=self._ids.next_id(),
            kind=MessageKind.FILE,
            sender_id=session.id,
            sender=session.username,
            room=room,
            file=event.attachment(),
        )
        return self._publish(
            session,
            room,
            message,
            Notification(
                message=f"{session.username} shared a file in #{room}",
                room=room,
                sender=session.username,
                type=NotificationKind.FILE,
            ),
        )

    def _publish(
        self,
        session: Session,
        room: str,
        message: Message,
        notification: Notification,
    ) -> list[Delivery]:
        """Append, broadcast, bump unread counters and notify non-viewers."""
        evicted = self._rooms.post(room, message)
        if evicted is not None:
            logger.debug("Evicted message %s from %s", evicted.id, room)
        deliveries = [
            Delivery(
                OutboundEvent.RECEIVE_MESSAGE, message, tuple(self._rooms.audience(room))
            )
        ]

        viewers = []
        others = []
        for other in self._registry.sessions():
            if other.id == session.id:
                continue
            if self._registry.is_viewing(other.id, room):
                viewers.append(other.id)
            else:
                others.append(other.id)

        for session_id, count in self._tracker.on_message(room, viewers):
            deliveries.append(
                Delivery(
                    OutboundEvent.UNREAD_COUNT_UPDATE,
                    UnreadCount(room=room, count=count),
                    (session_id,),
                )
            )
        for session_id in others:
            entry = self._tracker.notify(
                session_id, notification.model_copy(update={"id": uuid4().hex})
            )
            deliveries.append(
                Delivery(OutboundEvent.NEW_MESSAGE_NOTIFICATION, entry, (session_id,))
            )
        return deliveries

    def _on_reaction(
        self, session: Session, event: MessageReactionEvent
    ) -> list[Delivery]:
        room = self._message_room(session, event.message_id)
        reactions = self._ledger.react(event.message_id, session.id, event.reaction)
        return [
            Delivery(
                OutboundEvent.MESSAGE_REACTION_UPDATE,
                ReactionUpdate(message_id=event.message_id, reactions=reactions),
                tuple(self._rooms.audience(room)),
            )
        ]

    def _on_read(self, session: Session, event: MessageReadEvent) -> list[Delivery]:
        room = self._message_room(session, event.message_id)
        read_by = self._ledger.mark_read(event.message_id, session.id)
        if read_by is None:
            return []
        return [
            Delivery(
                OutboundEvent.READ_RECEIPT_UPDATE,
                ReadReceiptUpdate(message_id=event.message_id, read_by=read_by),
                tuple(self._rooms.audience(room)),
            )
        ]

    def _on_typing(self, session: Session, event: TypingEvent) -> list[Delivery]:
        room = session.current_room
        if room is None or session.id not in self._rooms.members(room):
            return []
        self._rooms.set_typing(session.id, room, event.is_typing)
        return [self._presence.typing_users(room)]

    def _on_private_message(
        self, session: Session, event: PrivateMessageEvent
    ) -> list[Delivery]:
        target = self._registry.lookup(event.to)
        if target is None:
            raise NotFound(f"Private message target is not connected: {event.to}")
        private_room = self._rooms.ensure_private(session.id, target.id)
        message = Message(
            id=self._ids.next_id(),
            kind=MessageKind.PRIVATE,
            sender_id=session.id,
            sender=session.username,
            recipient_id=target.id,
            text=event.text,
        )
        self._rooms.post(private_room.name, message)
        deliveries = []
        if target.id != session.id:
            if not self._registry.is_viewing(target.id, private_room.name):
                entry = self._tracker.notify(
                    target.id,
                    Notification(
                        message=f"Private message from {session.username}",
                        room=NotificationRoom.PRIVATE,
                        sender=session.username,
                        type=NotificationKind.PRIVATE,
                    ),
                )
                deliveries.append(
                    Delivery(OutboundEvent.NEW_MESSAGE_NOTIFICATION, entry, (target.id,))
                )
            deliveries.append(
                Delivery(OutboundEvent.PRIVATE_MESSAGE, message, (target.id,))
            )
        deliveries.append(Delivery(OutboundEvent.PRIVATE_MESSAGE, message, (session.id,)))
        return deliveries

    def _on_clear_unread(
        self, session: Session, event: ClearUnreadCountEvent
    ) -> list[Delivery]:
        self._rooms.get(event.room)
        count = self._tracker.on_room_viewed(session.id, event.room)
        self._tracker.mark_room_read(session.id, event.room)
        return [
            Delivery(
                OutboundEvent.UNREAD_COUNT_UPDATE,
                UnreadCount(room=event.room, count=count),
                (session.id,),
            )
        ]

    def _on_notification_settings(
        self, session: Session, event: UpdateNotificationSettingsEvent
    ) -> list[Delivery]:
        self._tracker.update_settings(session.id, event.settings)
        return []

    def _on_get_notifications(self, session: Session, _event: Any) -> list[Delivery]:
        return [self._feed(session)]

    def _on_mark_notification_read(
        self, session: Session, event: MarkNotificationReadEvent
    ) -> list[Delivery]:
        if not self._tracker.mark_read(session.id, event.notification_id):
            raise NotFound(f"Notification not found: {event.notification_id}")
        return [self._feed(session)]

    def _on_mark_all_read(self, session: Session, _event: Any) -> list[Delivery]:
        self._tracker.mark_all_read(session.id)
        return [self._feed(session)]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _current_room(self, session: Session) -> str:
        if session.current_room is None:
            raise UnknownRoom("<none>")
        return session.current_room

    def _message_room(self, session: Session, message_id: int) -> str:
        """Room of a live message the session may see. Raise NotFound otherwise."""
        room_name = self._ledger.room_of(message_id)
        room = self._rooms.get(room_name)
        if room.private and session.id not in room.participants:
            raise NotFound(f"Message not found: {message_id}")
        return room_name

    def _feed(self, session: Session) -> Delivery:
        return Delivery(
            OutboundEvent.NOTIFICATIONS, self._tracker.feed(session.id), (session.id,)
        )
