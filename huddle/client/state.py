"""Client-side cache of what the server has told one connection."""

from __future__ import annotations

from collections import deque
from typing import Any, Callable, Dict, Iterable, Optional

from huddle.constants.chat import NOTIFICATION_FEED_LIMIT, ReceiptStatus
from huddle.constants.events import OutboundEvent
from huddle.infra.logging_config import get_logger
from huddle.schemas.chat import (
    Message,
    Notification,
    NotificationSettings,
    PaginationInfo,
    UserSummary,
)

logger = get_logger("client.state")


def receipt_status(message: Message, member_ids: Iterable[str]) -> ReceiptStatus:
    """
    Read-receipt status of ``message`` as its sender sees it.

    ``read`` once every other current member has read it, ``delivered`` once
    at least one has, ``sent`` otherwise.
    """
    others = {sid for sid in member_ids if sid != message.sender_id}
    readers = {sid for sid in message.read_by if sid != message.sender_id}
    if others and others <= readers:
        return ReceiptStatus.READ
    if readers:
        return ReceiptStatus.DELIVERED
    return ReceiptStatus.SENT


class ChatState:
    """
    Applies outbound server events to a local view.

    The server is authoritative: ``room_messages`` replaces the message list
    wholesale, and reaction and receipt updates overwrite the cached values.
    """

    def __init__(self, notification_limit: int = NOTIFICATION_FEED_LIMIT) -> None:
        self.session_id: Optional[str] = None
        self.current_room: Optional[str] = None
        self.messages: list[Message] = []
        self.private_messages: list[Message] = []
        self.users: list[UserSummary] = []
        self.typing_users: list[str] = []
        self.pagination: Optional[PaginationInfo] = None
        self.unread_counts: Dict[str, int] = {}
        self.notifications: deque[Notification] = deque(maxlen=notification_limit)
        self.settings = NotificationSettings()
        self.auth_error: Optional[str] = None
        self._handlers: Dict[str, Callable[[Any], None]] = {
            OutboundEvent.ROOM_MESSAGES: self._on_room_messages,
            OutboundEvent.MORE_MESSAGES_LOADED: self._on_more_messages,
            OutboundEvent.RECEIVE_MESSAGE: self._on_receive_message,
            OutboundEvent.PRIVATE_MESSAGE: self._on_private_message,
            OutboundEvent.PAGINATION_INFO: self._on_pagination_info,
            OutboundEvent.USER_LIST: self._on_user_list,
            OutboundEvent.USER_JOINED: self._on_user_joined,
            OutboundEvent.TYPING_USERS: self._on_typing_users,
            OutboundEvent.UNREAD_COUNT_UPDATE: self._on_unread_count,
            OutboundEvent.NEW_MESSAGE_NOTIFICATION: self._on_notification,
            OutboundEvent.NOTIFICATIONS: self._on_notifications,
            OutboundEvent.MESSAGE_REACTION_UPDATE: self._on_reaction_update,
            OutboundEvent.READ_RECEIPT_UPDATE: self._on_read_receipt_update,
            OutboundEvent.AUTH_ERROR: self._on_auth_error,
        }

    def apply(self, event: str, data: Any) -> bool:
        """Apply one server event. Return False for events the cache ignores."""
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug("Ignoring event %s", event)
            return False
        handler(data)
        return True

    @property
    def total_unread(self) -> int:
        return sum(self.unread_counts.values())

    def message(self, message_id: int) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        for message in self.private_messages:
            if message.id == message_id:
                return message
        return None

    def reset(self) -> None:
        """Forget per-connection state before a reconnect."""
        self.session_id = None
        self.messages = []
        self.users = []
        self.typing_users = []
        self.pagination = None
        self.auth_error = None

    def _on_room_messages(self, data: Any) -> None:
        self.messages = [Message.model_validate(m) for m in data]

    def _on_more_messages(self, data: Any) -> None:
        self.messages = [Message.model_validate(m) for m in data] + self.messages

    def _on_receive_message(self, data: Any) -> None:
        message = Message.model_validate(data)
        if self.current_room is None or message.room == self.current_room:
            self.messages.append(message)

    def _on_private_message(self, data: Any) -> None:
        self.private_messages.append(Message.model_validate(data))

    def _on_pagination_info(self, data: Any) -> None:
        self.pagination = PaginationInfo.model_validate(data)
        self.current_room = self.pagination.room

    def _on_user_list(self, data: Any) -> None:
        self.users = [UserSummary.model_validate(u) for u in data]

    def _on_user_joined(self, data: Any) -> None:
        # The first join announced on a fresh connection is our own.
        if self.session_id is None:
            self.session_id = data["id"]

    def _on_typing_users(self, data: Any) -> None:
        self.typing_users = list(data)

    def _on_unread_count(self, data: Any) -> None:
        self.unread_counts[data["room"]] = data["count"]

    def _on_notification(self, data: Any) -> None:
        self.notifications.appendleft(Notification.model_validate(data))

    def _on_notifications(self, data: Any) -> None:
        self.notifications.clear()
        self.notifications.extend(Notification.model_validate(n) for n in data)

    def _on_reaction_update(self, data: Any) -> None:
        message = self.message(data["messageId"])
        if message is not None:
            message.reactions = dict(data["reactions"])

    def _on_read_receipt_update(self, data: Any) -> None:
        message = self.message(data["messageId"])
        if message is not None:
            message.read_by = list(data["readBy"])

    def _on_auth_error(self, data: Any) -> None:
        self.auth_error = (data or {}).get("message", "Authentication error")
