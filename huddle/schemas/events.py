"""Closed set of inbound websocket events.

Frames look like ``{"event": "<name>", "data": {...}}``. ``parse_inbound_event``
folds ``data`` into the event model selected by ``event``; single-field events
also accept a bare scalar as ``data`` (``{"event": "typing", "data": true}``).
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, Field, TypeAdapter, ValidationError, field_validator

from huddle.constants.events import InboundEvent
from huddle.core.errors import MalformedEvent
from huddle.schemas.chat import CamelModel, FileAttachment, NotificationSettingsUpdate


class JoinEvent(CamelModel):
    event: Literal["join"]
    room: str = Field(min_length=1)


class ChangeRoomEvent(CamelModel):
    event: Literal["change_room"]
    room: str = Field(min_length=1)


class LoadMoreMessagesEvent(CamelModel):
    event: Literal["load_more_messages"]
    room: str = Field(min_length=1)
    loaded_count: int = Field(
        ge=0,
        validation_alias=AliasChoices("loadedCount", "currentCount", "loaded_count"),
    )


class SendMessageEvent(CamelModel):
    event: Literal["send_message"]
    text: str

    @field_validator("text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value


class SendFileEvent(FileAttachment):
    event: Literal["send_file"]

    def attachment(self) -> FileAttachment:
        return FileAttachment.model_validate(self.model_dump(exclude={"event"}))


class MessageReactionEvent(CamelModel):
    event: Literal["message_reaction"]
    message_id: int
    reaction: str = Field(min_length=1, max_length=32)


class MessageReadEvent(CamelModel):
    event: Literal["message_read"]
    message_id: int


class TypingEvent(CamelModel):
    event: Literal["typing"]
    is_typing: bool


class PrivateMessageEvent(CamelModel):
    event: Literal["private_message"]
    to: str = Field(min_length=1)
    text: str

    @field_validator("text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value


class ClearUnreadCountEvent(CamelModel):
    event: Literal["clear_unread_count"]
    room: str = Field(min_length=1)


class UpdateNotificationSettingsEvent(CamelModel):
    event: Literal["update_notification_settings"]
    settings: NotificationSettingsUpdate


class GetNotificationsEvent(CamelModel):
    event: Literal["get_notifications"]


class MarkNotificationReadEvent(CamelModel):
    event: Literal["mark_notification_read"]
    notification_id: str = Field(min_length=1)


class MarkAllNotificationsReadEvent(CamelModel):
    event: Literal["mark_all_notifications_read"]


ClientEvent = Annotated[
    Union[
        JoinEvent,
        ChangeRoomEvent,
        LoadMoreMessagesEvent,
        SendMessageEvent,
        SendFileEvent,
        MessageReactionEvent,
        MessageReadEvent,
        TypingEvent,
        PrivateMessageEvent,
        ClearUnreadCountEvent,
        UpdateNotificationSettingsEvent,
        GetNotificationsEvent,
        MarkNotificationReadEvent,
        MarkAllNotificationsReadEvent,
    ],
    Field(discriminator="event"),
]

_client_event_adapter: TypeAdapter[ClientEvent] = TypeAdapter(ClientEvent)

# Field a bare scalar ``data`` maps to, per event.
SCALAR_FIELDS: dict[str, str] = {
    InboundEvent.JOIN: "room",
    InboundEvent.CHANGE_ROOM: "room",
    InboundEvent.SEND_MESSAGE: "text",
    InboundEvent.MESSAGE_READ: "messageId",
    InboundEvent.TYPING: "isTyping",
    InboundEvent.CLEAR_UNREAD_COUNT: "room",
    InboundEvent.MARK_NOTIFICATION_READ: "notificationId",
}


def parse_inbound_event(frame: Any) -> ClientEvent:
    """Decode a raw websocket frame into its event model. Raise MalformedEvent."""
    if not isinstance(frame, dict):
        raise MalformedEvent("Frame must be a JSON object")
    name = frame.get("event")
    if not isinstance(name, str) or not name:
        raise MalformedEvent("Frame has no event name")
    data = frame.get("data")
    if data is None:
        fields: dict[str, Any] = {}
    elif isinstance(data, dict):
        fields = dict(data)
    elif name in SCALAR_FIELDS:
        fields = {SCALAR_FIELDS[name]: data}
    else:
        raise MalformedEvent(f"Event {name} expects an object payload")
    if name == InboundEvent.UPDATE_NOTIFICATION_SETTINGS and "settings" not in fields:
        fields = {"settings": fields}
    # Legacy clients send the message body under "message".
    if name in (InboundEvent.SEND_MESSAGE, InboundEvent.PRIVATE_MESSAGE):
        if "text" not in fields and "message" in fields:
            fields["text"] = fields.pop("message")
    fields["event"] = name
    try:
        return _client_event_adapter.validate_python(fields)
    except ValidationError as e:
        raise MalformedEvent(f"Invalid {name} event: {e.error_count()} error(s)") from e
