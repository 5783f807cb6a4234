"""Pydantic schemas for messages, presence, pagination and notifications.

Wire shapes are camelCase (``senderId``, ``readBy``); Python code uses the
snake_case field names.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from huddle.constants.chat import MessageKind, NotificationKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model serialised with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# -----------------------------------------------------------------------------
# Messages
# -----------------------------------------------------------------------------


class FileAttachment(CamelModel):
    """File metadata; the content itself lives behind ``file_url``."""

    file_name: str = Field(min_length=1)
    file_type: str = "application/octet-stream"
    file_size: int = Field(default=0, ge=0)
    file_url: str


class Message(CamelModel):
    """A chat message. Only ``read_by`` and ``reactions`` change after creation."""

    id: int
    kind: MessageKind = MessageKind.TEXT
    sender_id: Optional[str] = None
    sender: str
    room: Optional[str] = None
    recipient_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)
    text: Optional[str] = None
    file: Optional[FileAttachment] = None
    read_by: list[str] = Field(default_factory=list)
    reactions: dict[str, str] = Field(default_factory=dict)


# -----------------------------------------------------------------------------
# Presence / pagination
# -----------------------------------------------------------------------------


class UserSummary(CamelModel):
    """Entry of a ``user_list`` broadcast."""

    id: str
    username: str
    room: Optional[str] = None


class UserPresence(CamelModel):
    """Payload of ``user_joined`` / ``user_left``."""

    id: str
    username: str


class MessagesPage(BaseModel):
    """A window of a room log plus whether earlier messages remain."""

    messages: list[Message]
    has_more: bool


class PaginationInfo(CamelModel):
    room: str
    has_more: bool
    total_messages: int
    loaded_messages: int


class UnreadCount(CamelModel):
    room: str
    count: int = Field(ge=0)


class ReactionUpdate(CamelModel):
    message_id: int
    reactions: dict[str, str]


class ReadReceiptUpdate(CamelModel):
    message_id: int
    read_by: list[str]


# -----------------------------------------------------------------------------
# Notifications
# -----------------------------------------------------------------------------


class Notification(CamelModel):
    """Entry of a session's notification feed."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    message: str
    room: str
    sender: str
    type: NotificationKind = NotificationKind.MESSAGE
    timestamp: datetime = Field(default_factory=_utcnow)
    read: bool = False


class NotificationSettings(CamelModel):
    """Client notification preferences mirrored on the server."""

    sound: bool = True
    browser: bool = True
    desktop: bool = False


class NotificationSettingsUpdate(CamelModel):
    """Partial settings update. Unset fields keep their current value."""

    sound: Optional[bool] = None
    browser: Optional[bool] = None
    desktop: Optional[bool] = None
