"""Schemas for the ``/system/settings`` troubleshooting endpoint."""

from typing import List

from pydantic import BaseModel


class AppGroup(BaseModel):
    name: str
    environment: str
    log_level: str
    port: int


class ChatGroup(BaseModel):
    rooms: List[str]
    default_room: str
    message_history_limit: int
    page_size: int
    notification_feed_limit: int


class AuthGroup(BaseModel):
    token_ttl_seconds: int
    using_default_secret: bool


class GeneralGroup(BaseModel):
    is_production: bool
    client_url: str


class SystemSettingsGrouped(BaseModel):
    app: AppGroup
    chat: ChatGroup
    auth: AuthGroup
    general: GeneralGroup
