"""Async chat client: HTTP login, websocket session, bounded reconnect."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional
from urllib.parse import quote

import httpx
import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from huddle.client.state import ChatState
from huddle.constants.events import InboundEvent, OutboundEvent
from huddle.core.errors import AuthError
from huddle.infra.logging_config import get_logger
from huddle.schemas.chat import NotificationSettingsUpdate

logger = get_logger("client")

MAX_RECONNECT_ATTEMPTS = 10
RECONNECT_DELAY_BASE = 1.0
RECONNECT_DELAY_MAX = 5.0


def backoff_delay(
    attempt: int,
    base: float = RECONNECT_DELAY_BASE,
    max_delay: float = RECONNECT_DELAY_MAX,
) -> float:
    """Delay before reconnect ``attempt`` (1-based): doubling from ``base``, capped."""
    if attempt < 1:
        return 0.0
    return min(max_delay, base * (2 ** (attempt - 1)))


class ChatClient:
    """
    One logged-in user talking to a chat server.

    ``listen()`` pumps server events into ``state`` until ``close()`` is
    called. A dropped socket is retried with exponential backoff; after a
    reconnect the client re-joins the room it was in, since the server keeps
    nothing for a closed session. An ``auth_error`` is never retried.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        *,
        state: Optional[ChatState] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        max_attempts: int = MAX_RECONNECT_ATTEMPTS,
        base_delay: float = RECONNECT_DELAY_BASE,
        max_delay: float = RECONNECT_DELAY_MAX,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.state = state or ChatState()
        self.token: Optional[str] = None
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._http = http_client or httpx.AsyncClient(
            base_url=self.base_url, timeout=30.0
        )
        self._owns_http = http_client is None
        self._ws: Any = None
        self._closing = False

    async def __aenter__(self) -> "ChatClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def ws_url(self) -> str:
        scheme, _, rest = self.base_url.partition("://")
        ws_scheme = "wss" if scheme == "https" else "ws"
        return f"{ws_scheme}://{rest}/ws?token={quote(self.token or '')}"

    async def login(self) -> str:
        """Exchange the username for a bearer token."""
        response = await self._http.post(
            "/api/auth/login", json={"username": self.username}
        )
        if response.status_code != 200:
            raise AuthError(f"Login failed with status {response.status_code}")
        body = response.json()
        self.token = body["token"]
        self.username = body["username"]
        return self.token

    async def connect(self) -> None:
        if self.token is None:
            await self.login()
        self._closing = False
        self._ws = await websockets.connect(self.ws_url)
        logger.info("Connected to %s as %s", self.base_url, self.username)

    async def close(self) -> None:
        self._closing = True
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._owns_http:
            await self._http.aclose()

    # --- outbound ---

    async def send(self, event: str, data: Any = None) -> None:
        if self._ws is None:
            raise ConnectionError("Not connected")
        await self._ws.send(json.dumps({"event": str(event), "data": data}))

    async def join(self, room: str) -> None:
        await self.send(InboundEvent.CHANGE_ROOM, {"room": room})

    async def send_message(self, text: str) -> None:
        await self.send(InboundEvent.SEND_MESSAGE, {"text": text})

    async def send_private_message(self, to: str, text: str) -> None:
        await self.send(InboundEvent.PRIVATE_MESSAGE, {"to": to, "text": text})

    async def load_more(self) -> None:
        room = self.state.current_room
        if room is None:
            return
        await self.send(
            InboundEvent.LOAD_MORE_MESSAGES,
            {"room": room, "loadedCount": len(self.state.messages)},
        )

    async def react(self, message_id: int, reaction: str) -> None:
        await self.send(
            InboundEvent.MESSAGE_REACTION,
            {"messageId": message_id, "reaction": reaction},
        )

    async def mark_read(self, message_id: int) -> None:
        await self.send(InboundEvent.MESSAGE_READ, {"messageId": message_id})

    async def set_typing(self, is_typing: bool) -> None:
        await self.send(InboundEvent.TYPING, {"isTyping": is_typing})

    async def clear_unread(self, room: str) -> None:
        await self.send(InboundEvent.CLEAR_UNREAD_COUNT, {"room": room})
        self.state.unread_counts[room] = 0

    async def update_notification_settings(self, **settings: Optional[bool]) -> None:
        """Send a partial settings change and mirror it in ``state.settings``."""
        changes = NotificationSettingsUpdate(**settings).model_dump(exclude_none=True)
        await self.send(InboundEvent.UPDATE_NOTIFICATION_SETTINGS, changes)
        self.state.settings = self.state.settings.model_copy(update=changes)

    # --- inbound ---

    async def listen(self) -> None:
        """Apply server events until closed, auth fails or reconnects run out."""
        while not self._closing:
            try:
                raw = await self._ws.recv()
            except ConnectionClosed:
                if self._closing or self.state.auth_error:
                    return
                logger.info("Server closed connection, attempting to reconnect...")
                if not await self._reconnect():
                    return
                continue
            frame = json.loads(raw)
            event = frame.get("event")
            self.state.apply(event, frame.get("data"))
            if event == OutboundEvent.AUTH_ERROR:
                logger.error("Authentication rejected: %s", self.state.auth_error)
                await self._ws.close()
                return

    async def _reconnect(self) -> bool:
        room = self.state.current_room
        for attempt in range(1, self.max_attempts + 1):
            delay = backoff_delay(attempt, self.base_delay, self.max_delay)
            logger.info(
                "Reconnecting in %.1fs (attempt %d/%d)", delay, attempt, self.max_attempts
            )
            await asyncio.sleep(delay)
            try:
                self.state.reset()
                await self.connect()
            except (OSError, InvalidHandshake) as e:
                logger.warning("Reconnect attempt %d failed: %s", attempt, e)
                continue
            if room is not None:
                await self.join(room)
            return True
        logger.error("Failed to reconnect after %d attempts", self.max_attempts)
        return False
