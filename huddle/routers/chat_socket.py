"""Websocket transport: one socket per session, JSON ``{event, data}`` frames."""

from __future__ import annotations

import json
from typing import Optional

from fastapi import APIRouter, WebSocket, status

from huddle.constants.events import OutboundEvent
from huddle.core.app_state import AppState
from huddle.core.errors import AuthError
from huddle.infra.logging_config import get_logger

logger = get_logger("chat_socket")

chat_socket_router = APIRouter(tags=["Chat"])


def _bearer_token(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


@chat_socket_router.websocket("/ws")
async def chat_socket(websocket: WebSocket, token: Optional[str] = None) -> None:
    """
    Authenticate on handshake, then pump inbound frames into the hub.

    The credential comes from the ``token`` query parameter or an
    ``Authorization: Bearer`` header. A rejected credential gets an
    ``auth_error`` frame and a policy-violation close.
    """
    state: AppState = websocket.app.state.chat
    await websocket.accept()

    credential = token or _bearer_token(websocket.headers.get("authorization"))
    try:
        session = await state.hub.connect(websocket, credential)
    except AuthError as e:
        logger.warning("Rejected websocket handshake: %s", e)
        await websocket.send_json(
            {"event": OutboundEvent.AUTH_ERROR.value, "data": {"message": str(e)}}
        )
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                logger.warning("Dropped binary frame from %s", session.id)
                continue
            try:
                frame = json.loads(raw)
            except (ValueError, RecursionError):
                logger.warning("Dropped malformed frame from %s", session.id)
                continue
            await state.hub.dispatch(session.id, frame)
    finally:
        await state.hub.disconnect(session.id)
