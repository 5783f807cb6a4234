from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Callable, Dict, Optional
from uuid import uuid4

from huddle.core.errors import AuthError


class SessionState(StrEnum):
    AUTHENTICATING = "authenticating"
    JOINED = "joined"
    DISCONNECTED = "disconnected"


@dataclass
class Session:
    """One authenticated live connection and its transient state."""

    id: str
    username: str
    current_room: Optional[str] = None
    state: SessionState = SessionState.AUTHENTICATING
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


TeardownHook = Callable[[Session], None]


class SessionRegistry:
    """Maps live session ids to their identity and current room."""

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._teardown_hooks: list[TeardownHook] = []

    def add_teardown_hook(self, hook: TeardownHook) -> None:
        """Register cleanup run by ``destroy`` for every destroyed session."""
        self._teardown_hooks.append(hook)

    def register(self, username: str) -> Session:
        session = Session(id=uuid4().hex, username=username)
        self._sessions[session.id] = session
        return session

    def lookup(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise AuthError(f"Unknown or closed session: {session_id}")
        return session

    def set_room(self, session_id: str, room: Optional[str]) -> Session:
        session = self.require(session_id)
        session.current_room = room
        if room is not None:
            session.state = SessionState.JOINED
        return session

    def is_viewing(self, session_id: str, room: str) -> bool:
        """True when the session is currently focused on ``room``."""
        session = self._sessions.get(session_id)
        return session is not None and session.current_room == room

    def sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def destroy(self, session_id: str) -> Session | None:
        """
        Remove a session and run every teardown hook for it.

        Idempotent: destroying an unknown session returns None. The session is
        unregistered before the hooks run so no hook observes it as live.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        for hook in self._teardown_hooks:
            hook(session)
        session.state = SessionState.DISCONNECTED
        session.current_room = None
        return session

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
