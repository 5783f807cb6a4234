"""Private room key derivation from a pair of session ids."""

from __future__ import annotations

from huddle.constants.chat import PRIVATE_ROOM_PREFIX


def build_private_room_key(session_id: str, other_session_id: str) -> str:
    """
    Build a deterministic private room key for two sessions.

    The pair is sorted, so both participants resolve the same room:
    private_{a}_{b}. Keys follow connection ids, not usernames, so a
    reconnecting user starts a new private thread.
    """
    first, second = sorted((session_id, other_session_id))
    return f"{PRIVATE_ROOM_PREFIX}{first}_{second}"


def is_private_room(room_name: str) -> bool:
    return room_name.startswith(PRIVATE_ROOM_PREFIX)
