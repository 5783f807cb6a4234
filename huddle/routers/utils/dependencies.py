from fastapi import Depends, HTTPException, Request

from huddle.core.app_state import AppState
from huddle.core.errors import UnknownRoom


def get_app_state(request: Request) -> AppState:
    """FastAPI dependency returning the application's chat state."""
    return request.app.state.chat


async def get_room_name(room: str, state: AppState = Depends(get_app_state)) -> str:
    """FastAPI dependency validating a public room name from the path."""
    try:
        if state.rooms.get(room).private:
            raise UnknownRoom(room)
    except UnknownRoom:
        raise HTTPException(status_code=404, detail="Room not found")
    return room
