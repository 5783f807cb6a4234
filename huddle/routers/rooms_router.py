"""Read-only room queries: names, retained history, current members."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from huddle.core.app_state import AppState
from huddle.routers.utils.dependencies import get_app_state, get_room_name
from huddle.schemas.chat import Message, UserSummary

rooms_router = APIRouter(prefix="/api", tags=["Rooms"])


# Handlers are async so they run on the event loop alongside the hub and
# never observe a half-applied dispatch.


@rooms_router.get("/rooms", response_model=List[str])
async def list_rooms(state: AppState = Depends(get_app_state)) -> List[str]:
    """List public room names."""
    return state.list_rooms()


@rooms_router.get(
    "/messages/{room}",
    response_model=List[Message],
    response_model_by_alias=True,
)
async def room_messages(
    room: str = Depends(get_room_name),
    state: AppState = Depends(get_app_state),
) -> List[Message]:
    """Return the retained message log of a room, oldest first."""
    return state.room_messages(room)


@rooms_router.get(
    "/users/{room}",
    response_model=List[UserSummary],
    response_model_by_alias=True,
)
async def room_users(
    room: str = Depends(get_room_name),
    state: AppState = Depends(get_app_state),
) -> List[UserSummary]:
    """Return the sessions currently in a room."""
    return state.room_users(room)
