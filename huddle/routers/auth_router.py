"""Login exchange: trade a username for a bearer credential."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from huddle.core.app_state import AppState
from huddle.core.errors import AuthError
from huddle.infra.logging_config import get_logger
from huddle.routers.utils.dependencies import get_app_state
from huddle.schemas.auth import (
    LoginRequest,
    LoginResponse,
    VerifyRequest,
    VerifyResponse,
)

logger = get_logger("auth")

auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])


@auth_router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    state: AppState = Depends(get_app_state),
) -> LoginResponse:
    """Issue a token for a username. No password; names are not reserved."""
    username = payload.username.strip()
    if not username:
        raise HTTPException(status_code=400, detail="Username is required")
    token = state.tokens.issue(username)
    logger.info("Issued token for %s", username)
    return LoginResponse(token=token, username=username)


@auth_router.post("/verify", response_model=VerifyResponse)
def verify(
    payload: VerifyRequest,
    state: AppState = Depends(get_app_state),
) -> VerifyResponse:
    """Check a token and return the username it carries."""
    try:
        claims = state.tokens.verify(payload.token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return VerifyResponse(username=claims["username"])
