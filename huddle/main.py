from __future__ import annotations

from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from huddle.config import Settings, get_settings
from huddle.core.app_state import AppState
from huddle.infra.logging_config import LoggingConfig
from huddle.routers import auth_router, chat_socket, rooms_router, system


def create_app(settings: Optional[Settings] = None, testing: bool = False) -> FastAPI:
    settings = settings or get_settings()
    if not (testing or settings.is_test):
        LoggingConfig(settings.log_level)

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.state.chat = AppState(settings)

    app.include_router(auth_router.auth_router)
    app.include_router(rooms_router.rooms_router)
    app.include_router(system.router)
    app.include_router(chat_socket.chat_socket_router)

    @app.get("/", response_class=PlainTextResponse)
    def root() -> str:
        return f"{settings.app_name} is running"

    return app


if __name__ == "__main__":
    _settings = get_settings()
    uvicorn.run(create_app(_settings), host="0.0.0.0", port=_settings.port)
