from fastapi import APIRouter, Depends

from huddle.config import DEFAULT_SECRET_KEY
from huddle.core.app_state import AppState
from huddle.routers.utils.dependencies import get_app_state
from huddle.schemas.system import (
    AppGroup,
    AuthGroup,
    ChatGroup,
    GeneralGroup,
    SystemSettingsGrouped,
)

router = APIRouter(
    prefix="/system",
    tags=["system"],
    responses={404: {"description": "Not found"}},
)


@router.get("/settings", response_model=SystemSettingsGrouped)
def get_system_settings(
    state: AppState = Depends(get_app_state),
) -> SystemSettingsGrouped:
    """Return grouped, non-sensitive system configuration settings for troubleshooting."""
    s = state.settings

    app_group = AppGroup(
        name=s.app_name,
        environment=s.environment,
        log_level=s.log_level,
        port=s.port,
    )

    chat_group = ChatGroup(
        rooms=s.room_names,
        default_room=s.default_room,
        message_history_limit=s.message_history_limit,
        page_size=s.page_size,
        notification_feed_limit=s.notification_feed_limit,
    )

    # Never expose the key itself, only whether the fallback is in use
    auth_group = AuthGroup(
        token_ttl_seconds=s.token_ttl_seconds,
        using_default_secret=s.fernet_key is None
        and s.secret_key == DEFAULT_SECRET_KEY,
    )

    general_group = GeneralGroup(
        is_production=s.is_production,
        client_url=s.client_url,
    )

    return SystemSettingsGrouped(
        app=app_group,
        chat=chat_group,
        auth=auth_group,
        general=general_group,
    )
