from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRET_KEY = "fallback_secret_key"

# Project root (parent of huddle/) - used so .env is found regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Explicitly load .env into os.environ so it works in tests and subprocesses
load_dotenv(_PROJECT_ROOT / ".env")


class Settings(BaseSettings):
    app_name: str = "huddle-api"
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("ENV", "ENVIRONMENT"),
    )
    log_level: str = Field(default="INFO", json_schema_extra={"env": "LOG_LEVEL"})
    port: int = Field(default=5000, json_schema_extra={"env": "PORT"})
    client_url: str = Field(
        default="http://localhost:5173", json_schema_extra={"env": "CLIENT_URL"}
    )

    # Bearer credentials
    secret_key: str = Field(
        default=DEFAULT_SECRET_KEY,
        validation_alias=AliasChoices("SECRET_KEY", "JWT_SECRET"),
    )
    fernet_key: Optional[str] = Field(
        default=None, json_schema_extra={"env": "FERNET_KEY"}
    )
    fernet_salt: str = Field(
        default="default-salt", json_schema_extra={"env": "FERNET_SALT"}
    )
    token_ttl_seconds: int = Field(
        default=86400, gt=0, json_schema_extra={"env": "TOKEN_TTL_SECONDS"}
    )

    # Rooms / history
    chat_rooms: str = Field(
        default="general,random,tech", json_schema_extra={"env": "CHAT_ROOMS"}
    )
    default_room: str = Field(
        default="general", json_schema_extra={"env": "DEFAULT_ROOM"}
    )
    message_history_limit: int = Field(
        default=100, ge=1, json_schema_extra={"env": "MESSAGE_HISTORY_LIMIT"}
    )
    page_size: int = Field(default=20, ge=1, json_schema_extra={"env": "PAGE_SIZE"})
    notification_feed_limit: int = Field(
        default=50, ge=1, json_schema_extra={"env": "NOTIFICATION_FEED_LIMIT"}
    )

    model_config = SettingsConfigDict(
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="allow",  # Allow extra environment variables
    )

    @property
    def room_names(self) -> list[str]:
        """Public rooms created at startup, in declaration order, without duplicates."""
        names: list[str] = []
        for raw in self.chat_rooms.split(","):
            name = raw.strip()
            if name and name not in names:
                names.append(name)
        if self.default_room not in names:
            names.insert(0, self.default_room)
        return names

    @property
    def is_production(self) -> bool:
        """Check if the current environment is production."""
        return self.environment.lower() == "production"

    @property
    def is_test(self) -> bool:
        """Check if the current environment is test."""
        return self.environment.lower() == "test"


def get_settings() -> Settings:
    """Get application settings from the environment."""
    return Settings()
