import pytest
from cryptography.fernet import Fernet
from fastapi.testclient import TestClient

from huddle.config import Settings
from huddle.core.app_state import AppState
from huddle.main import create_app


@pytest.fixture
def settings():
    """Test settings with a fixed Fernet key (skips key derivation)."""
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        SECRET_KEY="test-secret",
        fernet_key=Fernet.generate_key().decode(),
        chat_rooms="general,random,tech",
        default_room="general",
    )


@pytest.fixture
def app_state(settings):
    return AppState(settings)


@pytest.fixture
def dispatcher(app_state):
    return app_state.dispatcher


@pytest.fixture
def app(settings):
    return create_app(settings, testing=True)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def issue_token(app_state):
    """Issue a token from the same issuer the dispatcher verifies with."""

    def _issue(username: str) -> str:
        return app_state.tokens.issue(username)

    return _issue
