"""Bearer credential issuance and validation.

Tokens are Fernet tokens over a small JSON identity. Fernet embeds the issue
timestamp, so the TTL check is ``decrypt(token, ttl=...)``.
"""

from __future__ import annotations

import base64
import json
import time
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from huddle.config import Settings, get_settings
from huddle.core.errors import AuthError

KDF_ITERATIONS = 390000


def _derive_key(secret: str, salt: str) -> bytes:
    """Derive a Fernet key from an arbitrary secret string."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt.encode(),
        iterations=KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode()))


class TokenIssuer:
    """Issue and verify opaque bearer credentials for chat sessions."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        settings = settings or get_settings()
        key = settings.fernet_key
        if key:
            self._fernet = Fernet(key.encode() if isinstance(key, str) else key)
        else:
            self._fernet = Fernet(_derive_key(settings.secret_key, settings.fernet_salt))
        self.ttl_seconds = settings.token_ttl_seconds

    def issue(self, username: str, *, now: Optional[int] = None) -> str:
        """Issue a token for ``username``. Raise ValueError on a blank name."""
        username = (username or "").strip()
        if not username:
            raise ValueError("Username is required")
        issued_at = int(time.time()) if now is None else now
        claims = {"username": username, "login_time": issued_at}
        token = self._fernet.encrypt_at_time(json.dumps(claims).encode(), issued_at)
        return token.decode()

    def verify(self, token: Optional[str], *, now: Optional[int] = None) -> Dict[str, Any]:
        """Return the token claims. Raise AuthError if missing, invalid or expired."""
        if not token:
            raise AuthError("Authentication error: No token provided")
        current_time = int(time.time()) if now is None else now
        try:
            plaintext = self._fernet.decrypt_at_time(
                token.encode(), self.ttl_seconds, current_time
            )
        except InvalidToken:
            raise AuthError("Authentication error: Invalid token") from None
        try:
            claims = json.loads(plaintext)
        except ValueError:
            raise AuthError("Authentication error: Invalid token") from None
        if not isinstance(claims, dict) or not claims.get("username"):
            raise AuthError("Authentication error: Invalid token")
        return claims
