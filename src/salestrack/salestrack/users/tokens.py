from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt

from ..core.constants import DEFAULT_TOKEN_DAYS
from ..core.enums import Role
from ..core.exceptions import AuthenticationError
from .model import Claims, User

ALGORITHM = "HS256"


class TokenService:
    """Issues and verifies signed identity tokens."""

    def __init__(self, secret: str, *, expires_days: int = DEFAULT_TOKEN_DAYS):
        self._secret = secret
        self._expires = timedelta(days=int(expires_days))

    def issue(self, user: User) -> str:
        payload = {
            "id": user.user_id,
            "username": user.username,
            "email": user.email,
            "role": user.role.value,
            "exp": datetime.now(timezone.utc) + self._expires,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def decode(self, token: str) -> Claims:
        if not token:
            raise AuthenticationError("No token provided, access denied.")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
            return Claims(
                user_id=int(payload["id"]),
                username=str(payload["username"]),
                email=str(payload["email"]),
                role=Role(payload["role"]),
            )
        except (jwt.PyJWTError, KeyError, ValueError):
            raise AuthenticationError("Invalid or expired token.")

    def from_header(self, header: str | None) -> Claims:
        """Decode a ``Bearer <token>`` Authorization header."""
        parts = (header or "").split(" ")
        token = parts[1] if len(parts) == 2 and parts[0].lower() == "bearer" else ""
        return self.decode(token)
