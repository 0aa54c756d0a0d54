"""
Password hashing and access-token primitives.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from travelstory.errors import ConfigurationError, Unauthenticated, ValidationError

# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


@dataclass(frozen=True)
class TokenClaims:
    """Decoded access-token payload."""

    user_id: str
    issued_at: int
    expires_at: int


class PasswordHasher:
    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        raw = password.encode("utf-8")
        if len(raw) > MAX_PASSWORD_BYTES:
            raise ValidationError(
                f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
            )
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(raw, salt).decode("ascii")

    def verify(self, password: str, hashed: str) -> bool:
        raw = password.encode("utf-8")
        if len(raw) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(raw, hashed.encode("ascii"))
        except ValueError:
            # Malformed stored hash.
            return False


class TokenCodec:
    """Issues and verifies signed, time-limited bearer tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=72),
    ):
        if not secret:
            raise ConfigurationError("ACCESS_TOKEN_SECRET is required")
        self._secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, user_id: str, now: datetime | None = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "userId": user_id,
            "sub": user_id,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def decode(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token has expired")
        except jwt.InvalidTokenError:
            raise Unauthenticated("Invalid token")

        user_id = payload.get("userId") or payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise Unauthenticated("Invalid token")
        return TokenClaims(
            user_id=user_id,
            issued_at=int(payload.get("iat", 0)),
            expires_at=int(payload["exp"]),
        )
