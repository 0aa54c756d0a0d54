"""
Bearer-token gate for protected routes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from travelstory.dependencies import get_token_codec
from travelstory.errors import Unauthenticated
from travelstory.security import TokenCodec

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """The verified caller of a request."""

    user_id: str


def require_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenCodec = Depends(get_token_codec),
) -> Identity:
    """FastAPI dependency ensuring the request has a valid Bearer token."""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Token is required")
    claims = tokens.decode(credentials.credentials)
    identity = Identity(user_id=claims.user_id)
    request.state.identity = identity
    return identity
