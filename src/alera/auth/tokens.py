"""JWT token creation and verification.

JWT (JSON Web Token) provides stateless authentication. A single access
token (7 days by default) carries the user id and the admin flag.

Decoded payloads are validated into TokenClaims before anything reads
them, so handlers never touch a raw dict. Every failure mode (bad
signature, expiry, malformed payload) surfaces as the same TokenError.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import BaseModel, Field, ValidationError

from alera.config import settings


class TokenError(Exception):
    """Raised when token verification fails."""


class TokenClaims(BaseModel):
    """Validated claims carried by an access token."""

    user_id: int = Field(alias="sub", gt=0)
    is_admin: bool = False
    expires_at: datetime = Field(alias="exp")

    model_config = {"populate_by_name": True}


def create_access_token(
    user_id: int,
    is_admin: bool = False,
    expires_days: Optional[int] = None,
) -> str:
    """Create a signed JWT access token."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        days=expires_days or settings.access_token_expire_days
    )
    payload = {
        "sub": str(user_id),
        "is_admin": is_admin,
        "type": "access",
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> TokenClaims:
    """Verify and decode a JWT token.

    Returns the validated claims on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.InvalidTokenError:
        raise TokenError("Invalid token")

    if payload.get("type", "access") != "access":
        raise TokenError("Invalid token")

    try:
        return TokenClaims.model_validate(payload)
    except ValidationError:
        raise TokenError("Invalid token")
