"""FastAPI auth dependencies.

Every protected route goes through one gate, AuthGate, parameterized by
the privilege it needs:

- TOKEN: a valid bearer token is enough (the claims are trusted)
- USER:  the token's user must still exist
- ADMIN: the user row must carry is_admin (the token claim is not trusted
         for this, so a demoted admin loses access immediately)

Attach a gate either with `dependencies=[Depends(admin_only)]` on a router
or as a handler parameter when the identity is needed.
"""

import enum
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from alera.auth.tokens import TokenClaims, TokenError, verify_token
from alera.db.engine import get_db
from alera.db.models import User


class Privilege(str, enum.Enum):
    TOKEN = "token"
    USER = "user"
    ADMIN = "admin"


class CurrentIdentity:
    """The authenticated caller.

    `user` is only loaded for USER and ADMIN gates.
    """

    def __init__(
        self,
        user_id: int,
        is_admin: bool = False,
        user: Optional[User] = None,
    ):
        self.user_id = user_id
        self.is_admin = is_admin
        self.user = user


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an `Authorization: Bearer <token>` header."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[7:].strip()
    return token or None


def authenticate_token(authorization: Optional[str]) -> TokenClaims:
    token = extract_bearer_token(authorization)
    if token is None:
        raise _unauthorized("Authorization header required")
    try:
        return verify_token(token)
    except TokenError as e:
        raise _unauthorized(str(e))


class AuthGate:
    """Dependency that resolves the caller or rejects the request."""

    def __init__(self, privilege: Privilege = Privilege.TOKEN):
        self.privilege = privilege

    async def __call__(
        self,
        authorization: Optional[str] = Header(None),
        db: AsyncSession = Depends(get_db),
    ) -> CurrentIdentity:
        claims = authenticate_token(authorization)

        if self.privilege is Privilege.TOKEN:
            return CurrentIdentity(user_id=claims.user_id, is_admin=claims.is_admin)

        user = await db.get(User, claims.user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")

        if self.privilege is Privilege.ADMIN and not user.is_admin:
            raise HTTPException(status_code=403, detail="Admin access required")

        return CurrentIdentity(user_id=user.id, is_admin=user.is_admin, user=user)


authenticated = AuthGate(Privilege.TOKEN)
current_user = AuthGate(Privilege.USER)
admin_only = AuthGate(Privilege.ADMIN)


async def get_identity_optional(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Optional[CurrentIdentity]:
    """Soft variant: None instead of 401/404 when the caller can't be resolved.

    Used by endpoints that answer both signed-in and anonymous callers.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        return None
    try:
        claims = verify_token(token)
    except TokenError:
        return None
    user = await db.get(User, claims.user_id)
    if user is None:
        return None
    return CurrentIdentity(user_id=user.id, is_admin=user.is_admin, user=user)
