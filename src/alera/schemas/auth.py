"""Pydantic schemas for registration, login and the session endpoints."""

from typing import Optional

from pydantic import BaseModel, Field

from alera.schemas.common import EMAIL_PATTERN, UTCDateTime


class RegisterRequest(BaseModel):
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(..., min_length=8)
    artist_name: Optional[str] = Field(None, alias="artistName", max_length=255)

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserSummary(BaseModel):
    id: int
    email: str
    artist_name: Optional[str] = None
    is_admin: bool
    is_verified: bool
    created_at: UTCDateTime

    model_config = {"from_attributes": True}


class SessionState(BaseModel):
    """Explicit session state: the client never infers it from a failed call."""
    state: str  # authenticated, unauthenticated
    user: Optional[UserSummary] = None
