"""Pydantic schemas for fans, campaigns and landing pages."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from alera.schemas.common import EMAIL_PATTERN, OptionalUTCDateTime, UTCDateTime

FAN_STATUS_PATTERN = r"^(free|paid)$"


# ─── Fans ───────────────────────────────────────────────


class FanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    phone_number: Optional[str] = None
    country: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=150)
    birth_year: Optional[int] = None
    subscribed_status: str = Field("free", pattern=FAN_STATUS_PATTERN)
    source: str = "manual"


class FanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN, max_length=255)
    phone_number: Optional[str] = None
    country: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=150)
    birth_year: Optional[int] = None
    subscribed_status: Optional[str] = Field(None, pattern=FAN_STATUS_PATTERN)

    @field_validator("name", "email", "subscribed_status")
    @classmethod
    def _not_null(cls, v):
        # Omit the field to leave it unchanged; null would clear a required column.
        if v is None:
            raise ValueError("cannot be null")
        return v


class FanRead(BaseModel):
    id: int
    name: str
    email: str
    phone_number: Optional[str] = None
    country: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = None
    birth_year: Optional[int] = None
    subscribed_status: str
    source: str
    created_at: UTCDateTime

    model_config = {"from_attributes": True}


# ─── Campaigns ──────────────────────────────────────────


class CampaignCreate(BaseModel):
    subject: str = Field(..., min_length=1, max_length=255)
    body: str = Field(..., min_length=1)
    link: Optional[str] = None
    audience_filter: dict = Field(default_factory=dict)
    send_immediately: bool = False


class CampaignRead(BaseModel):
    id: int
    artist_id: int
    subject: str
    body: str
    link: Optional[str] = None
    audience_filter: dict
    status: str
    sent_at: OptionalUTCDateTime = None
    created_at: UTCDateTime
    emails_sent: int = 0

    model_config = {"from_attributes": True}


# ─── Landing pages ──────────────────────────────────────


class LandingPageSave(BaseModel):
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_-]+$")
    page_config: dict


class LandingPageRead(BaseModel):
    id: int
    artist_id: int
    slug: str
    page_config: dict

    model_config = {"from_attributes": True}


# ─── Public ─────────────────────────────────────────────


class VerifyPaidRequest(BaseModel):
    slug: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)


class PublicFanAdd(BaseModel):
    slug: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    phone_number: Optional[str] = None
    country: Optional[str] = None
    gender: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=150)
    birth_year: Optional[int] = None
