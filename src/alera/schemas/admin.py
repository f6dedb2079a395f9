"""Pydantic schemas for admin review endpoints.

Status fields are plain strings here so an out-of-range value reaches the
handler, which answers with its own 400 message before touching any row.
"""

from typing import Optional

from pydantic import BaseModel

from alera.schemas.common import OptionalUTCDateTime, UTCDateTime
from alera.schemas.wallet import WithdrawalRead


class StatusUpdate(BaseModel):
    status: Optional[str] = None


class ArtistRead(BaseModel):
    id: int
    email: str
    artist_name: Optional[str] = None
    is_verified: bool
    created_at: UTCDateTime

    model_config = {"from_attributes": True}


class AdminWithdrawalRead(WithdrawalRead):
    artist_email: Optional[str] = None
    artist_name: Optional[str] = None


class AdminPayoutMethodRead(BaseModel):
    id: int
    artist_id: int
    method: str
    account_info: str
    status: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    artist_email: Optional[str] = None
    artist_name: Optional[str] = None


class SubscriptionBrief(BaseModel):
    tier: str
    status: str
    trial_expires_at: OptionalUTCDateTime = None
    subscription_expires_at: OptionalUTCDateTime = None

    model_config = {"from_attributes": True}


class UserDetail(BaseModel):
    id: int
    email: str
    artist_name: Optional[str] = None
    is_verified: bool
    is_admin: bool
    created_at: UTCDateTime
    subscription: Optional[SubscriptionBrief] = None
    total_earnings: float
