"""Pydantic schemas for withdrawals and payout methods."""

from typing import Optional

from pydantic import BaseModel, Field

from alera.schemas.common import OptionalUTCDateTime, UTCDateTime


class WithdrawalCreate(BaseModel):
    amount_requested: float = Field(..., gt=0)
    method: str = Field(..., min_length=1, max_length=100)
    account_details: Optional[str] = None


class WithdrawalRead(BaseModel):
    id: int
    artist_id: int
    amount_requested: float
    method: str
    account_details: Optional[str] = None
    status: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
    processed_at: OptionalUTCDateTime = None
    processed_by: Optional[int] = None

    model_config = {"from_attributes": True}


class PayoutMethodSave(BaseModel):
    method: str = Field(..., min_length=1, max_length=100)
    # Stored as given; a JSON object string is masked per method type.
    account_info: str = Field(..., min_length=1)


class PayoutMethodRead(BaseModel):
    method: str
    account_info_masked: str
    status: str
    created_at: UTCDateTime
    updated_at: UTCDateTime
