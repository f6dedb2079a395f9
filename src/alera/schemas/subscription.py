"""Pydantic schemas for subscription checkout and cancellation."""

from typing import Optional

from pydantic import BaseModel, Field


class SubscriptionCreate(BaseModel):
    tier: str = Field(..., pattern=r"^(plus|pro)$")
    billing: str = Field("monthly", pattern=r"^(monthly|yearly)$")
    country: Optional[str] = Field(None, max_length=2)


class SubscriptionCancel(BaseModel):
    immediately: bool = False
    reason: str = "user_requested"
    feedback: Optional[str] = None


class PortalRequest(BaseModel):
    return_url: Optional[str] = Field(None, alias="returnUrl")

    model_config = {"populate_by_name": True}
