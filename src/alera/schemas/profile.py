"""Pydantic schemas for the artist profile and its histories."""

from typing import Optional

from pydantic import BaseModel

from alera.schemas.common import OptionalUTCDateTime, UTCDateTime

PROFILE_FIELDS = (
    "artist_name",
    "phone_number",
    "country",
    "address_line_1",
    "address_line_2",
    "city",
    "state_province",
    "postal_code",
    "company_name",
    "tax_id",
    "business_email",
    "business_phone",
    "business_address_line_1",
    "business_address_line_2",
    "business_city",
    "business_state_province",
    "business_postal_code",
    "business_country",
)


class ProfileRead(BaseModel):
    id: int
    email: str
    artist_name: Optional[str] = None
    phone_number: Optional[str] = None
    country: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    company_name: Optional[str] = None
    tax_id: Optional[str] = None
    business_email: Optional[str] = None
    business_phone: Optional[str] = None
    business_address_line_1: Optional[str] = None
    business_address_line_2: Optional[str] = None
    business_city: Optional[str] = None
    business_state_province: Optional[str] = None
    business_postal_code: Optional[str] = None
    business_country: Optional[str] = None
    created_at: UTCDateTime
    last_active_at: OptionalUTCDateTime = None

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    """All optional; only fields present in the request body are written."""
    email: Optional[str] = None
    artist_name: Optional[str] = None
    phone_number: Optional[str] = None
    country: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    company_name: Optional[str] = None
    tax_id: Optional[str] = None
    business_email: Optional[str] = None
    business_phone: Optional[str] = None
    business_address_line_1: Optional[str] = None
    business_address_line_2: Optional[str] = None
    business_city: Optional[str] = None
    business_state_province: Optional[str] = None
    business_postal_code: Optional[str] = None
    business_country: Optional[str] = None


class BillingHistoryRead(BaseModel):
    id: int
    transaction_date: UTCDateTime
    amount: float
    transaction_type: str
    status: str
    description: Optional[str] = None
    reference_id: Optional[str] = None
    payment_method: Optional[str] = None

    model_config = {"from_attributes": True}


class LoginHistoryRead(BaseModel):
    id: int
    login_time: UTCDateTime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_type: Optional[str] = None
    browser: Optional[str] = None
    location: Optional[str] = None
    status: str

    model_config = {"from_attributes": True}
