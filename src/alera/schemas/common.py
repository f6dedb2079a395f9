"""Shared schema types."""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator

from alera.db.models import as_utc

# Timestamps always serialize with an explicit UTC offset.
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]
OptionalUTCDateTime = Annotated[Optional[datetime], AfterValidator(as_utc)]

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
