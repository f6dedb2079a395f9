"""Profile API — the signed-in artist's own account details and histories."""

import re

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from alera.auth.dependencies import CurrentIdentity, current_user
from alera.db.engine import get_db
from alera.db.models import BillingHistory, utcnow
from alera.schemas.common import EMAIL_PATTERN
from alera.schemas.profile import (
    PROFILE_FIELDS,
    BillingHistoryRead,
    LoginHistoryRead,
    ProfileRead,
    ProfileUpdate,
)
from alera.services.login_history import LoginHistoryService

router = APIRouter(prefix="/profile")


@router.get("")
async def get_profile(identity: CurrentIdentity = Depends(current_user)):
    return {"user": ProfileRead.model_validate(identity.user)}


@router.put("")
async def update_profile(
    body: ProfileUpdate,
    identity: CurrentIdentity = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update profile fields. Changing the email address is not done here."""
    user = identity.user
    changes = body.model_dump(exclude_unset=True)

    email = changes.pop("email", None)
    if email:
        if not re.match(EMAIL_PATTERN, email):
            raise HTTPException(status_code=400, detail="Invalid email format")
        if email.strip().lower() != user.email:
            raise HTTPException(
                status_code=400,
                detail={
                    "error": "Email changes require verification. "
                    "Please use the email verification endpoint.",
                    "require_email_verification": True,
                },
            )

    for field in PROFILE_FIELDS:
        if field in changes:
            setattr(user, field, changes[field])
    user.updated_at = utcnow()
    await db.commit()
    await db.refresh(user)

    return {"message": "Profile updated successfully", "user": ProfileRead.model_validate(user)}


@router.get("/billing-history")
async def billing_history(
    identity: CurrentIdentity = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(BillingHistory)
        .where(BillingHistory.user_id == identity.user_id)
        .order_by(BillingHistory.transaction_date.desc(), BillingHistory.id.desc())
        .limit(50)
    )
    return {
        "billing_history": [
            BillingHistoryRead.model_validate(row) for row in result.scalars().all()
        ]
    }


@router.get("/login-history")
async def login_history(
    identity: CurrentIdentity = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await LoginHistoryService(db).recent(identity.user_id, limit=20)
    return {"login_history": [LoginHistoryRead.model_validate(r) for r in rows]}
