"""Auth API — registration, email verification, login, session state.

Routes:
- POST /auth/register → create an unverified account with a trial plan
- GET /auth/verify-email?token= → mark the account verified
- POST /auth/login → email/password → access token (every attempt is
  recorded in login_history)
- GET /auth/me → current user summary
- GET /auth/session → explicit authenticated/unauthenticated state
- POST /auth/activity → heartbeat, bumps last_active_at
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from alera.auth.dependencies import (
    CurrentIdentity,
    current_user,
    get_identity_optional,
)
from alera.auth.password import generate_random_token, hash_password, verify_password
from alera.auth.tokens import create_access_token
from alera.db.engine import get_db
from alera.db.models import User, utcnow
from alera.schemas.auth import LoginRequest, RegisterRequest, SessionState, UserSummary
from alera.services.login_history import LoginHistoryService
from alera.services.subscription_service import SubscriptionService

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")


# ─── Register ────────────────────────────────────────────


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create an account. It can't log in until the email is verified."""
    email = body.email.strip().lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        email=email,
        password_hash=hash_password(body.password),
        artist_name=body.artist_name,
        verification_token=generate_random_token(),
    )
    db.add(user)
    await db.flush()
    await SubscriptionService(db).create_trial(user.id)
    await db.commit()

    # Delivery of the verification link is handled outside this service.
    logger.info("auth.registered", user_id=user.id)
    return {
        "message": "User registered successfully. Please check your email to verify your account.",
        "userId": user.id,
    }


@router.get("/verify-email")
async def verify_email(
    token: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(User).where(User.verification_token == token))
    user = result.scalars().first()
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid or expired verification token")

    user.is_verified = True
    user.verification_token = None
    await db.commit()
    logger.info("auth.email_verified", user_id=user.id)
    return {"message": "Email verified successfully"}


# ─── Login ───────────────────────────────────────────────


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Email/password → JWT. Failed attempts are recorded too."""
    history = LoginHistoryService(db)
    result = await db.execute(
        select(User).where(User.email == body.email.strip().lower())
    )
    user = result.scalars().first()

    if user is None or not verify_password(body.password, user.password_hash):
        await history.record(request, user.id if user else None, "failed")
        await db.commit()
        logger.info("auth.login_failed", user_id=user.id if user else None)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.is_verified:
        await history.record(request, user.id, "failed")
        await db.commit()
        logger.info("auth.login_unverified", user_id=user.id)
        raise HTTPException(
            status_code=401, detail="Please verify your email before logging in"
        )

    await history.record(request, user.id, "success")
    user.last_active_at = utcnow()
    await db.commit()

    logger.info("auth.login_succeeded", user_id=user.id)
    return {
        "message": "Login successful",
        "token": create_access_token(user.id, is_admin=user.is_admin),
        "userId": user.id,
    }


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=UserSummary)
async def get_me(identity: CurrentIdentity = Depends(current_user)):
    return identity.user


@router.get("/session", response_model=SessionState)
async def get_session(
    identity: Optional[CurrentIdentity] = Depends(get_identity_optional),
):
    """Never 401s: an anonymous caller is a valid, explicit state."""
    if identity is None:
        return SessionState(state="unauthenticated", user=None)
    return SessionState(
        state="authenticated", user=UserSummary.model_validate(identity.user)
    )


@router.post("/activity")
async def record_activity(
    identity: CurrentIdentity = Depends(current_user),
    db: AsyncSession = Depends(get_db),
):
    identity.user.last_active_at = utcnow()
    await db.commit()
    return {"success": True}
