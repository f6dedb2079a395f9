"""Subscription API — pricing, plan status, Stripe checkout and webhooks.

Checkout only opens a Stripe session; the plan itself changes when the
signed webhook arrives (see SubscriptionService.apply_webhook_event).
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from alera.auth.dependencies import CurrentIdentity, current_user
from alera.billing import pricing, stripe_billing
from alera.config import settings
from alera.db.engine import get_db
from alera.schemas.subscription import (
    PortalRequest,
    SubscriptionCancel,
    SubscriptionCreate,
)
from alera.services.subscription_service import (
    PAID_TIERS,
    SubscriptionService,
    serialize_status,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/subscription")
stripe_router = APIRouter(prefix="/stripe")


def _svc(db: AsyncSession = Depends(get_db)) -> SubscriptionService:
    return SubscriptionService(db)


def _billing_failed(e: stripe_billing.BillingError) -> HTTPException:
    logger.error("stripe.call_failed", error=str(e))
    return HTTPException(status_code=500, detail=str(e) or "Billing request failed")


# ─── Plans ──────────────────────────────────────────────


@router.get("/pricing")
async def get_pricing(country: Optional[str] = None):
    code = pricing.normalize_country(country)
    return {
        "pricing": pricing.get_pricing_for_country(code),
        "country": code or None,
        "isSupported": pricing.is_country_supported(code),
        "supportedCountries": pricing.supported_countries(),
    }


@router.get("/status")
async def get_status(
    identity: CurrentIdentity = Depends(current_user),
    svc: SubscriptionService = Depends(_svc),
):
    sub = await svc.get_for_user(identity.user_id)
    if sub is None:
        raise HTTPException(status_code=404, detail="No subscription found")
    return serialize_status(sub)


@router.post("/create")
async def create_subscription(
    body: SubscriptionCreate,
    identity: CurrentIdentity = Depends(current_user),
    svc: SubscriptionService = Depends(_svc),
):
    """Open a Stripe Checkout session for a paid plan."""
    sub = await svc.get_or_create(identity.user_id)
    if sub.tier in PAID_TIERS and sub.status == "active":
        raise HTTPException(
            status_code=400, detail="You already have an active paid subscription"
        )

    try:
        price_id = pricing.get_price_id(body.tier, body.billing, body.country)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    user = identity.user
    try:
        if not sub.stripe_customer_id:
            sub.stripe_customer_id = await stripe_billing.create_customer(
                user.email, user.artist_name, user.id
            )
            # Keep the customer id even if checkout fails below.
            await svc.db.commit()
        session = await stripe_billing.create_checkout_session(
            sub.stripe_customer_id,
            price_id,
            {
                "user_id": str(user.id),
                "tier": body.tier,
                "billing": body.billing,
            },
        )
    except stripe_billing.BillingError as e:
        raise _billing_failed(e)

    await svc.record_event(
        user.id,
        "checkout_started",
        {"tier": body.tier, "billing": body.billing, "session_id": session.id},
    )
    await svc.db.commit()
    logger.info("stripe.checkout_created", user_id=user.id, tier=body.tier)
    return {
        "success": True,
        "sessionId": session.id,
        "checkoutUrl": session.url,
        "tier": body.tier,
        "priceId": price_id,
    }


@router.post("/cancel")
async def cancel_subscription(
    body: Optional[SubscriptionCancel] = None,
    identity: CurrentIdentity = Depends(current_user),
    svc: SubscriptionService = Depends(_svc),
):
    body = body or SubscriptionCancel()
    sub = await svc.get_for_user(identity.user_id)
    if sub is None or sub.tier == "trial":
        raise HTTPException(status_code=400, detail="No paid subscription to cancel")
    if not sub.stripe_subscription_id:
        raise HTTPException(status_code=400, detail="No active Stripe subscription found")
    if sub.status == "cancelled":
        raise HTTPException(status_code=400, detail="Subscription is already cancelled")

    try:
        await stripe_billing.cancel_subscription(
            sub.stripe_subscription_id, immediately=body.immediately
        )
    except stripe_billing.BillingError as e:
        raise _billing_failed(e)

    await svc.mark_cancelled(sub, body.immediately, body.reason, body.feedback)
    await svc.db.commit()
    logger.info(
        "subscription.cancelled",
        user_id=identity.user_id,
        immediately=body.immediately,
    )
    message = (
        "Subscription cancelled"
        if body.immediately
        else "Subscription will be cancelled at the end of the billing period"
    )
    return {"success": True, "message": message, "immediately": body.immediately}


# ─── Stripe ─────────────────────────────────────────────


@stripe_router.post("/customer-portal")
async def customer_portal(
    body: Optional[PortalRequest] = None,
    identity: CurrentIdentity = Depends(current_user),
    svc: SubscriptionService = Depends(_svc),
):
    body = body or PortalRequest()
    sub = await svc.get_for_user(identity.user_id)
    if sub is None or not sub.stripe_customer_id:
        raise HTTPException(status_code=400, detail="No Stripe customer found")
    return_url = body.return_url or f"{settings.app_url}/subscription"
    try:
        url = await stripe_billing.create_portal_session(
            sub.stripe_customer_id, return_url
        )
    except stripe_billing.BillingError as e:
        raise _billing_failed(e)
    return {"url": url}


@stripe_router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    svc: SubscriptionService = Depends(_svc),
):
    """Signed Stripe events. Unhandled event types are acknowledged and skipped."""
    payload = await request.body()
    try:
        event = stripe_billing.parse_webhook_event(payload, stripe_signature)
    except stripe_billing.BillingError as e:
        logger.warning("stripe.webhook_rejected", error=str(e))
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("stripe.webhook_received", event_type=event.get("type"))
    await svc.apply_webhook_event(event)
    await svc.db.commit()
    return {"received": True}
