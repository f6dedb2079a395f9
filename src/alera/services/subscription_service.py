"""Subscription service — plan state, feature access, Stripe lifecycle.

Every user gets a trial subscription row at registration. Paid tiers are
granted by Stripe webhooks, never by the checkout request itself: the
checkout route only creates a Stripe session, and the webhook handlers
below move the row between tiers once Stripe confirms.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from alera.billing.pricing import get_tier_from_price_id
from alera.db.models import (
    BillingHistory,
    Subscription,
    SubscriptionEvent,
    as_utc,
    utcnow,
)

logger = structlog.get_logger()

PAID_TIERS = ("plus", "pro")


def _from_timestamp(ts: Any) -> Optional[datetime]:
    if ts is None:
        return None
    try:
        return datetime.fromtimestamp(float(ts), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _first_price(obj: dict) -> dict:
    items = (obj.get("items") or {}).get("data") or []
    if items:
        return items[0].get("price") or {}
    return {}


def is_expired(sub: Subscription) -> bool:
    now = utcnow()
    if sub.tier == "trial":
        if sub.free_release_used:
            return True
        expires = as_utc(sub.trial_expires_at)
        return expires is not None and now > expires
    expires = as_utc(sub.subscription_expires_at)
    return expires is not None and now > expires


def days_remaining(sub: Subscription) -> int:
    """Paid plans report 0. Trials report days left, or 1/0 free releases."""
    if sub.tier != "trial":
        return 0
    if sub.free_release_used:
        return 0
    expires = as_utc(sub.trial_expires_at)
    if expires is not None:
        seconds = (expires - utcnow()).total_seconds()
        return max(0, -int(-seconds // 86400))
    return 1


def feature_access(sub: Subscription) -> dict:
    active = sub.status == "active"
    paid_active = sub.tier in PAID_TIERS and active
    trial_active = sub.tier == "trial" and active
    fan_features = trial_active or paid_active
    return {
        "release_creation": paid_active or (trial_active and not sub.free_release_used),
        "ai_agent": paid_active or trial_active,
        "fan_campaigns": fan_features,
        "fan_import": fan_features,
        "tip_jar": fan_features,
        "paid_subscriptions": fan_features,
        "analytics_advanced": sub.tier != "trial" or not sub.free_release_used,
    }


def serialize_status(sub: Subscription) -> dict:
    expires_at = as_utc(sub.subscription_expires_at)
    trial_expires = as_utc(sub.trial_expires_at)
    return {
        "subscription": {
            "id": sub.id,
            "tier": sub.tier,
            "status": sub.status,
            "isExpired": is_expired(sub),
            "daysRemaining": days_remaining(sub),
            "trialExpiresAt": trial_expires.isoformat() if trial_expires else None,
            "subscriptionExpiresAt": expires_at.isoformat() if expires_at else None,
            "stripeCustomerId": sub.stripe_customer_id,
            "stripeSubscriptionId": sub.stripe_subscription_id,
            "freeReleaseUsed": bool(sub.free_release_used),
        },
        "featureAccess": feature_access(sub),
        "upgradeAvailable": {
            "canUpgradeToPlus": sub.tier == "trial",
            "canUpgradeToPro": sub.tier in ("trial", "plus"),
        },
    }


class SubscriptionService:
    """Reads and transitions a user's subscription row."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_for_user(self, user_id: int) -> Optional[Subscription]:
        result = await self.db.execute(
            select(Subscription).where(Subscription.user_id == user_id)
        )
        return result.scalars().first()

    async def create_trial(self, user_id: int) -> Subscription:
        sub = Subscription(
            user_id=user_id, tier="trial", status="active", free_release_used=False
        )
        self.db.add(sub)
        await self.db.flush()
        return sub

    async def get_or_create(self, user_id: int) -> Subscription:
        sub = await self.get_for_user(user_id)
        if sub is None:
            sub = await self.create_trial(user_id)
        return sub

    async def record_event(self, user_id: int, event_type: str, data: dict) -> None:
        self.db.add(
            SubscriptionEvent(user_id=user_id, event_type=event_type, event_data=data)
        )

    async def record_billing(
        self,
        user_id: int,
        amount: float,
        status: str,
        description: str,
        reference_id: Optional[str],
        payment_method: str = "card",
    ) -> None:
        self.db.add(
            BillingHistory(
                user_id=user_id,
                amount=amount,
                transaction_type="subscription",
                status=status,
                description=description,
                reference_id=reference_id,
                payment_method=payment_method,
            )
        )

    async def mark_cancelled(
        self,
        sub: Subscription,
        immediately: bool,
        reason: str,
        feedback: Optional[str],
    ) -> None:
        sub.status = "cancelled"
        if immediately:
            sub.subscription_expires_at = utcnow()
        await self.record_event(
            sub.user_id,
            "cancelled",
            {
                "reason": reason,
                "feedback": feedback,
                "immediately": immediately,
                "cancelled_tier": sub.tier,
                "stripe_subscription_id": sub.stripe_subscription_id,
            },
        )

    # ─── Webhook handlers ───────────────────────────────

    async def _by_customer(self, customer_id: Optional[str]) -> Optional[Subscription]:
        if not customer_id:
            return None
        result = await self.db.execute(
            select(Subscription).where(Subscription.stripe_customer_id == customer_id)
        )
        return result.scalars().first()

    async def _by_stripe_subscription(
        self, subscription_id: Optional[str]
    ) -> Optional[Subscription]:
        if not subscription_id:
            return None
        result = await self.db.execute(
            select(Subscription).where(
                Subscription.stripe_subscription_id == subscription_id
            )
        )
        return result.scalars().first()

    async def apply_webhook_event(self, event: dict) -> bool:
        """Apply one Stripe event. Returns False when the event was ignored."""
        event_type = event.get("type", "")
        obj = (event.get("data") or {}).get("object") or {}
        handlers = {
            "customer.subscription.created": self._subscription_created,
            "customer.subscription.updated": self._subscription_updated,
            "customer.subscription.deleted": self._subscription_deleted,
            "invoice.payment_succeeded": self._payment_succeeded,
            "invoice.payment_failed": self._payment_failed,
            "checkout.session.completed": self._checkout_completed,
        }
        handler = handlers.get(event_type)
        if handler is None:
            logger.info("stripe.webhook_ignored", event_type=event_type)
            return False
        return await handler(obj)

    async def _subscription_created(self, obj: dict) -> bool:
        price = _first_price(obj)
        tier = get_tier_from_price_id(price.get("id"))
        if tier is None:
            logger.warning("stripe.unknown_price", price_id=price.get("id"))
            return False
        sub = await self._by_customer(obj.get("customer"))
        if sub is None:
            logger.warning("stripe.customer_not_found", customer_id=obj.get("customer"))
            return False

        expires_at = _from_timestamp(obj.get("current_period_end"))
        sub.tier = tier
        sub.status = "active"
        sub.stripe_subscription_id = obj.get("id")
        sub.subscription_expires_at = expires_at
        await self.record_event(
            sub.user_id,
            "created",
            {
                "tier": tier,
                "customerId": obj.get("customer"),
                "subscriptionId": obj.get("id"),
                "expiresAt": expires_at.isoformat() if expires_at else None,
            },
        )
        unit_amount = price.get("unit_amount")
        await self.record_billing(
            sub.user_id,
            amount=unit_amount / 100 if unit_amount else 0,
            status="active",
            description=f"New subscription created: {tier} plan",
            reference_id=obj.get("id"),
        )
        logger.info("stripe.subscription_created", user_id=sub.user_id, tier=tier)
        return True

    async def _subscription_updated(self, obj: dict) -> bool:
        price = _first_price(obj)
        tier = get_tier_from_price_id(price.get("id"))
        if tier is None:
            logger.warning("stripe.unknown_price", price_id=price.get("id"))
            return False
        sub = await self._by_customer(obj.get("customer"))
        if sub is None:
            logger.warning("stripe.customer_not_found", customer_id=obj.get("customer"))
            return False

        previous_tier = sub.tier
        expires_at = _from_timestamp(obj.get("current_period_end"))
        sub.tier = tier
        sub.status = "active" if obj.get("status") == "active" else "cancelled"
        sub.stripe_subscription_id = obj.get("id")
        sub.subscription_expires_at = expires_at
        await self.record_event(
            sub.user_id,
            "updated",
            {
                "tier": tier,
                "status": obj.get("status"),
                "subscriptionId": obj.get("id"),
                "expiresAt": expires_at.isoformat() if expires_at else None,
                "previousTier": previous_tier,
            },
        )
        logger.info(
            "stripe.subscription_updated",
            user_id=sub.user_id,
            tier=tier,
            stripe_status=obj.get("status"),
        )
        return True

    async def _subscription_deleted(self, obj: dict) -> bool:
        sub = await self._by_stripe_subscription(obj.get("id"))
        if sub is None:
            logger.warning("stripe.subscription_not_found", subscription_id=obj.get("id"))
            return False

        previous_tier = sub.tier
        sub.tier = "trial"
        sub.status = "expired"
        sub.stripe_subscription_id = None
        sub.stripe_customer_id = None
        sub.subscription_expires_at = None
        await self.record_event(
            sub.user_id,
            "cancelled",
            {"previousTier": previous_tier, "subscriptionId": obj.get("id")},
        )
        await self.record_billing(
            sub.user_id,
            amount=0,
            status="completed",
            description=f"Subscription cancelled: {previous_tier} plan",
            reference_id=obj.get("id"),
        )
        logger.info("stripe.subscription_deleted", user_id=sub.user_id)
        return True

    async def _invoice_payment(self, obj: dict, succeeded: bool) -> bool:
        sub = await self._by_stripe_subscription(obj.get("subscription"))
        if sub is None:
            return False

        # Failed payments leave the plan active; Stripe retries the charge.
        sub.status = "active"
        lines = (obj.get("lines") or {}).get("data") or []
        nickname = ((lines[0].get("price") or {}).get("nickname") if lines else None) or "plan"
        if succeeded:
            amount = obj.get("amount_paid") or 0
            description = f"Subscription payment for {nickname}"
            data = {"invoiceId": obj.get("id"), "amount": amount,
                    "subscriptionId": obj.get("subscription")}
        else:
            amount = obj.get("amount_due") or 0
            reason = (obj.get("last_payment_error") or {}).get("message") or "Unknown error"
            description = f"Failed subscription payment for {nickname}: {reason}"
            data = {"invoiceId": obj.get("id"), "amount": amount,
                    "subscriptionId": obj.get("subscription"), "failureReason": reason}

        await self.record_event(
            sub.user_id, "payment_succeeded" if succeeded else "payment_failed", data
        )
        await self.record_billing(
            sub.user_id,
            amount=amount / 100,
            status="completed" if succeeded else "failed",
            description=description,
            reference_id=obj.get("id"),
        )
        logger.info(
            "stripe.invoice_processed",
            user_id=sub.user_id,
            succeeded=succeeded,
        )
        return True

    async def _payment_succeeded(self, obj: dict) -> bool:
        return await self._invoice_payment(obj, succeeded=True)

    async def _payment_failed(self, obj: dict) -> bool:
        return await self._invoice_payment(obj, succeeded=False)

    async def _checkout_completed(self, obj: dict) -> bool:
        customer_id = obj.get("customer")
        subscription_id = obj.get("subscription")
        if not customer_id or not subscription_id:
            return False
        sub = await self._by_customer(customer_id)
        if sub is None:
            return False
        sub.stripe_subscription_id = subscription_id
        sub.status = "active"
        logger.info("stripe.checkout_completed", user_id=sub.user_id)
        return True
