"""Stripe SDK adapter.

The stripe SDK is synchronous, so every call runs in a worker thread via
run_in_threadpool. Callers get plain values (ids, urls, timestamps) back
and never handle Stripe objects directly.

Stripe failures surface as BillingError; a missing secret key surfaces as
BillingNotConfigured.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

import stripe
import structlog
from starlette.concurrency import run_in_threadpool

from alera.config import settings

logger = structlog.get_logger()


class BillingError(Exception):
    """A Stripe call failed."""


class BillingNotConfigured(BillingError):
    """Stripe keys are not set."""


class WebhookSignatureError(BillingError):
    """The webhook payload did not carry a valid Stripe signature."""


@dataclass
class CheckoutSession:
    id: str
    url: str


def _client() -> Any:
    if not settings.stripe_secret_key:
        raise BillingNotConfigured("Stripe is not configured")
    stripe.api_key = settings.stripe_secret_key
    return stripe


def _create_customer(email: str, name: Optional[str], user_id: int) -> str:
    client = _client()
    try:
        customer = client.Customer.create(
            email=email,
            name=name or None,
            metadata={"user_id": str(user_id)},
        )
    except stripe.StripeError as e:
        raise BillingError("Failed to create customer account") from e
    return customer.id


def _create_checkout_session(
    customer_id: str, price_id: str, metadata: dict[str, str]
) -> CheckoutSession:
    client = _client()
    tier = metadata.get("tier", "plus")
    billing = metadata.get("billing", "monthly")
    try:
        session = client.checkout.Session.create(
            customer=customer_id,
            mode="subscription",
            payment_method_types=["card"],
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=(
                f"{settings.app_url}/subscription-success?tier={tier}&cycle={billing}"
            ),
            cancel_url=f"{settings.app_url}/subscription",
            client_reference_id=metadata.get("user_id"),
            metadata=metadata,
            subscription_data={"metadata": metadata},
        )
    except stripe.StripeError as e:
        raise BillingError("Failed to create checkout session") from e
    if not session.url:
        raise BillingError("Checkout session has no url")
    return CheckoutSession(id=session.id, url=session.url)


def _create_portal_session(customer_id: str, return_url: str) -> str:
    client = _client()
    try:
        session = client.billing_portal.Session.create(
            customer=customer_id, return_url=return_url
        )
    except stripe.StripeError as e:
        raise BillingError("Failed to create customer portal session") from e
    return session.url


def _cancel_subscription(subscription_id: str, immediately: bool) -> Optional[int]:
    """Cancel now, or at the end of the current period. Returns the period end."""
    client = _client()
    try:
        if immediately:
            sub = client.Subscription.cancel(subscription_id)
        else:
            sub = client.Subscription.modify(
                subscription_id, cancel_at_period_end=True
            )
    except stripe.StripeError as e:
        raise BillingError("Failed to cancel subscription with payment provider") from e
    return getattr(sub, "current_period_end", None)


# ─── Async facade ───────────────────────────────────────


async def create_customer(email: str, name: Optional[str], user_id: int) -> str:
    return await run_in_threadpool(_create_customer, email, name, user_id)


async def create_checkout_session(
    customer_id: str, price_id: str, metadata: dict[str, str]
) -> CheckoutSession:
    return await run_in_threadpool(
        _create_checkout_session, customer_id, price_id, metadata
    )


async def create_portal_session(customer_id: str, return_url: str) -> str:
    return await run_in_threadpool(_create_portal_session, customer_id, return_url)


async def cancel_subscription(subscription_id: str, immediately: bool = False) -> Optional[int]:
    return await run_in_threadpool(_cancel_subscription, subscription_id, immediately)


def parse_webhook_event(payload: bytes, signature: Optional[str]) -> dict:
    """Verify a webhook signature and return the event as a plain dict."""
    if not settings.stripe_webhook_secret:
        raise BillingNotConfigured("Stripe webhook secret is not configured")
    if not signature:
        raise WebhookSignatureError("Missing stripe-signature header")
    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"), signature, settings.stripe_webhook_secret
        )
    except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
        raise WebhookSignatureError("Invalid webhook signature") from e
    try:
        return json.loads(payload)
    except ValueError as e:
        raise WebhookSignatureError("Malformed webhook payload") from e
