"""Subscription and Stripe tests.

Outbound Stripe calls are replaced with AsyncMocks on the stripe_billing
module. Webhooks are signed for real with the test webhook secret, so
signature verification runs exactly as in production.
"""

import hashlib
import hmac
import json
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from alera.billing import stripe_billing
from alera.billing.stripe_billing import CheckoutSession
from alera.config import settings
from alera.db.models import BillingHistory, Subscription, SubscriptionEvent
from conftest import auth_headers, make_user


def _signed(event: dict) -> tuple[bytes, dict]:
    payload = json.dumps(event).encode()
    ts = int(time.time())
    sig = hmac.new(
        settings.stripe_webhook_secret.encode(),
        f"{ts}.{payload.decode()}".encode(),
        hashlib.sha256,
    ).hexdigest()
    return payload, {"stripe-signature": f"t={ts},v1={sig}"}


async def _subscription(db, user_id) -> Subscription:
    result = await db.execute(
        select(Subscription)
        .where(Subscription.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


# ═══════════════════════════════════════════════════════════
# Pricing + status
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_pricing_default_and_regional(client):
    r = await client.get("/api/subscription/pricing")
    assert r.status_code == 200
    data = r.json()
    assert data["isSupported"] is False
    assert data["pricing"]["plus"]["monthly"] == {
        "amount": 4.99,
        "currency": "USD",
        "priceId": "price_plus_monthly",
    }
    assert set(data["supportedCountries"]) == {"IN", "ZA", "TR", "US"}

    r = await client.get("/api/subscription/pricing", params={"country": "in"})
    data = r.json()
    assert data["country"] == "IN"
    assert data["isSupported"] is True
    assert data["pricing"]["plus"]["monthly"]["currency"] == "INR"
    assert data["pricing"]["plus"]["monthly"]["priceId"] == "price_plus_in_monthly"
    # No regional override configured: falls back to the base price id.
    assert data["pricing"]["pro"]["yearly"]["priceId"] == "price_pro_yearly"


@pytest.mark.asyncio
async def test_status_for_trial(client, artist):
    r = await client.get("/api/subscription/status", headers=auth_headers(artist))
    assert r.status_code == 200
    data = r.json()
    assert data["subscription"]["tier"] == "trial"
    assert data["subscription"]["isExpired"] is False
    assert data["subscription"]["daysRemaining"] == 1
    assert data["featureAccess"]["release_creation"] is True
    assert data["upgradeAvailable"] == {"canUpgradeToPlus": True, "canUpgradeToPro": True}


@pytest.mark.asyncio
async def test_status_requires_user(client):
    r = await client.get("/api/subscription/status")
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Checkout
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_checkout(client, db_session, artist, monkeypatch):
    create_customer = AsyncMock(return_value="cus_123")
    create_session = AsyncMock(
        return_value=CheckoutSession(id="cs_1", url="https://checkout.stripe.test/cs_1")
    )
    monkeypatch.setattr(stripe_billing, "create_customer", create_customer)
    monkeypatch.setattr(stripe_billing, "create_checkout_session", create_session)

    r = await client.post(
        "/api/subscription/create",
        json={"tier": "pro", "billing": "yearly"},
        headers=auth_headers(artist),
    )
    assert r.status_code == 200
    assert r.json() == {
        "success": True,
        "sessionId": "cs_1",
        "checkoutUrl": "https://checkout.stripe.test/cs_1",
        "tier": "pro",
        "priceId": "price_pro_yearly",
    }
    create_customer.assert_awaited_once_with(artist.email, "Nova", artist.id)
    args = create_session.await_args.args
    assert args[0] == "cus_123"
    assert args[1] == "price_pro_yearly"

    sub = await _subscription(db_session, artist.id)
    assert sub.stripe_customer_id == "cus_123"
    # The plan only changes once Stripe confirms via webhook.
    assert sub.tier == "trial"


@pytest.mark.asyncio
async def test_create_checkout_rejects_active_paid_plan(client, db_session, monkeypatch):
    user = await make_user(db_session, "pro@example.com", tier="pro")
    monkeypatch.setattr(stripe_billing, "create_customer", AsyncMock())

    r = await client.post(
        "/api/subscription/create",
        json={"tier": "plus"},
        headers=auth_headers(user),
    )
    assert r.status_code == 400
    stripe_billing.create_customer.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_checkout_stripe_failure(client, artist, monkeypatch):
    monkeypatch.setattr(
        stripe_billing,
        "create_customer",
        AsyncMock(side_effect=stripe_billing.BillingError("Failed to create customer account")),
    )
    r = await client.post(
        "/api/subscription/create",
        json={"tier": "plus"},
        headers=auth_headers(artist),
    )
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to create customer account"}


@pytest.mark.asyncio
async def test_create_checkout_validates_plan(client, artist):
    r = await client.post(
        "/api/subscription/create",
        json={"tier": "gold"},
        headers=auth_headers(artist),
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_checkout_session_references_user(monkeypatch):
    fake = MagicMock()
    fake.checkout.Session.create.return_value = SimpleNamespace(
        id="cs_ref", url="https://checkout.stripe.test/cs_ref"
    )
    monkeypatch.setattr(stripe_billing, "_client", lambda: fake)

    session = await stripe_billing.create_checkout_session(
        "cus_1", "price_plus_monthly", {"user_id": "42", "tier": "plus", "billing": "monthly"}
    )
    assert session.id == "cs_ref"
    kwargs = fake.checkout.Session.create.call_args.kwargs
    assert kwargs["client_reference_id"] == "42"
    assert kwargs["metadata"]["user_id"] == "42"
    assert "tier=plus" in kwargs["success_url"]


# ═══════════════════════════════════════════════════════════
# Cancel + portal
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_cancel_trial_is_rejected(client, artist):
    r = await client.post(
        "/api/subscription/cancel", json={}, headers=auth_headers(artist)
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_cancel_at_period_end(client, db_session, monkeypatch):
    user = await make_user(db_session, "plus@example.com", tier="plus")
    sub = await _subscription(db_session, user.id)
    sub.stripe_subscription_id = "sub_1"
    await db_session.commit()
    cancel = AsyncMock(return_value=None)
    monkeypatch.setattr(stripe_billing, "cancel_subscription", cancel)

    r = await client.post(
        "/api/subscription/cancel",
        json={"reason": "too_expensive", "feedback": "pricey"},
        headers=auth_headers(user),
    )
    assert r.status_code == 200
    assert r.json()["immediately"] is False
    cancel.assert_awaited_once_with("sub_1", immediately=False)

    sub = await _subscription(db_session, user.id)
    assert sub.status == "cancelled"
    assert sub.subscription_expires_at is None
    event = (
        await db_session.execute(select(SubscriptionEvent).where(SubscriptionEvent.user_id == user.id))
    ).scalar_one()
    assert event.event_type == "cancelled"
    assert event.event_data["reason"] == "too_expensive"

    r = await client.post(
        "/api/subscription/cancel", json={}, headers=auth_headers(user)
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_cancel_without_body_uses_defaults(client, db_session, monkeypatch):
    user = await make_user(db_session, "nobody@example.com", tier="pro")
    sub = await _subscription(db_session, user.id)
    sub.stripe_subscription_id = "sub_2"
    sub.stripe_customer_id = "cus_2"
    await db_session.commit()
    cancel = AsyncMock(return_value=None)
    portal = AsyncMock(return_value="https://billing.stripe.test/p/2")
    monkeypatch.setattr(stripe_billing, "cancel_subscription", cancel)
    monkeypatch.setattr(stripe_billing, "create_portal_session", portal)

    r = await client.post("/api/subscription/cancel", headers=auth_headers(user))
    assert r.status_code == 200
    assert r.json()["immediately"] is False
    cancel.assert_awaited_once_with("sub_2", immediately=False)
    assert (await _subscription(db_session, user.id)).status == "cancelled"

    r = await client.post("/api/stripe/customer-portal", headers=auth_headers(user))
    assert r.status_code == 200
    portal.assert_awaited_once_with("cus_2", f"{settings.app_url}/subscription")


@pytest.mark.asyncio
async def test_customer_portal(client, db_session, artist, monkeypatch):
    r = await client.post(
        "/api/stripe/customer-portal", json={}, headers=auth_headers(artist)
    )
    assert r.status_code == 400

    sub = await _subscription(db_session, artist.id)
    sub.stripe_customer_id = "cus_9"
    await db_session.commit()
    portal = AsyncMock(return_value="https://billing.stripe.test/p/1")
    monkeypatch.setattr(stripe_billing, "create_portal_session", portal)

    r = await client.post(
        "/api/stripe/customer-portal",
        json={"returnUrl": "https://app.test/back"},
        headers=auth_headers(artist),
    )
    assert r.status_code == 200
    assert r.json() == {"url": "https://billing.stripe.test/p/1"}
    portal.assert_awaited_once_with("cus_9", "https://app.test/back")


# ═══════════════════════════════════════════════════════════
# Webhooks
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_webhook_rejects_bad_signatures(client):
    payload = json.dumps({"type": "customer.subscription.created"}).encode()

    r = await client.post("/api/stripe/webhook", content=payload)
    assert r.status_code == 400

    r = await client.post(
        "/api/stripe/webhook",
        content=payload,
        headers={"stripe-signature": f"t={int(time.time())},v1=deadbeef"},
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_webhook_subscription_lifecycle(client, db_session, artist):
    sub = await _subscription(db_session, artist.id)
    sub.stripe_customer_id = "cus_life"
    await db_session.commit()
    period_end = int(time.time()) + 30 * 86400

    payload, headers = _signed(
        {
            "type": "customer.subscription.created",
            "data": {
                "object": {
                    "id": "sub_life",
                    "customer": "cus_life",
                    "status": "active",
                    "current_period_end": period_end,
                    "items": {
                        "data": [{"price": {"id": "price_plus_monthly", "unit_amount": 499}}]
                    },
                }
            },
        }
    )
    r = await client.post("/api/stripe/webhook", content=payload, headers=headers)
    assert r.status_code == 200
    assert r.json() == {"received": True}

    sub = await _subscription(db_session, artist.id)
    assert sub.tier == "plus"
    assert sub.status == "active"
    assert sub.stripe_subscription_id == "sub_life"
    billing = (await db_session.execute(select(BillingHistory))).scalar_one()
    assert billing.amount == 4.99

    payload, headers = _signed(
        {
            "type": "invoice.payment_failed",
            "data": {
                "object": {
                    "id": "in_1",
                    "subscription": "sub_life",
                    "amount_due": 499,
                    "last_payment_error": {"message": "card declined"},
                }
            },
        }
    )
    r = await client.post("/api/stripe/webhook", content=payload, headers=headers)
    assert r.status_code == 200
    sub = await _subscription(db_session, artist.id)
    assert sub.status == "active"

    payload, headers = _signed(
        {"type": "customer.subscription.deleted", "data": {"object": {"id": "sub_life"}}}
    )
    r = await client.post("/api/stripe/webhook", content=payload, headers=headers)
    assert r.status_code == 200
    sub = await _subscription(db_session, artist.id)
    assert sub.tier == "trial"
    assert sub.status == "expired"
    assert sub.stripe_subscription_id is None


@pytest.mark.asyncio
async def test_webhook_ignores_unknown_events(client):
    payload, headers = _signed({"type": "charge.refunded", "data": {"object": {}}})
    r = await client.post("/api/stripe/webhook", content=payload, headers=headers)
    assert r.status_code == 200
    assert r.json() == {"received": True}
