"""Wallet tests — balances, withdrawal requests, payout methods."""

from datetime import timedelta

import pytest
import pytest_asyncio

from alera.db.models import StreamingEarning, WithdrawalRequest, utcnow
from alera.services.wallet_service import mask_account_info
from conftest import auth_headers, make_user


async def _earn(db, artist_id, amount, platform="Spotify", days_ago=3):
    when = utcnow() - timedelta(days=days_ago)
    db.add(
        StreamingEarning(
            artist_id=artist_id,
            sale_month=when,
            reporting_month=when,
            platform=platform,
            amount_usd=amount,
        )
    )
    await db.commit()


@pytest_asyncio.fixture()
async def paid_artist(db_session):
    return await make_user(db_session, "paid@example.com", artist_name="Paid", tier="plus")


@pytest.mark.asyncio
async def test_wallet_requires_token(client):
    r = await client.get("/api/wallet/summary")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_summary_balances(client, db_session, paid_artist, other_artist):
    await _earn(db_session, paid_artist.id, 100.0)
    await _earn(db_session, paid_artist.id, 50.0, platform="Apple Music")
    await _earn(db_session, paid_artist.id, 25.0, days_ago=200)
    await _earn(db_session, other_artist.id, 999.0)
    db_session.add_all(
        [
            WithdrawalRequest(
                artist_id=paid_artist.id, amount_requested=40.0, method="PayPal", status="completed"
            ),
            WithdrawalRequest(
                artist_id=paid_artist.id, amount_requested=10.0, method="PayPal", status="pending"
            ),
            WithdrawalRequest(
                artist_id=paid_artist.id, amount_requested=500.0, method="PayPal", status="rejected"
            ),
        ]
    )
    await db_session.commit()

    r = await client.get(
        "/api/wallet/summary", params={"range": "30days"}, headers=auth_headers(paid_artist)
    )
    assert r.status_code == 200
    data = r.json()
    assert data["filter_range"] == "30days"
    assert data["all_time_earnings"] == 175.0
    assert data["period_earnings"] == 150.0
    assert data["total_withdrawn"] == 40.0
    assert data["pending_withdrawals"] == 10.0
    assert data["available_balance"] == 125.0
    assert data["last_payout_date"] is not None
    assert data["earnings_by_platform"] == [
        {"platform": "Spotify", "amount": 100.0},
        {"platform": "Apple Music", "amount": 50.0},
    ]

    r = await client.get(
        "/api/wallet/summary", params={"range": "alltime"}, headers=auth_headers(paid_artist)
    )
    assert r.json()["period_earnings"] == 175.0

    r = await client.get(
        "/api/wallet/summary", params={"range": "forever"}, headers=auth_headers(paid_artist)
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_history_groups_by_month(client, db_session, paid_artist):
    await _earn(db_session, paid_artist.id, 10.0, days_ago=1)
    await _earn(db_session, paid_artist.id, 5.0, days_ago=70)

    r = await client.get("/api/wallet/history", headers=auth_headers(paid_artist))
    assert r.status_code == 200
    months = r.json()["monthly_data"]
    assert len(months) == 2
    assert months[0]["month"] > months[1]["month"]
    assert sum(m["total_earnings"] for m in months) == 15.0
    assert r.json()["transactions"] == []


@pytest.mark.asyncio
async def test_trial_artist_cannot_withdraw(client, db_session, artist):
    await _earn(db_session, artist.id, 100.0)

    r = await client.post(
        "/api/wallet/request-withdrawal",
        json={"amount_requested": 10.0, "method": "PayPal"},
        headers=auth_headers(artist),
    )
    assert r.status_code == 403
    body = r.json()
    assert body["requiresUpgrade"] is True
    assert "Upgrade" in body["error"]


@pytest.mark.asyncio
async def test_withdrawal_is_limited_to_available_balance(client, db_session, paid_artist):
    await _earn(db_session, paid_artist.id, 100.0)
    headers = auth_headers(paid_artist)

    r = await client.post(
        "/api/wallet/request-withdrawal",
        json={"amount_requested": 80.0, "method": "PayPal", "account_details": "p@x.com"},
        headers=headers,
    )
    assert r.status_code == 201
    assert r.json()["data"]["status"] == "pending"

    # The pending 80 is reserved, so only 20 remains.
    r = await client.post(
        "/api/wallet/request-withdrawal",
        json={"amount_requested": 30.0, "method": "PayPal"},
        headers=headers,
    )
    assert r.status_code == 400
    assert r.json() == {"error": "Insufficient funds", "available": 20.0}

    r = await client.post(
        "/api/wallet/request-withdrawal",
        json={"amount_requested": 0, "method": "PayPal"},
        headers=headers,
    )
    assert r.status_code == 400

    r = await client.get("/api/wallet/withdrawals", headers=headers)
    assert [w["amount_requested"] for w in r.json()["withdrawals"]] == [80.0]


@pytest.mark.asyncio
async def test_payout_method_roundtrip_is_masked(client, paid_artist):
    headers = auth_headers(paid_artist)

    r = await client.get("/api/wallet/payout-method", headers=headers)
    assert r.status_code == 404

    info = '{"method": "Bank Transfer", "bank_name": "Zenith", "account_number": "0123456789"}'
    r = await client.post(
        "/api/wallet/payout-method",
        json={"method": "Bank Transfer", "account_info": info},
        headers=headers,
    )
    assert r.status_code == 200

    r = await client.get("/api/wallet/payout-method", headers=headers)
    data = r.json()
    assert data["method"] == "Bank Transfer"
    assert data["account_info_masked"] == "Zenith - ****6789"
    assert data["status"] == "pending"
    assert "account_info" not in data


def test_mask_account_info_variants():
    assert (
        mask_account_info('{"method": "PayPal", "paypal_email": "nova@paypal.com"}')
        == "no****@paypal.com"
    )
    assert (
        mask_account_info(
            '{"method": "Crypto (USDT - TRC20)", "wallet_address": "TXYZ1234567890ABCD"}'
        )
        == "TXYZ12****ABCD"
    )
    assert mask_account_info("plain-account-1234") == "plai****1234"
    assert mask_account_info('{"method": "Other"}') == "Account details set"
