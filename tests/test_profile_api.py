"""Profile tests — own account details and histories."""

import pytest

from alera.db.models import BillingHistory
from conftest import auth_headers


@pytest.mark.asyncio
async def test_get_and_update_profile(client, artist):
    headers = auth_headers(artist)

    r = await client.get("/api/profile", headers=headers)
    assert r.status_code == 200
    assert r.json()["user"]["email"] == artist.email

    r = await client.put(
        "/api/profile",
        json={"artist_name": "Nova Nights", "city": "Lagos", "email": artist.email},
        headers=headers,
    )
    assert r.status_code == 200
    user = r.json()["user"]
    assert user["artist_name"] == "Nova Nights"
    assert user["city"] == "Lagos"


@pytest.mark.asyncio
async def test_email_change_needs_verification(client, artist):
    headers = auth_headers(artist)

    r = await client.put("/api/profile", json={"email": "not-an-email"}, headers=headers)
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid email format"}

    r = await client.put("/api/profile", json={"email": "new@example.com"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["require_email_verification"] is True


@pytest.mark.asyncio
async def test_billing_history_is_own_rows_newest_first(client, db_session, artist, other_artist):
    db_session.add_all(
        [
            BillingHistory(
                user_id=artist.id, amount=4.99, transaction_type="subscription",
                status="completed", description="first",
            ),
            BillingHistory(
                user_id=artist.id, amount=4.99, transaction_type="subscription",
                status="completed", description="second",
            ),
            BillingHistory(
                user_id=other_artist.id, amount=19.99, transaction_type="subscription",
                status="completed", description="theirs",
            ),
        ]
    )
    await db_session.commit()

    r = await client.get("/api/profile/billing-history", headers=auth_headers(artist))
    assert r.status_code == 200
    rows = r.json()["billing_history"]
    assert [row["description"] for row in rows] == ["second", "first"]


@pytest.mark.asyncio
async def test_profile_requires_token(client):
    r = await client.get("/api/profile/login-history")
    assert r.status_code == 401
