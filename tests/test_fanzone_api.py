"""Fan zone tests — fans and campaigns are strictly per artist."""

import pytest
from sqlalchemy import select

from alera.db.models import CampaignLog, EmailCampaign, Fan
from conftest import auth_headers


async def _fan(db, artist_id, email, name="Fan", status="free", country=None):
    fan = Fan(
        artist_id=artist_id,
        name=name,
        email=email,
        subscribed_status=status,
        country=country,
    )
    db.add(fan)
    await db.commit()
    await db.refresh(fan)
    return fan


# ═══════════════════════════════════════════════════════════
# Fans
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_fanzone_requires_token(client):
    r = await client.get("/api/fanzone/fans")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_create_and_list_fans(client, artist):
    headers = auth_headers(artist)
    r = await client.post(
        "/api/fanzone/fans",
        json={"name": "Ada", "email": "ada@example.com", "subscribed_status": "paid"},
        headers=headers,
    )
    assert r.status_code == 201
    fan = r.json()["fan"]
    assert fan["source"] == "manual"
    assert fan["subscribed_status"] == "paid"

    r = await client.post(
        "/api/fanzone/fans",
        json={"name": "Ada again", "email": "ADA@example.com"},
        headers=headers,
    )
    assert r.status_code == 409

    r = await client.get("/api/fanzone/fans", headers=headers)
    data = r.json()
    assert [f["email"] for f in data["fans"]] == ["ada@example.com"]
    assert data["pagination"] == {"page": 1, "limit": 20, "total": 1, "totalPages": 1}


@pytest.mark.asyncio
async def test_list_fans_search_filter_and_paging(client, db_session, artist, other_artist):
    for i in range(5):
        await _fan(db_session, artist.id, f"free{i}@example.com", name=f"Free {i}")
    await _fan(db_session, artist.id, "vip@example.com", name="Vip", status="paid")
    await _fan(db_session, other_artist.id, "theirs@example.com", name="Free other")
    headers = auth_headers(artist)

    r = await client.get("/api/fanzone/fans", params={"filter": "paid"}, headers=headers)
    assert [f["email"] for f in r.json()["fans"]] == ["vip@example.com"]

    r = await client.get("/api/fanzone/fans", params={"search": "free"}, headers=headers)
    assert r.json()["pagination"]["total"] == 5

    r = await client.get(
        "/api/fanzone/fans", params={"page": 2, "limit": 4}, headers=headers
    )
    data = r.json()
    assert len(data["fans"]) == 2
    assert data["pagination"]["totalPages"] == 2

    r = await client.get("/api/fanzone/fans", params={"filter": "vip"}, headers=headers)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(client, db_session, artist):
    await _fan(db_session, artist.id, "plain@example.com", name="Plain")
    await _fan(db_session, artist.id, "under_score@example.com", name="Under")
    await _fan(db_session, artist.id, "pct@example.com", name="100% Fan")
    headers = auth_headers(artist)

    r = await client.get("/api/fanzone/fans", params={"search": "_"}, headers=headers)
    assert [f["email"] for f in r.json()["fans"]] == ["under_score@example.com"]

    r = await client.get("/api/fanzone/fans", params={"search": "%"}, headers=headers)
    assert [f["name"] for f in r.json()["fans"]] == ["100% Fan"]


@pytest.mark.asyncio
async def test_update_and_delete_are_owner_scoped(client, db_session, artist, other_artist):
    fan = await _fan(db_session, artist.id, "mine@example.com")

    r = await client.put(
        f"/api/fanzone/fans/{fan.id}",
        json={"subscribed_status": "paid"},
        headers=auth_headers(other_artist),
    )
    assert r.status_code == 404
    r = await client.delete(
        f"/api/fanzone/fans/{fan.id}", headers=auth_headers(other_artist)
    )
    assert r.status_code == 404

    r = await client.put(
        f"/api/fanzone/fans/{fan.id}",
        json={"subscribed_status": "paid", "country": "NG"},
        headers=auth_headers(artist),
    )
    assert r.status_code == 200
    assert r.json()["fan"]["subscribed_status"] == "paid"
    assert r.json()["fan"]["country"] == "NG"

    for field in ("name", "email", "subscribed_status"):
        r = await client.put(
            f"/api/fanzone/fans/{fan.id}",
            json={field: None},
            headers=auth_headers(artist),
        )
        assert r.status_code == 400
        assert field in r.json()["error"]

    r = await client.delete(f"/api/fanzone/fans/{fan.id}", headers=auth_headers(artist))
    assert r.status_code == 200
    assert (await db_session.execute(select(Fan))).scalars().all() == []


# ═══════════════════════════════════════════════════════════
# Campaigns
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_send_campaign_to_filtered_audience(client, db_session, artist, other_artist):
    await _fan(db_session, artist.id, "a@example.com", status="paid")
    await _fan(db_session, artist.id, "b@example.com", status="paid")
    await _fan(db_session, artist.id, "c@example.com", status="free")
    await _fan(db_session, other_artist.id, "d@example.com", status="paid")
    headers = auth_headers(artist)

    r = await client.post(
        "/api/fanzone/campaigns",
        json={
            "subject": "New single",
            "body": "Out Friday",
            "audience_filter": {"subscribed_status": "paid"},
            "send_immediately": True,
        },
        headers=headers,
    )
    assert r.status_code == 201
    campaign = r.json()["campaign"]
    assert campaign["status"] == "sent"
    assert campaign["emails_sent"] == 2
    assert campaign["sent_at"] is not None

    r = await client.post(
        "/api/fanzone/campaigns",
        json={"subject": "Draft", "body": "Later"},
        headers=headers,
    )
    assert r.json()["campaign"]["status"] == "draft"

    r = await client.get("/api/fanzone/campaigns", headers=headers)
    data = r.json()
    assert data["pagination"]["total"] == 2
    sent = {c["subject"]: c["emails_sent"] for c in data["campaigns"]}
    assert sent == {"New single": 2, "Draft": 0}


@pytest.mark.asyncio
async def test_delete_campaign_cannot_cross_tenants(client, db_session, artist, other_artist):
    await _fan(db_session, artist.id, "a@example.com")
    r = await client.post(
        "/api/fanzone/campaigns",
        json={"subject": "Hi", "body": "Hello", "send_immediately": True},
        headers=auth_headers(artist),
    )
    campaign_id = r.json()["campaign"]["id"]

    r = await client.delete(
        f"/api/fanzone/campaigns/{campaign_id}", headers=auth_headers(other_artist)
    )
    assert r.status_code == 404
    assert await db_session.get(EmailCampaign, campaign_id) is not None
    logs = (await db_session.execute(select(CampaignLog))).scalars().all()
    assert len(logs) == 1

    r = await client.delete(
        f"/api/fanzone/campaigns/{campaign_id}", headers=auth_headers(artist)
    )
    assert r.status_code == 200
    assert (await db_session.execute(select(EmailCampaign))).scalars().all() == []
    assert (await db_session.execute(select(CampaignLog))).scalars().all() == []
