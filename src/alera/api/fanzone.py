"""Fan zone API — the caller's fans and email campaigns.

Every route is scoped to the caller. Ids belonging to another artist
produce 404, the same as ids that don't exist.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from alera.auth.dependencies import CurrentIdentity, authenticated
from alera.db.engine import get_db
from alera.schemas.fanzone import (
    CampaignCreate,
    CampaignRead,
    FanCreate,
    FanRead,
    FanUpdate,
)
from alera.services.fan_service import FanService, pagination

router = APIRouter(prefix="/fanzone")


def _svc(db: AsyncSession = Depends(get_db)) -> FanService:
    return FanService(db)


def _campaign_read(campaign, emails_sent: int) -> CampaignRead:
    return CampaignRead(
        id=campaign.id,
        artist_id=campaign.artist_id,
        subject=campaign.subject,
        body=campaign.body,
        link=campaign.link,
        audience_filter=campaign.audience_filter or {},
        status=campaign.status,
        sent_at=campaign.sent_at,
        created_at=campaign.created_at,
        emails_sent=emails_sent,
    )


# ─── Fans ───────────────────────────────────────────────


@router.get("/fans")
async def list_fans(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    filter: str = Query("all", pattern=r"^(all|free|paid)$"),
    identity: CurrentIdentity = Depends(authenticated),
    svc: FanService = Depends(_svc),
):
    fans, total = await svc.list_fans(identity.user_id, page, limit, search, filter)
    return {
        "fans": [FanRead.model_validate(f) for f in fans],
        "pagination": pagination(page, limit, total),
    }


@router.post("/fans", status_code=201)
async def create_fan(
    body: FanCreate,
    identity: CurrentIdentity = Depends(authenticated),
    svc: FanService = Depends(_svc),
):
    if await svc.find_fan_by_email(identity.user_id, body.email, case_insensitive=True):
        raise HTTPException(status_code=409, detail="Fan with this email already exists")
    fan = await svc.create_fan(identity.user_id, **body.model_dump())
    await svc.db.commit()
    await svc.db.refresh(fan)
    return {"fan": FanRead.model_validate(fan)}


@router.put("/fans/{fan_id}")
async def update_fan(
    fan_id: int,
    body: FanUpdate,
    identity: CurrentIdentity = Depends(authenticated),
    svc: FanService = Depends(_svc),
):
    fan = await svc.update_fan(
        identity.user_id, fan_id, **body.model_dump(exclude_unset=True)
    )
    if fan is None:
        raise HTTPException(status_code=404, detail="Fan not found")
    await svc.db.commit()
    await svc.db.refresh(fan)
    return {"fan": FanRead.model_validate(fan)}


@router.delete("/fans/{fan_id}")
async def delete_fan(
    fan_id: int,
    identity: CurrentIdentity = Depends(authenticated),
    svc: FanService = Depends(_svc),
):
    if not await svc.delete_fan(identity.user_id, fan_id):
        raise HTTPException(status_code=404, detail="Fan not found")
    await svc.db.commit()
    return {"message": "Fan deleted successfully"}


# ─── Campaigns ──────────────────────────────────────────


@router.get("/campaigns")
async def list_campaigns(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    identity: CurrentIdentity = Depends(authenticated),
    svc: FanService = Depends(_svc),
):
    rows, total = await svc.list_campaigns(identity.user_id, page, limit)
    return {
        "campaigns": [_campaign_read(c, sent) for c, sent in rows],
        "pagination": pagination(page, limit, total),
    }


@router.post("/campaigns", status_code=201)
async def create_campaign(
    body: CampaignCreate,
    identity: CurrentIdentity = Depends(authenticated),
    svc: FanService = Depends(_svc),
):
    campaign, recipients = await svc.create_campaign(
        identity.user_id,
        subject=body.subject,
        body=body.body,
        link=body.link,
        audience_filter=body.audience_filter,
        send_immediately=body.send_immediately,
    )
    await svc.db.commit()
    await svc.db.refresh(campaign)
    return {"campaign": _campaign_read(campaign, recipients)}


@router.delete("/campaigns/{campaign_id}")
async def delete_campaign(
    campaign_id: int,
    identity: CurrentIdentity = Depends(authenticated),
    svc: FanService = Depends(_svc),
):
    if not await svc.delete_campaign(identity.user_id, campaign_id):
        raise HTTPException(status_code=404, detail="Campaign not found")
    await svc.db.commit()
    return {"message": "Campaign deleted successfully"}
