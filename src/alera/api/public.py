"""Public API — what a fan's browser calls from an artist's landing page.

No credentials here. The landing page slug identifies the artist; a slug
that doesn't resolve is a 404 for every route.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from alera.db.engine import get_db
from alera.db.models import LandingPage
from alera.schemas.fanzone import PublicFanAdd, VerifyPaidRequest
from alera.services.fan_service import FanService
from alera.services.landing_page_service import LandingPageService

logger = structlog.get_logger()

router = APIRouter(prefix="/public")


async def _page_for_slug(slug: str, db: AsyncSession) -> LandingPage:
    page = await LandingPageService(db).get_by_slug(slug)
    if page is None:
        raise HTTPException(status_code=404, detail="Invalid slug")
    return page


@router.get("/landing-pages/{slug}")
async def get_public_page(slug: str, db: AsyncSession = Depends(get_db)):
    page = await LandingPageService(db).get_by_slug(slug)
    if page is None:
        raise HTTPException(status_code=404, detail="Landing page not found")
    return {"slug": page.slug, "page_config": page.page_config}


@router.post("/verify-paid")
async def verify_paid(body: VerifyPaidRequest, db: AsyncSession = Depends(get_db)):
    """Is this email a paying fan of the slug's artist? Email match ignores case."""
    page = await _page_for_slug(body.slug, db)
    fan = await FanService(db).find_fan_by_email(
        page.artist_id, body.email, case_insensitive=True
    )
    status = fan.subscribed_status if fan else None
    return {"paid": status == "paid", "status": status}


@router.post("/fans/add")
async def add_fan(body: PublicFanAdd, db: AsyncSession = Depends(get_db)):
    """Email capture. Public sign-ups always start on the free list."""
    page = await _page_for_slug(body.slug, db)
    svc = FanService(db)
    existing = await svc.find_fan_by_email(page.artist_id, body.email, case_insensitive=True)
    if existing is not None:
        return {"ok": True, "fan_id": existing.id, "status": "exists"}

    fan = await svc.create_fan(
        page.artist_id,
        **body.model_dump(exclude={"slug"}),
        subscribed_status="free",
        source="email_capture",
    )
    await db.commit()
    logger.info("public.fan_captured", artist_id=page.artist_id, fan_id=fan.id)
    return {"ok": True, "fan_id": fan.id}
