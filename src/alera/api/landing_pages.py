"""Landing page API — read any artist's page, edit only your own."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from alera.auth.dependencies import CurrentIdentity, authenticated
from alera.db.engine import get_db
from alera.schemas.fanzone import LandingPageRead, LandingPageSave
from alera.services.landing_page_service import LandingPageService, SlugTakenError

router = APIRouter(prefix="/landing-page")


def _svc(db: AsyncSession = Depends(get_db)) -> LandingPageService:
    return LandingPageService(db)


@router.get("/{artist_id}")
async def get_landing_page(artist_id: int, svc: LandingPageService = Depends(_svc)):
    page = await svc.get_by_artist(artist_id)
    return {"page": LandingPageRead.model_validate(page) if page else None}


@router.post("/{artist_id}")
async def save_landing_page(
    artist_id: int,
    body: LandingPageSave,
    identity: CurrentIdentity = Depends(authenticated),
    svc: LandingPageService = Depends(_svc),
):
    if identity.user_id != artist_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    try:
        page = await svc.save(artist_id, body.slug, body.page_config)
    except SlugTakenError:
        raise HTTPException(status_code=409, detail="Slug already taken")
    await svc.db.commit()
    return {"page": LandingPageRead.model_validate(page)}
