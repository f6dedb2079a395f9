"""Landing page service — artist pages and their public slugs."""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from alera.db.models import LandingPage

logger = structlog.get_logger()


class SlugTakenError(Exception):
    """The slug already belongs to another artist's page."""


class LandingPageService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_artist(self, artist_id: int) -> Optional[LandingPage]:
        result = await self.db.execute(
            select(LandingPage).where(LandingPage.artist_id == artist_id).limit(1)
        )
        return result.scalars().first()

    async def get_by_slug(self, slug: str) -> Optional[LandingPage]:
        result = await self.db.execute(
            select(LandingPage).where(LandingPage.slug == slug).limit(1)
        )
        return result.scalars().first()

    async def save(self, artist_id: int, slug: str, page_config: dict) -> LandingPage:
        """Create or replace the artist's page. Raises SlugTakenError."""
        owner = await self.get_by_slug(slug)
        if owner is not None and owner.artist_id != artist_id:
            raise SlugTakenError(slug)

        page = await self.get_by_artist(artist_id)
        if page is None:
            page = LandingPage(artist_id=artist_id)
            self.db.add(page)
        page.slug = slug
        page.page_config = page_config
        await self.db.flush()
        logger.info("landing_page.saved", artist_id=artist_id, slug=slug)
        return page
