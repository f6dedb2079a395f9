"""Fan zone service — an artist's fans and email campaigns.

Everything here is scoped by artist_id. A fan or campaign id that belongs
to another artist behaves exactly like one that doesn't exist.

Campaign "sending" only records one campaign_logs row per targeted fan;
actual mail delivery happens outside this service.
"""

import math
from typing import Optional

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from alera.db.models import CampaignLog, EmailCampaign, Fan, utcnow

logger = structlog.get_logger()

FAN_FIELDS = (
    "name",
    "email",
    "phone_number",
    "country",
    "gender",
    "age",
    "birth_year",
    "subscribed_status",
    "source",
)


def pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def _escape_like(value: str) -> str:
    """Make LIKE wildcards in user input match literally (escape char is backslash)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class FanService:
    """Fans and campaigns for one artist at a time."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Fans ───────────────────────────────────────────

    async def list_fans(
        self,
        artist_id: int,
        page: int = 1,
        limit: int = 20,
        search: str = "",
        status_filter: str = "all",
    ) -> tuple[list[Fan], int]:
        conditions = [Fan.artist_id == artist_id]
        if search:
            pattern = f"%{_escape_like(search)}%"
            conditions.append(
                or_(
                    Fan.name.ilike(pattern, escape="\\"),
                    Fan.email.ilike(pattern, escape="\\"),
                )
            )
        if status_filter != "all":
            conditions.append(Fan.subscribed_status == status_filter)

        total = await self.db.execute(select(func.count(Fan.id)).where(*conditions))
        result = await self.db.execute(
            select(Fan)
            .where(*conditions)
            .order_by(Fan.created_at.desc(), Fan.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return list(result.scalars().all()), int(total.scalar_one())

    async def find_fan_by_email(
        self, artist_id: int, email: str, case_insensitive: bool = False
    ) -> Optional[Fan]:
        if case_insensitive:
            cond = func.lower(Fan.email) == email.strip().lower()
        else:
            cond = Fan.email == email
        result = await self.db.execute(
            select(Fan).where(Fan.artist_id == artist_id, cond).limit(1)
        )
        return result.scalars().first()

    async def get_fan(self, artist_id: int, fan_id: int) -> Optional[Fan]:
        result = await self.db.execute(
            select(Fan).where(Fan.id == fan_id, Fan.artist_id == artist_id)
        )
        return result.scalars().first()

    async def create_fan(self, artist_id: int, **fields) -> Fan:
        data = {k: v for k, v in fields.items() if k in FAN_FIELDS and v is not None}
        data.setdefault("subscribed_status", "free")
        data.setdefault("source", "manual")
        fan = Fan(artist_id=artist_id, **data)
        self.db.add(fan)
        await self.db.flush()
        return fan

    async def update_fan(self, artist_id: int, fan_id: int, **fields) -> Optional[Fan]:
        fan = await self.get_fan(artist_id, fan_id)
        if fan is None:
            return None
        for key, value in fields.items():
            if key in FAN_FIELDS:
                setattr(fan, key, value)
        fan.updated_at = utcnow()
        await self.db.flush()
        return fan

    async def delete_fan(self, artist_id: int, fan_id: int) -> bool:
        result = await self.db.execute(
            delete(Fan).where(Fan.id == fan_id, Fan.artist_id == artist_id)
        )
        return result.rowcount > 0

    # ─── Campaigns ──────────────────────────────────────

    async def list_campaigns(
        self, artist_id: int, page: int = 1, limit: int = 20
    ) -> tuple[list[tuple[EmailCampaign, int]], int]:
        sent = func.count(CampaignLog.id).label("emails_sent")
        result = await self.db.execute(
            select(EmailCampaign, sent)
            .outerjoin(CampaignLog, CampaignLog.campaign_id == EmailCampaign.id)
            .where(EmailCampaign.artist_id == artist_id)
            .group_by(EmailCampaign.id)
            .order_by(EmailCampaign.created_at.desc(), EmailCampaign.id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        total = await self.db.execute(
            select(func.count(EmailCampaign.id)).where(
                EmailCampaign.artist_id == artist_id
            )
        )
        rows = [(campaign, int(count)) for campaign, count in result.all()]
        return rows, int(total.scalar_one())

    async def _audience(self, artist_id: int, audience_filter: dict) -> list[Fan]:
        conditions = [Fan.artist_id == artist_id]
        for key, column in (
            ("subscribed_status", Fan.subscribed_status),
            ("country", Fan.country),
            ("gender", Fan.gender),
        ):
            value = audience_filter.get(key)
            if value and value != "all":
                conditions.append(column == value)
        result = await self.db.execute(select(Fan).where(*conditions))
        return list(result.scalars().all())

    async def create_campaign(
        self,
        artist_id: int,
        subject: str,
        body: str,
        link: Optional[str] = None,
        audience_filter: Optional[dict] = None,
        send_immediately: bool = False,
    ) -> tuple[EmailCampaign, int]:
        """Create a campaign and, if asked, log a send to every matching fan.

        Returns the campaign and the number of fans it was sent to.
        """
        audience_filter = audience_filter or {}
        campaign = EmailCampaign(
            artist_id=artist_id,
            subject=subject,
            body=body,
            link=link,
            audience_filter=audience_filter,
            status="sent" if send_immediately else "draft",
        )
        self.db.add(campaign)
        await self.db.flush()

        recipients = 0
        if send_immediately:
            now = utcnow()
            fans = await self._audience(artist_id, audience_filter)
            for fan in fans:
                self.db.add(
                    CampaignLog(
                        campaign_id=campaign.id,
                        fan_id=fan.id,
                        email=fan.email,
                        sent_at=now,
                        status="sent",
                    )
                )
            campaign.sent_at = now
            recipients = len(fans)
            await self.db.flush()
            logger.info(
                "fanzone.campaign_sent",
                campaign_id=campaign.id,
                artist_id=artist_id,
                recipients=recipients,
            )
        return campaign, recipients

    async def delete_campaign(self, artist_id: int, campaign_id: int) -> bool:
        """Delete an owned campaign and its logs. False if not owned or missing."""
        owned = await self.db.execute(
            select(EmailCampaign.id).where(
                EmailCampaign.id == campaign_id,
                EmailCampaign.artist_id == artist_id,
            )
        )
        if owned.scalar_one_or_none() is None:
            return False
        await self.db.execute(
            delete(CampaignLog).where(CampaignLog.campaign_id == campaign_id)
        )
        await self.db.execute(
            delete(EmailCampaign).where(
                EmailCampaign.id == campaign_id,
                EmailCampaign.artist_id == artist_id,
            )
        )
        return True
