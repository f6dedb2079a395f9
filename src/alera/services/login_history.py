"""Login history — who signed in, from where, on what.

Each login attempt (successful or not) is recorded with a coarse device
type, browser family, client IP and a city/region/country string. The
location comes from ip-api.com; private and loopback addresses are never
sent there, and any lookup failure just yields "Unknown".
"""

import ipaddress
import re
from typing import Optional

import httpx
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from alera.config import settings
from alera.db.models import LoginHistory

logger = structlog.get_logger()

GEOIP_URL = "http://ip-api.com/json/{ip}"
LOCAL_LOCATION = "Local Development"
UNKNOWN_LOCATION = "Unknown"

_MOBILE = re.compile(r"Mobile|Android|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.I)
_TABLET = re.compile(r"iPad|Android(?!.*Mobile)", re.I)


def parse_user_agent(user_agent: str) -> tuple[str, str]:
    """Return (device_type, browser) for a User-Agent string."""
    if _TABLET.search(user_agent):
        device = "Tablet"
    elif _MOBILE.search(user_agent):
        device = "Mobile"
    else:
        device = "Desktop"

    # Edge and Opera also advertise Chrome, and Chrome advertises Safari.
    if "Edg" in user_agent:
        browser = "Edge"
    elif "OPR" in user_agent or "Opera" in user_agent:
        browser = "Opera"
    elif "Chrome" in user_agent:
        browser = "Chrome"
    elif "Firefox" in user_agent:
        browser = "Firefox"
    elif "Safari" in user_agent:
        browser = "Safari"
    else:
        browser = "Unknown"
    return device, browser


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


def is_local_address(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        # Non-IP peers (e.g. the ASGI test client) are local by definition.
        return True
    return addr.is_private or addr.is_loopback or addr.is_link_local


async def lookup_location(ip: str) -> str:
    if is_local_address(ip):
        return LOCAL_LOCATION
    if not settings.geoip_lookup_enabled:
        return UNKNOWN_LOCATION
    try:
        async with httpx.AsyncClient(timeout=settings.geoip_timeout_seconds) as client:
            resp = await client.get(
                GEOIP_URL.format(ip=ip),
                params={"fields": "country,regionName,city,status"},
            )
            data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("auth.geoip_lookup_failed", error=str(e))
        return UNKNOWN_LOCATION

    if data.get("status") != "success":
        return UNKNOWN_LOCATION
    parts = [data.get(k) for k in ("city", "regionName", "country") if data.get(k)]
    return ", ".join(parts) or UNKNOWN_LOCATION


class LoginHistoryService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        request: Request,
        user_id: Optional[int],
        status: str,
    ) -> LoginHistory:
        user_agent = request.headers.get("user-agent", "")
        device, browser = parse_user_agent(user_agent)
        ip = client_ip(request)
        entry = LoginHistory(
            user_id=user_id,
            ip_address=ip,
            user_agent=user_agent,
            device_type=device,
            browser=browser,
            location=await lookup_location(ip),
            status=status,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def recent(self, user_id: int, limit: int = 20) -> list[LoginHistory]:
        result = await self.db.execute(
            select(LoginHistory)
            .where(LoginHistory.user_id == user_id)
            .order_by(LoginHistory.login_time.desc(), LoginHistory.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
