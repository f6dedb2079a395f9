"""Wallet service — earnings, balances, withdrawals, payout methods.

Balance rule: available = all-time earnings − approved/completed
withdrawals − pending withdrawals, never below zero. The same rule gates
new withdrawal requests, so an artist can't queue more than they have.
"""

import json
import re
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from alera.db.models import (
    PayoutMethod,
    StreamingEarning,
    WithdrawalRequest,
    as_utc,
    utcnow,
)

RANGE_DAYS = {"7days": 7, "30days": 30, "90days": 90, "1year": 365}
SETTLED_STATUSES = ("approved", "completed")

# Earnings are dated by reporting month, falling back to the sale month.
_earning_date = func.coalesce(StreamingEarning.reporting_month, StreamingEarning.sale_month)


def range_start(range_name: str) -> Optional[datetime]:
    """Start of a named range. None means all time; unknown names mean 30 days."""
    if range_name == "alltime":
        return None
    return utcnow() - timedelta(days=RANGE_DAYS.get(range_name, 30))


def mask_account_info(account_info: str) -> str:
    """Hide all but a recognizable fragment of stored payout details."""
    try:
        data = json.loads(account_info)
    except (TypeError, ValueError):
        data = None

    if not isinstance(data, dict):
        return re.sub(r"^(.{4}).*(.{4})$", r"\1****\2", account_info or "")

    method = data.get("method")
    if method == "PayPal":
        email = data.get("paypal_email") or ""
        masked = re.sub(r"^(.{2}).*(@.*)$", r"\1****\2", email)
        return masked if email else "Email set"
    if method == "Bank Transfer":
        number = str(data.get("account_number") or "")
        return f"{data.get('bank_name') or 'Bank'} - ****{number[-4:]}"
    if method == "Crypto (USDT - TRC20)":
        address = str(data.get("wallet_address") or "")
        return f"{address[:6]}****{address[-4:]}"
    return "Account details set"


class WalletService:
    """Money views for one artist."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Earnings ───────────────────────────────────────

    async def total_earnings(self, artist_id: int, since: Optional[datetime] = None) -> float:
        q = select(func.coalesce(func.sum(StreamingEarning.amount_usd), 0)).where(
            StreamingEarning.artist_id == artist_id
        )
        if since is not None:
            q = q.where(_earning_date >= since)
        return float((await self.db.execute(q)).scalar_one())

    async def earnings_by_platform(
        self, artist_id: int, since: Optional[datetime] = None
    ) -> list[dict]:
        total = func.sum(StreamingEarning.amount_usd)
        q = (
            select(StreamingEarning.platform, total.label("amount"))
            .where(StreamingEarning.artist_id == artist_id)
            .group_by(StreamingEarning.platform)
            .order_by(total.desc())
        )
        if since is not None:
            q = q.where(_earning_date >= since)
        rows = (await self.db.execute(q)).all()
        return [
            {"platform": r.platform, "amount": round(float(r.amount or 0), 2)}
            for r in rows
        ]

    async def monthly_earnings(self, artist_id: int, months: int = 12) -> list[dict]:
        """Totals per calendar month, newest first, limited to `months` months."""
        q = select(_earning_date.label("day"), StreamingEarning.amount_usd).where(
            StreamingEarning.artist_id == artist_id
        )
        buckets: dict[tuple[int, int], dict] = {}
        for day, amount in (await self.db.execute(q)).all():
            day = as_utc(day)
            key = (day.year, day.month)
            bucket = buckets.setdefault(key, {"total": 0.0, "days": set()})
            bucket["total"] += float(amount or 0)
            bucket["days"].add(day.date())
        newest = sorted(buckets, reverse=True)[:months]
        return [
            {
                "month": f"{year:04d}-{month:02d}-01",
                "total_earnings": round(buckets[(year, month)]["total"], 2),
                "transaction_count": len(buckets[(year, month)]["days"]),
            }
            for year, month in newest
        ]

    # ─── Withdrawals ────────────────────────────────────

    async def withdrawn_total(
        self,
        artist_id: int,
        statuses: tuple[str, ...],
        since: Optional[datetime] = None,
    ) -> float:
        q = select(
            func.coalesce(func.sum(WithdrawalRequest.amount_requested), 0)
        ).where(
            WithdrawalRequest.artist_id == artist_id,
            WithdrawalRequest.status.in_(statuses),
        )
        if since is not None:
            q = q.where(WithdrawalRequest.created_at >= since)
        return float((await self.db.execute(q)).scalar_one())

    async def available_balance(self, artist_id: int) -> float:
        earned = await self.total_earnings(artist_id)
        settled = await self.withdrawn_total(artist_id, SETTLED_STATUSES)
        pending = await self.withdrawn_total(artist_id, ("pending",))
        return max(0.0, round(earned - settled - pending, 2))

    async def last_payout_date(self, artist_id: int) -> Optional[datetime]:
        q = select(func.max(WithdrawalRequest.updated_at)).where(
            WithdrawalRequest.artist_id == artist_id,
            WithdrawalRequest.status.in_(SETTLED_STATUSES),
        )
        return as_utc((await self.db.execute(q)).scalar_one_or_none())

    async def summary(self, artist_id: int, range_name: str) -> dict:
        since = range_start(range_name)
        all_time = await self.total_earnings(artist_id)
        period = await self.total_earnings(artist_id, since)
        total_withdrawn = await self.withdrawn_total(artist_id, SETTLED_STATUSES)
        period_withdrawn = await self.withdrawn_total(artist_id, SETTLED_STATUSES, since)
        pending = await self.withdrawn_total(artist_id, ("pending",))
        last_payout = await self.last_payout_date(artist_id)
        cards = {
            "all_time_earnings": all_time,
            "period_earnings": period,
            "total_withdrawn": total_withdrawn,
            "period_withdrawn": period_withdrawn,
            "pending_withdrawals": pending,
            "available_balance": max(0.0, round(all_time - total_withdrawn - pending, 2)),
            "last_payout_date": last_payout.isoformat() if last_payout else None,
        }
        return {
            "filter_range": range_name,
            **cards,
            "summary_cards": cards,
            "earnings_by_platform": await self.earnings_by_platform(artist_id, since),
        }

    async def list_withdrawals(self, artist_id: int, limit: Optional[int] = None) -> list[WithdrawalRequest]:
        q = (
            select(WithdrawalRequest)
            .where(WithdrawalRequest.artist_id == artist_id)
            .order_by(WithdrawalRequest.created_at.desc(), WithdrawalRequest.id.desc())
        )
        if limit:
            q = q.limit(limit)
        return list((await self.db.execute(q)).scalars().all())

    async def create_withdrawal(
        self,
        artist_id: int,
        amount: float,
        method: str,
        account_details: Optional[str],
    ) -> WithdrawalRequest:
        withdrawal = WithdrawalRequest(
            artist_id=artist_id,
            amount_requested=amount,
            method=method,
            account_details=account_details,
            status="pending",
        )
        self.db.add(withdrawal)
        await self.db.flush()
        return withdrawal

    # ─── Payout methods ─────────────────────────────────

    async def get_payout_method(self, artist_id: int) -> Optional[PayoutMethod]:
        result = await self.db.execute(
            select(PayoutMethod).where(PayoutMethod.artist_id == artist_id)
        )
        return result.scalars().first()

    async def save_payout_method(
        self, artist_id: int, method: str, account_info: str
    ) -> PayoutMethod:
        """Insert or replace the artist's payout method; it goes back to review."""
        payout = await self.get_payout_method(artist_id)
        if payout is None:
            payout = PayoutMethod(artist_id=artist_id)
            self.db.add(payout)
        payout.method = method
        payout.account_info = account_info
        payout.status = "pending"
        payout.updated_at = utcnow()
        await self.db.flush()
        return payout
