"""Admin service — artist directory, payout review, dashboard metrics.

Every mutation that an admin makes is written to admin_action_logs in the
same transaction as the change itself.
"""

from datetime import timedelta
from typing import Optional

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from alera.billing.pricing import MRR_TIER_PRICES
from alera.db.models import (
    AdminActionLog,
    PayoutMethod,
    StreamingEarning,
    Subscription,
    User,
    WithdrawalRequest,
    utcnow,
)
from alera.services.revenue_report import ParsedReport

logger = structlog.get_logger()

WITHDRAWAL_STATUSES = ("pending", "approved", "rejected", "completed")
PAYOUT_METHOD_STATUSES = ("pending", "approved", "rejected")
PAID_TIERS = tuple(MRR_TIER_PRICES)


class AdminService:
    """Cross-tenant reads and review actions for admins."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_action(self, admin_id: int, action_type: str, details: dict) -> None:
        self.db.add(
            AdminActionLog(admin_id=admin_id, action_type=action_type, details=details)
        )

    # ─── Artists ────────────────────────────────────────

    async def list_artists(self) -> list[User]:
        result = await self.db.execute(
            select(User)
            .where(User.is_admin.is_(False))
            .order_by(User.artist_name.asc(), User.email.asc())
        )
        return list(result.scalars().all())

    async def get_user_detail(self, user_id: int) -> Optional[tuple[User, float]]:
        result = await self.db.execute(
            select(User)
            .options(selectinload(User.subscription))
            .where(User.id == user_id)
        )
        user = result.scalars().first()
        if user is None:
            return None
        total = await self.db.execute(
            select(func.coalesce(func.sum(StreamingEarning.amount_usd), 0)).where(
                StreamingEarning.artist_id == user_id
            )
        )
        return user, float(total.scalar_one())

    # ─── Withdrawals ────────────────────────────────────

    async def list_withdrawals(self) -> list[WithdrawalRequest]:
        result = await self.db.execute(
            select(WithdrawalRequest)
            .options(selectinload(WithdrawalRequest.artist))
            .order_by(WithdrawalRequest.created_at.desc(), WithdrawalRequest.id.desc())
        )
        return list(result.scalars().all())

    async def set_withdrawal_status(
        self, withdrawal_id: int, status: str, admin_id: int
    ) -> Optional[WithdrawalRequest]:
        """Move a withdrawal to `status`. None if it doesn't exist.

        The caller validates `status` first; nothing is touched otherwise.
        """
        withdrawal = await self.db.get(WithdrawalRequest, withdrawal_id)
        if withdrawal is None:
            return None

        previous = withdrawal.status
        now = utcnow()
        withdrawal.status = status
        withdrawal.processed_at = now
        withdrawal.processed_by = admin_id
        withdrawal.updated_at = now
        await self.log_action(
            admin_id,
            "withdrawal_status_update",
            {
                "withdrawal_id": withdrawal_id,
                "artist_id": withdrawal.artist_id,
                "previous_status": previous,
                "new_status": status,
                "amount": withdrawal.amount_requested,
            },
        )
        await self.db.flush()
        logger.info(
            "admin.withdrawal_status_updated",
            withdrawal_id=withdrawal_id,
            status=status,
            admin_id=admin_id,
        )
        return withdrawal

    # ─── Payout methods ─────────────────────────────────

    async def list_payout_methods(self) -> list[PayoutMethod]:
        result = await self.db.execute(
            select(PayoutMethod)
            .options(selectinload(PayoutMethod.artist))
            .order_by(PayoutMethod.created_at.desc(), PayoutMethod.id.desc())
        )
        return list(result.scalars().all())

    async def set_payout_method_status(
        self, payout_method_id: int, status: str, admin_id: int
    ) -> Optional[PayoutMethod]:
        payout = await self.db.get(PayoutMethod, payout_method_id)
        if payout is None:
            return None
        payout.status = status
        payout.updated_at = utcnow()
        await self.log_action(
            admin_id,
            "payout_method_status_update",
            {
                "payout_method_id": payout_method_id,
                "artist_id": payout.artist_id,
                "new_status": status,
            },
        )
        await self.db.flush()
        logger.info(
            "admin.payout_method_status_updated",
            payout_method_id=payout_method_id,
            status=status,
            admin_id=admin_id,
        )
        return payout

    # ─── Dashboard ──────────────────────────────────────

    async def _count(self, q) -> int:
        return int((await self.db.execute(q)).scalar_one() or 0)

    async def dashboard_stats(self) -> dict:
        now = utcnow()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        pending_withdrawals = await self._count(
            select(func.count(WithdrawalRequest.id)).where(
                WithdrawalRequest.status == "pending"
            )
        )
        pending_payout_methods = await self._count(
            select(func.count(PayoutMethod.id)).where(PayoutMethod.status == "pending")
        )
        new_users = await self._count(
            select(func.count(User.id)).where(User.created_at >= now - timedelta(days=7))
        )
        paying = await self._count(
            select(func.count(Subscription.id)).where(
                Subscription.tier.in_(PAID_TIERS), Subscription.status == "active"
            )
        )
        new_paying = await self._count(
            select(func.count(Subscription.id)).where(
                Subscription.tier.in_(PAID_TIERS),
                Subscription.created_at >= month_start,
            )
        )
        seat_price = case(
            *[(Subscription.tier == tier, price) for tier, price in MRR_TIER_PRICES.items()],
            else_=0,
        )
        mrr = await self.db.execute(
            select(func.coalesce(func.sum(seat_price), 0)).where(
                Subscription.tier.in_(PAID_TIERS), Subscription.status == "active"
            )
        )

        return {
            "actionableItems": {
                "pendingPayoutRequests": pending_withdrawals,
                "pendingPayoutMethods": pending_payout_methods,
            },
            "keyMetrics": {
                "newUsersLast7Days": new_users,
                "payingSubscribers": paying,
                "newPayingSubscribersThisMonth": new_paying,
                "monthlyRecurringRevenue": round(float(mrr.scalar_one() or 0), 2),
            },
        }

    # ─── Revenue reports ────────────────────────────────

    async def import_revenue_report(
        self,
        artist_id: int,
        report: ParsedReport,
        admin_id: int,
        filename: str,
    ) -> int:
        for row in report.rows:
            self.db.add(StreamingEarning(artist_id=artist_id, **row))
        await self.log_action(
            admin_id,
            "revenue_report_upload",
            {
                "artist_id": artist_id,
                "filename": filename,
                "rows": len(report.rows),
                "errors": len(report.errors),
                "total_earnings": report.total_earnings,
            },
        )
        await self.db.flush()
        logger.info(
            "admin.revenue_report_imported",
            artist_id=artist_id,
            rows=len(report.rows),
            errors=len(report.errors),
        )
        return len(report.rows)
