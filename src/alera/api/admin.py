"""Admin API — artist directory, payout review, dashboard, revenue import.

The whole router is mounted behind the ADMIN gate in api/__init__.py.
Handlers that record who acted also take the identity as a parameter;
FastAPI resolves the gate once per request either way.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from alera.auth.dependencies import CurrentIdentity, admin_only
from alera.db.engine import get_db
from alera.db.models import User
from alera.schemas.admin import (
    AdminPayoutMethodRead,
    AdminWithdrawalRead,
    ArtistRead,
    StatusUpdate,
    SubscriptionBrief,
    UserDetail,
)
from alera.schemas.wallet import WithdrawalRead
from alera.services.admin_service import (
    PAYOUT_METHOD_STATUSES,
    WITHDRAWAL_STATUSES,
    AdminService,
)
from alera.services.revenue_report import ReportFormatError, parse_report

logger = structlog.get_logger()

router = APIRouter(prefix="/admin")


def _svc(db: AsyncSession = Depends(get_db)) -> AdminService:
    return AdminService(db)


# ─── Artists ────────────────────────────────────────────


@router.get("/artists")
async def list_artists(svc: AdminService = Depends(_svc)):
    artists = await svc.list_artists()
    return {"artists": [ArtistRead.model_validate(a) for a in artists]}


@router.get("/users/{user_id}")
async def get_user(user_id: int, svc: AdminService = Depends(_svc)):
    found = await svc.get_user_detail(user_id)
    if found is None:
        raise HTTPException(status_code=404, detail="User not found")
    user, total_earnings = found
    detail = UserDetail(
        id=user.id,
        email=user.email,
        artist_name=user.artist_name,
        is_verified=user.is_verified,
        is_admin=user.is_admin,
        created_at=user.created_at,
        subscription=(
            SubscriptionBrief.model_validate(user.subscription)
            if user.subscription
            else None
        ),
        total_earnings=total_earnings,
    )
    return {"user": detail}


# ─── Withdrawals ────────────────────────────────────────


def _admin_withdrawal(w) -> AdminWithdrawalRead:
    base = WithdrawalRead.model_validate(w).model_dump()
    return AdminWithdrawalRead(
        **base,
        artist_email=w.artist.email if w.artist else None,
        artist_name=w.artist.artist_name if w.artist else None,
    )


@router.get("/withdrawals")
async def list_withdrawals(svc: AdminService = Depends(_svc)):
    rows = await svc.list_withdrawals()
    return {"withdrawals": [_admin_withdrawal(w) for w in rows]}


@router.patch("/withdrawals/{withdrawal_id}")
async def update_withdrawal_status(
    withdrawal_id: int,
    body: StatusUpdate,
    identity: CurrentIdentity = Depends(admin_only),
    svc: AdminService = Depends(_svc),
):
    """Approve, reject or complete a withdrawal. Writes an audit entry."""
    if body.status not in WITHDRAWAL_STATUSES:
        raise HTTPException(
            status_code=400,
            detail="Valid status (pending, approved, rejected, or completed) is required",
        )

    withdrawal = await svc.set_withdrawal_status(
        withdrawal_id, body.status, identity.user_id
    )
    if withdrawal is None:
        raise HTTPException(status_code=404, detail="Withdrawal request not found")

    await svc.db.commit()
    await svc.db.refresh(withdrawal)
    return {
        "message": f"Withdrawal request {body.status} successfully",
        "withdrawal": WithdrawalRead.model_validate(withdrawal),
    }


# ─── Payout methods ─────────────────────────────────────


def _admin_payout(p) -> AdminPayoutMethodRead:
    return AdminPayoutMethodRead(
        id=p.id,
        artist_id=p.artist_id,
        method=p.method,
        account_info=p.account_info,
        status=p.status,
        created_at=p.created_at,
        updated_at=p.updated_at,
        artist_email=p.artist.email if p.artist else None,
        artist_name=p.artist.artist_name if p.artist else None,
    )


@router.get("/payout-methods")
async def list_payout_methods(svc: AdminService = Depends(_svc)):
    rows = await svc.list_payout_methods()
    return {"payoutMethods": [_admin_payout(p) for p in rows]}


@router.patch("/payout-methods/{payout_method_id}")
async def update_payout_method_status(
    payout_method_id: int,
    body: StatusUpdate,
    identity: CurrentIdentity = Depends(admin_only),
    svc: AdminService = Depends(_svc),
):
    if body.status not in PAYOUT_METHOD_STATUSES:
        raise HTTPException(
            status_code=400,
            detail="Valid status (pending, approved or rejected) is required",
        )

    payout = await svc.set_payout_method_status(
        payout_method_id, body.status, identity.user_id
    )
    if payout is None:
        raise HTTPException(status_code=404, detail="Payout method not found")

    await svc.db.commit()
    await svc.db.refresh(payout, attribute_names=["artist"])
    return {
        "message": f"Payout method {body.status} successfully",
        "payoutMethod": _admin_payout(payout),
    }


# ─── Dashboard ──────────────────────────────────────────


@router.get("/dashboard-stats")
async def dashboard_stats(svc: AdminService = Depends(_svc)):
    return await svc.dashboard_stats()


# ─── Revenue reports ────────────────────────────────────


@router.post("/revenue-reports", status_code=201)
async def upload_revenue_report(
    request: Request,
    artist_id: int = Query(..., gt=0),
    filename: str = Query(..., min_length=1),
    identity: CurrentIdentity = Depends(admin_only),
    svc: AdminService = Depends(_svc),
):
    """Import a distributor report. The request body is the raw file."""
    artist = await svc.db.get(User, artist_id)
    if artist is None:
        raise HTTPException(status_code=404, detail="Artist not found")

    raw = await request.body()
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Report must be UTF-8 text")

    try:
        report = parse_report(filename, content)
    except ReportFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))

    inserted = await svc.import_revenue_report(
        artist_id, report, identity.user_id, filename
    )
    await svc.db.commit()
    return {
        "message": "Revenue report processed",
        "inserted": inserted,
        "total_earnings": report.total_earnings,
        "errors": report.errors,
    }
