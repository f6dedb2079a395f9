"""Wallet API — the signed-in artist's earnings and payouts.

The artist is always the caller; there is no way to read another
artist's wallet through these routes.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from alera.auth.dependencies import CurrentIdentity, current_user
from alera.db.engine import get_db
from alera.db.models import as_utc
from alera.schemas.wallet import (
    PayoutMethodRead,
    PayoutMethodSave,
    WithdrawalCreate,
    WithdrawalRead,
)
from alera.services.subscription_service import SubscriptionService
from alera.services.wallet_service import WalletService, mask_account_info

logger = structlog.get_logger()

router = APIRouter(prefix="/wallet")

RANGE_PATTERN = r"^(7days|30days|90days|1year|alltime)$"


def _svc(db: AsyncSession = Depends(get_db)) -> WalletService:
    return WalletService(db)


# ─── Earnings ───────────────────────────────────────────


@router.get("/summary")
async def wallet_summary(
    range: str = Query("30days", pattern=RANGE_PATTERN),
    identity: CurrentIdentity = Depends(current_user),
    svc: WalletService = Depends(_svc),
):
    return await svc.summary(identity.user_id, range)


@router.get("/history")
async def wallet_history(
    identity: CurrentIdentity = Depends(current_user),
    svc: WalletService = Depends(_svc),
):
    monthly = await svc.monthly_earnings(identity.user_id, months=12)
    withdrawals = await svc.list_withdrawals(identity.user_id, limit=50)
    return {
        "monthly_data": monthly,
        "transactions": [
            {
                "date": as_utc(w.created_at),
                "type": "Withdrawal",
                "source": w.method,
                "amount": w.amount_requested,
                "status": w.status,
            }
            for w in withdrawals
        ],
    }


# ─── Withdrawals ────────────────────────────────────────


@router.get("/withdrawals")
async def list_withdrawals(
    identity: CurrentIdentity = Depends(current_user),
    svc: WalletService = Depends(_svc),
):
    rows = await svc.list_withdrawals(identity.user_id)
    return {"withdrawals": [WithdrawalRead.model_validate(w) for w in rows]}


@router.post("/request-withdrawal", status_code=201)
async def request_withdrawal(
    body: WithdrawalCreate,
    identity: CurrentIdentity = Depends(current_user),
    svc: WalletService = Depends(_svc),
):
    """Queue a payout. Trial accounts must upgrade first."""
    subscription = await SubscriptionService(svc.db).get_for_user(identity.user_id)
    if subscription is None or subscription.tier == "trial":
        raise HTTPException(
            status_code=403,
            detail={
                "error": "Trial users cannot withdraw earnings. "
                "Upgrade to Plus or Pro to access your earnings.",
                "requiresUpgrade": True,
                "tier": "plus",
            },
        )

    available = await svc.available_balance(identity.user_id)
    if body.amount_requested > available:
        raise HTTPException(
            status_code=400,
            detail={"error": "Insufficient funds", "available": available},
        )

    withdrawal = await svc.create_withdrawal(
        identity.user_id, body.amount_requested, body.method, body.account_details
    )
    await svc.db.commit()
    await svc.db.refresh(withdrawal)
    logger.info(
        "wallet.withdrawal_requested",
        withdrawal_id=withdrawal.id,
        artist_id=identity.user_id,
        amount=body.amount_requested,
    )
    return {
        "message": "Withdrawal request submitted successfully",
        "data": WithdrawalRead.model_validate(withdrawal),
    }


# ─── Payout method ──────────────────────────────────────


def _payout_read(payout) -> PayoutMethodRead:
    return PayoutMethodRead(
        method=payout.method,
        account_info_masked=mask_account_info(payout.account_info),
        status=payout.status,
        created_at=payout.created_at,
        updated_at=payout.updated_at,
    )


@router.get("/payout-method", response_model=PayoutMethodRead)
async def get_payout_method(
    identity: CurrentIdentity = Depends(current_user),
    svc: WalletService = Depends(_svc),
):
    payout = await svc.get_payout_method(identity.user_id)
    if payout is None:
        raise HTTPException(status_code=404, detail="No payout method found")
    return _payout_read(payout)


@router.post("/payout-method")
async def save_payout_method(
    body: PayoutMethodSave,
    identity: CurrentIdentity = Depends(current_user),
    svc: WalletService = Depends(_svc),
):
    payout = await svc.save_payout_method(identity.user_id, body.method, body.account_info)
    await svc.db.commit()
    await svc.db.refresh(payout)
    logger.info("wallet.payout_method_saved", artist_id=identity.user_id)
    return {"message": "Payout method saved successfully", "data": _payout_read(payout)}
