"""Ledger routes: transfers, credits, referrals, withdraw settlement and corrections."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.database import get_db
from backoffice.dependencies import get_current_staff, require_admin
from backoffice.models.base import TransactionStatus, TransactionType
from backoffice.models.staff import Staff
from backoffice.models.transaction import Transaction
from backoffice.schemas.base import SuccessResponse
from backoffice.schemas.transaction import (
    AmendTransactionRequest,
    CreditRequest,
    DepositWithdrawRequest,
    RejectWithdrawRequest,
    ReferralRequest,
    TransactionListResponse,
    TransactionResponse,
    WithdrawPaymentRequest,
)
from backoffice.services.transaction_service import TransactionService

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("/deposit-withdraw", response_model=TransactionResponse, status_code=201)
async def deposit_withdraw(
    request: DepositWithdrawRequest,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Transaction:
    """Move money between a player and a game account.

    Deposits are refused when the game cannot cover amount plus bonus.
    """
    return await TransactionService(db).process_transaction(
        request.player_id,
        request.game_name,
        request.amount,
        request.direction,
        deposit_bonus=request.deposit_bonus,
        tip=request.tip,
        payment_method=request.payment_method,
        payment_tag=request.payment_tag,
        player_tag=request.player_tag,
        notes=request.notes,
        staff_name=staff.name,
    )


@router.post("/credit", response_model=TransactionResponse, status_code=201)
async def credit(
    request: CreditRequest,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Transaction:
    return await TransactionService(db).process_credit(
        request.player_id,
        request.game_name,
        request.amount,
        request.credit_type,
        notes=request.notes,
        staff_name=staff.name,
    )


@router.post("/referral", response_model=TransactionResponse, status_code=201)
async def referral(
    request: ReferralRequest,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Transaction:
    """Pay the one-time referral bonus for a referred player."""
    return await TransactionService(db).process_referral(
        request.referrer_id,
        request.referred_id,
        request.game_name,
        request.amount,
        notes=request.notes,
        staff_name=staff.name,
    )


@router.get("", response_model=TransactionListResponse)
async def list_transactions(
    type: Optional[TransactionType] = None,
    status: Optional[TransactionStatus] = None,
    player_id: Optional[UUID] = None,
    game_id: Optional[UUID] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
):
    transactions, total = await TransactionService(db).list_transactions(
        trans_type=type,
        status=status,
        player_id=player_id,
        game_id=game_id,
        start=start,
        end=end,
        limit=limit,
        offset=offset,
    )
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions], total=total
    )


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: UUID,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Transaction:
    return await TransactionService(db).get_transaction(transaction_id)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
async def amend_transaction(
    transaction_id: UUID,
    request: AmendTransactionRequest,
    staff: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Transaction:
    """Correct a deposit or withdrawal; balances and stats follow the change."""
    return await TransactionService(db).amend_transaction(
        transaction_id,
        request.amount,
        request.type,
        request.payment_method,
        staff_name=staff.name,
    )


@router.delete("/{transaction_id}", response_model=SuccessResponse)
async def delete_transaction(
    transaction_id: UUID,
    staff: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Remove a ledger entry after reversing its effect on balances and stats."""
    await TransactionService(db).delete_transaction(transaction_id, staff_name=staff.name)
    return SuccessResponse(message="Transaction deleted")


@router.post("/{transaction_id}/payments", response_model=TransactionResponse, status_code=201)
async def record_withdraw_payment(
    transaction_id: UUID,
    request: WithdrawPaymentRequest,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Transaction:
    return await TransactionService(db).record_withdraw_payment(
        transaction_id,
        request.amount,
        request.payment_method,
        request.payment_tag,
        staff_name=staff.name,
    )


@router.post("/{transaction_id}/reject", response_model=TransactionResponse)
async def reject_withdraw(
    transaction_id: UUID,
    request: RejectWithdrawRequest,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Transaction:
    return await TransactionService(db).reject_withdraw(
        transaction_id, reason=request.reason, staff_name=staff.name
    )
