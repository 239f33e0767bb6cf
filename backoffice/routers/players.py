"""Player routes: profiles, gaming accounts, referrals and housekeeping."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.database import get_db
from backoffice.dependencies import get_current_staff, require_admin
from backoffice.models.base import PlayerStatus
from backoffice.models.player import Player
from backoffice.models.staff import Staff
from backoffice.schemas.player import (
    AddGamingAccountRequest,
    BulkDeletePlayersRequest,
    BulkDeletePlayersResponse,
    CreatePlayerRequest,
    InactivitySweepResponse,
    PlayerListResponse,
    PlayerResponse,
    ReferralListResponse,
    UpdatePlayerRequest,
)
from backoffice.schemas.transaction import TransactionListResponse, TransactionResponse
from backoffice.services.activity_service import ActivityService
from backoffice.services.player_service import PlayerService
from backoffice.services.transaction_service import TransactionService

router = APIRouter(prefix="/players", tags=["players"])


@router.get("", response_model=PlayerListResponse)
async def list_players(
    status: Optional[PlayerStatus] = None,
    search: Optional[str] = Query(default=None, max_length=120),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
):
    players, total = await PlayerService(db).list_players(status=status, search=search, limit=limit, offset=offset)
    return PlayerListResponse(players=[PlayerResponse.model_validate(p) for p in players], total=total)


@router.post("", response_model=PlayerResponse, status_code=201)
async def create_player(
    request: CreatePlayerRequest,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Player:
    return await PlayerService(db).create_player(
        request.name,
        request.facebook_url,
        avatar_url=request.avatar_url,
        referred_by=request.referred_by,
    )


@router.post("/bulk-delete", response_model=BulkDeletePlayersResponse)
async def bulk_delete_players(
    request: BulkDeletePlayersRequest,
    staff: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Remove players together with their transactions and gaming accounts."""
    deleted = await PlayerService(db).delete_players(request.player_ids)
    return BulkDeletePlayersResponse(deleted_count=deleted)


@router.post("/inactivity-sweep", response_model=InactivitySweepResponse)
async def run_inactivity_sweep(
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
):
    """Run the inactivity sweep now instead of waiting for the background cycle."""
    marked = await ActivityService(db).run_inactivity_sweep()
    return InactivitySweepResponse(marked_inactive=marked)


@router.get("/{player_id}", response_model=PlayerResponse)
async def get_player(
    player_id: UUID,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Player:
    return await PlayerService(db).get_player(player_id)


@router.patch("/{player_id}", response_model=PlayerResponse)
async def update_player(
    player_id: UUID,
    request: UpdatePlayerRequest,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Player:
    return await PlayerService(db).update_player(player_id, **request.model_dump(exclude_unset=True))


@router.post("/{player_id}/gaming-accounts", response_model=PlayerResponse, status_code=201)
async def add_gaming_account(
    player_id: UUID,
    request: AddGamingAccountRequest,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Player:
    return await PlayerService(db).add_gaming_account(player_id, request.game_name, request.gamer_id)


@router.delete("/{player_id}/gaming-accounts/{account_id}", response_model=PlayerResponse)
async def remove_gaming_account(
    player_id: UUID,
    account_id: UUID,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Player:
    return await PlayerService(db).remove_gaming_account(player_id, account_id)


@router.get("/{player_id}/referrals", response_model=ReferralListResponse)
async def list_referrals(
    player_id: UUID,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
):
    referrals = await PlayerService(db).list_referrals(player_id)
    return ReferralListResponse(referrer_id=player_id, referrals=referrals)


@router.get("/{player_id}/transactions", response_model=TransactionListResponse)
async def get_player_transactions(
    player_id: UUID,
    limit: int = Query(default=100, ge=1, le=500),
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
):
    await PlayerService(db).get_player(player_id)
    transactions, total = await TransactionService(db).list_transactions(player_id=player_id, limit=limit)
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions], total=total
    )
