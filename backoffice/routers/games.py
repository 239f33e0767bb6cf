"""Game routes: catalogue, recharges and balance history."""
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.database import get_db
from backoffice.dependencies import get_current_staff, require_admin
from backoffice.models.base import GameStatus
from backoffice.models.game import Game
from backoffice.models.staff import Staff
from backoffice.schemas.base import SuccessResponse
from backoffice.schemas.game import (
    CreateGameRequest,
    GameCredentialsResponse,
    GameListResponse,
    GameReportResponse,
    GameResponse,
    RechargeGameRequest,
    UpdateGameRequest,
)
from backoffice.services.game_service import GameService
from backoffice.services.report_service import ReportService

router = APIRouter(prefix="/games", tags=["games"])


@router.get("", response_model=GameListResponse)
async def list_games(
    status: Optional[GameStatus] = None,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
):
    games = await GameService(db).list_games(status)
    return GameListResponse(games=[GameResponse.model_validate(g) for g in games])


@router.get("/low-balance", response_model=GameListResponse)
async def list_low_balance_games(
    threshold: Optional[Decimal] = Query(default=None, ge=0),
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
):
    games = await GameService(db).low_balance_games(threshold)
    return GameListResponse(games=[GameResponse.model_validate(g) for g in games])


@router.post("", response_model=GameResponse, status_code=201)
async def create_game(
    request: CreateGameRequest,
    staff: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Game:
    return await GameService(db).create_game(request.name, **request.model_dump(exclude={"name"}))


@router.get("/{game_id}", response_model=GameResponse)
async def get_game(
    game_id: UUID,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
) -> Game:
    return await GameService(db).get_game(game_id)


@router.get("/{game_id}/credentials", response_model=GameCredentialsResponse)
async def get_game_credentials(
    game_id: UUID,
    staff: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Game:
    return await GameService(db).get_game(game_id)


@router.patch("/{game_id}", response_model=GameResponse)
async def update_game(
    game_id: UUID,
    request: UpdateGameRequest,
    staff: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Game:
    """Edit a game. Renames cascade to every player's gaming account."""
    return await GameService(db).update_game(
        game_id,
        staff_name=staff.name,
        **request.model_dump(exclude_unset=True),
    )


@router.post("/{game_id}/recharge", response_model=GameResponse)
async def recharge_game(
    game_id: UUID,
    request: RechargeGameRequest,
    staff: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Game:
    return await GameService(db).recharge_game(game_id, request.amount, staff_name=staff.name)


@router.delete("/{game_id}", response_model=SuccessResponse)
async def delete_game(
    game_id: UUID,
    staff: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a game and every gaming account that names it."""
    await GameService(db).delete_game(game_id)
    return SuccessResponse(message="Game deleted")


@router.get("/{game_id}/report", response_model=GameReportResponse)
async def get_game_report(
    game_id: UUID,
    search: Optional[str] = Query(default=None, max_length=120),
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
):
    """Balance history of the game, newest first."""
    return await ReportService(db).game_report(game_id, search)
