"""Game-related Pydantic schemas."""
from pydantic import BaseModel, Field, constr
from datetime import datetime
from typing import Optional
from uuid import UUID
from backoffice.models.base import GameStatus
from backoffice.schemas.base import BaseSchema, Money, MoneyAmount
from backoffice.schemas.player import NameStr, UrlStr
from backoffice.utils.money import ZERO


class RechargeResponse(BaseSchema):
    recharge_id: UUID
    amount: Money
    type: str
    staff_name: str
    balance_before: Money
    balance_after: Money
    created_at: datetime


class GameResponse(BaseSchema):
    game_id: UUID
    name: str
    image_url: Optional[str] = None
    balance: Money
    status: GameStatus
    download_url: Optional[str] = None
    panel_url: Optional[str] = None
    panel_username: Optional[str] = None
    last_recharge_date: Optional[datetime] = None
    created_at: datetime
    recharges: list[RechargeResponse]


class GameListResponse(BaseModel):
    games: list[GameResponse]


class GameCredentialsResponse(BaseSchema):
    """Panel login, only returned to admins."""
    game_id: UUID
    panel_url: Optional[str] = None
    panel_username: Optional[str] = None
    panel_password: Optional[str] = None


class CreateGameRequest(BaseModel):
    name: NameStr
    balance: MoneyAmount = Field(default=ZERO, ge=0)
    image_url: Optional[UrlStr] = None
    download_url: Optional[UrlStr] = None
    panel_url: Optional[UrlStr] = None
    panel_username: Optional[constr(max_length=120)] = None
    panel_password: Optional[constr(max_length=255)] = None


class UpdateGameRequest(BaseModel):
    """Partial update; a positive ``recharge_amount`` tops up the balance."""
    name: Optional[NameStr] = None
    image_url: Optional[UrlStr] = None
    download_url: Optional[UrlStr] = None
    panel_url: Optional[UrlStr] = None
    panel_username: Optional[constr(max_length=120)] = None
    panel_password: Optional[constr(max_length=255)] = None
    status: Optional[GameStatus] = None
    recharge_amount: MoneyAmount = Field(default=ZERO, ge=0)


class RechargeGameRequest(BaseModel):
    amount: MoneyAmount = Field(gt=0)


class GameReportRow(BaseModel):
    """One line of a game's balance history."""
    id: UUID
    date: datetime
    player_name: str
    staff_name: str
    type: str
    points: Money
    balance_before: Money
    balance_after: Money


class GameReportResponse(BaseSchema):
    game_id: UUID
    game_name: str
    current_balance: Money
    rows: list[GameReportRow]
