"""Dashboard and audit report schemas."""
from pydantic import BaseModel
from datetime import datetime
from uuid import UUID
from backoffice.schemas.base import BaseSchema, Money


class MethodTotals(BaseModel):
    money_in: Money
    money_out: Money


class LowBalanceGame(BaseModel):
    game_id: UUID
    name: str
    balance: Money


class NewPlayer(BaseModel):
    player_id: UUID
    name: str
    join_date: datetime


class DashboardStatsResponse(BaseSchema):
    """Aggregates shown on the staff dashboard for one date range."""
    date_range: str
    total_players: int
    active_players: int
    inactive_players: int
    blocked_players: int
    total_games: int
    total_deposits: Money
    total_withdrawals: Money
    total_bonus: Money
    net_pnl: Money
    pnl_24h: Money
    by_payment_method: dict[str, MethodTotals]
    low_balance_games: list[LowBalanceGame]
    new_players: list[NewPlayer]
    generated_at: datetime


class DuplicateReferral(BaseModel):
    referred_player_id: UUID
    referred_player_name: str | None
    transaction_ids: list[UUID]
    total_paid: Money


class ReferralAuditResponse(BaseModel):
    duplicates: list[DuplicateReferral]
