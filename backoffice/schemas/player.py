"""Player-related Pydantic schemas."""
from pydantic import BaseModel, Field, constr
from datetime import datetime
from typing import Optional
from uuid import UUID
from backoffice.models.base import PlayerStatus
from backoffice.schemas.base import BaseSchema, Money


NameStr = constr(strip_whitespace=True, min_length=1, max_length=120)
UrlStr = constr(strip_whitespace=True, pattern=r"^https?://\S+$", max_length=500)


class PlayerStats(BaseSchema):
    total_freeplay: Money
    total_deposit: Money
    total_withdraw: Money
    total_bonusplay: Money
    total_referral_bonus: Money
    total_deposit_bonus: Money
    p_and_l: Money


class GamingAccountResponse(BaseSchema):
    account_id: UUID
    game_name: str
    gamer_id: str


class PlayerResponse(BaseSchema):
    """Player with stats, accounts and the referrer resolved by id."""
    player_id: UUID
    name: str
    facebook_url: str
    avatar_url: Optional[str] = None
    referred_by_id: Optional[UUID] = None
    referred_by_name: Optional[str] = None
    status: PlayerStatus
    join_date: datetime
    last_activity: datetime
    referral_bonus_paid: bool
    stats: PlayerStats
    gaming_accounts: list[GamingAccountResponse]


class PlayerListResponse(BaseModel):
    players: list[PlayerResponse]
    total: int


class CreatePlayerRequest(BaseModel):
    name: NameStr
    facebook_url: UrlStr
    avatar_url: Optional[UrlStr] = None
    referred_by: Optional[NameStr] = None  # Referrer's player name


class UpdatePlayerRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    name: Optional[NameStr] = None
    facebook_url: Optional[UrlStr] = None
    avatar_url: Optional[UrlStr] = None
    status: Optional[PlayerStatus] = None
    referred_by: Optional[NameStr] = None


class AddGamingAccountRequest(BaseModel):
    game_name: NameStr
    gamer_id: constr(strip_whitespace=True, min_length=1, max_length=120)


class BulkDeletePlayersRequest(BaseModel):
    player_ids: list[UUID] = Field(min_length=1)


class BulkDeletePlayersResponse(BaseModel):
    deleted_count: int


class ReferralSummary(BaseSchema):
    """A referred player as seen from the referrer."""
    player_id: UUID
    name: str
    total_deposit: Money
    first_deposit: Optional[Money] = None
    bonus_paid: bool
    eligible: bool


class ReferralListResponse(BaseModel):
    referrer_id: UUID
    referrals: list[ReferralSummary]


class InactivitySweepResponse(BaseModel):
    marked_inactive: int
