"""Player account model with denormalized ledger stats."""
from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from backoffice.database import Base
from backoffice.models.base import PlayerStatus, get_uuid_column
from backoffice.utils.money import ZERO, MoneyColumn

# Aggregate fields maintained by TransactionService; nothing else writes them.
STAT_FIELDS = (
    "total_freeplay",
    "total_deposit",
    "total_withdraw",
    "total_bonusplay",
    "total_referral_bonus",
    "total_deposit_bonus",
    "p_and_l",
)


class Player(Base):
    """Casino player managed by staff.

    ``p_and_l`` is the house view of the player: deposits minus withdraws.
    Promotional credits (freeplay, bonusplay, referral) never touch it.
    """

    __tablename__ = "players"

    player_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    name = Column(String(120), nullable=False, index=True)
    facebook_url = Column(String(500), nullable=False)
    avatar_url = Column(String(500), nullable=True)
    referred_by_id = get_uuid_column(
        ForeignKey("players.player_id", ondelete="SET NULL"), nullable=True, index=True
    )
    status = Column(String(20), default=PlayerStatus.ACTIVE.value, nullable=False, index=True)
    join_date = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    last_activity = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    referral_bonus_paid = Column(Boolean, default=False, nullable=False)

    # Stats
    total_freeplay = Column(MoneyColumn, default=ZERO, nullable=False)
    total_deposit = Column(MoneyColumn, default=ZERO, nullable=False)
    total_withdraw = Column(MoneyColumn, default=ZERO, nullable=False)
    total_bonusplay = Column(MoneyColumn, default=ZERO, nullable=False)
    total_referral_bonus = Column(MoneyColumn, default=ZERO, nullable=False)
    total_deposit_bonus = Column(MoneyColumn, default=ZERO, nullable=False)
    p_and_l = Column(MoneyColumn, default=ZERO, nullable=False)

    # Relationships
    gaming_accounts = relationship(
        "GamingAccount",
        back_populates="player",
        cascade="all, delete-orphan",
        order_by="GamingAccount.position",
        lazy="selectin",
    )
    referred_by = relationship(
        "Player",
        remote_side=[player_id],
        lazy="selectin",
        join_depth=1,
    )

    @property
    def referred_by_name(self) -> str | None:
        return self.referred_by.name if self.referred_by is not None else None

    @property
    def stats(self) -> dict[str, Decimal]:
        return {field: getattr(self, field) or ZERO for field in STAT_FIELDS}

    def __repr__(self):
        return (f"<Player(player_id={self.player_id}, name={self.name}, status={self.status}, "
                f"p_and_l={self.p_and_l})>")
