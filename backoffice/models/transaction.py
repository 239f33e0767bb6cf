"""Ledger models: one row per monetary event, plus withdraw payout entries."""
import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from backoffice.database import Base
from backoffice.models.base import TransactionStatus, get_uuid_column
from backoffice.utils.money import ZERO, MoneyColumn


class Transaction(Base):
    """Ledger entry for a Deposit, Withdraw, Freeplay, Bonusplay or Referral.

    Players and games are referenced by id; their display names are read
    through the relationships so renames never orphan history. ``points`` is
    the total that left or entered the game (amount plus deposit bonus).
    """

    __tablename__ = "transactions"

    transaction_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    player_id = get_uuid_column(
        ForeignKey("players.player_id", ondelete="CASCADE"), nullable=False, index=True
    )
    game_id = get_uuid_column(ForeignKey("games.game_id", ondelete="SET NULL"), nullable=True, index=True)
    type = Column(String(20), nullable=False, index=True)
    status = Column(String(20), default=TransactionStatus.APPROVED.value, nullable=False, index=True)
    amount = Column(MoneyColumn, nullable=False)
    tip = Column(MoneyColumn, default=ZERO, nullable=False)
    deposit_bonus = Column(MoneyColumn, default=ZERO, nullable=False)  # Percentage
    bonus_amount = Column(MoneyColumn, default=ZERO, nullable=False)
    points = Column(MoneyColumn, nullable=False)
    payment_method = Column(String(30), nullable=True)
    payment_tag = Column(String(120), nullable=True)
    player_tag = Column(String(120), nullable=True)
    staff_name = Column(String(120), nullable=False)
    game_balance_before = Column(MoneyColumn, nullable=True)
    game_balance_after = Column(MoneyColumn, nullable=True)
    referred_player_id = get_uuid_column(
        ForeignKey("players.player_id", ondelete="SET NULL"), nullable=True, index=True
    )
    notes = Column(Text, nullable=True)

    # Withdraw settlement
    paid_amount = Column(MoneyColumn, default=ZERO, nullable=False)
    deposit_amount = Column(MoneyColumn, default=ZERO, nullable=False)
    pending_amount = Column(MoneyColumn, default=ZERO, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True)
    amended_at = Column(DateTime(timezone=True), nullable=True)

    player = relationship("Player", foreign_keys=[player_id], lazy="selectin")
    referred_player = relationship("Player", foreign_keys=[referred_player_id], lazy="selectin")
    game = relationship("Game", lazy="selectin")
    payments = relationship(
        "WithdrawPayment",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="WithdrawPayment.created_at",
        lazy="selectin",
    )

    @property
    def player_name(self) -> str | None:
        return self.player.name if self.player is not None else None

    @property
    def game_name(self) -> str | None:
        return self.game.name if self.game is not None else None

    @property
    def referred_player_name(self) -> str | None:
        return self.referred_player.name if self.referred_player is not None else None

    def __repr__(self):
        return (f"<Transaction(transaction_id={self.transaction_id}, type={self.type}, "
                f"amount={self.amount}, status={self.status})>")


class WithdrawPayment(Base):
    """Money paid out (or settled through a deposit) against a pending withdraw."""

    __tablename__ = "withdraw_payments"

    payment_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    transaction_id = get_uuid_column(
        ForeignKey("transactions.transaction_id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind = Column(String(20), nullable=False)  # "payout" or "deposit"
    amount = Column(MoneyColumn, nullable=False)
    method = Column(String(60), nullable=False)
    tag = Column(String(160), nullable=True)
    staff_name = Column(String(120), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    transaction = relationship("Transaction", back_populates="payments")

    def __repr__(self):
        return (f"<WithdrawPayment(transaction_id={self.transaction_id}, kind={self.kind}, "
                f"amount={self.amount})>")
