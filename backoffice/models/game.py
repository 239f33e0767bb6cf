"""Game account model and its recharge history."""
import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from backoffice.database import Base
from backoffice.models.base import GameStatus, get_uuid_column
from backoffice.utils.money import ZERO, MoneyColumn


class Game(Base):
    """A game account whose balance funds player-favoring transactions."""

    __tablename__ = "games"

    game_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    name = Column(String(120), unique=True, nullable=False)
    image_url = Column(String(500), nullable=True)
    balance = Column(MoneyColumn, default=ZERO, nullable=False)
    status = Column(String(20), default=GameStatus.ACTIVE.value, nullable=False)
    download_url = Column(String(500), nullable=True)
    panel_url = Column(String(500), nullable=True)
    panel_username = Column(String(120), nullable=True)
    panel_password = Column(String(255), nullable=True)
    last_recharge_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    recharges = relationship(
        "GameRecharge",
        back_populates="game",
        cascade="all, delete-orphan",
        order_by="GameRecharge.created_at",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Game(game_id={self.game_id}, name={self.name}, balance={self.balance})>"


class GameRecharge(Base):
    """Manual top-up of a game balance by staff."""

    __tablename__ = "game_recharges"

    recharge_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    game_id = get_uuid_column(ForeignKey("games.game_id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(MoneyColumn, nullable=False)
    staff_name = Column(String(120), nullable=False)
    balance_before = Column(MoneyColumn, nullable=False)
    balance_after = Column(MoneyColumn, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True)

    game = relationship("Game", back_populates="recharges")

    @property
    def type(self) -> str:
        return "Recharge"

    def __repr__(self):
        return f"<GameRecharge(game_id={self.game_id}, amount={self.amount}, staff_name={self.staff_name})>"
