"""Gaming account model linking a player to an external game login."""
import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from backoffice.database import Base
from backoffice.models.base import get_uuid_column


class GamingAccount(Base):
    """A player's gamer id on one game, keyed by the game's current name."""

    __tablename__ = "gaming_accounts"

    account_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    player_id = get_uuid_column(
        ForeignKey("players.player_id", ondelete="CASCADE"), nullable=False, index=True
    )
    game_name = Column(String(120), nullable=False, index=True)
    gamer_id = Column(String(120), nullable=False)
    position = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    player = relationship("Player", back_populates="gaming_accounts")

    __table_args__ = (
        UniqueConstraint("player_id", "game_name", name="uq_gaming_accounts_player_game"),
    )

    def __repr__(self):
        return f"<GamingAccount(player_id={self.player_id}, game_name={self.game_name}, gamer_id={self.gamer_id})>"
