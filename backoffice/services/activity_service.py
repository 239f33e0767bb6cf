"""Player inactivity sweep."""
import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import get_settings
from backoffice.models.base import PlayerStatus
from backoffice.models.player import Player
from backoffice.models.transaction import Transaction
from backoffice.utils.cache import invalidate_dashboard
from backoffice.utils.datetime_helpers import ensure_utc

logger = logging.getLogger(__name__)


class ActivityService:
    """Marks Active players Inactive once they go quiet.

    A player's last activity is their newest ledger row, or their join date
    when they have none. Re-running the sweep is harmless: players already
    Inactive are not touched.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def find_inactive_candidates(self, now: datetime | None = None) -> list[tuple[UUID, str, datetime]]:
        """Return (player_id, name, last_seen) for Active players past the window."""
        now = ensure_utc(now) or datetime.now(UTC)
        cutoff = now - timedelta(minutes=self.settings.inactivity_window_minutes)

        last_transaction = (
            select(Transaction.player_id, func.max(Transaction.created_at).label("last_at"))
            .group_by(Transaction.player_id)
            .subquery()
        )
        result = await self.db.execute(
            select(Player.player_id, Player.name, Player.join_date, last_transaction.c.last_at)
            .outerjoin(last_transaction, last_transaction.c.player_id == Player.player_id)
            .where(Player.status == PlayerStatus.ACTIVE.value)
        )

        candidates = []
        for player_id, name, join_date, last_at in result.all():
            last_seen = ensure_utc(last_at) or ensure_utc(join_date)
            if last_seen < cutoff:
                candidates.append((player_id, name, last_seen))
        return candidates

    async def run_inactivity_sweep(self, now: datetime | None = None) -> int:
        """Flip stale Active players to Inactive. Returns the number updated."""
        candidates = await self.find_inactive_candidates(now)
        if not candidates:
            return 0

        ids = [player_id for player_id, _, _ in candidates]
        await self.db.execute(
            update(Player)
            .where(Player.player_id.in_(ids), Player.status == PlayerStatus.ACTIVE.value)
            .values(status=PlayerStatus.INACTIVE.value)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()

        invalidate_dashboard()
        logger.info(f"Inactivity sweep marked {len(ids)} players Inactive")
        return len(ids)
