"""Dashboard aggregates, game balance history and ledger audits."""
import copy
import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import get_settings
from backoffice.models.base import PaymentMethod, PlayerStatus, TransactionStatus, TransactionType
from backoffice.models.game import Game
from backoffice.models.player import Player
from backoffice.models.transaction import Transaction
from backoffice.utils.cache import DASHBOARD_PREFIX, dashboard_cache
from backoffice.utils.datetime_helpers import date_range_bounds, ensure_utc
from backoffice.utils.exceptions import GameNotFoundError, TransferValidationError
from backoffice.utils.money import ZERO

logger = logging.getLogger(__name__)

# Game-side direction of each entry type in a balance history
GAME_CREDIT_TYPES = {TransactionType.WITHDRAW.value, "Recharge"}


class ReportService:
    """Read-only reporting over the ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def _money_by_type_and_method(
        self, start: datetime | None, end: datetime | None
    ) -> list[tuple[str, str | None, Decimal, Decimal]]:
        filters = [Transaction.status != TransactionStatus.REJECTED.value]
        if start:
            filters.append(Transaction.created_at >= start)
        if end:
            filters.append(Transaction.created_at < end)
        result = await self.db.execute(
            select(
                Transaction.type,
                Transaction.payment_method,
                func.coalesce(func.sum(Transaction.amount), ZERO),
                func.coalesce(func.sum(Transaction.bonus_amount), ZERO),
            )
            .where(*filters)
            .group_by(Transaction.type, Transaction.payment_method)
        )
        return [tuple(row) for row in result.all()]

    async def dashboard_stats(self, date_range: str = "all", now: datetime | None = None) -> dict:
        """
        Aggregate player, game and money figures for the dashboard.

        Results are cached per range until the next write invalidates them.
        Callers always get their own copy of the cached figures.
        """
        cache_key = f"{DASHBOARD_PREFIX}{date_range}"
        if now is None:
            cached = dashboard_cache.get(cache_key)
            if cached is not None:
                return copy.deepcopy(cached)

        now = ensure_utc(now) or datetime.now(UTC)
        try:
            start, end = date_range_bounds(date_range, now)
        except ValueError as e:
            raise TransferValidationError(str(e)) from e

        status_counts = dict(
            (await self.db.execute(select(Player.status, func.count()).group_by(Player.status))).all()
        )
        total_games = await self.db.scalar(select(func.count()).select_from(Game)) or 0

        by_method = {method.value: {"money_in": ZERO, "money_out": ZERO} for method in PaymentMethod}
        total_deposits = total_withdrawals = total_bonus = ZERO
        for trans_type, method, amount, bonus in await self._money_by_type_and_method(start, end):
            if trans_type == TransactionType.DEPOSIT.value:
                total_deposits += amount
                total_bonus += bonus
                if method in by_method:
                    by_method[method]["money_in"] += amount
            elif trans_type == TransactionType.WITHDRAW.value:
                total_withdrawals += amount
                if method in by_method:
                    by_method[method]["money_out"] += amount

        pnl_24h = ZERO
        for trans_type, _, amount, _ in await self._money_by_type_and_method(now - timedelta(hours=24), None):
            if trans_type == TransactionType.DEPOSIT.value:
                pnl_24h += amount
            elif trans_type == TransactionType.WITHDRAW.value:
                pnl_24h -= amount

        low_balance = (
            await self.db.execute(
                select(Game.game_id, Game.name, Game.balance)
                .where(Game.balance < self.settings.low_balance_threshold)
                .order_by(Game.balance)
            )
        ).all()
        new_player_cutoff = now - timedelta(minutes=self.settings.new_player_window_minutes)
        new_players = (
            await self.db.execute(
                select(Player.player_id, Player.name, Player.join_date)
                .where(Player.join_date >= new_player_cutoff)
                .order_by(Player.join_date.desc())
            )
        ).all()

        stats = {
            "date_range": date_range,
            "total_players": sum(status_counts.values()),
            "active_players": status_counts.get(PlayerStatus.ACTIVE.value, 0),
            "inactive_players": status_counts.get(PlayerStatus.INACTIVE.value, 0),
            "blocked_players": status_counts.get(PlayerStatus.BLOCKED.value, 0),
            "total_games": total_games,
            "total_deposits": total_deposits,
            "total_withdrawals": total_withdrawals,
            "total_bonus": total_bonus,
            "net_pnl": total_deposits - total_withdrawals,
            "pnl_24h": pnl_24h,
            "by_payment_method": by_method,
            "low_balance_games": [
                {"game_id": game_id, "name": name, "balance": balance} for game_id, name, balance in low_balance
            ],
            "new_players": [
                {"player_id": player_id, "name": name, "join_date": join_date}
                for player_id, name, join_date in new_players
            ],
            "generated_at": now,
        }
        dashboard_cache.set(cache_key, stats)
        return copy.deepcopy(stats)

    async def game_report(self, game_id: UUID, search: str | None = None) -> dict:
        """
        Balance history of one game, newest first.

        Transactions and recharges are merged and the balance is walked back
        from the current value: withdrawals and recharges had credited the
        game, everything else had debited its ``points``.
        """
        game = (
            await self.db.execute(
                select(Game).where(Game.game_id == game_id).execution_options(populate_existing=True)
            )
        ).scalar_one_or_none()
        if not game:
            raise GameNotFoundError()

        transactions = (
            await self.db.execute(
                select(Transaction).where(
                    Transaction.game_id == game_id,
                    Transaction.status != TransactionStatus.REJECTED.value,
                )
            )
        ).scalars().all()

        entries = [
            (ensure_utc(t.created_at), t.transaction_id, t.player_name or "Unknown", t.staff_name, t.type, t.points)
            for t in transactions
        ]
        entries += [
            (ensure_utc(r.created_at), r.recharge_id, "SYSTEM", r.staff_name, r.type, r.amount)
            for r in game.recharges
        ]
        entries.sort(key=lambda entry: entry[0], reverse=True)

        rows = []
        running = game.balance
        for date, entry_id, player_name, staff_name, entry_type, points in entries:
            after = running
            before = after - points if entry_type in GAME_CREDIT_TYPES else after + points
            rows.append({
                "id": entry_id,
                "date": date,
                "player_name": player_name,
                "staff_name": staff_name,
                "type": entry_type,
                "points": points,
                "balance_before": before,
                "balance_after": after,
            })
            running = before

        if search:
            needle = search.strip().lower()
            rows = [
                row for row in rows
                if needle in row["player_name"].lower()
                or needle in row["staff_name"].lower()
                or needle in row["type"].lower()
            ]

        return {
            "game_id": game.game_id,
            "game_name": game.name,
            "current_balance": game.balance,
            "rows": rows,
        }

    async def duplicate_referral_bonuses(self) -> list[dict]:
        """Referred players credited by more than one Referral entry."""
        duplicates = (
            await self.db.execute(
                select(Transaction.referred_player_id, func.sum(Transaction.amount))
                .where(
                    Transaction.type == TransactionType.REFERRAL.value,
                    Transaction.referred_player_id.is_not(None),
                )
                .group_by(Transaction.referred_player_id)
                .having(func.count() > 1)
            )
        ).all()

        report = []
        for referred_id, total_paid in duplicates:
            entries = (
                await self.db.execute(
                    select(Transaction)
                    .where(
                        Transaction.type == TransactionType.REFERRAL.value,
                        Transaction.referred_player_id == referred_id,
                    )
                    .order_by(Transaction.created_at)
                )
            ).scalars().all()
            report.append({
                "referred_player_id": referred_id,
                "referred_player_name": entries[0].referred_player_name if entries else None,
                "transaction_ids": [t.transaction_id for t in entries],
                "total_paid": total_paid or ZERO,
            })

        if report:
            logger.warning(f"Found {len(report)} referred players with duplicate referral bonuses")
        return report
