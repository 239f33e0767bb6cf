"""Game account management, recharges and name cascades."""
import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from backoffice.config import get_settings
from backoffice.models.base import GameStatus
from backoffice.models.game import Game, GameRecharge
from backoffice.models.gaming_account import GamingAccount
from backoffice.models.transaction import Transaction
from backoffice.utils.cache import invalidate_dashboard
from backoffice.utils.exceptions import DuplicateGameError, GameNotFoundError, TransferValidationError
from backoffice.utils.money import ZERO, add_money, to_money

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _non_negative_money(value, message: str) -> Decimal:
    try:
        amount = to_money(value) if value is not None else None
    except ValueError as e:
        raise TransferValidationError(message) from e
    if amount is None or amount < 0:
        raise TransferValidationError(message)
    return amount


class GameService:
    """Service for game accounts.

    Renames and deletes rewrite the players' gaming accounts inside the same
    database transaction as the game row, so a failure leaves neither half
    applied.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def get_game(self, game_id: UUID) -> Game:
        result = await self.db.execute(
            select(Game).where(Game.game_id == game_id).execution_options(populate_existing=True)
        )
        game = result.scalar_one_or_none()
        if not game:
            raise GameNotFoundError()
        return game

    async def list_games(self, status: GameStatus | str | None = None) -> list[Game]:
        stmt = select(Game).order_by(Game.name)
        if status:
            stmt = stmt.where(Game.status == GameStatus(status).value)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def low_balance_games(self, threshold: Decimal | int | None = None) -> list[Game]:
        """Games whose balance is below ``threshold`` (default from settings), lowest first."""
        if threshold is None:
            threshold = self.settings.low_balance_threshold
        result = await self.db.execute(
            select(Game).where(Game.balance < threshold).order_by(Game.balance)
        )
        return list(result.scalars().all())

    async def _ensure_name_available(self, name: str, exclude_game_id: UUID | None = None) -> None:
        stmt = select(Game.game_id).where(func.lower(Game.name) == name.lower())
        if exclude_game_id is not None:
            stmt = stmt.where(Game.game_id != exclude_game_id)
        if await self.db.scalar(stmt.limit(1)) is not None:
            raise DuplicateGameError(f'Game "{name}" already exists')

    async def create_game(
        self,
        name: str,
        *,
        balance: Decimal | int | str = ZERO,
        image_url: str | None = None,
        download_url: str | None = None,
        panel_url: str | None = None,
        panel_username: str | None = None,
        panel_password: str | None = None,
    ) -> Game:
        name = name.strip()
        balance = _non_negative_money(balance, "Balance cannot be negative")
        await self._ensure_name_available(name)

        game = Game(
            name=name,
            balance=balance,
            image_url=image_url,
            download_url=download_url,
            panel_url=panel_url,
            panel_username=panel_username,
            panel_password=panel_password,
            status=GameStatus.ACTIVE.value,
            recharges=[],
        )
        self.db.add(game)
        await self.db.commit()

        invalidate_dashboard()
        logger.info(f"Game created: {game.game_id} name={name} balance={balance}")
        return game

    async def update_game(
        self,
        game_id: UUID,
        *,
        name: str | None = _UNSET,
        image_url: str | None = _UNSET,
        download_url: str | None = _UNSET,
        panel_url: str | None = _UNSET,
        panel_username: str | None = _UNSET,
        panel_password: str | None = _UNSET,
        status: GameStatus | str | None = _UNSET,
        recharge_amount: Decimal | int | str = ZERO,
        staff_name: str = "SYSTEM",
    ) -> Game:
        """
        Edit a game. A new name cascades into every gaming account; a positive
        ``recharge_amount`` tops up the balance and appends a recharge entry.
        """
        recharge_amount = _non_negative_money(recharge_amount, "Recharge amount cannot be negative")

        game = await self.get_game(game_id)
        try:
            if name is not _UNSET and name and name.strip() != game.name:
                await self._rename(game, name.strip())
            for field, value in (
                ("image_url", image_url),
                ("download_url", download_url),
                ("panel_url", panel_url),
                ("panel_username", panel_username),
                ("panel_password", panel_password),
            ):
                if value is not _UNSET:
                    setattr(game, field, value)
            if status is not _UNSET and status:
                game.status = GameStatus(status).value
            if recharge_amount > 0:
                await self._recharge(game, recharge_amount, staff_name)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        invalidate_dashboard()
        logger.info(f"Game updated: {game.game_id} name={game.name} balance={game.balance}")
        return game

    async def rename_game(self, game_id: UUID, new_name: str) -> Game:
        return await self.update_game(game_id, name=new_name)

    async def recharge_game(
        self, game_id: UUID, amount: Decimal | int | str, *, staff_name: str = "SYSTEM"
    ) -> Game:
        amount = _non_negative_money(amount, "Recharge amount must be greater than 0")
        if amount == 0:
            raise TransferValidationError("Recharge amount must be greater than 0")
        return await self.update_game(game_id, recharge_amount=amount, staff_name=staff_name)

    async def _rename(self, game: Game, new_name: str) -> int:
        await self._ensure_name_available(new_name, exclude_game_id=game.game_id)
        old_name = game.name
        game.name = new_name
        result = await self.db.execute(
            update(GamingAccount)
            .where(GamingAccount.game_name == old_name)
            .values(game_name=new_name)
            .execution_options(synchronize_session="evaluate")
        )
        logger.info(f"Game renamed {old_name!r} -> {new_name!r}; {result.rowcount} gaming accounts updated")
        return result.rowcount

    async def _recharge(self, game: Game, amount: Decimal, staff_name: str) -> GameRecharge:
        new_balance = (
            await self.db.execute(
                update(Game)
                .where(Game.game_id == game.game_id)
                .values(balance=add_money(Game.balance, amount))
                .returning(Game.balance)
                .execution_options(synchronize_session=False)
            )
        ).scalar_one()
        set_committed_value(game, "balance", new_balance)

        now = datetime.now(UTC)
        recharge = GameRecharge(
            amount=amount,
            staff_name=staff_name,
            balance_before=new_balance - amount,
            balance_after=new_balance,
            created_at=now,
        )
        game.recharges.append(recharge)
        game.last_recharge_date = now
        logger.info(f"Game {game.name} recharged with {amount} by {staff_name}; balance now {new_balance}")
        return recharge

    async def delete_game(self, game_id: UUID) -> None:
        """Remove a game, its recharge history and every gaming account naming it.

        Ledger rows survive with their game reference cleared.
        """
        game = await self.get_game(game_id)
        try:
            accounts = await self.db.execute(
                delete(GamingAccount)
                .where(GamingAccount.game_name == game.name)
                .execution_options(synchronize_session="evaluate")
            )
            await self.db.execute(
                update(Transaction)
                .where(Transaction.game_id == game.game_id)
                .values(game_id=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.delete(game)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        invalidate_dashboard()
        logger.info(f"Game deleted: {game_id} name={game.name}; {accounts.rowcount} gaming accounts removed")
