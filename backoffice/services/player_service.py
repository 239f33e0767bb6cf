"""Player management: profiles, gaming accounts, referrals and bulk removal."""
from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.base import PlayerStatus, TransactionType
from backoffice.models.game import Game
from backoffice.models.gaming_account import GamingAccount
from backoffice.models.player import Player
from backoffice.models.transaction import Transaction, WithdrawPayment
from backoffice.utils.cache import invalidate_dashboard
from backoffice.utils.exceptions import (
    DuplicateGamingAccountError,
    GameNotFoundError,
    NotFoundError,
    PlayerNotFoundError,
    TransferValidationError,
)
from backoffice.utils.money import ZERO

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class PlayerService:
    """Staff-facing player operations. Stats are owned by TransactionService."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_player(self, player_id: UUID) -> Player:
        result = await self.db.execute(
            select(Player).where(Player.player_id == player_id).execution_options(populate_existing=True)
        )
        player = result.scalar_one_or_none()
        if not player:
            raise PlayerNotFoundError()
        return player

    async def find_player_by_name(self, name: str) -> Player:
        """Case-insensitive exact name lookup; ambiguous names are rejected."""
        result = await self.db.execute(
            select(Player).where(func.lower(Player.name) == name.strip().lower())
        )
        players = result.scalars().all()
        if not players:
            raise PlayerNotFoundError(f'Player "{name}" not found')
        if len(players) > 1:
            raise PlayerNotFoundError(f'Player name "{name}" matches {len(players)} players')
        return players[0]

    async def list_players(
        self,
        *,
        status: PlayerStatus | str | None = None,
        search: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Player], int]:
        filters = []
        if status:
            filters.append(Player.status == PlayerStatus(status).value)
        if search:
            pattern = f"%{search.strip().lower()}%"
            filters.append(or_(func.lower(Player.name).like(pattern), func.lower(Player.facebook_url).like(pattern)))

        total = await self.db.scalar(select(func.count()).select_from(Player).where(*filters))
        result = await self.db.execute(
            select(Player).where(*filters).order_by(Player.join_date.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def create_player(
        self,
        name: str,
        facebook_url: str,
        *,
        avatar_url: str | None = None,
        referred_by: str | None = None,
    ) -> Player:
        """Add a player with zeroed stats; ``referred_by`` is the referrer's name."""
        referrer = await self.find_player_by_name(referred_by) if referred_by else None
        now = datetime.now(UTC)

        player = Player(
            name=name.strip(),
            facebook_url=facebook_url,
            avatar_url=avatar_url,
            referred_by=referrer,
            status=PlayerStatus.ACTIVE.value,
            join_date=now,
            last_activity=now,
            referral_bonus_paid=False,
            total_freeplay=ZERO,
            total_deposit=ZERO,
            total_withdraw=ZERO,
            total_bonusplay=ZERO,
            total_referral_bonus=ZERO,
            total_deposit_bonus=ZERO,
            p_and_l=ZERO,
            gaming_accounts=[],
        )
        self.db.add(player)
        await self.db.commit()

        invalidate_dashboard()
        logger.info(f"Player created: {player.player_id} name={player.name} referred_by={referred_by}")
        return player

    async def update_player(
        self,
        player_id: UUID,
        *,
        name: str | None = _UNSET,
        facebook_url: str | None = _UNSET,
        avatar_url: str | None = _UNSET,
        status: PlayerStatus | str | None = _UNSET,
        referred_by: str | None = _UNSET,
    ) -> Player:
        """Update profile fields; arguments left unset are not touched."""
        player = await self.get_player(player_id)
        referrer = _UNSET
        if referred_by is not _UNSET:
            referrer = await self.find_player_by_name(referred_by) if referred_by else None
            if referrer is not None and referrer.player_id == player.player_id:
                raise TransferValidationError("A player cannot refer themselves")

        if name is not _UNSET and name:
            player.name = name.strip()
        if facebook_url is not _UNSET and facebook_url:
            player.facebook_url = facebook_url
        if avatar_url is not _UNSET:
            player.avatar_url = avatar_url
        if status is not _UNSET and status:
            player.status = PlayerStatus(status).value
        if referrer is not _UNSET:
            player.referred_by = referrer

        await self.db.commit()
        invalidate_dashboard()
        logger.info(f"Player updated: {player.player_id}")
        return player

    async def set_status(self, player_id: UUID, status: PlayerStatus | str) -> Player:
        return await self.update_player(player_id, status=status)

    async def add_gaming_account(self, player_id: UUID, game_name: str, gamer_id: str) -> Player:
        """Link a gamer id to the player; one account per game (case-insensitive)."""
        player = await self.get_player(player_id)

        canonical_name = await self.db.scalar(
            select(Game.name).where(func.lower(Game.name) == game_name.strip().lower())
        )
        if canonical_name is None:
            raise GameNotFoundError(game_name)

        if any(account.game_name.lower() == canonical_name.lower() for account in player.gaming_accounts):
            raise DuplicateGamingAccountError(f"Player already has an account for {canonical_name}")

        position = max((account.position for account in player.gaming_accounts), default=-1) + 1
        player.gaming_accounts.append(
            GamingAccount(game_name=canonical_name, gamer_id=gamer_id.strip(), position=position)
        )
        await self.db.commit()

        logger.info(f"Gaming account added: player={player.player_id} game={canonical_name}")
        return player

    async def remove_gaming_account(self, player_id: UUID, account_id: UUID) -> Player:
        player = await self.get_player(player_id)
        account = next((a for a in player.gaming_accounts if a.account_id == account_id), None)
        if account is None:
            raise NotFoundError("Gaming account not found")

        player.gaming_accounts.remove(account)
        await self.db.commit()
        logger.info(f"Gaming account removed: player={player.player_id} game={account.game_name}")
        return player

    async def delete_players(self, player_ids: list[UUID]) -> int:
        """
        Hard-delete players together with their ledger rows and gaming accounts.

        Referrer links pointing at the deleted players are cleared. Everything
        happens in one database transaction.

        Returns:
            Number of players deleted
        """
        ids = list(dict.fromkeys(player_ids))
        if not ids:
            return 0

        existing = (
            await self.db.execute(select(Player.player_id).where(Player.player_id.in_(ids)))
        ).scalars().all()
        if not existing:
            return 0

        owned_transactions = select(Transaction.transaction_id).where(Transaction.player_id.in_(ids))
        try:
            await self.db.execute(
                update(Player)
                .where(Player.referred_by_id.in_(ids))
                .values(referred_by_id=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                update(Transaction)
                .where(Transaction.referred_player_id.in_(ids))
                .values(referred_player_id=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(WithdrawPayment)
                .where(WithdrawPayment.transaction_id.in_(owned_transactions))
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(Transaction)
                .where(Transaction.player_id.in_(ids))
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(GamingAccount)
                .where(GamingAccount.player_id.in_(ids))
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(
                delete(Player)
                .where(Player.player_id.in_(ids))
                .execution_options(synchronize_session="fetch")
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception(f"Bulk delete of {len(ids)} players failed")
            raise

        invalidate_dashboard()
        logger.info(f"Deleted {len(existing)} players with their transactions")
        return len(existing)

    async def list_referrals(self, player_id: UUID) -> list[dict]:
        """Players referred by ``player_id`` with their referral-bonus eligibility."""
        await self.get_player(player_id)
        result = await self.db.execute(
            select(Player).where(Player.referred_by_id == player_id).order_by(Player.join_date)
        )
        referred = result.scalars().all()
        if not referred:
            return []

        deposits = await self.db.execute(
            select(Transaction.player_id, Transaction.amount)
            .where(
                Transaction.player_id.in_([p.player_id for p in referred]),
                Transaction.type == TransactionType.DEPOSIT.value,
            )
            .order_by(Transaction.created_at)
        )
        first_deposit: dict[UUID, Decimal] = {}
        for referred_id, amount in deposits.all():
            first_deposit.setdefault(referred_id, amount)

        return [
            {
                "player_id": p.player_id,
                "name": p.name,
                "total_deposit": p.total_deposit,
                "first_deposit": first_deposit.get(p.player_id),
                "bonus_paid": p.referral_bonus_paid,
                "eligible": p.total_deposit > 0 and not p.referral_bonus_paid,
            }
            for p in referred
        ]
