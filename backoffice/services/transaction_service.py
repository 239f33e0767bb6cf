"""Balance-transfer service: every ledger write that moves money between a game and a player."""
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select, update
from sqlalchemy.orm.attributes import set_committed_value
from uuid import UUID
import logging
import uuid

from backoffice.models.base import PaymentMethod, TransactionStatus, TransactionType
from backoffice.models.game import Game
from backoffice.models.player import Player
from backoffice.models.transaction import Transaction, WithdrawPayment
from backoffice.utils.cache import invalidate_dashboard
from backoffice.utils.exceptions import (
    BackofficeError,
    GameNotFoundError,
    InsufficientGameBalanceError,
    InvalidTransactionStateError,
    NegativeBalanceRejectedError,
    PlayerNotFoundError,
    ReferralAlreadyPaidError,
    ReferralNotEligibleError,
    TransactionNotFoundError,
    TransferValidationError,
)
from backoffice.utils.money import CENT, ZERO, add_money, to_money

logger = logging.getLogger(__name__)

TRANSFER_TYPES = (TransactionType.DEPOSIT, TransactionType.WITHDRAW)
CREDIT_TYPES = (TransactionType.FREEPLAY, TransactionType.BONUSPLAY)

PAYOUT = "payout"
SETTLEMENT = "deposit"
SETTLEMENT_METHOD = "Deposit (Staff)"


def compute_bonus(amount: Decimal | int | str, bonus_percent: Decimal | int | str) -> Decimal:
    """Deposit bonus in dollars, rounded half-up to cents."""
    bonus = to_money(amount) * Decimal(str(bonus_percent)) / 100
    return bonus.quantize(CENT, rounding=ROUND_HALF_UP)


def balance_effects(
    trans_type: TransactionType | str, amount: Decimal | int | str, bonus_amount: Decimal | int | str = ZERO
) -> tuple[Decimal, dict[str, Decimal]]:
    """Return the game-balance delta and player stat deltas of one ledger entry.

    Deposits, credits and referral bonuses drain the game; withdrawals refill
    it. Only deposits and withdrawals move ``p_and_l``.
    """
    trans_type = TransactionType(trans_type)
    amount, bonus_amount = to_money(amount), to_money(bonus_amount)
    if trans_type == TransactionType.DEPOSIT:
        return -(amount + bonus_amount), {
            "total_deposit": amount,
            "total_deposit_bonus": bonus_amount,
            "p_and_l": amount,
        }
    if trans_type == TransactionType.WITHDRAW:
        return amount, {"total_withdraw": amount, "p_and_l": -amount}
    if trans_type == TransactionType.FREEPLAY:
        return -amount, {"total_freeplay": amount}
    if trans_type == TransactionType.BONUSPLAY:
        return -amount, {"total_bonusplay": amount}
    return -amount, {"total_referral_bonus": amount}


def _validate_amount(amount, label: str = "Amount") -> Decimal:
    """Return ``amount`` in cents, or raise if it is missing, not a number or not positive."""
    try:
        value = to_money(amount) if amount is not None else None
    except ValueError as e:
        raise TransferValidationError(f"{label} must be greater than 0") from e
    if value is None or value <= 0:
        raise TransferValidationError(f"{label} must be greater than 0")
    return value


def _validate_non_negative(value, label: str) -> Decimal:
    try:
        converted = to_money(value) if value is not None else None
    except ValueError as e:
        raise TransferValidationError(f"{label} cannot be negative") from e
    if converted is None or converted < 0:
        raise TransferValidationError(f"{label} cannot be negative")
    return converted


class TransactionService:
    """Service for recording ledger entries and keeping balances consistent.

    Each public write runs in one database transaction: the game balance is
    changed with a conditional UPDATE (so the sufficiency check and the
    decrement cannot race), player stats are incremented in SQL, and the
    ledger row is appended. Any failure rolls all of it back.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Unit of work and shared balance helpers
    # ------------------------------------------------------------------
    @asynccontextmanager
    async def _atomic(self, operation: str):
        try:
            yield
            await self.db.commit()
        except BackofficeError as e:
            await self.db.rollback()
            logger.warning(f"{operation} rejected: {e}")
            raise
        except Exception:
            await self.db.rollback()
            logger.exception(f"{operation} failed")
            raise

    async def _get_player_for_update(self, player_id: UUID, message: str = "Player not found") -> Player:
        result = await self.db.execute(
            select(Player)
            .where(Player.player_id == player_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        player = result.scalar_one_or_none()
        if not player:
            raise PlayerNotFoundError(message)
        return player

    async def _resolve_game(self, game_name: str) -> Game:
        """Resolve a game by exact name; zero or several matches is an error."""
        result = await self.db.execute(
            select(Game).where(Game.name == game_name).execution_options(populate_existing=True)
        )
        games = result.scalars().all()
        if not games:
            raise GameNotFoundError(game_name)
        if len(games) > 1:
            raise GameNotFoundError(game_name, message=f'Game "{game_name}" matches {len(games)} records')
        return games[0]

    async def _get_transaction_for_update(self, transaction_id: UUID) -> Transaction:
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.transaction_id == transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        transaction = result.scalar_one_or_none()
        if not transaction:
            raise TransactionNotFoundError()
        return transaction

    async def _adjust_game_balance(self, game: Game, delta: Decimal) -> tuple[Decimal, Decimal]:
        """Apply ``delta`` to the game balance and return (before, after).

        A debit only matches the row while ``balance >= -delta``; when nothing
        matches the game could not cover it and InsufficientGameBalanceError
        is raised.
        """
        stmt = update(Game).where(Game.game_id == game.game_id)
        if delta < 0:
            stmt = stmt.where(Game.balance >= -delta)
        stmt = (
            stmt.values(balance=add_money(Game.balance, delta))
            .returning(Game.balance)
            .execution_options(synchronize_session=False)
        )
        new_balance = (await self.db.execute(stmt)).scalar_one_or_none()

        if new_balance is None:
            available = await self.db.scalar(select(Game.balance).where(Game.game_id == game.game_id))
            if available is None:
                raise GameNotFoundError(game.name)
            raise InsufficientGameBalanceError(game.name, available, -delta)

        if new_balance < 0:
            raise NegativeBalanceRejectedError(game.name, new_balance)

        set_committed_value(game, "balance", new_balance)
        return new_balance - delta, new_balance

    async def _adjust_player_stats(
        self, player: Player, deltas: dict[str, Decimal], touch_activity: bool = True
    ) -> None:
        """Increment player stat columns in SQL and mirror the result on ``player``."""
        values = {field: add_money(getattr(Player, field), delta) for field, delta in deltas.items() if delta}
        if touch_activity:
            values["last_activity"] = datetime.now(UTC)
        if not values:
            return

        fields = list(values)
        result = await self.db.execute(
            update(Player)
            .where(Player.player_id == player.player_id)
            .values(**values)
            .returning(*(getattr(Player, field) for field in fields))
            .execution_options(synchronize_session=False)
        )
        row = result.one()
        for field, value in zip(fields, row):
            set_committed_value(player, field, value)

    async def _apply_effects(
        self,
        player: Player,
        game: Game | None,
        trans_type: TransactionType | str,
        amount: Decimal,
        bonus_amount: Decimal = ZERO,
        sign: int = 1,
        touch_activity: bool = True,
    ) -> tuple[Decimal | None, Decimal | None]:
        """Apply (sign=1) or reverse (sign=-1) one entry's effects on game and player."""
        game_delta, stat_deltas = balance_effects(trans_type, amount, bonus_amount)
        balances = (None, None)
        if game is not None and game_delta:
            balances = await self._adjust_game_balance(game, sign * game_delta)
        await self._adjust_player_stats(
            player, {field: sign * delta for field, delta in stat_deltas.items()}, touch_activity
        )
        return balances

    @staticmethod
    def _refresh_pending(withdraw: Transaction) -> None:
        withdraw.pending_amount = max(ZERO, withdraw.amount - withdraw.paid_amount - withdraw.deposit_amount)
        if withdraw.pending_amount == 0:
            withdraw.status = TransactionStatus.APPROVED.value

    @staticmethod
    def _ensure_reversible(transaction: Transaction) -> None:
        if transaction.payment_method == PaymentMethod.REMAINING_WITHDRAW.value:
            raise InvalidTransactionStateError("Deposits that settled withdraw requests cannot be changed")
        if transaction.type == TransactionType.WITHDRAW.value and (
            transaction.paid_amount > 0 or transaction.deposit_amount > 0
        ):
            raise InvalidTransactionStateError("Withdraw has recorded payments and cannot be changed")

    # ------------------------------------------------------------------
    # Deposit / Withdraw
    # ------------------------------------------------------------------
    async def process_transaction(
        self,
        player_id: UUID,
        game_name: str,
        amount: Decimal | int | str,
        direction: TransactionType | str,
        *,
        deposit_bonus: Decimal | int | str = ZERO,
        tip: Decimal | int | str = ZERO,
        payment_method: PaymentMethod | str | None = None,
        payment_tag: str | None = None,
        player_tag: str | None = None,
        notes: str | None = None,
        staff_name: str = "SYSTEM",
    ) -> Transaction:
        """
        Record a deposit or withdrawal and move the money atomically.

        Deposit: the game pays ``amount`` plus ``deposit_bonus`` percent and
        must hold at least that much. Withdraw: the game is credited
        ``amount`` with no balance precondition; the entry stays Pending
        until it is paid out.

        Raises:
            TransferValidationError: Bad amount, bonus, tip or payment details
            PlayerNotFoundError / GameNotFoundError: Lookup failed
            InsufficientGameBalanceError: Game cannot cover the deposit
            NegativeBalanceRejectedError: Resulting balance would be negative
        """
        direction = TransactionType(direction)
        if direction not in TRANSFER_TYPES:
            raise TransferValidationError("Direction must be Deposit or Withdraw")
        amount = _validate_amount(amount)
        deposit_bonus = _validate_non_negative(deposit_bonus, "Deposit bonus")
        if deposit_bonus and direction == TransactionType.WITHDRAW:
            raise TransferValidationError("Deposit bonus only applies to deposits")
        tip = _validate_non_negative(tip, "Tip")

        method = PaymentMethod(payment_method) if payment_method else None
        if method == PaymentMethod.REMAINING_WITHDRAW and direction == TransactionType.WITHDRAW:
            raise TransferValidationError("Remaining Withdraw can only be used for deposits")
        if method is not None and method != PaymentMethod.REMAINING_WITHDRAW:
            if direction == TransactionType.DEPOSIT and not payment_tag:
                raise TransferValidationError("Payment tag is required for deposits")
            if direction == TransactionType.WITHDRAW and not player_tag:
                raise TransferValidationError("Player tag is required for withdrawals")

        bonus_amount = compute_bonus(amount, deposit_bonus) if direction == TransactionType.DEPOSIT else ZERO
        total = amount + bonus_amount
        is_withdraw = direction == TransactionType.WITHDRAW

        async with self._atomic(f"{direction.value} of ${amount:.2f} for player {player_id}"):
            player = await self._get_player_for_update(player_id)
            game = await self._resolve_game(game_name)

            settlement_note = None
            if method == PaymentMethod.REMAINING_WITHDRAW:
                settlement_note = await self._settle_pending_withdraws(player, game, amount, staff_name)

            before, after = await self._apply_effects(player, game, direction, amount, bonus_amount)

            transaction = Transaction(
                transaction_id=uuid.uuid4(),
                player=player,
                game=game,
                referred_player=None,
                payments=[],
                type=direction.value,
                status=(TransactionStatus.PENDING if is_withdraw else TransactionStatus.APPROVED).value,
                amount=amount,
                tip=tip,
                deposit_bonus=deposit_bonus,
                bonus_amount=bonus_amount,
                points=total,
                payment_method=method.value if method else None,
                payment_tag=payment_tag,
                player_tag=player_tag,
                staff_name=staff_name,
                game_balance_before=before,
                game_balance_after=after,
                notes="\n".join(n for n in (notes, settlement_note) if n) or None,
                paid_amount=ZERO,
                deposit_amount=amount if settlement_note else ZERO,
                pending_amount=amount if is_withdraw else ZERO,
            )
            self.db.add(transaction)

        invalidate_dashboard()
        logger.info(
            f"{direction.value} recorded: player={player.player_id}, game={game.name}, amount={amount}, "
            f"bonus={bonus_amount}, game_balance {before} -> {after}, staff={staff_name}"
        )
        return transaction

    async def _settle_pending_withdraws(
        self, player: Player, game: Game, amount: Decimal, staff_name: str
    ) -> str:
        """Allocate a Remaining-Withdraw deposit oldest-first across pending withdraws."""
        result = await self.db.execute(
            select(Transaction)
            .where(
                Transaction.player_id == player.player_id,
                Transaction.type == TransactionType.WITHDRAW.value,
                Transaction.status == TransactionStatus.PENDING.value,
                Transaction.pending_amount > 0,
            )
            .order_by(Transaction.created_at)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        pending = result.scalars().all()
        total_pending = sum((w.pending_amount for w in pending), ZERO)

        if total_pending <= 0:
            raise TransferValidationError("No pending withdraw requests found for this player")
        if amount > total_pending:
            raise TransferValidationError(
                f"Amount cannot exceed total pending withdraw amount (${total_pending:.2f})"
            )

        remaining = amount
        settled = 0
        for withdraw in pending:
            if remaining <= 0:
                break
            share = min(remaining, withdraw.pending_amount)
            withdraw.deposit_amount = withdraw.deposit_amount + share
            self._refresh_pending(withdraw)
            withdraw.payments.append(
                WithdrawPayment(
                    kind=SETTLEMENT,
                    amount=share,
                    method=SETTLEMENT_METHOD,
                    tag=f"Gaming Account: {game.name}",
                    staff_name=staff_name,
                )
            )
            remaining -= share
            settled += 1

        return (
            f"Partial payment of ${amount:.2f} processed from {settled} pending withdraw request(s) "
            f"(Total pending: ${total_pending:.2f})"
        )

    # ------------------------------------------------------------------
    # Freeplay / Bonusplay
    # ------------------------------------------------------------------
    async def process_credit(
        self,
        player_id: UUID,
        game_name: str,
        amount: Decimal | int | str,
        credit_type: TransactionType | str,
        *,
        notes: str | None = None,
        staff_name: str = "SYSTEM",
    ) -> Transaction:
        """Grant freeplay or bonusplay funded from the game; ``p_and_l`` is untouched."""
        credit_type = TransactionType(credit_type)
        if credit_type not in CREDIT_TYPES:
            raise TransferValidationError("Credit type must be Freeplay or Bonusplay")
        amount = _validate_amount(amount)

        async with self._atomic(f"{credit_type.value} of ${amount:.2f} for player {player_id}"):
            player = await self._get_player_for_update(player_id)
            game = await self._resolve_game(game_name)
            before, after = await self._apply_effects(player, game, credit_type, amount)

            transaction = Transaction(
                transaction_id=uuid.uuid4(),
                player=player,
                game=game,
                referred_player=None,
                payments=[],
                type=credit_type.value,
                status=TransactionStatus.APPROVED.value,
                amount=amount,
                points=amount,
                staff_name=staff_name,
                game_balance_before=before,
                game_balance_after=after,
                notes=notes,
            )
            self.db.add(transaction)

        invalidate_dashboard()
        logger.info(
            f"{credit_type.value} recorded: player={player.player_id}, game={game.name}, amount={amount}, "
            f"game_balance {before} -> {after}"
        )
        return transaction

    # ------------------------------------------------------------------
    # Referral bonus
    # ------------------------------------------------------------------
    async def process_referral(
        self,
        referrer_id: UUID,
        referred_id: UUID,
        game_name: str,
        amount: Decimal | int | str,
        *,
        notes: str | None = None,
        staff_name: str = "SYSTEM",
    ) -> Transaction:
        """
        Pay the referrer a one-time bonus for a referred player who has deposited.

        The referred player's ``referral_bonus_paid`` flag is claimed with a
        conditional UPDATE inside the same database transaction, so two
        concurrent payouts cannot both succeed.

        Raises:
            ReferralNotEligibleError: Not referred by this referrer, or no deposit yet
            ReferralAlreadyPaidError: Bonus for this referred player already paid
            InsufficientGameBalanceError: Game cannot cover the bonus
        """
        amount = _validate_amount(amount)

        async with self._atomic(f"Referral bonus of ${amount:.2f} for referrer {referrer_id}"):
            referrer = await self._get_player_for_update(referrer_id, "Referrer not found")
            referred = await self._get_player_for_update(referred_id, "Referred player not found")

            if referrer.player_id == referred.player_id:
                raise ReferralNotEligibleError("A player cannot be paid for referring themselves")
            if referred.referred_by_id != referrer.player_id:
                raise ReferralNotEligibleError(f"{referred.name} was not referred by {referrer.name}")
            if (referred.total_deposit or 0) <= 0:
                raise ReferralNotEligibleError(f"{referred.name} has not made a deposit yet")

            claimed = await self.db.execute(
                update(Player)
                .where(Player.player_id == referred.player_id, Player.referral_bonus_paid.is_(False))
                .values(referral_bonus_paid=True)
                .returning(Player.player_id)
                .execution_options(synchronize_session=False)
            )
            if claimed.scalar_one_or_none() is None:
                raise ReferralAlreadyPaidError(f"Referral bonus for {referred.name} has already been paid")
            set_committed_value(referred, "referral_bonus_paid", True)

            game = await self._resolve_game(game_name)
            before, after = await self._apply_effects(referrer, game, TransactionType.REFERRAL, amount)

            transaction = Transaction(
                transaction_id=uuid.uuid4(),
                player=referrer,
                game=game,
                referred_player=referred,
                payments=[],
                type=TransactionType.REFERRAL.value,
                status=TransactionStatus.APPROVED.value,
                amount=amount,
                points=amount,
                staff_name=staff_name,
                game_balance_before=before,
                game_balance_after=after,
                notes=notes,
            )
            self.db.add(transaction)

        invalidate_dashboard()
        logger.info(
            f"Referral bonus recorded: referrer={referrer.player_id}, referred={referred.player_id}, "
            f"game={game.name}, amount={amount}, game_balance {before} -> {after}"
        )
        return transaction

    # ------------------------------------------------------------------
    # Withdraw settlement
    # ------------------------------------------------------------------
    async def record_withdraw_payment(
        self,
        transaction_id: UUID,
        amount: Decimal | int | str,
        payment_method: PaymentMethod | str,
        payment_tag: str | None = None,
        *,
        staff_name: str = "SYSTEM",
    ) -> Transaction:
        """Record money paid out to the player against a pending withdrawal."""
        amount = _validate_amount(amount, "Payment amount")
        method = PaymentMethod(payment_method)
        if method == PaymentMethod.REMAINING_WITHDRAW:
            raise TransferValidationError("Use a Remaining Withdraw deposit to settle through a game account")

        async with self._atomic(f"Payout of ${amount:.2f} on withdraw {transaction_id}"):
            withdraw = await self._get_transaction_for_update(transaction_id)
            if withdraw.type != TransactionType.WITHDRAW.value or withdraw.status != TransactionStatus.PENDING.value:
                raise InvalidTransactionStateError("Payments can only be recorded against pending withdrawals")
            if amount > withdraw.pending_amount:
                raise TransferValidationError(
                    f"Payment exceeds pending amount (${withdraw.pending_amount:.2f})"
                )

            withdraw.paid_amount = withdraw.paid_amount + amount
            self._refresh_pending(withdraw)
            withdraw.payments.append(
                WithdrawPayment(
                    kind=PAYOUT,
                    amount=amount,
                    method=method.value,
                    tag=payment_tag,
                    staff_name=staff_name,
                )
            )

        invalidate_dashboard()
        logger.info(
            f"Withdraw payout recorded: transaction={transaction_id}, amount={amount}, "
            f"pending={withdraw.pending_amount}, status={withdraw.status}"
        )
        return withdraw

    async def reject_withdraw(
        self, transaction_id: UUID, *, reason: str | None = None, staff_name: str = "SYSTEM"
    ) -> Transaction:
        """Reverse an unpaid pending withdrawal and mark it Rejected."""
        async with self._atomic(f"Rejecting withdraw {transaction_id}"):
            withdraw = await self._get_transaction_for_update(transaction_id)
            if withdraw.type != TransactionType.WITHDRAW.value or withdraw.status != TransactionStatus.PENDING.value:
                raise InvalidTransactionStateError("Only pending withdrawals can be rejected")
            self._ensure_reversible(withdraw)

            player = await self._get_player_for_update(withdraw.player_id)
            await self._apply_effects(
                player, withdraw.game, TransactionType.WITHDRAW, withdraw.amount, sign=-1, touch_activity=False
            )
            withdraw.status = TransactionStatus.REJECTED.value
            withdraw.pending_amount = ZERO
            note = f"Rejected by {staff_name}" + (f": {reason}" if reason else "")
            withdraw.notes = f"{withdraw.notes}\n{note}" if withdraw.notes else note

        invalidate_dashboard()
        logger.info(f"Withdraw rejected: transaction={transaction_id}, amount={withdraw.amount}, staff={staff_name}")
        return withdraw

    # ------------------------------------------------------------------
    # Amend / delete through the same balance path
    # ------------------------------------------------------------------
    async def amend_transaction(
        self,
        transaction_id: UUID,
        amount: Decimal | int | str,
        trans_type: TransactionType | str,
        payment_method: PaymentMethod | str | None = None,
        *,
        staff_name: str = "SYSTEM",
    ) -> Transaction:
        """
        Change a deposit or withdrawal and re-derive game balance and player stats.

        Only the net difference between the old and new effects is applied,
        so a debit that the game cannot cover fails with
        InsufficientGameBalanceError and nothing changes.
        """
        new_type = TransactionType(trans_type)
        if new_type not in TRANSFER_TYPES:
            raise TransferValidationError("Transactions can only be amended to Deposit or Withdraw")
        amount = _validate_amount(amount)
        method = PaymentMethod(payment_method) if payment_method else None
        if method == PaymentMethod.REMAINING_WITHDRAW:
            raise TransferValidationError("Remaining Withdraw cannot be applied by amending a transaction")

        async with self._atomic(f"Amending transaction {transaction_id}"):
            transaction = await self._get_transaction_for_update(transaction_id)
            if transaction.type not in (t.value for t in TRANSFER_TYPES):
                raise InvalidTransactionStateError("Only deposits and withdrawals can be amended")
            if transaction.status == TransactionStatus.REJECTED.value:
                raise InvalidTransactionStateError("Rejected transactions cannot be amended")
            self._ensure_reversible(transaction)

            player = await self._get_player_for_update(transaction.player_id)
            game = transaction.game
            old_type, old_amount = transaction.type, transaction.amount

            old_game_delta, old_stats = balance_effects(old_type, old_amount, transaction.bonus_amount)
            new_bonus = compute_bonus(amount, transaction.deposit_bonus) if new_type == TransactionType.DEPOSIT else ZERO
            new_game_delta, new_stats = balance_effects(new_type, amount, new_bonus)

            net_game_delta = new_game_delta - old_game_delta
            if game is not None and net_game_delta:
                await self._adjust_game_balance(game, net_game_delta)

            net_stats = {field: -delta for field, delta in old_stats.items()}
            for field, delta in new_stats.items():
                net_stats[field] = net_stats.get(field, ZERO) + delta
            await self._adjust_player_stats(player, net_stats, touch_activity=False)

            is_withdraw = new_type == TransactionType.WITHDRAW
            transaction.type = new_type.value
            transaction.amount = amount
            transaction.bonus_amount = new_bonus
            transaction.deposit_bonus = ZERO if is_withdraw else transaction.deposit_bonus
            transaction.points = amount + new_bonus
            if method is not None:
                transaction.payment_method = method.value
            transaction.status = (TransactionStatus.PENDING if is_withdraw else TransactionStatus.APPROVED).value
            transaction.pending_amount = amount if is_withdraw else ZERO
            transaction.amended_at = datetime.now(UTC)
            note = f"Amended by {staff_name}: {old_type} ${old_amount:.2f} -> {new_type.value} ${amount:.2f}"
            transaction.notes = f"{transaction.notes}\n{note}" if transaction.notes else note

        invalidate_dashboard()
        logger.info(f"Transaction amended: {transaction_id}, {old_type} {old_amount} -> {new_type.value} {amount}")
        return transaction

    async def delete_transaction(self, transaction_id: UUID, *, staff_name: str = "SYSTEM") -> None:
        """Reverse a ledger entry's effects and remove it."""
        async with self._atomic(f"Deleting transaction {transaction_id}"):
            transaction = await self._get_transaction_for_update(transaction_id)
            self._ensure_reversible(transaction)

            if transaction.status != TransactionStatus.REJECTED.value:
                player = await self._get_player_for_update(transaction.player_id)
                await self._apply_effects(
                    player,
                    transaction.game,
                    transaction.type,
                    transaction.amount,
                    transaction.bonus_amount,
                    sign=-1,
                    touch_activity=False,
                )

            if transaction.type == TransactionType.REFERRAL.value and transaction.referred_player_id:
                await self.db.execute(
                    update(Player)
                    .where(Player.player_id == transaction.referred_player_id)
                    .values(referral_bonus_paid=False)
                    .execution_options(synchronize_session=False)
                )

            player_id = transaction.player_id
            await self.db.delete(transaction)

        invalidate_dashboard()
        logger.info(f"Transaction deleted: {transaction_id} (player {player_id}) by {staff_name}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def get_transaction(self, transaction_id: UUID) -> Transaction:
        result = await self.db.execute(
            select(Transaction).where(Transaction.transaction_id == transaction_id)
        )
        transaction = result.scalar_one_or_none()
        if not transaction:
            raise TransactionNotFoundError()
        return transaction

    async def list_transactions(
        self,
        *,
        trans_type: TransactionType | str | None = None,
        status: TransactionStatus | str | None = None,
        player_id: UUID | None = None,
        game_id: UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Transaction], int]:
        """Return a page of ledger entries (newest first) and the total match count."""
        filters = []
        if trans_type:
            filters.append(Transaction.type == TransactionType(trans_type).value)
        if status:
            filters.append(Transaction.status == TransactionStatus(status).value)
        if player_id:
            filters.append(Transaction.player_id == player_id)
        if game_id:
            filters.append(Transaction.game_id == game_id)
        if start:
            filters.append(Transaction.created_at >= start)
        if end:
            filters.append(Transaction.created_at < end)

        total = await self.db.scalar(select(func.count()).select_from(Transaction).where(*filters))
        result = await self.db.execute(
            select(Transaction)
            .where(*filters)
            .order_by(Transaction.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def get_player_transactions(self, player_id: UUID, limit: int = 100) -> list[Transaction]:
        """Get a player's ledger entries, newest first."""
        transactions, _ = await self.list_transactions(player_id=player_id, limit=limit)
        return transactions
