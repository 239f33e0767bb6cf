"""Tests for deposits, withdrawals and the withdraw settlement flow."""
import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from backoffice.models.base import PaymentMethod, TransactionStatus, TransactionType
from backoffice.models.game import Game
from backoffice.models.transaction import Transaction
from backoffice.services.game_service import GameService
from backoffice.services.transaction_service import TransactionService, balance_effects, compute_bonus
from backoffice.utils.exceptions import (
    GameNotFoundError,
    InsufficientGameBalanceError,
    InvalidTransactionStateError,
    PlayerNotFoundError,
    TransferValidationError,
)


async def _ledger_count(db_session, player_id) -> int:
    return await db_session.scalar(
        select(func.count()).select_from(Transaction).where(Transaction.player_id == player_id)
    )


def test_compute_bonus_rounds_to_cents():
    assert compute_bonus(200, 10) == 20.0
    assert compute_bonus(33.33, 15) == 5.0
    assert compute_bonus(100, 0) == 0.0


def test_balance_effects_by_type():
    assert balance_effects(TransactionType.DEPOSIT, 100, 10) == (
        -110,
        {"total_deposit": 100, "total_deposit_bonus": 10, "p_and_l": 100},
    )
    assert balance_effects(TransactionType.WITHDRAW, 50) == (50, {"total_withdraw": 50, "p_and_l": -50})
    assert balance_effects(TransactionType.FREEPLAY, 20) == (-20, {"total_freeplay": 20})
    assert balance_effects(TransactionType.BONUSPLAY, 20) == (-20, {"total_bonusplay": 20})
    assert balance_effects(TransactionType.REFERRAL, 25) == (-25, {"total_referral_bonus": 25})


@pytest.mark.asyncio
async def test_deposit_with_bonus_scenario(db_session, player_factory, game_factory):
    """Cosmic at $1000, deposit $200 with 10% bonus."""
    player = await player_factory()
    game = await game_factory(balance=1000.0)
    service = TransactionService(db_session)

    transaction = await service.process_transaction(
        player.player_id, game.name, 200.0, TransactionType.DEPOSIT, deposit_bonus=10, staff_name="Cashier Ann"
    )

    assert game.balance == 780.0
    assert player.total_deposit == 200.0
    assert player.total_deposit_bonus == 20.0
    assert player.p_and_l == 200.0
    assert transaction.type == TransactionType.DEPOSIT.value
    assert transaction.status == TransactionStatus.APPROVED.value
    assert transaction.amount == 200.0
    assert transaction.deposit_bonus == 10
    assert transaction.bonus_amount == 20.0
    assert transaction.points == 220.0
    assert transaction.game_balance_before == 1000.0
    assert transaction.game_balance_after == 780.0
    assert transaction.staff_name == "Cashier Ann"
    assert transaction.player_name == player.name
    assert transaction.game_name == game.name
    assert await _ledger_count(db_session, player.player_id) == 1


@pytest.mark.asyncio
async def test_deposit_rejected_when_game_cannot_cover(db_session, player_factory, game_factory):
    """Cosmic at $50, deposit $100: nothing changes."""
    player = await player_factory()
    game = await game_factory(balance=50.0)
    service = TransactionService(db_session)

    with pytest.raises(InsufficientGameBalanceError) as exc_info:
        await service.process_transaction(player.player_id, game.name, 100.0, TransactionType.DEPOSIT)

    assert exc_info.value.available == 50.0
    assert exc_info.value.required == 100.0
    assert f'Game "{game.name}" has $50.00' in exc_info.value.message

    await db_session.refresh(game)
    await db_session.refresh(player)
    assert game.balance == 50.0
    assert player.total_deposit == 0.0
    assert player.p_and_l == 0.0
    assert await _ledger_count(db_session, player.player_id) == 0


@pytest.mark.asyncio
async def test_bonus_counts_toward_required_balance(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=105.0)
    service = TransactionService(db_session)

    with pytest.raises(InsufficientGameBalanceError):
        await service.process_transaction(
            player.player_id, game.name, 100.0, TransactionType.DEPOSIT, deposit_bonus=10
        )

    await db_session.refresh(game)
    assert game.balance == 105.0


@pytest.mark.asyncio
async def test_deposit_can_drain_game_to_zero(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=100.0)

    await TransactionService(db_session).process_transaction(
        player.player_id, game.name, 100.0, TransactionType.DEPOSIT
    )

    assert game.balance == 0.0


@pytest.mark.asyncio
async def test_withdraw_credits_game_and_starts_pending(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=0.0)

    transaction = await TransactionService(db_session).process_transaction(
        player.player_id,
        game.name,
        75.0,
        TransactionType.WITHDRAW,
        payment_method=PaymentMethod.CASHAPP,
        player_tag="$player",
    )

    assert game.balance == 75.0
    assert player.total_withdraw == 75.0
    assert player.p_and_l == -75.0
    assert transaction.status == TransactionStatus.PENDING.value
    assert transaction.pending_amount == 75.0
    assert transaction.points == 75.0


@pytest.mark.asyncio
async def test_deposit_then_withdraw_round_trip(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=500.0)
    service = TransactionService(db_session)

    await service.process_transaction(player.player_id, game.name, 100.0, TransactionType.DEPOSIT)
    await service.process_transaction(player.player_id, game.name, 100.0, TransactionType.WITHDRAW)

    assert game.balance == 500.0
    assert player.p_and_l == 0.0


@pytest.mark.asyncio
async def test_transfer_validation(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory()
    service = TransactionService(db_session)

    with pytest.raises(TransferValidationError):
        await service.process_transaction(player.player_id, game.name, 0, TransactionType.DEPOSIT)
    with pytest.raises(TransferValidationError):
        await service.process_transaction(player.player_id, game.name, -5, TransactionType.WITHDRAW)
    with pytest.raises(TransferValidationError):
        await service.process_transaction(
            player.player_id, game.name, 10, TransactionType.DEPOSIT, deposit_bonus=-1
        )
    with pytest.raises(TransferValidationError):
        await service.process_transaction(
            player.player_id, game.name, 10, TransactionType.WITHDRAW, deposit_bonus=5
        )
    with pytest.raises(TransferValidationError):
        await service.process_transaction(player.player_id, game.name, 10, TransactionType.FREEPLAY)
    with pytest.raises(TransferValidationError, match="Payment tag"):
        await service.process_transaction(
            player.player_id, game.name, 10, TransactionType.DEPOSIT, payment_method=PaymentMethod.CHIME
        )
    with pytest.raises(TransferValidationError, match="Player tag"):
        await service.process_transaction(
            player.player_id, game.name, 10, TransactionType.WITHDRAW, payment_method=PaymentMethod.PAYPAL
        )


@pytest.mark.asyncio
async def test_unknown_player_or_game(db_session, player_factory, game_factory):
    import uuid

    player = await player_factory()
    game = await game_factory()
    service = TransactionService(db_session)

    with pytest.raises(PlayerNotFoundError):
        await service.process_transaction(uuid.uuid4(), game.name, 10, TransactionType.DEPOSIT)
    with pytest.raises(GameNotFoundError, match="not found"):
        await service.process_transaction(player.player_id, "No Such Game", 10, TransactionType.DEPOSIT)


@pytest.mark.asyncio
async def test_concurrent_deposits_cannot_overdraw(session_factory, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=150.0)

    async def deposit():
        async with session_factory() as session:
            try:
                await TransactionService(session).process_transaction(
                    player.player_id, game.name, 100.0, TransactionType.DEPOSIT
                )
                return "ok"
            except InsufficientGameBalanceError:
                return "insufficient"

    results = await asyncio.gather(deposit(), deposit())

    assert sorted(results) == ["insufficient", "ok"]
    async with session_factory() as session:
        balance = await session.scalar(select(Game.balance).where(Game.game_id == game.game_id))
    assert balance == 50.0


@pytest.mark.asyncio
async def test_withdraw_payouts_settle_request(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=0.0)
    service = TransactionService(db_session)
    withdraw = await service.process_transaction(player.player_id, game.name, 100.0, TransactionType.WITHDRAW)

    withdraw = await service.record_withdraw_payment(
        withdraw.transaction_id, 60.0, PaymentMethod.CASHAPP, "$house", staff_name="Ann"
    )
    assert withdraw.paid_amount == 60.0
    assert withdraw.pending_amount == 40.0
    assert withdraw.status == TransactionStatus.PENDING.value

    with pytest.raises(TransferValidationError, match="exceeds pending"):
        await service.record_withdraw_payment(withdraw.transaction_id, 50.0, PaymentMethod.CASHAPP, "$house")

    withdraw = await service.record_withdraw_payment(
        withdraw.transaction_id, 40.0, PaymentMethod.CHIME, "$house"
    )
    assert withdraw.pending_amount == 0.0
    assert withdraw.status == TransactionStatus.APPROVED.value
    assert [p.amount for p in withdraw.payments] == [60.0, 40.0]
    # Payouts never touch the game balance
    await db_session.refresh(game)
    assert game.balance == 100.0


@pytest.mark.asyncio
async def test_remaining_withdraw_deposit_settles_oldest_first(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=0.0)
    service = TransactionService(db_session)
    first = await service.process_transaction(player.player_id, game.name, 30.0, TransactionType.WITHDRAW)
    second = await service.process_transaction(player.player_id, game.name, 50.0, TransactionType.WITHDRAW)

    with pytest.raises(TransferValidationError, match="cannot exceed"):
        await service.process_transaction(
            player.player_id,
            game.name,
            90.0,
            TransactionType.DEPOSIT,
            payment_method=PaymentMethod.REMAINING_WITHDRAW,
        )

    deposit = await service.process_transaction(
        player.player_id,
        game.name,
        40.0,
        TransactionType.DEPOSIT,
        payment_method=PaymentMethod.REMAINING_WITHDRAW,
    )

    first = await service.get_transaction(first.transaction_id)
    second = await service.get_transaction(second.transaction_id)
    await db_session.refresh(first)
    await db_session.refresh(second)
    assert first.deposit_amount == 30.0
    assert first.pending_amount == 0.0
    assert first.status == TransactionStatus.APPROVED.value
    assert second.deposit_amount == 10.0
    assert second.pending_amount == 40.0
    assert second.status == TransactionStatus.PENDING.value
    assert deposit.payment_method == PaymentMethod.REMAINING_WITHDRAW.value
    assert "Partial payment" in deposit.notes
    assert game.balance == 40.0


@pytest.mark.asyncio
async def test_remaining_withdraw_requires_pending_requests(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory()

    with pytest.raises(TransferValidationError, match="No pending withdraw"):
        await TransactionService(db_session).process_transaction(
            player.player_id,
            game.name,
            10.0,
            TransactionType.DEPOSIT,
            payment_method=PaymentMethod.REMAINING_WITHDRAW,
        )


@pytest.mark.asyncio
async def test_reject_withdraw_reverses_effects(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=200.0)
    service = TransactionService(db_session)
    withdraw = await service.process_transaction(player.player_id, game.name, 80.0, TransactionType.WITHDRAW)
    assert game.balance == 280.0

    withdraw = await service.reject_withdraw(withdraw.transaction_id, reason="Duplicate request", staff_name="Ann")

    await db_session.refresh(game)
    await db_session.refresh(player)
    assert withdraw.status == TransactionStatus.REJECTED.value
    assert withdraw.pending_amount == 0.0
    assert "Duplicate request" in withdraw.notes
    assert game.balance == 200.0
    assert player.total_withdraw == 0.0
    assert player.p_and_l == 0.0

    with pytest.raises(InvalidTransactionStateError):
        await service.reject_withdraw(withdraw.transaction_id)


@pytest.mark.asyncio
async def test_amend_deposit_applies_only_the_difference(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=1000.0)
    service = TransactionService(db_session)
    deposit = await service.process_transaction(player.player_id, game.name, 100.0, TransactionType.DEPOSIT)

    amended = await service.amend_transaction(deposit.transaction_id, 150.0, TransactionType.DEPOSIT, staff_name="Ann")

    await db_session.refresh(game)
    await db_session.refresh(player)
    assert game.balance == 850.0
    assert player.total_deposit == 150.0
    assert player.p_and_l == 150.0
    assert amended.amount == 150.0
    assert amended.points == 150.0
    assert amended.amended_at is not None
    assert "Amended by Ann" in amended.notes

    await service.delete_transaction(deposit.transaction_id)

    await db_session.refresh(game)
    await db_session.refresh(player)
    assert game.balance == 1000.0
    assert player.total_deposit == 0.0
    assert player.p_and_l == 0.0
    assert await _ledger_count(db_session, player.player_id) == 0


@pytest.mark.asyncio
async def test_amend_deposit_to_withdraw(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=500.0)
    service = TransactionService(db_session)
    deposit = await service.process_transaction(player.player_id, game.name, 100.0, TransactionType.DEPOSIT)

    amended = await service.amend_transaction(deposit.transaction_id, 100.0, TransactionType.WITHDRAW)

    await db_session.refresh(game)
    await db_session.refresh(player)
    assert game.balance == 600.0
    assert player.total_deposit == 0.0
    assert player.total_withdraw == 100.0
    assert player.p_and_l == -100.0
    assert amended.status == TransactionStatus.PENDING.value
    assert amended.pending_amount == 100.0


@pytest.mark.asyncio
async def test_amend_rejected_when_game_cannot_cover_increase(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=120.0)
    service = TransactionService(db_session)
    deposit = await service.process_transaction(player.player_id, game.name, 100.0, TransactionType.DEPOSIT)

    with pytest.raises(InsufficientGameBalanceError):
        await service.amend_transaction(deposit.transaction_id, 200.0, TransactionType.DEPOSIT)

    await db_session.refresh(game)
    await db_session.refresh(player)
    await db_session.refresh(deposit)
    assert game.balance == 20.0
    assert player.total_deposit == 100.0
    assert deposit.amount == 100.0


@pytest.mark.asyncio
async def test_paid_withdraw_cannot_be_changed(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory()
    service = TransactionService(db_session)
    withdraw = await service.process_transaction(player.player_id, game.name, 50.0, TransactionType.WITHDRAW)
    await service.record_withdraw_payment(withdraw.transaction_id, 10.0, PaymentMethod.CHIME, "$house")

    with pytest.raises(InvalidTransactionStateError):
        await service.amend_transaction(withdraw.transaction_id, 60.0, TransactionType.WITHDRAW)
    with pytest.raises(InvalidTransactionStateError):
        await service.delete_transaction(withdraw.transaction_id)


@pytest.mark.asyncio
async def test_list_transactions_filters(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=1000.0)
    service = TransactionService(db_session)
    await service.process_transaction(player.player_id, game.name, 10.0, TransactionType.DEPOSIT)
    await service.process_transaction(player.player_id, game.name, 20.0, TransactionType.DEPOSIT)
    await service.process_transaction(player.player_id, game.name, 5.0, TransactionType.WITHDRAW)

    deposits, total = await service.list_transactions(player_id=player.player_id, trans_type=TransactionType.DEPOSIT)
    assert total == 2
    assert [t.amount for t in deposits] == [20.0, 10.0]

    pending, total = await service.list_transactions(game_id=game.game_id, status=TransactionStatus.PENDING)
    assert total == 1
    assert pending[0].amount == 5.0

    page, total = await service.list_transactions(player_id=player.player_id, limit=1, offset=1)
    assert total == 3
    assert len(page) == 1

    history = await service.get_player_transactions(player.player_id)
    assert len(history) == 3


def test_compute_bonus_works_in_cents():
    assert compute_bonus(0.1, 50) == Decimal("0.05")
    assert compute_bonus("0.10", 5) == Decimal("0.01")  # 0.005 rounds half up
    assert compute_bonus(Decimal("19.99"), Decimal("7.5")) == Decimal("1.50")


@pytest.mark.asyncio
async def test_deposit_exactly_drains_recharged_cent_balance(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=0.7)
    await GameService(db_session).recharge_game(game.game_id, 0.1)
    assert game.balance == Decimal("0.80")

    transaction = await TransactionService(db_session).process_transaction(
        player.player_id, game.name, 0.8, TransactionType.DEPOSIT
    )

    assert game.balance == Decimal("0.00")
    assert transaction.game_balance_before == Decimal("0.80")
    assert transaction.game_balance_after == Decimal("0.00")
    assert player.total_deposit == Decimal("0.80")

    await db_session.refresh(game)
    assert game.balance == Decimal("0.00")


@pytest.mark.asyncio
async def test_repeated_dime_entries_keep_exact_totals(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=1)
    service = TransactionService(db_session)

    for _ in range(3):
        last_deposit = await service.process_transaction(player.player_id, game.name, 0.1, TransactionType.DEPOSIT)
    assert player.total_deposit == Decimal("0.30")
    assert player.p_and_l == Decimal("0.30")
    assert game.balance == Decimal("0.70")
    assert last_deposit.game_balance_before == Decimal("0.80")
    assert last_deposit.game_balance_after == Decimal("0.70")

    for _ in range(3):
        await service.process_credit(player.player_id, game.name, 0.1, TransactionType.FREEPLAY)
    assert player.total_freeplay == Decimal("0.30")
    assert game.balance == Decimal("0.40")

    for _ in range(3):
        last_withdraw = await service.process_transaction(player.player_id, game.name, 0.1, TransactionType.WITHDRAW)
    assert player.total_withdraw == Decimal("0.30")
    assert player.p_and_l == Decimal("0.00")
    assert game.balance == Decimal("0.70")
    assert last_withdraw.pending_amount == Decimal("0.10")
    assert last_withdraw.game_balance_before == Decimal("0.60")

    # The stored values match what was reported
    await db_session.refresh(player)
    await db_session.refresh(game)
    assert player.total_deposit == Decimal("0.30")
    assert player.total_freeplay == Decimal("0.30")
    assert player.total_withdraw == Decimal("0.30")
    assert player.p_and_l == Decimal("0.00")
    assert game.balance == Decimal("0.70")

    # A game holding exactly the amount can still cover it
    await service.process_transaction(player.player_id, game.name, 0.7, TransactionType.DEPOSIT)
    assert game.balance == Decimal("0.00")


@pytest.mark.asyncio
async def test_cent_deposit_then_withdraw_round_trip(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance="100.03")
    service = TransactionService(db_session)

    await service.process_transaction(player.player_id, game.name, "33.33", TransactionType.DEPOSIT)
    await service.process_transaction(player.player_id, game.name, "33.33", TransactionType.WITHDRAW)

    assert game.balance == Decimal("100.03")
    assert player.p_and_l == Decimal("0.00")
    await db_session.refresh(game)
    assert game.balance == Decimal("100.03")


@pytest.mark.asyncio
async def test_cent_amend_and_delete_restore_balances(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance="10.00")
    service = TransactionService(db_session)

    deposit = await service.process_transaction(
        player.player_id, game.name, "1.10", TransactionType.DEPOSIT, deposit_bonus="10"
    )
    assert deposit.bonus_amount == Decimal("0.11")
    assert game.balance == Decimal("8.79")

    await service.amend_transaction(deposit.transaction_id, "2.20", TransactionType.DEPOSIT)
    assert game.balance == Decimal("7.58")
    assert player.total_deposit_bonus == Decimal("0.22")

    await service.delete_transaction(deposit.transaction_id)
    await db_session.refresh(game)
    await db_session.refresh(player)
    assert game.balance == Decimal("10.00")
    assert player.total_deposit == Decimal("0.00")
    assert player.total_deposit_bonus == Decimal("0.00")
