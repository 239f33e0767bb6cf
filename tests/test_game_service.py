"""Tests for game accounts: recharges, renames and deletes."""
import pytest
from sqlalchemy import select

from backoffice.models.base import GameStatus, TransactionType
from backoffice.models.gaming_account import GamingAccount
from backoffice.models.transaction import Transaction
from backoffice.services.game_service import GameService
from backoffice.services.player_service import PlayerService
from backoffice.services.transaction_service import TransactionService
from backoffice.utils.exceptions import DuplicateGameError, GameNotFoundError, TransferValidationError
from tests.conftest import unique_name


@pytest.mark.asyncio
async def test_create_game_rejects_duplicates_case_insensitively(db_session, game_factory):
    game = await game_factory()
    service = GameService(db_session)

    with pytest.raises(DuplicateGameError):
        await service.create_game(game.name.upper())
    with pytest.raises(TransferValidationError):
        await service.create_game(unique_name("Orion"), balance=-1)


@pytest.mark.asyncio
async def test_recharge_records_history(db_session, game_factory):
    game = await game_factory(balance=100.0)
    service = GameService(db_session)

    game = await service.recharge_game(game.game_id, 250.0, staff_name="Ann")

    assert game.balance == 350.0
    assert game.last_recharge_date is not None
    assert len(game.recharges) == 1
    recharge = game.recharges[0]
    assert recharge.amount == 250.0
    assert recharge.balance_before == 100.0
    assert recharge.balance_after == 350.0
    assert recharge.staff_name == "Ann"
    assert recharge.type == "Recharge"

    with pytest.raises(TransferValidationError):
        await service.recharge_game(game.game_id, 0)


@pytest.mark.asyncio
async def test_update_game_with_recharge_amount(db_session, game_factory):
    game = await game_factory(balance=10.0)

    game = await GameService(db_session).update_game(
        game.game_id,
        status=GameStatus.DISABLED,
        panel_username="ops",
        recharge_amount=40.0,
    )

    assert game.status == GameStatus.DISABLED.value
    assert game.panel_username == "ops"
    assert game.balance == 50.0


@pytest.mark.asyncio
async def test_rename_cascades_to_gaming_accounts(db_session, player_factory, game_factory):
    game = await game_factory()
    other = await game_factory()
    player = await player_factory()
    player_service = PlayerService(db_session)
    await player_service.add_gaming_account(player.player_id, game.name.lower(), "gamer-1")
    await player_service.add_gaming_account(player.player_id, other.name, "gamer-2")
    new_name = unique_name("Nova")

    await GameService(db_session).rename_game(game.game_id, new_name)

    result = await db_session.execute(
        select(GamingAccount.game_name).where(GamingAccount.player_id == player.player_id)
    )
    assert sorted(result.scalars().all()) == sorted([new_name, other.name])


@pytest.mark.asyncio
async def test_rename_to_taken_name_changes_nothing(db_session, player_factory, game_factory):
    game = await game_factory()
    other = await game_factory()
    player = await player_factory()
    await PlayerService(db_session).add_gaming_account(player.player_id, game.name, "gamer-1")

    with pytest.raises(DuplicateGameError):
        await GameService(db_session).rename_game(game.game_id, other.name)

    await db_session.refresh(game)
    assert game.name != other.name
    names = (
        await db_session.execute(select(GamingAccount.game_name).where(GamingAccount.player_id == player.player_id))
    ).scalars().all()
    assert names == [game.name]


@pytest.mark.asyncio
async def test_renamed_game_still_named_on_ledger(db_session, player_factory, game_factory):
    game = await game_factory(balance=500.0)
    player = await player_factory()
    deposit = await TransactionService(db_session).process_transaction(
        player.player_id, game.name, 50.0, TransactionType.DEPOSIT
    )
    new_name = unique_name("Nova")

    await GameService(db_session).rename_game(game.game_id, new_name)

    deposit = await TransactionService(db_session).get_transaction(deposit.transaction_id)
    assert deposit.game_id == game.game_id
    assert deposit.game_name == new_name


@pytest.mark.asyncio
async def test_delete_game_removes_accounts_and_keeps_ledger(db_session, player_factory, game_factory):
    game = await game_factory(balance=500.0)
    player = await player_factory()
    await PlayerService(db_session).add_gaming_account(player.player_id, game.name, "gamer-1")
    deposit = await TransactionService(db_session).process_transaction(
        player.player_id, game.name, 50.0, TransactionType.DEPOSIT
    )
    service = GameService(db_session)

    await service.delete_game(game.game_id)

    with pytest.raises(GameNotFoundError):
        await service.get_game(game.game_id)
    accounts = (
        await db_session.execute(select(GamingAccount).where(GamingAccount.player_id == player.player_id))
    ).scalars().all()
    assert accounts == []
    game_id = await db_session.scalar(
        select(Transaction.game_id).where(Transaction.transaction_id == deposit.transaction_id)
    )
    assert game_id is None


@pytest.mark.asyncio
async def test_low_balance_games(db_session, game_factory):
    low = await game_factory(balance=5.0)
    high = await game_factory(balance=5000.0)

    games = await GameService(db_session).low_balance_games(threshold=100.0)

    ids = [g.game_id for g in games]
    assert low.game_id in ids
    assert high.game_id not in ids
