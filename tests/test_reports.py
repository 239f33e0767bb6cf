"""Tests for the dashboard, game balance history and referral audit."""
import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from backoffice.models.base import PaymentMethod, TransactionStatus, TransactionType
from backoffice.models.transaction import Transaction
from backoffice.services.game_service import GameService
from backoffice.services.report_service import ReportService
from backoffice.services.transaction_service import TransactionService
from backoffice.utils.cache import dashboard_cache
from backoffice.utils.exceptions import GameNotFoundError, TransferValidationError


@pytest.mark.asyncio
async def test_dashboard_reflects_new_ledger_entries(db_session, player_factory, game_factory):
    reports = ReportService(db_session)
    before = await reports.dashboard_stats("all", now=datetime.now(UTC))
    player = await player_factory()
    game = await game_factory(balance=1000.0)
    transactions = TransactionService(db_session)

    await transactions.process_transaction(
        player.player_id,
        game.name,
        200.0,
        TransactionType.DEPOSIT,
        deposit_bonus=10,
        payment_method=PaymentMethod.CASHAPP,
        payment_tag="$la777",
    )
    await transactions.process_transaction(
        player.player_id,
        game.name,
        50.0,
        TransactionType.WITHDRAW,
        payment_method=PaymentMethod.CHIME,
        player_tag="$player",
    )
    rejected = await transactions.process_transaction(player.player_id, game.name, 30.0, TransactionType.WITHDRAW)
    await transactions.reject_withdraw(rejected.transaction_id)

    after = await reports.dashboard_stats("all", now=datetime.now(UTC))

    assert after["total_players"] == before["total_players"] + 1
    assert after["total_games"] == before["total_games"] + 1
    assert after["total_deposits"] == before["total_deposits"] + 200
    assert after["total_withdrawals"] == before["total_withdrawals"] + 50
    assert after["total_bonus"] == before["total_bonus"] + 20
    assert after["net_pnl"] == before["net_pnl"] + 150
    assert after["pnl_24h"] == before["pnl_24h"] + 150
    cashapp_before = before["by_payment_method"][PaymentMethod.CASHAPP.value]
    cashapp_after = after["by_payment_method"][PaymentMethod.CASHAPP.value]
    assert cashapp_after["money_in"] == cashapp_before["money_in"] + 200
    chime_before = before["by_payment_method"][PaymentMethod.CHIME.value]
    chime_after = after["by_payment_method"][PaymentMethod.CHIME.value]
    assert chime_after["money_out"] == chime_before["money_out"] + 50
    assert set(after["by_payment_method"]) == {method.value for method in PaymentMethod}
    assert player.player_id in [p["player_id"] for p in after["new_players"]]
    assert game.game_id not in [g["game_id"] for g in after["low_balance_games"]]


@pytest.mark.asyncio
async def test_dashboard_cache_invalidated_by_writes(db_session, player_factory, game_factory):
    dashboard_cache.clear()
    reports = ReportService(db_session)
    first = await reports.dashboard_stats("today")
    cached = await reports.dashboard_stats("today")
    assert cached == first
    assert cached["generated_at"] == first["generated_at"]

    player = await player_factory()
    game = await game_factory()
    await TransactionService(db_session).process_transaction(
        player.player_id, game.name, 10.0, TransactionType.DEPOSIT
    )

    refreshed = await reports.dashboard_stats("today")
    assert refreshed["generated_at"] > first["generated_at"]
    assert refreshed["total_deposits"] == first["total_deposits"] + 10


@pytest.mark.asyncio
async def test_dashboard_callers_cannot_change_cached_figures(db_session):
    dashboard_cache.clear()
    reports = ReportService(db_session)
    first = await reports.dashboard_stats("all")
    original_total = first["total_deposits"]

    first["total_deposits"] += 999
    first["by_payment_method"][PaymentMethod.CASHAPP.value]["money_in"] += 999
    first["new_players"].append({"name": "edited"})

    second = await reports.dashboard_stats("all")
    assert second["generated_at"] == first["generated_at"]
    assert second["total_deposits"] == original_total
    assert second["by_payment_method"][PaymentMethod.CASHAPP.value]["money_in"] != (
        first["by_payment_method"][PaymentMethod.CASHAPP.value]["money_in"]
    )
    assert {"name": "edited"} not in second["new_players"]


@pytest.mark.asyncio
async def test_dashboard_yesterday_excludes_today(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory()
    reports = ReportService(db_session)
    before = await reports.dashboard_stats("yesterday", now=datetime.now(UTC))

    await TransactionService(db_session).process_transaction(
        player.player_id, game.name, 10.0, TransactionType.DEPOSIT
    )

    after = await reports.dashboard_stats("yesterday", now=datetime.now(UTC))
    assert after["total_deposits"] == before["total_deposits"]


@pytest.mark.asyncio
async def test_dashboard_rejects_unknown_range(db_session):
    with pytest.raises(TransferValidationError):
        await ReportService(db_session).dashboard_stats("weekly", now=datetime.now(UTC))


@pytest.mark.asyncio
async def test_game_report_walks_balance_back(db_session, player_factory, game_factory):
    player = await player_factory()
    game = await game_factory(balance=1000.0)
    transactions = TransactionService(db_session)
    await transactions.process_transaction(
        player.player_id, game.name, 200.0, TransactionType.DEPOSIT, deposit_bonus=10, staff_name="Ann"
    )
    await GameService(db_session).recharge_game(game.game_id, 500.0, staff_name="Boss")
    await transactions.process_transaction(player.player_id, game.name, 80.0, TransactionType.WITHDRAW)

    report = await ReportService(db_session).game_report(game.game_id)

    assert report["game_name"] == game.name
    assert report["current_balance"] == 1360.0
    rows = report["rows"]
    assert [row["type"] for row in rows] == ["Withdraw", "Recharge", "Deposit"]
    assert (rows[0]["balance_before"], rows[0]["balance_after"]) == (1280.0, 1360.0)
    assert (rows[1]["balance_before"], rows[1]["balance_after"]) == (780.0, 1280.0)
    assert (rows[2]["balance_before"], rows[2]["balance_after"]) == (1000.0, 780.0)
    assert rows[1]["player_name"] == "SYSTEM"
    assert rows[2]["player_name"] == player.name
    assert rows[2]["points"] == 220.0

    filtered = await ReportService(db_session).game_report(game.game_id, search="ann")
    assert [row["type"] for row in filtered["rows"]] == ["Deposit"]
    assert filtered["rows"][0]["balance_before"] == 1000.0

    with pytest.raises(GameNotFoundError):
        await ReportService(db_session).game_report(uuid.uuid4())


@pytest.mark.asyncio
async def test_referral_audit_finds_duplicates(db_session, player_factory, game_factory):
    referrer = await player_factory()
    referred = await player_factory(referred_by=referrer.name)
    game = await game_factory()
    created_at = datetime.now(UTC) - timedelta(days=400)
    # Legacy rows written before the one-time guard existed
    for amount in (Decimal("10.00"), Decimal("15.00")):
        db_session.add(
            Transaction(
                player_id=referrer.player_id,
                game_id=game.game_id,
                referred_player_id=referred.player_id,
                type=TransactionType.REFERRAL.value,
                status=TransactionStatus.APPROVED.value,
                amount=amount,
                points=amount,
                staff_name="legacy",
                created_at=created_at,
            )
        )
    await db_session.commit()

    duplicates = await ReportService(db_session).duplicate_referral_bonuses()

    entry = next(d for d in duplicates if d["referred_player_id"] == referred.player_id)
    assert entry["referred_player_name"] == referred.name
    assert entry["total_paid"] == 25.0
    assert len(entry["transaction_ids"]) == 2


@pytest.mark.asyncio
async def test_report_endpoints(test_app, auth_headers, game_factory):
    headers = await auth_headers()
    game = await game_factory(balance=300.0)

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        dashboard = await client.get("/reports/dashboard", params={"date_range": "monthly"}, headers=headers)
        bad_range = await client.get("/reports/dashboard", params={"date_range": "weekly"}, headers=headers)
        audit = await client.get("/reports/referral-audit", headers=headers)
        game_report = await client.get(f"/games/{game.game_id}/report", headers=headers)

    assert dashboard.status_code == 200
    assert dashboard.json()["date_range"] == "monthly"
    assert bad_range.status_code == 422
    assert audit.status_code == 200
    assert "duplicates" in audit.json()
    assert game_report.status_code == 200
    assert game_report.json()["current_balance"] == 300.0
    assert game_report.json()["rows"] == []
