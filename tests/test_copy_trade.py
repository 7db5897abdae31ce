"""Tests for following broker signals."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from terminal_core.errors import BalanceTooLow, InsufficientFunds, NotFound, OracleUnavailable


async def _signal(db_session, terminal, broker, symbol="TSLA", qty=2, side="LONG"):
    return await terminal.signals.broadcast(db_session, broker.id, symbol, side, qty)


@pytest.fixture
def fund(db_session, terminal, broker):
    async def _fund(account_id, amount):
        await terminal.allocate(db_session, broker.id, account_id, amount)
    return _fund


class TestFollow:
    @pytest.mark.asyncio
    async def test_affordable_copies_quantity(self, db_session, terminal, broker, trader, fund):
        await fund(trader.id, 1000)
        signal = await _signal(db_session, terminal, broker, qty=2)

        result = await terminal.follow(db_session, trader.id, signal.id)

        assert result.resized is False
        assert result.position.quantity == 2
        assert result.position.is_copied is True
        assert result.position.signal_id == signal.id
        assert result.position.side == "LONG"
        assert terminal.ledger.balance(db_session, trader.id) == 600
        assert "Copied TSLA trade!" in terminal.notifier.messages("success")

    @pytest.mark.asyncio
    async def test_resized_to_ninety_percent(self, db_session, terminal, broker, trader, fund):
        await fund(trader.id, 1000)
        signal = await _signal(db_session, terminal, broker, qty=10)

        result = await terminal.follow(db_session, trader.id, signal.id)

        # floor(1000 * 0.9 / 200) = 4
        assert result.resized is True
        assert result.position.quantity == 4
        assert terminal.ledger.balance(db_session, trader.id) == 200
        assert "Adjusted quantity to 4 due to balance limits." in terminal.notifier.messages("info")

    @pytest.mark.asyncio
    async def test_uses_current_price_not_reference(
        self, db_session, terminal, broker, trader, fund, oracle,
    ):
        await fund(trader.id, 1000)
        signal = await _signal(db_session, terminal, broker, qty=1)
        oracle.set("TSLA", 210)

        result = await terminal.follow(db_session, trader.id, signal.id)

        assert signal.reference_price == 200
        assert result.position.entry_price == 210
        assert result.price == 210

    @pytest.mark.asyncio
    async def test_zero_balance(self, db_session, terminal, broker, trader):
        signal = await _signal(db_session, terminal, broker)
        with pytest.raises(InsufficientFunds):
            await terminal.follow(db_session, trader.id, signal.id)
        assert terminal.positions.open_positions(db_session, trader.id) == []
        assert terminal.notifier.messages("error")

    @pytest.mark.asyncio
    async def test_balance_too_low_after_resize(self, db_session, terminal, broker, trader, fund):
        await fund(trader.id, 100)
        signal = await _signal(db_session, terminal, broker, qty=5)
        with pytest.raises(BalanceTooLow):
            await terminal.follow(db_session, trader.id, signal.id)
        assert terminal.ledger.balance(db_session, trader.id) == 100

    @pytest.mark.asyncio
    async def test_oracle_down_leaves_balance(
        self, db_session, terminal, broker, trader, fund, oracle,
    ):
        await fund(trader.id, 1000)
        signal = await _signal(db_session, terminal, broker)
        del oracle.prices["TSLA"]

        with pytest.raises(OracleUnavailable):
            await terminal.follow(db_session, trader.id, signal.id)
        assert terminal.ledger.balance(db_session, trader.id) == 1000

    @pytest.mark.asyncio
    async def test_unknown_signal(self, db_session, terminal, trader, fund):
        await fund(trader.id, 1000)
        with pytest.raises(NotFound):
            await terminal.follow(db_session, trader.id, 404)

    @pytest.mark.asyncio
    async def test_expired_signal_can_still_be_followed(
        self, db_session, terminal, broker, trader, fund,
    ):
        await fund(trader.id, 1000)
        signal = await terminal.signals.broadcast(
            db_session, broker.id, "TSLA", "SHORT", 1, expires_in_minutes="0.001",
        )
        await asyncio.sleep(0.1)
        result = await terminal.follow(db_session, trader.id, signal.id)
        assert result.position.side == "SHORT"


class TestConcurrentFollows:
    @pytest.mark.asyncio
    async def test_same_account_serialised(self, db_session, terminal, broker, trader, fund, oracle):
        await fund(trader.id, 1000)
        oracle.set("AAPL", 100)
        signal = await _signal(db_session, terminal, broker, symbol="AAPL", qty=6)

        results = await asyncio.gather(
            terminal.follow(db_session, trader.id, signal.id),
            terminal.follow(db_session, trader.id, signal.id),
        )

        # 6 @ 100 leaves 400; the second is resized to floor(400 * 0.9 / 100) = 3
        assert sorted(r.position.quantity for r in results) == [Decimal("3"), Decimal("6")]
        assert [r.resized for r in results].count(True) == 1
        assert terminal.ledger.balance(db_session, trader.id) == 100
        assert not terminal.locks.is_held(trader.id)
