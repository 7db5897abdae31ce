"""Tests for TerminalSession polling loops."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.orm import sessionmaker

from terminal_core.config.schema import PollingConfig
from terminal_core.session import TerminalSession

FAST = PollingConfig(
    signals_interval_s=0.01,
    prices_interval_s=0.01,
    expiry_interval_s=0.01,
    heartbeat_interval_s=0.01,
)


@pytest.fixture
def factory(db_session):
    return sessionmaker(bind=db_session.get_bind(), expire_on_commit=False)


class TestTerminalSession:
    @pytest.mark.asyncio
    async def test_loops_refresh_state(self, db_session, factory, terminal, broker, trader):
        await terminal.allocate(db_session, broker.id, trader.id, 1000, 10)
        terminal.positions.open(db_session, trader.id, "AAPL", "LONG", 1, 100)
        signal = await terminal.signals.broadcast(db_session, broker.id, "TSLA", "LONG", 1)

        viewer = TerminalSession(terminal, factory, trader.id, polling=FAST)
        await viewer.start()
        await asyncio.sleep(0.1)
        await viewer.stop()

        assert [s.id for s in viewer.signals] == [signal.id]
        assert viewer.portfolio is not None
        assert viewer.portfolio.balance == 1000
        assert len(viewer.portfolio.positions) == 1

        db_session.expire_all()
        assert terminal.ledger.get_account(db_session, trader.id).last_seen_at is not None

        bonus_notices = [m for m in terminal.notifier.messages("info") if "bonus" in m]
        assert bonus_notices == ["You've received a 10% bonus on your deposit."]

    @pytest.mark.asyncio
    async def test_failing_ticks_keep_running(self, factory, terminal):
        viewer = TerminalSession(terminal, factory, account_id=999, polling=FAST)
        await viewer.start()
        await asyncio.sleep(0.05)

        assert viewer.running
        assert all(not t.done() for t in viewer._tasks)

        await viewer.stop()
        assert not viewer.running
        assert viewer._tasks == []

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, factory, terminal, trader):
        viewer = TerminalSession(terminal, factory, trader.id, polling=FAST)
        await viewer.start()
        await viewer.start()
        assert len(viewer._tasks) == 4
        await viewer.stop()
