"""Shared test fixtures."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import BigInteger, Integer, JSON, create_engine, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Session

from terminal_core.config.schema import AppConfig
from terminal_core.db.base import Base
from terminal_core.notify import Notifier
from terminal_core.oracle.base import PriceOracle, PriceQuote
from terminal_core.oracle.fetcher import QuoteFetcher
from terminal_core.terminal import TradingTerminal


def sqlite_engine(**kwargs):
    """In-memory SQLite engine with all schemas/tables created.

    Patches JSONB→JSON and BigInteger→Integer for SQLite compatibility.
    """
    engine = create_engine("sqlite:///:memory:", **kwargs)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, _rec):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    # SQLite doesn't support schemas, JSONB, or BigInteger autoincrement
    for table in Base.metadata.tables.values():
        table.schema = None
        for col in table.columns:
            if isinstance(col.type, JSONB):
                col.type = JSON()
            if isinstance(col.type, BigInteger):
                col.type = Integer()

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop handlers bound to a previous test's captured stderr."""
    yield
    logging.getLogger().handlers.clear()


@pytest.fixture
def db_session():
    engine = sqlite_engine()
    session = Session(engine)
    yield session
    session.close()
    engine.dispose()


# ── Collaborators ─────────────────────────────────────────────


class FixedPriceOracle(PriceOracle):
    """Returns the configured price per symbol; unknown symbols fail."""

    def __init__(self, prices: dict[str, object]):
        self.prices = {k: Decimal(str(v)) for k, v in prices.items()}
        self.calls: list[str] = []

    def set(self, symbol: str, price: object) -> None:
        self.prices[symbol] = Decimal(str(price))

    async def fetch_price(self, symbol: str) -> PriceQuote:
        self.calls.append(symbol)
        if symbol not in self.prices:
            raise RuntimeError(f"no feed for {symbol}")
        return PriceQuote(
            symbol=symbol,
            price=self.prices[symbol],
            change=Decimal("0"),
            timestamp=datetime.now(timezone.utc),
        )

    def available_symbols(self) -> list[str]:
        return list(self.prices)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.notices: list[tuple[str, str]] = []

    def notify(self, severity, message):
        self.notices.append((severity, message))

    def messages(self, severity: str | None = None) -> list[str]:
        return [m for s, m in self.notices if severity is None or s == severity]


@pytest.fixture
def oracle():
    return FixedPriceOracle({"AAPL": 100, "BTC-USD": 500, "TSLA": 200})


@pytest.fixture
def fetcher(oracle):
    return QuoteFetcher(oracle, timeout_s=1.0)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def terminal(fetcher, notifier):
    return TradingTerminal(AppConfig(), fetcher, notifier)


@pytest.fixture
def broker(db_session, terminal):
    return terminal.ensure_broker(db_session, "desk")


@pytest.fixture
def trader(db_session, terminal):
    return terminal.register_trader(db_session, "alice")
