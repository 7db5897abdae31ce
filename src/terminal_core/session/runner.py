"""TerminalSession — the periodic refresh loops bound to one viewer.

Each loop is an independent task with its own interval; there is no ordering
between them and a stale read is acceptable. ``stop()`` cancels them all.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import structlog
from sqlalchemy.orm import Session, sessionmaker

from terminal_core.config.loader import load_config
from terminal_core.config.schema import AppConfig, PollingConfig
from terminal_core.db.engine import init_engine
from terminal_core.errors import TerminalError
from terminal_core.logging.setup import setup_logging
from terminal_core.models.position import PortfolioSummary
from terminal_core.models.signal import Signal
from terminal_core.oracle.fetcher import build_fetcher
from terminal_core.terminal import TradingTerminal

log = structlog.get_logger("session")


class TerminalSession:
    """Keeps a viewer's signals, prices, expiry overlay and presence fresh."""

    def __init__(
        self,
        terminal: TradingTerminal,
        session_factory: Callable[[], Session],
        account_id: int,
        scope: str = "default",
        polling: PollingConfig | None = None,
    ) -> None:
        self.terminal = terminal
        self.session_factory = session_factory
        self.account_id = account_id
        self.scope = scope
        self.polling = polling or PollingConfig()

        self.signals: list[Signal] = []
        self.portfolio: PortfolioSummary | None = None

        self._tasks: list[asyncio.Task] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start the polling tasks. A second call is a no-op."""
        if self._running:
            return
        self._running = True
        loops: list[tuple[str, float, Callable[[Session], Awaitable[None]]]] = [
            ("signals", self.polling.signals_interval_s, self._refresh_signals),
            ("prices", self.polling.prices_interval_s, self._refresh_prices),
            ("expiry", self.polling.expiry_interval_s, self._sweep_expiry),
            ("heartbeat", self.polling.heartbeat_interval_s, self._heartbeat),
        ]
        for name, interval, fn in loops:
            self._tasks.append(asyncio.create_task(self._every(name, interval, fn)))
        log.info("session_started", account_id=self.account_id, scope=self.scope)

    async def stop(self) -> None:
        """Cancel all polling tasks and wait for them to finish."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        log.info("session_stopped", account_id=self.account_id, scope=self.scope)

    async def _every(
        self,
        name: str,
        interval_s: float,
        fn: Callable[[Session], Awaitable[None]],
    ) -> None:
        while self._running:
            try:
                with self.session_factory() as session:
                    await fn(session)
            except asyncio.CancelledError:
                raise
            except TerminalError as exc:
                # Already reported to the notifier by the terminal
                log.info("poll_failed", task=name, kind=exc.kind)
            except Exception:
                log.exception("poll_error", task=name)
            await asyncio.sleep(interval_s)

    # ── Ticks ─────────────────────────────────────────────────

    async def _refresh_signals(self, session: Session) -> None:
        self.signals = self.terminal.active_signals(session, self.account_id, self.scope)
        bonus = self.terminal.bonus_notice(session, self.account_id, self.scope)
        if bonus is not None:
            self.terminal.notifier.notify(
                "info",
                f"You've received a {bonus.normalize():f}% bonus on your deposit.",
            )

    async def _refresh_prices(self, session: Session) -> None:
        await self.terminal.refresh_prices(session, self.account_id)
        self.portfolio = self.terminal.portfolio(session, self.account_id)

    async def _sweep_expiry(self, session: Session) -> None:
        state = self.terminal.viewers.get(self.account_id, self.scope)
        self.terminal.signals.sweep_expired(session, state, datetime.now(timezone.utc))

    async def _heartbeat(self, session: Session) -> None:
        self.terminal.heartbeat(session, self.account_id)


async def run_session(config: AppConfig, account_id: int, scope: str = "default") -> None:
    """Run a viewer session until cancelled."""
    engine = init_engine(config.database.url)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    fetcher = build_fetcher(config.oracle)
    terminal = TradingTerminal(config, fetcher)

    viewer = TerminalSession(terminal, factory, account_id, scope, config.polling)
    await viewer.start()
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await viewer.stop()
        await fetcher.close()


def main(config_path: str | None = None, account_id: int = 0, scope: str = "default") -> None:
    """Entry point — load config, set up logging, run the polling session."""
    config = load_config(config_path)
    setup_logging(level=config.logging.level, log_format=config.logging.format)
    try:
        asyncio.run(run_session(config, account_id, scope))
    except KeyboardInterrupt:
        log.info("session_interrupted", account_id=account_id)
