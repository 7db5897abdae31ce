"""TradingTerminal — coordinates oracle, per-account locks, ledger and positions.

Every public operation resolves prices first, then mutates under the
account's lock, then reports the outcome to the notifier. Failures are
reported and re-raised; none of them outlive the operation.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy.orm import Session

from terminal_core.config.schema import AppConfig
from terminal_core.errors import AlreadyClosed, InsufficientFunds, TerminalError
from terminal_core.ledger.accounts import AccountDirectory
from terminal_core.ledger.copy_trade import CopyResult, CopyTradeEngine
from terminal_core.ledger.ledger import Ledger
from terminal_core.ledger.locks import AccountLocks
from terminal_core.ledger.pnl import mark_to_market, size_originated_trade
from terminal_core.ledger.positions import PositionManager, normalise_side
from terminal_core.logging.setup import bind_request_context, clear_request_context
from terminal_core.models.position import Account, PortfolioSummary, Position, PositionValuation
from terminal_core.models.signal import Signal
from terminal_core.notify import LogNotifier, Notifier
from terminal_core.oracle.fetcher import QuoteFetcher
from terminal_core.signals.broadcaster import SignalBroadcaster
from terminal_core.signals.notices import pending_bonus_notice
from terminal_core.signals.viewer import ViewerStateStore

log = structlog.get_logger("terminal")


def _signed(value: Decimal) -> str:
    return f"{'+' if value >= 0 else ''}{value:.2f}"


def _qty(value: Decimal) -> str:
    return f"{value.normalize():f}"


class TradingTerminal:
    """The operations a broker and its traders perform against the core."""

    def __init__(
        self,
        config: AppConfig,
        fetcher: QuoteFetcher,
        notifier: Notifier | None = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.notifier = notifier or LogNotifier()
        self.locks = AccountLocks()
        self.viewers = ViewerStateStore()
        self.ledger = Ledger()
        self.accounts = AccountDirectory(online_window_s=config.presence.online_window_s)
        self.positions = PositionManager(self.ledger)
        self.signals = SignalBroadcaster(
            fetcher, self.ledger, self.viewers,
            default_ttl_minutes=config.signals.default_ttl_minutes,
        )
        self.copy_trades = CopyTradeEngine(
            self.positions, fetcher, self.locks,
            headroom_pct=config.ledger.copy_headroom_pct,
        )

    # ── Reporting ─────────────────────────────────────────────

    @contextmanager
    def _reported(self, operation: str, **context) -> Iterator[None]:
        bind_request_context(operation=operation, **context)
        try:
            yield
        except TerminalError as exc:
            log.info("operation_failed", kind=exc.kind, retryable=exc.retryable, reason=exc.message)
            self.notifier.notify("error", exc.message)
            raise
        except Exception as exc:
            log.exception("operation_error")
            self.notifier.notify("error", f"{operation.replace('_', ' ').capitalize()} failed: {exc}")
            raise
        finally:
            clear_request_context()

    # ── Accounts ──────────────────────────────────────────────

    def ensure_broker(self, session: Session, name: str) -> Account:
        with self._reported("ensure_broker"):
            return self.accounts.ensure_broker(session, name)

    def register_trader(self, session: Session, name: str | None = None) -> Account:
        with self._reported("register_trader"):
            account = self.accounts.register_trader(session, name)
        self.notifier.notify("success", "Trader terminal connected")
        return account

    def heartbeat(self, session: Session, account_id: int, now: datetime | None = None) -> None:
        with self._reported("heartbeat", account_id=account_id):
            self.accounts.heartbeat(session, account_id, now)

    def list_traders(self, session: Session, now: datetime | None = None) -> list[tuple[Account, bool]]:
        """Traders with their online flag."""
        now = now or datetime.now(timezone.utc)
        with self._reported("list_traders"):
            return [(a, self.accounts.is_online(a, now)) for a in self.accounts.list_traders(session)]

    async def remove_trader(
        self, session: Session, broker_id: int, trader_id: int, now: datetime | None = None,
    ) -> None:
        with self._reported("remove_trader", account_id=trader_id):
            async with self.locks.hold(trader_id):
                self.accounts.remove_trader(session, broker_id, trader_id, now)
            self.locks.discard(trader_id)
            self.viewers.forget_account(trader_id)
        self.notifier.notify("success", "Trader removed from terminal")

    async def allocate(
        self,
        session: Session,
        broker_id: int,
        account_id: int,
        base_amount: object,
        bonus_percent: object = 0,
    ) -> Account:
        with self._reported("allocate", account_id=account_id):
            async with self.locks.hold(account_id):
                account = self.ledger.allocate(
                    session, broker_id, account_id, base_amount, bonus_percent,
                )
        bonus = account.last_bonus_percent
        self.notifier.notify(
            "success",
            f"Allocated funds with {bonus.normalize():f}% bonus" if bonus > 0 else "Funds allocated",
        )
        return account

    def bonus_notice(self, session: Session, account_id: int, scope: str = "default") -> Decimal | None:
        """The bonus percent to announce to this viewer, once."""
        with self._reported("bonus_notice", account_id=account_id):
            account = self.ledger.get_account(session, account_id)
            return pending_bonus_notice(account, self.viewers.get(account_id, scope))

    # ── Trading ───────────────────────────────────────────────

    async def execute_trade(
        self, session: Session, account_id: int, symbol: str, side: str,
    ) -> Position:
        """Open a trader-originated position sized at a fixed share of balance."""
        with self._reported("execute_trade", account_id=account_id, symbol=symbol):
            side = normalise_side(side)
            if self.ledger.balance(session, account_id) <= 0:
                raise InsufficientFunds("Insufficient balance. Contact your Broker for funding.")

            quote = await self.fetcher.quote(symbol)

            async with self.locks.hold(account_id):
                balance = self.ledger.balance(session, account_id)
                quantity = size_originated_trade(
                    balance, quote.price, self.config.ledger.trade_size_pct,
                )
                position = self.positions.open(
                    session, account_id, symbol, side, quantity, quote.price,
                )

        self.notifier.notify(
            "success",
            f"{side} {symbol} x{_qty(quantity)} @ ${quote.price:,.2f}",
        )
        return position

    async def close_trade(self, session: Session, account_id: int, position_id: int) -> Position:
        with self._reported("close_trade", account_id=account_id, position_id=position_id):
            row = self.positions.get(session, account_id, position_id)
            if row.status != "OPEN":
                raise AlreadyClosed(f"Position {position_id} is already closed")

            quote = await self.fetcher.quote(row.symbol)

            async with self.locks.hold(account_id):
                position = self.positions.close(session, account_id, position_id, quote.price)

        self.notifier.notify("success", f"Closed. P/L: {_signed(position.realised_pnl)} USDT")
        return position

    async def follow(self, session: Session, account_id: int, signal_id: int) -> CopyResult:
        with self._reported("follow", account_id=account_id, signal_id=signal_id):
            signal = self.signals.get(session, signal_id)
            result = await self.copy_trades.follow(session, account_id, signal)

        if result.resized:
            self.notifier.notify(
                "info",
                f"Adjusted quantity to {_qty(result.position.quantity)} due to balance limits.",
            )
        self.notifier.notify("success", f"Copied {signal.symbol} trade!")
        return result

    # ── Portfolio ─────────────────────────────────────────────

    def portfolio(self, session: Session, account_id: int) -> PortfolioSummary:
        """Balance and mark-to-market using the last cached quotes."""
        with self._reported("portfolio", account_id=account_id):
            account = self.ledger.get_account(session, account_id)
            valuations = []
            total = Decimal("0")
            for pos in self.positions.open_positions(session, account_id):
                price = self.fetcher.last_price(pos.symbol) or pos.entry_price
                pnl = mark_to_market(pos, price)
                total += pnl
                valuations.append(
                    PositionValuation(position=pos, current_price=price, unrealised_pnl=pnl)
                )
            return PortfolioSummary(
                account_id=account_id,
                balance=account.balance,
                positions=valuations,
                total_unrealised_pnl=total,
                last_bonus_percent=account.last_bonus_percent,
            )

    async def refresh_prices(self, session: Session, account_id: int) -> dict[str, Decimal]:
        """Re-quote every symbol with an open position on this account."""
        with self._reported("refresh_prices", account_id=account_id):
            symbols = [p.symbol for p in self.positions.open_positions(session, account_id)]
            if not symbols:
                return {}
            return await self.fetcher.refresh(symbols)

    # ── Signals ───────────────────────────────────────────────

    async def broadcast_signal(
        self,
        session: Session,
        broker_id: int,
        symbol: str,
        side: str,
        quantity: object,
        rationale: str = "",
        expires_in_minutes: object = None,
    ) -> Signal:
        with self._reported("broadcast_signal", account_id=broker_id, symbol=symbol):
            signal = await self.signals.broadcast(
                session, broker_id, symbol, side, quantity, rationale, expires_in_minutes,
            )
        self.notifier.notify("success", "Market position synchronized")
        return signal

    def delete_signal(self, session: Session, broker_id: int, signal_id: int) -> None:
        with self._reported("delete_signal", account_id=broker_id, signal_id=signal_id):
            self.signals.delete(session, broker_id, signal_id)
        self.notifier.notify("success", "Signal removed from history")

    def dismiss_signal(
        self, session: Session, account_id: int, signal_id: int, scope: str = "default",
    ) -> None:
        with self._reported("dismiss_signal", account_id=account_id, signal_id=signal_id):
            self.signals.dismiss(session, self.viewers.get(account_id, scope), signal_id)
        self.notifier.notify("info", "Signal removed from dashboard")

    def active_signals(
        self,
        session: Session,
        account_id: int,
        scope: str = "default",
        now: datetime | None = None,
    ) -> list[Signal]:
        """Sweep expired signals into the viewer's dismissed set, then list the rest."""
        now = now or datetime.now(timezone.utc)
        with self._reported("active_signals", account_id=account_id):
            state = self.viewers.get(account_id, scope)
            self.signals.sweep_expired(session, state, now)
            return self.signals.active_for(session, state, now)

    def signal_history(self, session: Session) -> list[Signal]:
        with self._reported("signal_history"):
            return self.signals.history(session)
