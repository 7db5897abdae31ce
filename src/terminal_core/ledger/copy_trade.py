"""CopyTradeEngine — turn a broker signal into a position sized to the follower."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

import structlog
from sqlalchemy.orm import Session

from terminal_core.errors import InsufficientFunds
from terminal_core.ledger.locks import AccountLocks
from terminal_core.ledger.pnl import size_copy_trade
from terminal_core.ledger.positions import PositionManager
from terminal_core.models.position import Position
from terminal_core.models.signal import Signal
from terminal_core.oracle.fetcher import QuoteFetcher

log = structlog.get_logger("copy_trade")


@dataclass
class CopyResult:
    """Outcome of a follow: the new position and whether it was resized."""

    position: Position
    price: Decimal
    resized: bool


class CopyTradeEngine:
    """Follows signals with the same open contract as a manual trade.

    The current price may differ from the signal's reference price; that
    slippage is accepted as-is.
    """

    def __init__(
        self,
        positions: PositionManager,
        fetcher: QuoteFetcher,
        locks: AccountLocks,
        headroom_pct: float = 0.90,
    ) -> None:
        self.positions = positions
        self.fetcher = fetcher
        self.locks = locks
        self.headroom_pct = headroom_pct

    def _require_funded(self, session: Session, account_id: int) -> Decimal:
        balance = self.positions.ledger.balance(session, account_id)
        if balance <= 0:
            raise InsufficientFunds("Insufficient balance. Contact your Broker.")
        return balance

    async def follow(self, session: Session, account_id: int, signal: Signal) -> CopyResult:
        self._require_funded(session, account_id)

        # Resolve the price before taking the account lock
        quote = await self.fetcher.quote(signal.symbol)

        async with self.locks.hold(account_id):
            balance = self._require_funded(session, account_id)
            quantity, resized = size_copy_trade(
                signal.quantity, balance, quote.price, self.headroom_pct,
            )
            position = self.positions.open(
                session,
                account_id,
                symbol=signal.symbol,
                side=signal.side,
                quantity=quantity,
                price=quote.price,
                signal_id=signal.id,
                is_copied=True,
            )

        log.info(
            "signal_followed",
            account_id=account_id,
            signal_id=signal.id,
            symbol=signal.symbol,
            reference_price=float(signal.reference_price),
            price=float(quote.price),
            quantity=float(quantity),
            resized=resized,
        )
        return CopyResult(position=position, price=quote.price, resized=resized)
