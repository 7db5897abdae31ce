"""PositionManager — open, value and close positions against the ledger.

Opening is debit-then-create and closing is close-then-credit. Each step
commits on its own; a failure in the second step leaves the first applied,
raises PersistenceFailure(partial=True) and logs ``ledger_inconsistency``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from terminal_core.db.engine import commit_or_raise
from terminal_core.db.tables.positions import PositionRow
from terminal_core.errors import (
    AlreadyClosed,
    InsufficientFunds,
    InvalidInput,
    NotFound,
    PersistenceFailure,
)
from terminal_core.ledger.ledger import Ledger
from terminal_core.ledger.pnl import calculate_pnl, close_proceeds, to_amount
from terminal_core.models.position import Position

log = structlog.get_logger("positions")

SIDES = ("LONG", "SHORT")


def normalise_side(side: str) -> str:
    """Accept LONG/SHORT or buy/sell in any case."""
    value = (side or "").strip().upper()
    value = {"BUY": "LONG", "SELL": "SHORT"}.get(value, value)
    if value not in SIDES:
        raise InvalidInput(f"Unknown side {side!r}")
    return value


class PositionManager:
    """Owns the set of positions per account."""

    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    # ── Queries ───────────────────────────────────────────────

    def get(self, session: Session, account_id: int, position_id: int) -> PositionRow:
        """Fetch a position owned by *account_id*, re-read from the store."""
        row = session.get(PositionRow, position_id, populate_existing=True)
        if row is None or row.account_id != account_id:
            raise NotFound(f"Position {position_id} not found")
        return row

    def open_positions(self, session: Session, account_id: int) -> list[Position]:
        rows = session.execute(
            select(PositionRow)
            .where(PositionRow.account_id == account_id, PositionRow.status == "OPEN")
            .order_by(PositionRow.opened_at.desc(), PositionRow.id.desc())
        ).scalars().all()
        return [Position.model_validate(r) for r in rows]

    def history(self, session: Session, account_id: int, limit: int = 100) -> list[Position]:
        rows = session.execute(
            select(PositionRow)
            .where(PositionRow.account_id == account_id)
            .order_by(PositionRow.opened_at.desc(), PositionRow.id.desc())
            .limit(limit)
        ).scalars().all()
        return [Position.model_validate(r) for r in rows]

    # ── Lifecycle ─────────────────────────────────────────────

    def open(
        self,
        session: Session,
        account_id: int,
        symbol: str,
        side: str,
        quantity: object,
        price: object,
        signal_id: int | None = None,
        is_copied: bool = False,
        now: datetime | None = None,
    ) -> Position:
        """Debit ``quantity * price`` and create one OPEN position.

        InsufficientFunds is raised before either step when the balance does
        not cover the notional.
        """
        side = normalise_side(side)
        qty = to_amount(quantity, "quantity")
        entry = to_amount(price, "price")
        if not symbol:
            raise InvalidInput("Select a symbol")
        notional = qty * entry

        balance = self.ledger.balance(session, account_id)
        if balance < notional:
            raise InsufficientFunds(
                f"Insufficient balance: {balance:.2f} available, {notional:.2f} required"
            )

        self.ledger.debit(session, account_id, notional)

        row = PositionRow(
            account_id=account_id,
            symbol=symbol,
            side=side,
            quantity=qty,
            entry_price=entry,
            opened_at=now or datetime.now(timezone.utc),
            status="OPEN",
            is_copied=is_copied,
            signal_id=signal_id,
        )
        session.add(row)
        try:
            commit_or_raise(session, "position_create", partial=True)
        except PersistenceFailure:
            log.error("ledger_inconsistency", account_id=account_id, symbol=symbol,
                      debited=float(notional), step="position_create")
            raise
        session.refresh(row)

        log.info(
            "position_opened",
            position_id=row.id,
            account_id=account_id,
            symbol=symbol,
            side=side,
            quantity=float(qty),
            entry_price=float(entry),
            is_copied=is_copied,
            signal_id=signal_id,
        )
        return Position.model_validate(row)

    def close(
        self,
        session: Session,
        account_id: int,
        position_id: int,
        exit_price: object,
        now: datetime | None = None,
    ) -> Position:
        """Close an OPEN position and credit notional plus realised P&L.

        A loss larger than the notional (short squeezed past 2x entry) is
        capped so the credit is never negative.
        """
        exit_px = to_amount(exit_price, "price")
        row = self.get(session, account_id, position_id)
        if row.status != "OPEN":
            raise AlreadyClosed(f"Position {position_id} is already closed")

        entry = Decimal(str(row.entry_price))
        qty = Decimal(str(row.quantity))
        pnl = calculate_pnl(row.side, entry, exit_px, qty)

        row.exit_price = exit_px
        row.closed_at = now or datetime.now(timezone.utc)
        row.realised_pnl = pnl
        row.status = "CLOSED"
        commit_or_raise(session, "position_close")

        proceeds = close_proceeds(qty, entry, pnl)
        if proceeds > 0:
            try:
                self.ledger.credit(session, account_id, proceeds)
            except PersistenceFailure as exc:
                log.error("ledger_inconsistency", account_id=account_id,
                          position_id=position_id, owed=float(proceeds), step="close_credit")
                raise PersistenceFailure(
                    f"Position {position_id} closed but balance was not credited",
                    stage="close_credit",
                    partial=True,
                ) from exc
        else:
            log.warning("loss_capped_at_notional", account_id=account_id,
                        position_id=position_id, proceeds=float(proceeds))

        log.info(
            "position_closed",
            position_id=position_id,
            account_id=account_id,
            symbol=row.symbol,
            side=row.side,
            exit_price=float(exit_px),
            realised_pnl=float(pnl),
        )
        return Position.model_validate(row)
