"""SignalBroadcaster — broker signals, their expiry, and per-viewer dismissal."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from terminal_core.db.engine import commit_or_raise
from terminal_core.db.tables.signals import SignalRow
from terminal_core.errors import InvalidInput, NotAuthorized, NotFound
from terminal_core.ledger.ledger import Ledger
from terminal_core.ledger.pnl import to_amount
from terminal_core.ledger.positions import normalise_side
from terminal_core.models.signal import Signal
from terminal_core.oracle.fetcher import QuoteFetcher
from terminal_core.signals.expiry import is_expired
from terminal_core.signals.viewer import ViewerState, ViewerStateStore

log = structlog.get_logger("signals")


class SignalBroadcaster:
    """Signals are visible to every trader until they expire or the viewer
    dismisses them. Dismissal is viewer-local; deletion is global."""

    def __init__(
        self,
        fetcher: QuoteFetcher,
        ledger: Ledger,
        viewers: ViewerStateStore,
        default_ttl_minutes: int = 15,
    ) -> None:
        self.fetcher = fetcher
        self.ledger = ledger
        self.viewers = viewers
        self.default_ttl = timedelta(minutes=default_ttl_minutes)

    # ── Broker side ───────────────────────────────────────────

    async def broadcast(
        self,
        session: Session,
        broker_id: int,
        symbol: str,
        side: str,
        quantity: object,
        rationale: str = "",
        expires_in_minutes: object = None,
        now: datetime | None = None,
    ) -> Signal:
        """Publish a signal with the oracle's current price as reference."""
        if not symbol:
            raise InvalidInput("Select a symbol")
        side = normalise_side(side)
        qty = to_amount(quantity, "quantity")
        ttl = None
        if expires_in_minutes not in (None, ""):
            ttl = timedelta(minutes=float(to_amount(expires_in_minutes, "duration")))
        self.ledger.require_role(session, broker_id, "broker")

        quote = await self.fetcher.quote(symbol)

        created = now or datetime.now(timezone.utc)
        row = SignalRow(
            broker_id=broker_id,
            symbol=symbol,
            side=side,
            reference_price=quote.price,
            quantity=qty,
            rationale=rationale or "",
            created_at=created,
            expires_at=created + ttl if ttl is not None else None,
        )
        session.add(row)
        commit_or_raise(session, "signal_broadcast")
        session.refresh(row)

        log.info(
            "signal_broadcast",
            signal_id=row.id,
            broker_id=broker_id,
            symbol=symbol,
            side=side,
            reference_price=float(quote.price),
            quantity=float(qty),
            expires_at=row.expires_at.isoformat() if row.expires_at else None,
        )
        return Signal.model_validate(row)

    def delete(self, session: Session, broker_id: int, signal_id: int) -> None:
        """Hard delete by the issuing broker; gone for every viewer."""
        row = session.get(SignalRow, signal_id)
        if row is None:
            raise NotFound(f"Signal {signal_id} not found")
        self.ledger.require_role(session, broker_id, "broker")
        if row.broker_id is not None and row.broker_id != broker_id:
            raise NotAuthorized("Only the issuing broker can delete this signal")

        session.delete(row)
        commit_or_raise(session, "signal_delete")
        self.viewers.forget_signal(signal_id)
        log.info("signal_deleted", signal_id=signal_id, broker_id=broker_id)

    # ── Queries ───────────────────────────────────────────────

    def get(self, session: Session, signal_id: int) -> Signal:
        row = session.get(SignalRow, signal_id)
        if row is None:
            raise NotFound(f"Signal {signal_id} not found")
        return Signal.model_validate(row)

    def history(self, session: Session) -> list[Signal]:
        """Every undeleted signal, newest first, regardless of expiry."""
        rows = session.execute(
            select(SignalRow).order_by(SignalRow.created_at.desc(), SignalRow.id.desc())
        ).scalars().all()
        return [Signal.model_validate(r) for r in rows]

    def is_expired(self, signal: Signal, now: datetime) -> bool:
        return is_expired(signal.created_at, signal.expires_at, now, self.default_ttl)

    def active_for(self, session: Session, state: ViewerState, now: datetime) -> list[Signal]:
        """Signals neither expired nor dismissed by this viewer."""
        return [
            s for s in self.history(session)
            if s.id not in state.dismissed and not self.is_expired(s, now)
        ]

    # ── Viewer side ───────────────────────────────────────────

    def dismiss(self, session: Session, state: ViewerState, signal_id: int) -> None:
        if session.get(SignalRow, signal_id) is None:
            raise NotFound(f"Signal {signal_id} not found")
        state.dismissed.add(signal_id)

    def sweep_expired(self, session: Session, state: ViewerState, now: datetime) -> list[int]:
        """Auto-dismiss expired signals for this viewer. Returns the new ids."""
        newly = [
            s.id for s in self.history(session)
            if s.id not in state.dismissed and self.is_expired(s, now)
        ]
        state.dismissed.update(newly)
        if newly:
            log.info("signals_expired", count=len(newly), signal_ids=newly)
        return newly
