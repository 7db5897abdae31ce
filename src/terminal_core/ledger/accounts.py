"""Account directory — creation, role lookup, presence and removal."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from terminal_core.db.engine import commit_or_raise
from terminal_core.db.tables.accounts import AccountRow
from terminal_core.db.tables.positions import PositionRow
from terminal_core.errors import InvalidInput, NotAuthorized, NotFound
from terminal_core.models.position import Account

log = structlog.get_logger("accounts")


def _naive_utc(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.replace(tzinfo=None)


class AccountDirectory:
    """Roles come from an external identity collaborator; this class only
    records them. There are no credentials here."""

    def __init__(self, online_window_s: int = 60) -> None:
        self.online_window = timedelta(seconds=online_window_s)

    def _create(self, session: Session, name: str, role: str) -> AccountRow:
        row = AccountRow(
            name=name,
            role=role,
            balance=0,
            last_bonus_percent=0,
            created_at=datetime.now(timezone.utc),
        )
        session.add(row)
        commit_or_raise(session, f"create_{role}")
        session.refresh(row)
        log.info("account_created", account_id=row.id, name=name, role=role)
        return row

    def ensure_broker(self, session: Session, name: str) -> Account:
        """Upsert the named broker account and return it."""
        row = session.execute(
            select(AccountRow).where(AccountRow.name == name)
        ).scalar_one_or_none()
        if row is not None:
            if row.role != "broker":
                raise InvalidInput(f"Account name {name!r} belongs to a trader")
            return Account.model_validate(row)
        return Account.model_validate(self._create(session, name, "broker"))

    def register_trader(self, session: Session, name: str | None = None) -> Account:
        """Create a trader account with a zero balance."""
        name = (name or "").strip() or "Guest Trader"
        existing = session.execute(
            select(AccountRow).where(AccountRow.name == name)
        ).scalar_one_or_none()
        if existing is not None:
            raise InvalidInput(f"Account name {name!r} already exists")
        return Account.model_validate(self._create(session, name, "trader"))

    # ── Presence ──────────────────────────────────────────────

    def heartbeat(self, session: Session, account_id: int, now: datetime | None = None) -> None:
        row = session.get(AccountRow, account_id)
        if row is None:
            raise NotFound(f"Account {account_id} not found")
        row.last_seen_at = now or datetime.now(timezone.utc)
        commit_or_raise(session, "heartbeat")

    def is_online(self, account: Account | AccountRow, now: datetime) -> bool:
        """Seen within the online window."""
        if account.last_seen_at is None:
            return False
        return _naive_utc(now) - _naive_utc(account.last_seen_at) < self.online_window

    def list_traders(self, session: Session) -> list[Account]:
        rows = session.execute(
            select(AccountRow).where(AccountRow.role == "trader").order_by(AccountRow.id)
        ).scalars().all()
        return [Account.model_validate(r) for r in rows]

    # ── Removal ───────────────────────────────────────────────

    def remove_trader(
        self,
        session: Session,
        broker_id: int,
        trader_id: int,
        now: datetime | None = None,
    ) -> None:
        """Delete a trader and all their positions. Online traders are kept."""
        broker = session.get(AccountRow, broker_id)
        if broker is None or broker.role != "broker":
            raise NotAuthorized("Only a broker can remove traders")
        row = session.get(AccountRow, trader_id)
        if row is None or row.role != "trader":
            raise NotFound(f"Trader {trader_id} not found")
        if self.is_online(row, now or datetime.now(timezone.utc)):
            raise InvalidInput("Cannot remove a trader who is online")

        session.execute(delete(PositionRow).where(PositionRow.account_id == trader_id))
        session.delete(row)
        commit_or_raise(session, "remove_trader")
        log.info("trader_removed", broker_id=broker_id, trader_id=trader_id)
