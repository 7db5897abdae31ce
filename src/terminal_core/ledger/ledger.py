"""Ledger — the only writer of account balances.

Callers serialise operations per account (see AccountLocks); the ledger
itself only guarantees that every check happens before the mutation.
"""

from __future__ import annotations

from decimal import Decimal

import structlog
from sqlalchemy.orm import Session

from terminal_core.db.engine import commit_or_raise
from terminal_core.db.tables.accounts import AccountRow
from terminal_core.errors import InsufficientFunds, InvalidInput, NotAuthorized, NotFound
from terminal_core.ledger.pnl import bonus_amount, to_amount, to_percent
from terminal_core.models.position import Account

log = structlog.get_logger("ledger")


def _balance(row: AccountRow) -> Decimal:
    return Decimal(str(row.balance))


class Ledger:
    """Balance mutations on AccountRow records."""

    def get_row(self, session: Session, account_id: int) -> AccountRow:
        row = session.get(AccountRow, account_id, populate_existing=True)
        if row is None:
            raise NotFound(f"Account {account_id} not found")
        return row

    def get_account(self, session: Session, account_id: int) -> Account:
        return Account.model_validate(self.get_row(session, account_id))

    def balance(self, session: Session, account_id: int) -> Decimal:
        return _balance(self.get_row(session, account_id))

    def require_role(self, session: Session, account_id: int, role: str) -> AccountRow:
        row = self.get_row(session, account_id)
        if row.role != role:
            raise NotAuthorized(f"Account {account_id} is not a {role}")
        return row

    # ── Mutations ─────────────────────────────────────────────

    def credit(self, session: Session, account_id: int, amount: object) -> Decimal:
        """Add *amount* (> 0) to the balance. Returns the new balance."""
        value = to_amount(amount)
        row = self.get_row(session, account_id)
        new_balance = _balance(row) + value
        row.balance = new_balance
        commit_or_raise(session, "credit")
        log.info("balance_credited", account_id=account_id, amount=float(value),
                 balance=float(new_balance))
        return new_balance

    def debit(self, session: Session, account_id: int, amount: object) -> Decimal:
        """Subtract *amount* (> 0). Raises InsufficientFunds without mutating
        when the balance does not cover it. Returns the new balance."""
        value = to_amount(amount)
        row = self.get_row(session, account_id)
        current = _balance(row)
        if current < value:
            raise InsufficientFunds(
                f"Insufficient balance: {current:.2f} available, {value:.2f} required"
            )
        new_balance = current - value
        row.balance = new_balance
        commit_or_raise(session, "debit")
        log.info("balance_debited", account_id=account_id, amount=float(value),
                 balance=float(new_balance))
        return new_balance

    def allocate(
        self,
        session: Session,
        broker_id: int,
        account_id: int,
        base_amount: object,
        bonus_percent: object = 0,
    ) -> Account:
        """Broker-only deposit with an optional percentage bonus.

        balance += base + base * bonus_percent / 100, and bonus_percent is
        recorded as the account's last applied bonus.
        """
        base = to_amount(base_amount)
        bonus_pct = to_percent(bonus_percent)
        self.require_role(session, broker_id, "broker")
        row = self.get_row(session, account_id)
        if row.role != "trader":
            raise InvalidInput("Funds can only be allocated to trader accounts")

        bonus = bonus_amount(base, bonus_pct)
        new_balance = _balance(row) + base + bonus
        row.balance = new_balance
        row.last_bonus_percent = bonus_pct
        commit_or_raise(session, "allocate")

        log.info(
            "funds_allocated",
            broker_id=broker_id,
            account_id=account_id,
            base_amount=float(base),
            bonus_percent=float(bonus_pct),
            bonus_amount=float(bonus),
            balance=float(new_balance),
        )
        return Account.model_validate(row)
