"""Tests for the Ledger — credit, debit and broker allocation."""

from __future__ import annotations

from decimal import Decimal

import pytest

from terminal_core.errors import InsufficientFunds, InvalidInput, NotAuthorized, NotFound
from terminal_core.ledger import Ledger


@pytest.fixture
def ledger():
    return Ledger()


class TestCreditDebit:
    def test_credit(self, db_session, ledger, trader):
        assert ledger.credit(db_session, trader.id, "250.50") == Decimal("250.50")
        assert ledger.balance(db_session, trader.id) == Decimal("250.50")

    def test_debit_within_balance(self, db_session, ledger, trader):
        ledger.credit(db_session, trader.id, 100)
        assert ledger.debit(db_session, trader.id, 40) == 60

    def test_debit_to_exactly_zero(self, db_session, ledger, trader):
        ledger.credit(db_session, trader.id, 100)
        assert ledger.debit(db_session, trader.id, 100) == 0

    def test_overdraw_rejected_without_mutation(self, db_session, ledger, trader):
        ledger.credit(db_session, trader.id, 100)
        with pytest.raises(InsufficientFunds):
            ledger.debit(db_session, trader.id, "100.01")
        assert ledger.balance(db_session, trader.id) == 100

    @pytest.mark.parametrize("amount", [0, -1, "abc", None])
    def test_invalid_amounts(self, db_session, ledger, trader, amount):
        with pytest.raises(InvalidInput):
            ledger.credit(db_session, trader.id, amount)
        with pytest.raises(InvalidInput):
            ledger.debit(db_session, trader.id, amount)
        assert ledger.balance(db_session, trader.id) == 0

    def test_unknown_account(self, db_session, ledger):
        with pytest.raises(NotFound):
            ledger.credit(db_session, 999, 10)


class TestAllocate:
    def test_base_only(self, db_session, ledger, broker, trader):
        account = ledger.allocate(db_session, broker.id, trader.id, 1000)
        assert account.balance == 1000
        assert account.last_bonus_percent == 0

    def test_with_bonus_accumulates(self, db_session, ledger, broker, trader):
        ledger.allocate(db_session, broker.id, trader.id, 1000)
        account = ledger.allocate(db_session, broker.id, trader.id, 500, 10)
        assert account.balance == 1550
        assert account.last_bonus_percent == 10

    def test_blank_bonus_is_zero(self, db_session, ledger, broker, trader):
        account = ledger.allocate(db_session, broker.id, trader.id, "200", "")
        assert account.balance == 200

    def test_trader_cannot_allocate(self, db_session, ledger, terminal, trader):
        other = terminal.register_trader(db_session, "bob")
        with pytest.raises(NotAuthorized):
            ledger.allocate(db_session, trader.id, other.id, 100)
        assert ledger.balance(db_session, other.id) == 0

    def test_broker_target_rejected(self, db_session, ledger, broker):
        with pytest.raises(InvalidInput):
            ledger.allocate(db_session, broker.id, broker.id, 100)

    def test_missing_target(self, db_session, ledger, broker):
        with pytest.raises(NotFound):
            ledger.allocate(db_session, broker.id, 999, 100)

    @pytest.mark.parametrize("base,bonus", [(0, 0), ("abc", 0), (100, -5), (100, "x")])
    def test_invalid_inputs(self, db_session, ledger, broker, trader, base, bonus):
        with pytest.raises(InvalidInput):
            ledger.allocate(db_session, broker.id, trader.id, base, bonus)
        assert ledger.balance(db_session, trader.id) == 0
