"""Tests for the terminal error kinds."""

from __future__ import annotations

import pytest

from terminal_core.errors import (
    AlreadyClosed,
    BalanceTooLow,
    InsufficientFunds,
    InvalidInput,
    NotAuthorized,
    NotFound,
    OracleUnavailable,
    PersistenceFailure,
    TerminalError,
)

ALL_ERRORS = [
    InvalidInput, InsufficientFunds, BalanceTooLow, AlreadyClosed,
    NotFound, NotAuthorized, OracleUnavailable, PersistenceFailure,
]


class TestErrorKinds:
    def test_kinds_are_distinct(self):
        kinds = [cls.kind for cls in ALL_ERRORS]
        assert len(set(kinds)) == len(kinds)

    @pytest.mark.parametrize("cls", ALL_ERRORS)
    def test_documented_subclass(self, cls):
        assert issubclass(cls, TerminalError)
        assert cls.__doc__

    def test_only_oracle_is_retryable(self):
        assert [cls for cls in ALL_ERRORS if cls.retryable] == [OracleUnavailable]

    def test_persistence_failure_fields(self):
        exc = PersistenceFailure("boom", stage="close_credit", partial=True)
        assert exc.message == "boom"
        assert (exc.stage, exc.partial) == ("close_credit", True)
