"""Error kinds raised by ledger, position, signal and copy-trade operations.

Validation and state-conflict errors are raised before any mutation. Each
error carries a human-readable message suitable for the notification sink.
"""

from __future__ import annotations


class TerminalError(Exception):
    """Base class for every failure scoped to a single terminal operation."""

    kind: str = "terminal_error"
    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(TerminalError):
    """Non-numeric or non-positive amount, quantity or price."""

    kind = "invalid_input"


class InsufficientFunds(TerminalError):
    """Balance does not cover the requested debit or position notional."""

    kind = "insufficient_funds"


class BalanceTooLow(TerminalError):
    """A derived quantity rounds down to zero."""

    kind = "balance_too_low"


class AlreadyClosed(TerminalError):
    """The position is not OPEN; a close was already applied."""

    kind = "already_closed"


class NotFound(TerminalError):
    """Unknown account, position or signal, or one owned by another account."""

    kind = "not_found"


class NotAuthorized(TerminalError):
    """The acting account does not hold the role the operation requires."""

    kind = "not_authorized"


class OracleUnavailable(TerminalError):
    """Price fetch failed or timed out. Safe to retry."""

    kind = "oracle_unavailable"
    retryable = True


class PersistenceFailure(TerminalError):
    """The store rejected a write.

    ``stage`` names the step that failed. When the first half of a two-step
    sequence (debit/create, close/credit) already committed, ``partial`` is
    True and the ledger is knowingly out of step with the positions.
    """

    kind = "persistence_failure"

    def __init__(self, message: str, stage: str, partial: bool = False) -> None:
        super().__init__(message)
        self.stage = stage
        self.partial = partial
