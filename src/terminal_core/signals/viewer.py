"""Per-viewer overlay state — dismissed signals and acknowledged bonus."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class ViewerState:
    """What one viewer has hidden or acknowledged. Never touches the ledger."""

    dismissed: set[int] = field(default_factory=set)
    last_seen_bonus: Decimal | None = None


class ViewerStateStore:
    """In-memory ViewerState keyed by (account_id, scope). Resets on process restart.

    ``scope`` separates independent sessions of the same account (e.g. two
    browser tabs); the default scope shares state across them.
    """

    def __init__(self) -> None:
        self._states: dict[tuple[int, str], ViewerState] = defaultdict(ViewerState)

    def get(self, account_id: int, scope: str = "default") -> ViewerState:
        return self._states[(account_id, scope)]

    def forget_signal(self, signal_id: int) -> None:
        """Drop a deleted signal from every viewer's dismissed set."""
        for state in self._states.values():
            state.dismissed.discard(signal_id)

    def forget_account(self, account_id: int) -> None:
        for key in [k for k in self._states if k[0] == account_id]:
            del self._states[key]
