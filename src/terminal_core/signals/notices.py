"""One-time bonus notice per viewer."""

from __future__ import annotations

from decimal import Decimal

from terminal_core.models.position import Account
from terminal_core.signals.viewer import ViewerState


def pending_bonus_notice(account: Account, state: ViewerState) -> Decimal | None:
    """Return the bonus percent to announce, at most once per distinct value.

    Nothing is announced for a zero bonus or for the value the viewer has
    already acknowledged. Announcing marks it acknowledged.
    """
    bonus = account.last_bonus_percent
    if bonus is None or bonus <= 0:
        return None
    if state.last_seen_bonus is not None and bonus == state.last_seen_bonus:
        return None
    state.last_seen_bonus = bonus
    return bonus
