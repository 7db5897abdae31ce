"""Broker signal broadcasting, expiry and per-viewer dismissal."""

from terminal_core.signals.broadcaster import SignalBroadcaster
from terminal_core.signals.expiry import DEFAULT_TTL, expires_at, is_expired
from terminal_core.signals.notices import pending_bonus_notice
from terminal_core.signals.viewer import ViewerState, ViewerStateStore

__all__ = [
    "DEFAULT_TTL",
    "SignalBroadcaster",
    "ViewerState",
    "ViewerStateStore",
    "expires_at",
    "is_expired",
    "pending_bonus_notice",
]
