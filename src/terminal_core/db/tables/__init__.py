"""Import all table modules so Base.metadata knows about them."""

from terminal_core.db.tables.accounts import AccountRow
from terminal_core.db.tables.positions import PositionRow
from terminal_core.db.tables.signals import SignalRow

__all__ = ["AccountRow", "PositionRow", "SignalRow"]
