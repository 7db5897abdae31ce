"""Account & position ledger — balances, positions, sizing and copy trades."""

from terminal_core.ledger.accounts import AccountDirectory
from terminal_core.ledger.copy_trade import CopyResult, CopyTradeEngine
from terminal_core.ledger.ledger import Ledger
from terminal_core.ledger.locks import AccountLocks
from terminal_core.ledger.pnl import (
    bonus_amount,
    calculate_pnl,
    close_proceeds,
    mark_to_market,
    size_copy_trade,
    size_originated_trade,
    to_amount,
    to_percent,
    unrealised_total,
)
from terminal_core.ledger.positions import PositionManager, normalise_side

__all__ = [
    "AccountDirectory",
    "AccountLocks",
    "CopyResult",
    "CopyTradeEngine",
    "Ledger",
    "PositionManager",
    "bonus_amount",
    "calculate_pnl",
    "close_proceeds",
    "mark_to_market",
    "normalise_side",
    "size_copy_trade",
    "size_originated_trade",
    "to_amount",
    "to_percent",
    "unrealised_total",
]
