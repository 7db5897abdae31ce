"""Pydantic domain models."""

from terminal_core.models.position import (
    Account,
    PortfolioSummary,
    Position,
    PositionValuation,
    Role,
    Side,
)
from terminal_core.models.signal import Signal

__all__ = [
    "Account",
    "PortfolioSummary",
    "Position",
    "PositionValuation",
    "Role",
    "Side",
    "Signal",
]
