"""Price oracle contract — quote shape and the abstract feed."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class PriceQuote:
    """One price observation for a symbol."""

    symbol: str
    price: Decimal
    change: Decimal  # percent vs. reference
    timestamp: datetime


class PriceOracle(ABC):
    """A price feed. Calls may be slow, may be concurrent for distinct
    symbols, and carry no snapshot consistency across calls."""

    @abstractmethod
    async def fetch_price(self, symbol: str) -> PriceQuote:
        """Return the current quote for *symbol* or raise."""

    def available_symbols(self) -> list[str]:
        return []

    async def close(self) -> None:
        """Release any held connections."""
