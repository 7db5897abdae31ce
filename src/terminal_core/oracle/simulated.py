"""SimulatedPriceOracle — randomised drift around a fixed reference table."""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from terminal_core.oracle.base import PriceOracle, PriceQuote

REFERENCE_PRICES: dict[str, Decimal] = {
    "AAPL": Decimal("185.92"),
    "MSFT": Decimal("415.10"),
    "TSLA": Decimal("175.40"),
    "BTC-USD": Decimal("64230.50"),
    "ETH-USD": Decimal("3450.20"),
    "NVDA": Decimal("875.30"),
    "EUR/USD": Decimal("1.0845"),
    "GBP/USD": Decimal("1.2630"),
    "USD/JPY": Decimal("151.40"),
    "AUD/USD": Decimal("0.6520"),
    "USD/CHF": Decimal("0.9010"),
}

DEFAULT_PRICE = Decimal("100.00")
_CENTS = Decimal("0.01")


class SimulatedPriceOracle(PriceOracle):
    """Returns ``base * (1 + drift)`` with drift uniform in ±drift_pct/2.

    Prices and percent change are rounded to 2 dp. There is no history:
    consecutive calls are independent draws.
    """

    def __init__(
        self,
        prices: dict[str, Decimal] | None = None,
        drift_pct: float = 0.01,
        latency_s: float = 0.5,
        seed: int | None = None,
    ) -> None:
        self._prices = dict(REFERENCE_PRICES if prices is None else prices)
        self._drift_pct = drift_pct
        self._latency_s = latency_s
        self._rng = random.Random(seed)

    def available_symbols(self) -> list[str]:
        return list(self._prices)

    def base_price(self, symbol: str) -> Decimal:
        return self._prices.get(symbol, DEFAULT_PRICE)

    async def fetch_price(self, symbol: str) -> PriceQuote:
        if self._latency_s > 0:
            await asyncio.sleep(self._latency_s)

        drift = Decimal(str((self._rng.random() - 0.5) * self._drift_pct))
        price = self.base_price(symbol) * (1 + drift)
        return PriceQuote(
            symbol=symbol,
            price=price.quantize(_CENTS, rounding=ROUND_HALF_UP),
            change=(drift * 100).quantize(_CENTS, rounding=ROUND_HALF_UP),
            timestamp=datetime.now(timezone.utc),
        )
