"""QuoteFetcher — bounded-time oracle calls plus an in-memory last-quote cache."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from terminal_core.errors import OracleUnavailable
from terminal_core.oracle.base import PriceOracle, PriceQuote

if TYPE_CHECKING:
    from terminal_core.config.schema import OracleConfig

log = structlog.get_logger("price_oracle")


@dataclass
class PriceEntry:
    """A cached price with metadata."""

    price: Decimal
    updated_at: float  # time.monotonic()
    source: str  # "oracle", "manual"


class QuoteFetcher:
    """Wraps a PriceOracle with a timeout and remembers the last good quote.

    The cache only feeds mark-to-market display; trades always use a freshly
    fetched quote.
    """

    def __init__(
        self,
        oracle: PriceOracle,
        timeout_s: float = 10.0,
        staleness_threshold_s: float = 30.0,
    ) -> None:
        self.oracle = oracle
        self._timeout_s = timeout_s
        self._staleness_s = staleness_threshold_s
        self._prices: dict[str, PriceEntry] = {}

    # ── Public API ────────────────────────────────────────────

    async def quote(self, symbol: str) -> PriceQuote:
        """Fetch a fresh quote, raising OracleUnavailable on failure or timeout."""
        try:
            quote = await asyncio.wait_for(self.oracle.fetch_price(symbol), self._timeout_s)
        except asyncio.TimeoutError as exc:
            log.warning("oracle_timeout", symbol=symbol, timeout_s=self._timeout_s)
            raise OracleUnavailable(
                f"Price feed timed out for {symbol}. Try again."
            ) from exc
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            log.warning("oracle_error", symbol=symbol, error=str(exc))
            raise OracleUnavailable(
                f"Price feed unavailable for {symbol}. Try again."
            ) from exc

        if quote.price <= 0:
            raise OracleUnavailable(f"Price feed returned a non-positive price for {symbol}")

        self._prices[symbol] = PriceEntry(
            price=quote.price, updated_at=time.monotonic(), source="oracle",
        )
        return quote

    async def refresh(self, symbols: list[str]) -> dict[str, Decimal]:
        """Re-quote *symbols* concurrently. Failures keep their previous entry."""
        unique = sorted(set(symbols))
        results = await asyncio.gather(
            *(self.quote(s) for s in unique), return_exceptions=True,
        )
        refreshed: dict[str, Decimal] = {}
        for symbol, result in zip(unique, results):
            if isinstance(result, OracleUnavailable):
                log.info("price_refresh_skipped", symbol=symbol)
                continue
            if isinstance(result, BaseException):
                raise result
            refreshed[symbol] = result.price
        return refreshed

    def last_price(self, symbol: str) -> Decimal | None:
        """Return the last cached price, however old, or None."""
        entry = self._prices.get(symbol)
        return entry.price if entry is not None else None

    def is_stale(self, symbol: str) -> bool:
        entry = self._prices.get(symbol)
        if entry is None:
            return True
        return (time.monotonic() - entry.updated_at) > self._staleness_s

    def update_price(self, symbol: str, price: Decimal, source: str = "manual") -> None:
        """Manually inject a price — primarily for testing."""
        self._prices[symbol] = PriceEntry(price=price, updated_at=time.monotonic(), source=source)

    def available_symbols(self) -> list[str]:
        return self.oracle.available_symbols()

    async def close(self) -> None:
        await self.oracle.close()


def build_fetcher(config: "OracleConfig") -> QuoteFetcher:
    """Construct the configured oracle ("simulated" or "http") behind a QuoteFetcher."""
    from terminal_core.oracle.http import HttpPriceOracle
    from terminal_core.oracle.simulated import SimulatedPriceOracle

    if config.kind == "http":
        oracle: PriceOracle = HttpPriceOracle(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout_s=config.timeout_s,
        )
    elif config.kind == "simulated":
        oracle = SimulatedPriceOracle(
            drift_pct=config.drift_pct,
            latency_s=config.latency_s,
            seed=config.seed,
        )
    else:
        raise ValueError(f"unknown oracle kind {config.kind!r}")
    log.info("price_oracle_configured", kind=config.kind)
    return QuoteFetcher(oracle, timeout_s=config.timeout_s)
