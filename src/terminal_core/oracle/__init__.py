"""Price oracle — pluggable quote feeds behind a timeout-bounded fetcher."""

from terminal_core.oracle.base import PriceOracle, PriceQuote
from terminal_core.oracle.fetcher import PriceEntry, QuoteFetcher, build_fetcher
from terminal_core.oracle.http import HttpPriceOracle
from terminal_core.oracle.simulated import DEFAULT_PRICE, REFERENCE_PRICES, SimulatedPriceOracle

__all__ = [
    "DEFAULT_PRICE",
    "HttpPriceOracle",
    "PriceEntry",
    "PriceOracle",
    "PriceQuote",
    "QuoteFetcher",
    "REFERENCE_PRICES",
    "SimulatedPriceOracle",
    "build_fetcher",
]
