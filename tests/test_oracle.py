"""Tests for price oracles and the QuoteFetcher cache."""

from __future__ import annotations

import time
from decimal import Decimal

import httpx
import pytest

from terminal_core.config.schema import OracleConfig
from terminal_core.errors import OracleUnavailable
from terminal_core.oracle import (
    DEFAULT_PRICE,
    REFERENCE_PRICES,
    HttpPriceOracle,
    QuoteFetcher,
    SimulatedPriceOracle,
    build_fetcher,
)


class TestSimulatedOracle:
    @pytest.mark.asyncio
    async def test_drift_bounded(self):
        oracle = SimulatedPriceOracle(latency_s=0, seed=7)
        base = REFERENCE_PRICES["AAPL"]
        for _ in range(50):
            quote = await oracle.fetch_price("AAPL")
            assert abs(quote.price - base) <= base * Decimal("0.005") + Decimal("0.01")
            assert quote.price == quote.price.quantize(Decimal("0.01"))

    @pytest.mark.asyncio
    async def test_unknown_symbol_uses_default(self):
        oracle = SimulatedPriceOracle(latency_s=0, drift_pct=0)
        quote = await oracle.fetch_price("XYZ")
        assert quote.price == DEFAULT_PRICE
        assert quote.change == 0

    @pytest.mark.asyncio
    async def test_seed_is_reproducible(self):
        a = SimulatedPriceOracle(latency_s=0, seed=42)
        b = SimulatedPriceOracle(latency_s=0, seed=42)
        assert (await a.fetch_price("MSFT")).price == (await b.fetch_price("MSFT")).price

    def test_symbols(self):
        oracle = SimulatedPriceOracle(prices={"AAPL": Decimal("1")})
        assert oracle.available_symbols() == ["AAPL"]


class TestHttpOracle:
    def test_parse_aggregate(self):
        quote = HttpPriceOracle.parse_aggregate(
            "AAPL", {"results": [{"o": 180.0, "c": 185.92, "t": 1718000000000}]},
        )
        assert quote.price == Decimal("185.92")
        assert quote.change == Decimal("3.29")
        assert quote.timestamp.year == 2024

    def test_parse_empty(self):
        with pytest.raises(ValueError):
            HttpPriceOracle.parse_aggregate("AAPL", {"results": []})

    @pytest.mark.asyncio
    async def test_fetch_via_transport(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"results": [{"o": 100, "c": 101}]})

        oracle = HttpPriceOracle(base_url="https://quotes.test/", api_key="k")
        oracle._http = httpx.AsyncClient(transport=httpx.MockTransport(handler))

        quote = await oracle.fetch_price("TSLA")
        await oracle.close()

        assert quote.price == 101
        assert seen["url"] == "https://quotes.test/v2/aggs/ticker/TSLA/prev?apiKey=k"

    @pytest.mark.asyncio
    async def test_http_error_becomes_unavailable(self):
        oracle = HttpPriceOracle(base_url="https://quotes.test")
        oracle._http = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(503)),
        )
        fetcher = QuoteFetcher(oracle)
        with pytest.raises(OracleUnavailable):
            await fetcher.quote("TSLA")
        await fetcher.close()


class TestQuoteFetcher:
    @pytest.mark.asyncio
    async def test_caches_last_price(self, fetcher):
        assert fetcher.last_price("AAPL") is None
        assert fetcher.is_stale("AAPL")

        await fetcher.quote("AAPL")

        assert fetcher.last_price("AAPL") == 100
        assert not fetcher.is_stale("AAPL")

    @pytest.mark.asyncio
    async def test_non_positive_price_rejected(self, fetcher, oracle):
        oracle.set("AAPL", 0)
        with pytest.raises(OracleUnavailable):
            await fetcher.quote("AAPL")
        assert fetcher.last_price("AAPL") is None

    def test_staleness(self, fetcher):
        fetcher.update_price("AAPL", Decimal("99"))
        fetcher._prices["AAPL"].updated_at = time.monotonic() - 60
        assert fetcher.is_stale("AAPL")
        assert fetcher.last_price("AAPL") == 99

    @pytest.mark.asyncio
    async def test_refresh_deduplicates(self, fetcher, oracle):
        prices = await fetcher.refresh(["AAPL", "AAPL", "TSLA"])
        assert prices == {"AAPL": Decimal("100"), "TSLA": Decimal("200")}
        assert sorted(oracle.calls) == ["AAPL", "TSLA"]


class TestBuildFetcher:
    def test_simulated(self):
        fetcher = build_fetcher(OracleConfig(kind="simulated", latency_s=0))
        assert isinstance(fetcher.oracle, SimulatedPriceOracle)

    def test_http(self):
        fetcher = build_fetcher(OracleConfig(kind="http", api_key="k"))
        assert isinstance(fetcher.oracle, HttpPriceOracle)
        assert fetcher.oracle.api_key == "k"

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            build_fetcher(OracleConfig(kind="carrier-pigeon"))
