"""HttpPriceOracle — REST quotes from a Polygon-style aggregates API."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import httpx

from terminal_core.oracle.base import PriceOracle, PriceQuote


class HttpPriceOracle(PriceOracle):
    """Async client for ``GET /v2/aggs/ticker/{symbol}/prev``.

    The close of the latest aggregate is the price; change is close vs. open
    in percent.
    """

    def __init__(
        self,
        base_url: str = "https://api.polygon.io",
        api_key: str | None = None,
        symbols: list[str] | None = None,
        timeout_s: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._symbols = list(symbols or [])
        self._timeout_s = timeout_s
        self._http: httpx.AsyncClient | None = None

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self._timeout_s)
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()

    def available_symbols(self) -> list[str]:
        return list(self._symbols)

    async def _get_json(self, path: str) -> Any:
        http = await self._get_http()
        params = {"apiKey": self.api_key} if self.api_key else None
        resp = await http.get(f"{self.base_url}{path}", params=params)
        resp.raise_for_status()
        return resp.json()

    async def fetch_price(self, symbol: str) -> PriceQuote:
        data = await self._get_json(f"/v2/aggs/ticker/{symbol}/prev")
        return self.parse_aggregate(symbol, data)

    @staticmethod
    def parse_aggregate(symbol: str, data: dict) -> PriceQuote:
        """Build a quote from an aggregates payload.

        Expected format: {"results": [{"o": 184.1, "c": 185.92, "t": 1718000000000}]}
        """
        results = data.get("results") or []
        if not results:
            raise ValueError(f"no aggregate results for {symbol}")
        bar = results[-1]
        close = Decimal(str(bar["c"]))
        open_ = Decimal(str(bar.get("o", bar["c"])))
        change = (close - open_) / open_ * 100 if open_ else Decimal("0")
        ts_ms = bar.get("t")
        ts = (
            datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc)
            if ts_ms is not None
            else datetime.now(timezone.utc)
        )
        return PriceQuote(symbol=symbol, price=close, change=round(change, 2), timestamp=ts)
