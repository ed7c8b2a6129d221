# src/quoteflow/infrastructure/external_apis/yahoo/client.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Yahoo Finance Transport Client.

Two endpoints are used:

* ``quote``: ``GET {quote_url}?symbols=AAPL,MSFT`` returning
  ``{"quoteResponse": {"result": [...], "error": null}}``.
* ``chart``: ``GET {chart_url}/{symbol}?period1=&period2=&interval=1d``
  returning ``{"chart": {"result": [{"meta", "timestamp", "indicators"}]}}``.

Only the envelope shape is validated here; field-level mapping belongs to the
US quote gateway.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, ClassVar
from urllib.parse import quote as url_quote

import httpx

from quoteflow.domain.exceptions.market_data import MarketDataValidationError
from quoteflow.infrastructure.external_apis.http_transport import UpstreamJsonClient
from quoteflow.infrastructure.external_apis.yahoo.settings import YahooFinanceSettings
from quoteflow.infrastructure.resilience.circuit_breaker import CircuitBreaker


class YahooFinanceClient(UpstreamJsonClient):
    """Instrumented transport client for Yahoo Finance quote and chart data."""

    provider: ClassVar[str] = "yahoo"

    def __init__(
        self,
        settings: YahooFinanceSettings | None = None,
        *,
        http: httpx.AsyncClient | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self._settings = settings or YahooFinanceSettings()
        super().__init__(
            http=http,
            timeout_s=self._settings.timeout_s,
            user_agent=self._settings.user_agent,
            breaker=breaker,
        )

    async def quote(self, symbols: Sequence[str]) -> list[Mapping[str, Any]]:
        """Fetch latest quotes for ``symbols`` in one request.

        Args:
            symbols: Upper-case tickers.

        Returns:
            The raw ``quoteResponse.result`` rows (possibly empty).

        Raises:
            MarketDataValidationError: If the envelope is not the expected shape.
        """
        payload = await self._get_json(
            endpoint="quote",
            url=self._settings.quote_url,
            params={"symbols": ",".join(symbols)},
        )
        envelope = payload.get("quoteResponse") if isinstance(payload, dict) else None
        if not isinstance(envelope, dict):
            raise MarketDataValidationError("bad_shape", details={"expected": "quoteResponse:dict"})
        rows = envelope.get("result") or []
        if not isinstance(rows, list):
            raise MarketDataValidationError("bad_shape", details={"expected": "result:list"})
        return [row for row in rows if isinstance(row, dict)]

    async def chart(
        self,
        symbol: str,
        *,
        period1: int,
        period2: int,
        interval: str = "1d",
    ) -> Mapping[str, Any] | None:
        """Fetch daily chart data between two epoch-second bounds.

        Args:
            symbol: Upper-case ticker.
            period1: Range start (epoch seconds).
            period2: Range end (epoch seconds).
            interval: Bar interval.

        Returns:
            ``chart.result[0]`` or ``None`` when the provider has no series.

        Raises:
            MarketDataValidationError: If the envelope is not the expected shape.
        """
        payload = await self._get_json(
            endpoint="chart",
            url=f"{self._settings.chart_url.rstrip('/')}/{url_quote(symbol, safe='')}",
            params={"period1": period1, "period2": period2, "interval": interval},
        )
        chart = payload.get("chart") if isinstance(payload, dict) else None
        if not isinstance(chart, dict):
            raise MarketDataValidationError("bad_shape", details={"expected": "chart:dict"})
        results = chart.get("result")
        if not results:
            return None
        if not isinstance(results, list) or not isinstance(results[0], dict):
            raise MarketDataValidationError("bad_shape", details={"expected": "result:list"})
        return results[0]
