# src/quoteflow/adapters/gateways/yahoo_quote_gateway.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Adapter Gateway: Yahoo Finance -> US quotes and daily bars.

Design principles:
    * A chunk of US tickers is a single request group (comma-joined).
    * Price, change and change percent default to 0 when absent; descriptive
      fields (volume, market cap, company name) stay ``None``.
    * Rows that cannot be mapped are skipped, so the symbol is reported as
      "not found" instead of failing the whole group.
    * Chart timestamps are shifted by the exchange ``gmtoffset`` so bars are
      keyed by the exchange-local trading day.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from quoteflow.domain.entities.historical_bar import HistoricalBar
from quoteflow.domain.entities.quote import Quote
from quoteflow.domain.enums.market import Market
from quoteflow.domain.services.market_classifier import classify_symbol
from quoteflow.infrastructure.external_apis.yahoo.client import YahooFinanceClient
from quoteflow.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

_ZERO = Decimal("0")


def _to_decimal(value: Any) -> Decimal | None:
    """Coerce a provider number (or ``{"raw": n}`` wrapper) into a Decimal."""
    if isinstance(value, Mapping):
        value = value.get("raw")
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _to_int(value: Any) -> int | None:
    number = _to_decimal(value)
    return int(number) if number is not None else None


class YahooQuoteGateway:
    """US market gateway backed by :class:`YahooFinanceClient`."""

    name = "us"

    def __init__(
        self,
        client: YahooFinanceClient,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            client: Yahoo Finance transport client.
            clock: Returns the current aware datetime; used for history windows.
        """
        self._client = client
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    def handles(self, symbol: str) -> bool:
        return classify_symbol(symbol) is Market.US

    def request_groups(self, symbols: Sequence[str]) -> list[list[str]]:
        return [list(symbols)] if symbols else []

    async def fetch_quotes(self, symbols: Sequence[str]) -> dict[str, Quote]:
        rows = await self._client.quote(symbols)
        wanted = set(symbols)
        quotes: dict[str, Quote] = {}
        for row in rows:
            symbol = str(row.get("symbol") or "").upper()
            if symbol not in wanted or symbol in quotes:
                continue
            try:
                quotes[symbol] = self.parse_quote(symbol, row)
            except ValueError as exc:
                logger.warning(
                    "yahoo.quote_row_skipped",
                    extra={"extra": {"symbol": symbol, "error": str(exc)}},
                )
        return quotes

    @staticmethod
    def parse_quote(symbol: str, row: Mapping[str, Any]) -> Quote:
        """Map one ``quoteResponse.result`` row to a :class:`Quote`.

        Args:
            symbol: Requested symbol the row belongs to.
            row: Raw provider row.

        Returns:
            The mapped quote.

        Raises:
            ValueError: If the mapped values violate quote invariants.
        """
        name = row.get("longName") or row.get("shortName")
        return Quote(
            symbol=symbol,
            price=_to_decimal(row.get("regularMarketPrice")) or _ZERO,
            change=_to_decimal(row.get("regularMarketChange")) or _ZERO,
            change_percent=_to_decimal(row.get("regularMarketChangePercent")) or _ZERO,
            market=Market.US,
            volume=_to_int(row.get("regularMarketVolume")),
            market_cap=_to_int(row.get("marketCap")),
            high=_to_decimal(row.get("regularMarketDayHigh")),
            low=_to_decimal(row.get("regularMarketDayLow")),
            open=_to_decimal(row.get("regularMarketOpen")),
            previous_close=_to_decimal(row.get("regularMarketPreviousClose")),
            company_name=str(name) if name else None,
            fifty_two_week_high=_to_decimal(row.get("fiftyTwoWeekHigh")),
            fifty_two_week_low=_to_decimal(row.get("fiftyTwoWeekLow")),
        )

    async def fetch_history(self, symbol: str, days: int) -> list[HistoricalBar]:
        end = self._clock()
        # Calendar window wide enough to hold `days` trading sessions.
        start = end - timedelta(days=days * 7 // 5 + 7)
        result = await self._client.chart(
            symbol,
            period1=int(start.timestamp()),
            period2=int(end.timestamp()),
        )
        if result is None:
            return []
        return self.parse_chart(symbol, result)[-days:]

    @staticmethod
    def parse_chart(symbol: str, result: Mapping[str, Any]) -> list[HistoricalBar]:
        """Map ``chart.result[0]`` to ascending daily bars.

        Null closes are skipped; missing open/high/low fall back to the close.
        """
        timestamps = result.get("timestamp") or []
        indicators = result.get("indicators") or {}
        quote_rows = indicators.get("quote") or [{}]
        series = quote_rows[0] if quote_rows else {}
        meta = result.get("meta") or {}
        offset = timedelta(seconds=_to_int(meta.get("gmtoffset")) or 0)

        def column(key: str) -> list[Any]:
            values = series.get(key) or []
            return list(values) + [None] * (len(timestamps) - len(values))

        opens, highs, lows = column("open"), column("high"), column("low")
        closes, volumes = column("close"), column("volume")

        bars: dict[Any, HistoricalBar] = {}
        for i, ts in enumerate(timestamps):
            close = _to_decimal(closes[i])
            if close is None or not isinstance(ts, int | float):
                continue
            day = (datetime.fromtimestamp(ts, tz=UTC) + offset).date()
            try:
                bars[day] = HistoricalBar(
                    symbol=symbol,
                    date=day,
                    open=_to_decimal(opens[i]) or close,
                    high=_to_decimal(highs[i]) or close,
                    low=_to_decimal(lows[i]) or close,
                    close=close,
                    volume=_to_int(volumes[i]) or 0,
                )
            except ValueError:
                logger.debug("yahoo.chart_row_skipped", extra={"extra": {"symbol": symbol}})
        return [bars[d] for d in sorted(bars)]
