# src/quoteflow/adapters/gateways/twse_quote_gateway.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Adapter Gateway: Taiwan Stock Exchange -> TW quotes and daily bars.

Design principles:
    * A chunk is split per market segment: TSE and OTC codes live in distinct
      upstream namespaces (``tse_2330.tw`` / ``otc_6547.tw``), one request each.
    * Prices arrive as strings; change and change percent are computed
      locally against the previous close (``y``).
    * Before the first trade of the session the last price is ``"-"``; the
      previous close is used so the quote stays renderable with zero change.
    * History is paged by calendar month (Minguo dates, comma-grouped
      numbers), walking backwards from the current month.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from quoteflow.adapters.mappers.twse_fields import (
    TAIPEI_TZ,
    format_epoch_ms,
    minguo_to_date,
    parse_decimal,
    parse_int,
)
from quoteflow.domain.entities.historical_bar import HistoricalBar
from quoteflow.domain.entities.quote import Quote
from quoteflow.domain.enums.market import Market
from quoteflow.domain.exceptions.market_data import MarketDataValidationError
from quoteflow.domain.services.market_classifier import classify_tw_market, is_taiwan_symbol
from quoteflow.infrastructure.external_apis.twse.client import TwseClient
from quoteflow.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

_ZERO = Decimal("0")
_PERCENT_QUANTUM = Decimal("0.0001")
_TRADING_DAYS_PER_MONTH = 15


def _taipei_today() -> date:
    return datetime.now(tz=TAIPEI_TZ).date()


def channel_for(symbol: str) -> str:
    """Return the MIS channel token for a Taiwan code (``tse_2330.tw``)."""
    return f"{classify_tw_market(symbol).value.lower()}_{symbol}.tw"


class TwseQuoteGateway:
    """Taiwan market gateway backed by :class:`TwseClient`."""

    name = "tw"

    def __init__(
        self,
        client: TwseClient,
        *,
        today: Callable[[], date] | None = None,
        page_pause_s: float = 0.2,
    ) -> None:
        """Initialize the gateway.

        Args:
            client: TWSE transport client.
            today: Returns the current Taipei calendar day.
            page_pause_s: Pause between monthly history pages.
        """
        self._client = client
        self._today = today or _taipei_today
        self._page_pause_s = page_pause_s

    def handles(self, symbol: str) -> bool:
        return is_taiwan_symbol(symbol)

    def request_groups(self, symbols: Sequence[str]) -> list[list[str]]:
        groups: dict[Market, list[str]] = {Market.TSE: [], Market.OTC: []}
        for symbol in symbols:
            groups[classify_tw_market(symbol)].append(symbol)
        return [group for group in groups.values() if group]

    async def fetch_quotes(self, symbols: Sequence[str]) -> dict[str, Quote]:
        rows = await self._client.stock_info([channel_for(s) for s in symbols])
        wanted = set(symbols)
        quotes: dict[str, Quote] = {}
        for row in rows:
            symbol = str(row.get("c") or "").strip()
            if symbol not in wanted or symbol in quotes:
                continue
            try:
                quote = self.parse_quote(symbol, row)
            except ValueError as exc:
                logger.warning(
                    "twse.quote_row_skipped",
                    extra={"extra": {"symbol": symbol, "error": str(exc)}},
                )
                continue
            if quote is not None:
                quotes[symbol] = quote
        return quotes

    @staticmethod
    def parse_quote(symbol: str, row: Mapping[str, Any]) -> Quote | None:
        """Map one ``msgArray`` row to a :class:`Quote`.

        Args:
            symbol: Four-digit code the row belongs to.
            row: Raw MIS row with string-typed numerics.

        Returns:
            The quote, or ``None`` when the row carries neither a last price
            nor a previous close.

        Raises:
            ValueError: If the mapped values violate quote invariants.
        """
        previous_close = parse_decimal(row.get("y"))
        price = parse_decimal(row.get("z"))
        if price is None:
            price = previous_close
        if price is None:
            return None
        if previous_close is None:
            previous_close = price

        change = price - previous_close
        change_percent = (
            (change / previous_close * 100).quantize(_PERCENT_QUANTUM) if previous_close else _ZERO
        )
        name = row.get("n") or row.get("nf")
        return Quote(
            symbol=symbol,
            price=price,
            change=change,
            change_percent=change_percent,
            market=classify_tw_market(symbol),
            volume=parse_int(row.get("tv")),
            high=parse_decimal(row.get("h")),
            low=parse_decimal(row.get("l")),
            open=parse_decimal(row.get("o")),
            previous_close=previous_close,
            company_name=str(name) if name else None,
            last_updated=format_epoch_ms(row.get("tlong")),
            total_volume=parse_int(row.get("v")),
        )

    async def fetch_history(self, symbol: str, days: int) -> list[HistoricalBar]:
        bars: dict[date, HistoricalBar] = {}
        today = self._today()
        year, month = today.year, today.month
        max_pages = days // _TRADING_DAYS_PER_MONTH + 2
        for page in range(max_pages):
            if page:
                await asyncio.sleep(self._page_pause_s)
            for bar in self.parse_history_rows(symbol, await self._month_rows(symbol, year, month)):
                bars[bar.date] = bar
            if len(bars) >= days:
                break
            year, month = (year - 1, 12) if month == 1 else (year, month - 1)
        return [bars[d] for d in sorted(bars)][-days:]

    async def _month_rows(self, symbol: str, year: int, month: int) -> list[list[Any]]:
        try:
            return await self._client.stock_day(symbol, year=year, month=month)
        except MarketDataValidationError as exc:
            # A month without sessions reports a non-OK stat instead of empty data.
            if str(exc) != "provider_status":
                raise
            logger.debug(
                "twse.history_month_empty",
                extra={"extra": {"symbol": symbol, "year": year, "month": month, **exc.details}},
            )
            return []

    @staticmethod
    def parse_history_rows(symbol: str, rows: Sequence[Sequence[Any]]) -> list[HistoricalBar]:
        """Map STOCK_DAY rows to bars.

        Row layout: ``[date, shares, amount, open, high, low, close, change,
        transactions]``. Volume is the traded share count. Rows with
        placeholder prices (suspended sessions) are skipped.
        """
        bars: list[HistoricalBar] = []
        for row in rows:
            if len(row) < 7:
                continue
            opened, high, low, close = (parse_decimal(v) for v in row[3:7])
            if opened is None or high is None or low is None or close is None:
                continue
            try:
                bars.append(
                    HistoricalBar(
                        symbol=symbol,
                        date=minguo_to_date(str(row[0])),
                        open=opened,
                        high=high,
                        low=low,
                        close=close,
                        volume=parse_int(row[1]) or 0,
                    )
                )
            except ValueError:
                logger.debug("twse.history_row_skipped", extra={"extra": {"row": list(row)}})
        return bars
