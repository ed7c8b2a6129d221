# src/quoteflow/application/services/fallback_generator.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Fallback Generator

Purpose:
    Synthetic quotes and daily bars used whenever upstream data is
    unavailable. Output has the same shape as live data; provenance is
    carried by :class:`QuoteResult`, never by the quote itself.

Rules:
    * Base price from a per-symbol table, otherwise ``DEFAULT_BASE_PRICE``.
    * Price is base +/- 5%, clamped to at least 80% of base, 2 decimals.
    * With a seed, output is deterministic per symbol.

Layer: application/services
"""
from __future__ import annotations

import random
from collections.abc import Callable
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from quoteflow.domain.entities.historical_bar import HistoricalBar
from quoteflow.domain.entities.quote import Quote
from quoteflow.domain.services.market_classifier import classify_symbol

US_BASE_PRICES: dict[str, Decimal] = {
    "AAPL": Decimal("150"),
    "GOOGL": Decimal("2750"),
    "MSFT": Decimal("310"),
    "TSLA": Decimal("245"),
    "AMZN": Decimal("3100"),
    "NVDA": Decimal("500"),
    "META": Decimal("280"),
    "NFLX": Decimal("400"),
}

TW_BASE_PRICES: dict[str, Decimal] = {
    "2330": Decimal("580"),
    "2317": Decimal("110"),
    "2454": Decimal("1200"),
    "2881": Decimal("15"),
    "0050": Decimal("140"),
    "0056": Decimal("35"),
    "2412": Decimal("120"),
    "6547": Decimal("300"),
}

DEFAULT_BASE_PRICE = Decimal("100")
VARIATION = 0.05
FLOOR_RATIO = 0.8
DEFAULT_HISTORY_DAYS = 30

_CENT = Decimal("0.01")


def _money(value: float | Decimal) -> Decimal:
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


class FallbackGenerator:
    """Produces bounded pseudo-random quotes and histories."""

    def __init__(
        self,
        *,
        seed: int | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the generator.

        Args:
            seed: Makes output deterministic per symbol when set.
            today: Returns the last day of generated histories.
        """
        self._seed = seed
        self._today = today
        self._shared = random.Random()  # noqa: S311

    def _rng(self, symbol: str, salt: str) -> random.Random:
        if self._seed is None:
            return self._shared
        return random.Random(f"{self._seed}:{salt}:{symbol}")  # noqa: S311

    @staticmethod
    def base_price(symbol: str) -> Decimal:
        """Return the reference price used for ``symbol``."""
        return US_BASE_PRICES.get(symbol) or TW_BASE_PRICES.get(symbol) or DEFAULT_BASE_PRICE

    def fallback_quote(self, symbol: str) -> Quote:
        """Return a synthetic quote for ``symbol``."""
        rng = self._rng(symbol, "quote")
        market = classify_symbol(symbol)
        base = float(self.base_price(symbol))
        price = _money(max(base * (1 + rng.uniform(-VARIATION, VARIATION)), base * FLOOR_RATIO))
        previous_close = _money(base)
        change = price - previous_close
        opened = _money(base * (1 + rng.uniform(-VARIATION / 2, VARIATION / 2)))
        return Quote(
            symbol=symbol,
            price=price,
            change=change,
            change_percent=(change / previous_close * 100).quantize(_CENT),
            market=market,
            volume=rng.randint(1_000_000, 11_000_000),
            high=max(price, opened),
            low=min(price, opened),
            open=opened,
            previous_close=previous_close,
            company_name=f"{symbol} Inc." if not market.is_taiwan else f"{symbol} 股份有限公司",
        )

    def fallback_history(self, symbol: str, days: int = DEFAULT_HISTORY_DAYS) -> list[HistoricalBar]:
        """Return ``days`` synthetic daily bars ending today, ascending."""
        rng = self._rng(symbol, "history")
        base = float(self.base_price(symbol))
        end = self._today()
        bars: list[HistoricalBar] = []
        for offset in range(days - 1, -1, -1):
            close = max(base * (1 + rng.uniform(-VARIATION, VARIATION)), base * FLOOR_RATIO)
            opened = max(close * (1 + rng.uniform(-0.02, 0.02)), base * FLOOR_RATIO)
            high = max(opened, close) * (1 + rng.uniform(0, 0.02))
            low = max(min(opened, close) * (1 - rng.uniform(0, 0.02)), 0.0)
            bars.append(
                HistoricalBar(
                    symbol=symbol,
                    date=end - timedelta(days=offset),
                    open=_money(opened),
                    high=_money(high),
                    low=_money(low),
                    close=_money(close),
                    volume=rng.randint(1_000_000, 11_000_000),
                )
            )
        return bars
