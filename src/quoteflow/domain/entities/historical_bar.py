# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Historical Bar Entity

Purpose:
    Daily OHLCV bar for charting. Bars are keyed by the exchange-local
    calendar day; series are ordered ascending and may contain gaps for
    exchange holidays.

Layer: domain/entities
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from .base import BaseEntity


@dataclass(frozen=True, slots=True)
class HistoricalBar(BaseEntity):
    """One trading day of OHLCV data.

    Args:
        symbol: Upper-case symbol.
        date: Exchange-local trading day.
        open: Opening price.
        high: Session high.
        low: Session low.
        close: Closing price.
        volume: Shares traded.

    Raises:
        ValueError: On negative values or ``low > high``.
    """

    symbol: str
    date: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int = 0

    def __post_init__(self) -> None:
        if not self.symbol or self.symbol != self.symbol.upper():
            raise ValueError("symbol must be upper-case non-empty")
        if min(self.open, self.high, self.low, self.close) < 0:
            raise ValueError("prices must be >= 0")
        if self.low > self.high:
            raise ValueError("low must be <= high")
        if self.volume < 0:
            raise ValueError("volume must be >= 0")
