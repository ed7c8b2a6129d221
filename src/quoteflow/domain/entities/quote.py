# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Quote Entity

Purpose:
    Immutable point-in-time price snapshot for a US or Taiwan symbol (no I/O).
    A refresh produces a new value; cached quotes are replaced, never mutated.

Layer: domain/entities
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from quoteflow.domain.enums.market import Market

from .base import BaseEntity


@dataclass(frozen=True, slots=True)
class Quote(BaseEntity):
    """Latest quote entity.

    Args:
        symbol: Canonical, upper-case symbol. Taiwan symbols are qualified by
            ``market`` (TSE or OTC).
        price: Last traded price (non-negative).
        change: Absolute change versus previous close.
        change_percent: Change versus previous close, in percent.
        market: Exchange segment the symbol trades on.
        volume: Last traded volume (Taiwan: last tick volume).
        market_cap: Market capitalisation when the provider reports it.
        high: Session high.
        low: Session low.
        open: Session open.
        previous_close: Previous session close.
        company_name: Human readable name.
        fifty_two_week_high: 52-week high.
        fifty_two_week_low: 52-week low.
        last_updated: Provider timestamp rendered as an exchange-local string.
        total_volume: Cumulative session volume (Taiwan only).

    Raises:
        ValueError: If invariants are violated (e.g., negative price).
    """

    symbol: str
    price: Decimal
    change: Decimal
    change_percent: Decimal
    market: Market = Market.US
    volume: int | None = None
    market_cap: int | None = None
    high: Decimal | None = None
    low: Decimal | None = None
    open: Decimal | None = None
    previous_close: Decimal | None = None
    company_name: str | None = None
    fifty_two_week_high: Decimal | None = None
    fifty_two_week_low: Decimal | None = None
    last_updated: str | None = None
    total_volume: int | None = None

    def __post_init__(self) -> None:
        if not self.symbol or self.symbol != self.symbol.upper():
            raise ValueError("symbol must be upper-case non-empty")
        if self.price < 0:
            raise ValueError("price must be >= 0")
        if self.volume is not None and self.volume < 0:
            raise ValueError("volume must be >= 0 when provided")
        if self.total_volume is not None and self.total_volume < 0:
            raise ValueError("total_volume must be >= 0 when provided")
