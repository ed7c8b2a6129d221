# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Quote payload (de)serialization.

Purpose:
    Convert quotes and bars to JSON-friendly mappings and back. Decimals are
    carried as strings so values round-trip exactly through Redis.

Layer: adapters/mappers
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from quoteflow.domain.entities.historical_bar import HistoricalBar
from quoteflow.domain.entities.quote import Quote
from quoteflow.domain.enums.market import Market

_DECIMAL_FIELDS = (
    "high",
    "low",
    "open",
    "previous_close",
    "fifty_two_week_high",
    "fifty_two_week_low",
)
_INT_FIELDS = ("volume", "market_cap", "total_volume")


def _opt_decimal(value: Any) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


def _opt_int(value: Any) -> int | None:
    return int(value) if value is not None else None


def quote_to_payload(quote: Quote) -> dict[str, Any]:
    """Serialize a :class:`Quote` into a JSON-friendly mapping."""
    payload: dict[str, Any] = {
        "symbol": quote.symbol,
        "price": str(quote.price),
        "change": str(quote.change),
        "change_percent": str(quote.change_percent),
        "market": quote.market.value,
        "company_name": quote.company_name,
        "last_updated": quote.last_updated,
    }
    for name in _DECIMAL_FIELDS:
        value = getattr(quote, name)
        payload[name] = str(value) if value is not None else None
    for name in _INT_FIELDS:
        payload[name] = getattr(quote, name)
    return payload


def quote_from_payload(payload: Mapping[str, Any]) -> Quote:
    """Rebuild a :class:`Quote` from :func:`quote_to_payload` output.

    Raises:
        KeyError: If a required key is missing.
        ValueError: If values violate quote invariants.
    """
    return Quote(
        symbol=str(payload["symbol"]),
        price=Decimal(str(payload["price"])),
        change=Decimal(str(payload.get("change") or "0")),
        change_percent=Decimal(str(payload.get("change_percent") or "0")),
        market=Market(payload.get("market") or Market.US.value),
        company_name=payload.get("company_name"),
        last_updated=payload.get("last_updated"),
        **{name: _opt_decimal(payload.get(name)) for name in _DECIMAL_FIELDS},
        **{name: _opt_int(payload.get(name)) for name in _INT_FIELDS},
    )


def bar_to_payload(bar: HistoricalBar) -> dict[str, Any]:
    """Serialize a :class:`HistoricalBar`."""
    return {
        "symbol": bar.symbol,
        "date": bar.date.isoformat(),
        "open": str(bar.open),
        "high": str(bar.high),
        "low": str(bar.low),
        "close": str(bar.close),
        "volume": bar.volume,
    }


def bar_from_payload(payload: Mapping[str, Any]) -> HistoricalBar:
    """Rebuild a :class:`HistoricalBar` from :func:`bar_to_payload` output."""
    return HistoricalBar(
        symbol=str(payload["symbol"]),
        date=date.fromisoformat(str(payload["date"])),
        open=Decimal(str(payload["open"])),
        high=Decimal(str(payload["high"])),
        low=Decimal(str(payload["low"])),
        close=Decimal(str(payload["close"])),
        volume=int(payload.get("volume") or 0),
    )
