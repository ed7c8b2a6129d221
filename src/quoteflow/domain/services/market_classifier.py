# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Market Classifier

Purpose:
    Deterministically derive the exchange segment of a symbol from its shape
    and validate caller-supplied symbols.

    * Four-digit numeric symbols are Taiwan listings. They trade on the OTC
      (Taipei Exchange) segment when the code starts with ``6`` or is in the
      known OTC list, otherwise on the TSE.
    * Everything else is treated as an upper-case US ticker.

Layer: domain/services
"""
from __future__ import annotations

import re

from quoteflow.domain.enums.market import Market
from quoteflow.domain.exceptions.market_data import InvalidSymbolError

_TW_SYMBOL_RE = re.compile(r"^\d{4}$")
_US_SYMBOL_RE = re.compile(r"^[A-Z0-9^][A-Z0-9.\-=^]{0,14}$")

POPULAR_US_SYMBOLS: tuple[str, ...] = (
    "AAPL",
    "GOOGL",
    "MSFT",
    "TSLA",
    "AMZN",
    "NVDA",
    "META",
    "NFLX",
    "AMD",
    "CRM",
)

POPULAR_TSE_SYMBOLS: tuple[str, ...] = (
    "2330",
    "2317",
    "2454",
    "2881",
    "0050",
    "0056",
    "2412",
    "1301",
    "2303",
    "2002",
    "1216",
    "2886",
    "2891",
    "2382",
    "2308",
)

POPULAR_OTC_SYMBOLS: tuple[str, ...] = (
    "6547",
    "6180",
    "4938",
    "3034",
    "6415",
    "6669",
    "4904",
    "6176",
    "3711",
    "6239",
)

OTC_ALLOWLIST: frozenset[str] = frozenset(POPULAR_OTC_SYMBOLS)


def is_taiwan_symbol(symbol: str) -> bool:
    """Return True for four-digit numeric Taiwan codes."""
    return bool(_TW_SYMBOL_RE.match(symbol))


def classify_tw_market(symbol: str) -> Market:
    """Classify a Taiwan code into TSE or OTC.

    Raises:
        InvalidSymbolError: If ``symbol`` is not a Taiwan code.
    """
    if not is_taiwan_symbol(symbol):
        raise InvalidSymbolError("Not a Taiwan symbol", details={"symbol": symbol})
    if symbol.startswith("6") or symbol in OTC_ALLOWLIST:
        return Market.OTC
    return Market.TSE


def classify_symbol(symbol: str) -> Market:
    """Return the market a normalized symbol belongs to."""
    if is_taiwan_symbol(symbol):
        return classify_tw_market(symbol)
    return Market.US


def normalize_symbol(raw: object) -> str:
    """Trim and upper-case a caller-supplied symbol.

    Args:
        raw: Symbol as received from the caller.

    Returns:
        The canonical symbol.

    Raises:
        InvalidSymbolError: If ``raw`` is not a string or has an invalid shape.
    """
    if not isinstance(raw, str):
        raise InvalidSymbolError("Symbol must be a string", details={"symbol": repr(raw)})
    symbol = raw.strip().upper()
    if not (is_taiwan_symbol(symbol) or _US_SYMBOL_RE.match(symbol)):
        raise InvalidSymbolError("Invalid symbol", details={"symbol": raw})
    return symbol
