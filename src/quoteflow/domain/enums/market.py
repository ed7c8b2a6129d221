# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Market enumerations.

Purpose:
    Exchange segments a symbol can belong to and the provenance tag attached
    to every quote handed to callers, plus the discovery rankings.

Layer: domain/enums
"""
from __future__ import annotations

from enum import Enum


class Market(str, Enum):
    """Exchange segment a symbol trades on."""

    US = "US"
    TSE = "TSE"
    OTC = "OTC"

    @property
    def is_taiwan(self) -> bool:
        """Whether the segment is served by the Taiwan Stock Exchange feeds."""
        return self is not Market.US


class QuoteSource(str, Enum):
    """Where a quote handed to a caller came from."""

    LIVE = "live"
    STORE = "store"
    FALLBACK = "fallback"


class DiscoveryKind(str, Enum):
    """Ranking applied to the day's stored snapshots."""

    GAINERS = "gainers"
    LOSERS = "losers"
    ACTIVE = "active"
    TRENDING = "trending"
