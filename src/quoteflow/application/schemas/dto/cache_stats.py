# src/quoteflow/application/schemas/dto/cache_stats.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Application DTOs for quote cache / queue telemetry.

Layer:
    application/schemas/dto
"""

from __future__ import annotations

from pydantic import Field

from quoteflow.application.schemas.dto.base import BaseDTO


class MarketCacheStatsDTO(BaseDTO):
    """Telemetry of one market's coordinator."""

    market: str
    cache_size: int = Field(ge=0)
    queue_size: int = Field(ge=0)
    pending: int = Field(ge=0)
    is_processing: bool
    hits: int = Field(ge=0)
    misses: int = Field(ge=0)
    hit_rate: float = Field(ge=0, le=100)


class CacheStatsDTO(BaseDTO):
    """Aggregated telemetry across markets.

    Attributes:
        cache_size: Fresh entries held across caches.
        queue_size: Symbols queued and not yet taken by a drain pass.
        is_processing: Whether any market is draining its queue.
        hit_rate: Fresh hits over all lookups, in percent (0 without lookups).
        supported_markets: Exchange segments served.
        popular_symbols: Size of the popular list per exchange segment.
        markets: Per-market breakdown.
    """

    cache_size: int = Field(ge=0)
    queue_size: int = Field(ge=0)
    is_processing: bool
    hit_rate: float = Field(ge=0, le=100)
    supported_markets: list[str]
    popular_symbols: dict[str, int]
    markets: list[MarketCacheStatsDTO]
