# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""HTTP Schemas: Quotes, Histories and Cache Telemetry.

Synopsis:
    Pydantic models that define the HTTP-facing request/response contracts for
    latest quotes, daily histories, discovery rankings, the cache
    administration endpoints and the daily refresh status.

Layer:
    adapters/schemas/http
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import ConfigDict, Field

from quoteflow.adapters.schemas.http.base import BaseHTTPSchema

MAX_BATCH_SYMBOLS = 20

SourceLiteral = Literal["live", "store", "fallback"]


class QuoteItem(BaseHTTPSchema):
    """HTTP schema for a single quote item."""

    symbol: str = Field(description="Upper-case symbol", examples=["AAPL", "2330"])
    market: Literal["US", "TSE", "OTC"] = Field(description="Exchange segment")
    price: str = Field(description="Decimal string last price", examples=["189.84"])
    change: str = Field(description="Decimal string absolute change", examples=["-1.02"])
    change_percent: str = Field(description="Decimal string percent change", examples=["-0.53"])
    volume: int | None = Field(default=None, description="Last traded volume")
    total_volume: int | None = Field(default=None, description="Session volume (Taiwan)")
    market_cap: int | None = None
    high: str | None = None
    low: str | None = None
    open: str | None = None
    previous_close: str | None = None
    company_name: str | None = None
    fifty_two_week_high: str | None = None
    fifty_two_week_low: str | None = None
    last_updated: str | None = Field(default=None, description="Provider timestamp")
    source: SourceLiteral = Field(description="Provenance of the data")
    is_fallback: bool = Field(description="True when the quote is synthetic")
    fallback_reason: str | None = Field(
        default=None, description="Why synthetic data was served", examples=["not found"]
    )


class QuotesBatch(BaseHTTPSchema):
    """HTTP schema for a batch of quotes (wrapped by SuccessEnvelope)."""

    items: list[QuoteItem] = Field(description="One quote per unique requested symbol")


class BatchQuotesRequest(BaseHTTPSchema):
    """Body of ``POST /v1/quotes/batch``."""

    model_config = ConfigDict(extra="forbid")

    symbols: list[str] = Field(
        ...,
        min_length=1,
        max_length=MAX_BATCH_SYMBOLS,
        description=f"Symbols to fetch (1..{MAX_BATCH_SYMBOLS}).",
        examples=[["AAPL", "2330"]],
    )


class HistoricalBarHTTP(BaseHTTPSchema):
    """HTTP payload for a single daily bar."""

    date: dt.date
    open: str
    high: str
    low: str
    close: str
    volume: int


class HistoryPayload(BaseHTTPSchema):
    """Daily bars for one symbol plus provenance."""

    symbol: str
    days: int = Field(ge=0, description="Number of bars returned")
    source: SourceLiteral
    is_fallback: bool
    fallback_reason: str | None = None
    bars: list[HistoricalBarHTTP]


class MarketCacheStatsHTTP(BaseHTTPSchema):
    """Per-market coordinator telemetry."""

    market: str
    cache_size: int
    queue_size: int
    pending: int
    is_processing: bool
    hits: int
    misses: int
    hit_rate: float


class CacheStatsHTTP(BaseHTTPSchema):
    """Aggregated cache/queue telemetry."""

    cache_size: int
    queue_size: int
    is_processing: bool
    hit_rate: float = Field(description="Fresh hits over lookups, in percent")
    supported_markets: list[str]
    popular_symbols: dict[str, int] = Field(description="Popular list size per segment")
    markets: list[MarketCacheStatsHTTP]


class PreloadResult(BaseHTTPSchema):
    """Outcome of a cache warm-up."""

    loaded: int = Field(ge=0, description="Symbols loaded with real data")


class CacheCleared(BaseHTTPSchema):
    """Acknowledgement of a cache reset."""

    cleared: bool = True


class DiscoveryPayload(BaseHTTPSchema):
    """Top movers of the day for one ranking."""

    kind: Literal["gainers", "losers", "active", "trending"]
    items: list[QuoteItem] = Field(description="At most ten quotes, best ranked first")


class RefreshStatusHTTP(BaseHTTPSchema):
    """What the daily refresh job logged for one day."""

    day: dt.date
    store_available: bool = Field(description="False without a readable persistent store")
    has_refreshed: bool
    status: str | None = Field(default=None, description="Status of the latest record")
    last_refresh: dict[str, Any] | None = None
    entries: int = Field(ge=0)
