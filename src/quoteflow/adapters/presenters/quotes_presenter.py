# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Presenter: Quote Results -> HTTP SuccessEnvelope.

Synopsis:
    Renders sourced quote and history results into the canonical
    SuccessEnvelope. Provenance (``source``, ``is_fallback``,
    ``fallback_reason``) is always part of the payload so clients can label
    synthetic data.

Layer:
    adapters/presenters
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from quoteflow.adapters.presenters.base_presenter import (
    BasePresenter,
    PresentResult,
    decimal_str,
)
from quoteflow.adapters.schemas.http.envelopes import SuccessEnvelope
from quoteflow.adapters.schemas.http.quotes import (
    CacheStatsHTTP,
    DiscoveryPayload,
    HistoricalBarHTTP,
    HistoryPayload,
    MarketCacheStatsHTTP,
    QuoteItem,
    QuotesBatch,
    RefreshStatusHTTP,
)
from quoteflow.application.schemas.dto.cache_stats import CacheStatsDTO
from quoteflow.application.schemas.dto.refresh_status import RefreshStatusDTO
from quoteflow.domain.enums.market import DiscoveryKind
from quoteflow.domain.value_objects.quote_result import HistoryResult, QuoteResult

# Fresh quotes may be served from cache for this long by intermediaries.
QUOTE_CACHE_TTL_S = 5


def to_quote_item(result: QuoteResult) -> QuoteItem:
    q = result.quote
    return QuoteItem(
        symbol=q.symbol,
        market=q.market.value,
        price=format(q.price, "f"),
        change=format(q.change, "f"),
        change_percent=format(q.change_percent, "f"),
        volume=q.volume,
        total_volume=q.total_volume,
        market_cap=q.market_cap,
        high=decimal_str(q.high),
        low=decimal_str(q.low),
        open=decimal_str(q.open),
        previous_close=decimal_str(q.previous_close),
        company_name=q.company_name,
        fifty_two_week_high=decimal_str(q.fifty_two_week_high),
        fifty_two_week_low=decimal_str(q.fifty_two_week_low),
        last_updated=q.last_updated,
        source=result.source.value,
        is_fallback=result.is_fallback,
        fallback_reason=result.fallback_reason,
    )


class QuotesPresenter(BasePresenter):
    """Presenter for `/v1/quotes`, `/v1/discovery` and `/v1/cache` success responses."""

    def present_quote(
        self, result: QuoteResult, *, trace_id: str | None = None
    ) -> PresentResult[SuccessEnvelope[Any]]:
        """Present one quote. Synthetic quotes are never advertised as cacheable."""
        ttl = None if result.is_fallback else QUOTE_CACHE_TTL_S
        return self.present_success(to_quote_item(result), trace_id=trace_id, cache_ttl_s=ttl)

    def present_quotes(
        self, results: Sequence[QuoteResult], *, trace_id: str | None = None
    ) -> PresentResult[SuccessEnvelope[Any]]:
        payload = QuotesBatch(items=[to_quote_item(r) for r in results])
        return self.present_success(payload, trace_id=trace_id, with_etag=True)

    def present_history(
        self, result: HistoryResult, *, trace_id: str | None = None
    ) -> PresentResult[SuccessEnvelope[Any]]:
        payload = HistoryPayload(
            symbol=result.symbol,
            days=len(result.bars),
            source=result.source.value,
            is_fallback=result.is_fallback,
            fallback_reason=result.fallback_reason,
            bars=[
                HistoricalBarHTTP(
                    date=b.date,
                    open=format(b.open, "f"),
                    high=format(b.high, "f"),
                    low=format(b.low, "f"),
                    close=format(b.close, "f"),
                    volume=b.volume,
                )
                for b in result.bars
            ],
        )
        return self.present_success(payload, trace_id=trace_id, with_etag=True)

    def present_cache_stats(
        self, dto: CacheStatsDTO, *, trace_id: str | None = None
    ) -> PresentResult[SuccessEnvelope[Any]]:
        payload = CacheStatsHTTP(
            cache_size=dto.cache_size,
            queue_size=dto.queue_size,
            is_processing=dto.is_processing,
            hit_rate=dto.hit_rate,
            supported_markets=list(dto.supported_markets),
            popular_symbols=dict(dto.popular_symbols),
            markets=[MarketCacheStatsHTTP(**m.model_dump()) for m in dto.markets],
        )
        return self.present_success(payload, trace_id=trace_id)

    def present_discovery(
        self,
        kind: DiscoveryKind,
        results: Sequence[QuoteResult],
        *,
        trace_id: str | None = None,
    ) -> PresentResult[SuccessEnvelope[Any]]:
        payload = DiscoveryPayload(kind=kind.value, items=[to_quote_item(r) for r in results])
        return self.present_success(payload, trace_id=trace_id)

    def present_refresh_status(
        self, dto: RefreshStatusDTO, *, trace_id: str | None = None
    ) -> PresentResult[SuccessEnvelope[Any]]:
        payload = RefreshStatusHTTP(**dto.model_dump())
        return self.present_success(payload, trace_id=trace_id)
