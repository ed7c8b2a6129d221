# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Sourced Results

Purpose:
    Tagged results pairing quote data with its provenance. Synthetic data has
    the same shape as live data, so callers decide how to present it by
    looking at ``source`` rather than at the quote itself.

Layer: domain/value_objects
"""
from __future__ import annotations

from dataclasses import dataclass, field

from quoteflow.domain.entities.historical_bar import HistoricalBar
from quoteflow.domain.entities.quote import Quote
from quoteflow.domain.enums.market import QuoteSource

NOT_FOUND_REASON = "not found"
TIMEOUT_REASON = "timeout"
UPSTREAM_ERROR_REASON = "UPSTREAM_ERROR"


@dataclass(frozen=True, slots=True)
class QuoteResult:
    """A quote together with where it came from.

    Attributes:
        quote: The quote snapshot.
        source: LIVE, STORE, or FALLBACK.
        fallback_reason: Why synthetic data was used (``"not found"``,
            ``"timeout"`` or an upstream error code). ``None`` for real data.
    """

    quote: Quote
    source: QuoteSource = QuoteSource.LIVE
    fallback_reason: str | None = None

    @property
    def symbol(self) -> str:
        return self.quote.symbol

    @property
    def is_fallback(self) -> bool:
        return self.source is QuoteSource.FALLBACK

    @classmethod
    def live(cls, quote: Quote) -> QuoteResult:
        return cls(quote=quote, source=QuoteSource.LIVE)

    @classmethod
    def stored(cls, quote: Quote) -> QuoteResult:
        return cls(quote=quote, source=QuoteSource.STORE)

    @classmethod
    def fallback(cls, quote: Quote, reason: str) -> QuoteResult:
        return cls(quote=quote, source=QuoteSource.FALLBACK, fallback_reason=reason)


@dataclass(frozen=True, slots=True)
class HistoryResult:
    """Daily bars for one symbol plus provenance."""

    symbol: str
    bars: list[HistoricalBar] = field(default_factory=list)
    source: QuoteSource = QuoteSource.LIVE
    fallback_reason: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.source is QuoteSource.FALLBACK
