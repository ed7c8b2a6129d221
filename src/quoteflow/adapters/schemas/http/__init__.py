# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""HTTP Schemas package (Adapters Layer).

Purpose:
    Public, adapter-facing HTTP schema surface. Re-exports the canonical
    envelopes and the quote/cache resource schemas used by routers and
    presenters.

Layer:
    adapters/schemas/http
"""

from __future__ import annotations

from quoteflow.adapters.schemas.http.envelopes import (
    ErrorEnvelope,
    ErrorObject,
    SuccessEnvelope,
)
from quoteflow.adapters.schemas.http.quotes import (
    BatchQuotesRequest,
    CacheStatsHTTP,
    DiscoveryPayload,
    HistoricalBarHTTP,
    HistoryPayload,
    QuoteItem,
    QuotesBatch,
    RefreshStatusHTTP,
)

__all__ = [
    # Envelopes
    "ErrorObject",
    "ErrorEnvelope",
    "SuccessEnvelope",
    # Quotes / history / cache schemas
    "QuoteItem",
    "QuotesBatch",
    "BatchQuotesRequest",
    "HistoricalBarHTTP",
    "HistoryPayload",
    "CacheStatsHTTP",
    "DiscoveryPayload",
    "RefreshStatusHTTP",
]
