# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Market Data Domain Exceptions

Purpose:
    Error conditions raised by upstream quote providers and by callers that
    hand the quote layer malformed input.

    Upstream failures (unavailable, rate limited, rejected request, invalid
    payload) are retried and end up as fallback quotes. `InvalidSymbolError`
    signals a caller bug and is the only one that reaches API consumers.

Layer: domain/exceptions
"""
from __future__ import annotations

from .base import DomainError


class MarketDataUnavailable(DomainError):
    """Upstream quote provider is unavailable, timed out, or circuit is open."""

    code = "MARKET_DATA_UNAVAILABLE"
    http_status = 503


class MarketDataRateLimited(DomainError):
    """Upstream provider rejected the call with a rate limit."""

    code = "MARKET_DATA_RATE_LIMITED"
    http_status = 429


class MarketDataBadRequest(DomainError):
    """Upstream provider rejected the request parameters."""

    code = "MARKET_DATA_BAD_REQUEST"
    http_status = 400


class MarketDataValidationError(DomainError):
    """Upstream returned an unexpected/invalid payload or a non-OK status field."""

    code = "UPSTREAM_SCHEMA_ERROR"
    http_status = 502


class SymbolNotFound(DomainError):
    """Upstream has no data for the requested symbol."""

    code = "SYMBOL_NOT_FOUND"
    http_status = 404


class InvalidSymbolError(DomainError):
    """Caller supplied a malformed symbol, symbol list, or range."""

    code = "INVALID_SYMBOL"
    http_status = 400
