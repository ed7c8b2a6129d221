# src/quoteflow/application/use_cases/market_data_client.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Use Case: Market Data Client

Purpose:
    Single entry point for quote consumers. Owns one request coordinator per
    market gateway (US, Taiwan), routes each symbol to the right one, and
    exposes history, cache telemetry, cache reset, warm-up, discovery
    rankings and the daily refresh status.

Contract:
    * Never raises for "no data" conditions; callers get fallback results
      tagged as such.
    * Raises :class:`InvalidSymbolError` for malformed input (bad symbol
      shape, non-list symbol sets, oversized batches, out-of-range days,
      unknown discovery rankings).

Layer: application/use_cases
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from datetime import date

from quoteflow.application.schemas.dto.cache_stats import CacheStatsDTO, MarketCacheStatsDTO
from quoteflow.application.schemas.dto.refresh_status import RefreshStatusDTO
from quoteflow.application.services.fallback_generator import (
    DEFAULT_HISTORY_DAYS,
    FallbackGenerator,
)
from quoteflow.application.services.request_coordinator import RequestCoordinator
from quoteflow.domain.enums.market import DiscoveryKind, Market, QuoteSource
from quoteflow.domain.exceptions.base import DomainError
from quoteflow.domain.exceptions.market_data import InvalidSymbolError
from quoteflow.domain.interfaces.repositories.quote_store_repository import (
    QuoteStoreRepository,
)
from quoteflow.domain.services.market_classifier import (
    POPULAR_OTC_SYMBOLS,
    POPULAR_TSE_SYMBOLS,
    POPULAR_US_SYMBOLS,
    normalize_symbol,
)
from quoteflow.domain.value_objects.quote_result import (
    NOT_FOUND_REASON,
    UPSTREAM_ERROR_REASON,
    HistoryResult,
    QuoteResult,
)
from quoteflow.infrastructure.logging.logger import get_json_logger
from quoteflow.infrastructure.resilience.retry import RetryPolicy, retry_async

logger = get_json_logger(__name__)

MAX_HISTORY_DAYS = 365
DISCOVERY_LIMIT = 10
STORE_ERROR_REASON = "STORE_UNAVAILABLE"
PRELOAD_SYMBOLS: tuple[str, ...] = (
    *POPULAR_US_SYMBOLS,
    *POPULAR_TSE_SYMBOLS[:5],
    *POPULAR_OTC_SYMBOLS[:3],
)
DISCOVERY_SYMBOLS: tuple[str, ...] = POPULAR_US_SYMBOLS[:8]


def _hit_rate(hits: int, misses: int) -> float:
    lookups = hits + misses
    return round(hits / lookups * 100, 2) if lookups else 0.0


def rank_discovery(results: Sequence[QuoteResult], kind: DiscoveryKind) -> list[QuoteResult]:
    """Order ``results`` for a discovery list and keep the top ``DISCOVERY_LIMIT``.

    Gainers and losers only include quotes that moved in that direction;
    the most active list skips quotes without volume.
    """
    match kind:
        case DiscoveryKind.GAINERS:
            picked = sorted(
                (r for r in results if r.quote.change_percent > 0),
                key=lambda r: r.quote.change_percent,
                reverse=True,
            )
        case DiscoveryKind.LOSERS:
            picked = sorted(
                (r for r in results if r.quote.change_percent < 0),
                key=lambda r: r.quote.change_percent,
            )
        case DiscoveryKind.ACTIVE:
            picked = sorted(
                (r for r in results if r.quote.volume),
                key=lambda r: r.quote.volume or 0,
                reverse=True,
            )
        case DiscoveryKind.TRENDING:
            picked = sorted(results, key=lambda r: abs(r.quote.change_percent), reverse=True)
    return picked[:DISCOVERY_LIMIT]


class MarketDataClient:
    """Facade over per-market request coordinators."""

    def __init__(
        self,
        coordinators: Sequence[RequestCoordinator],
        fallback: FallbackGenerator,
        *,
        store: QuoteStoreRepository | None = None,
        retry_policy: RetryPolicy | None = None,
        max_symbols: int = 50,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the client.

        Args:
            coordinators: One coordinator per market gateway. The first whose
                gateway ``handles`` a symbol serves it.
            fallback: Synthetic data source for quotes and histories.
            store: Optional persistent store consulted for histories, discovery
                and the refresh status.
            retry_policy: Retry budget for history requests.
            max_symbols: Largest unique symbol set accepted by :meth:`get_many`.
            today: Day used for store reads.
        """
        if not coordinators:
            raise ValueError("at least one coordinator is required")
        self._coordinators = list(coordinators)
        self._fallback = fallback
        self._store = store
        self._retry_policy = retry_policy or RetryPolicy()
        self._max_symbols = max_symbols
        self._today = today

    @property
    def coordinators(self) -> list[RequestCoordinator]:
        return list(self._coordinators)

    def _route(self, symbol: str) -> RequestCoordinator:
        for coordinator in self._coordinators:
            if coordinator.gateway.handles(symbol):
                return coordinator
        raise InvalidSymbolError("No market serves this symbol", details={"symbol": symbol})

    # ----------------------------------------------------------------- quotes

    async def get_one(self, symbol: str) -> QuoteResult:
        """Return the quote for ``symbol`` (live, stored, or fallback).

        Raises:
            InvalidSymbolError: If ``symbol`` is malformed.
        """
        normalized = normalize_symbol(symbol)
        return await self._route(normalized).get_one(normalized)

    async def get_many(self, symbols: Sequence[str]) -> list[QuoteResult]:
        """Return one result per unique symbol, in first-seen order.

        Raises:
            InvalidSymbolError: If ``symbols`` is not a list/tuple, contains a
                malformed symbol, or has more than ``max_symbols`` unique entries.
        """
        if isinstance(symbols, str) or not isinstance(symbols, Sequence):
            raise InvalidSymbolError("Symbols must be a list", details={"type": type(symbols).__name__})
        unique = list(dict.fromkeys(normalize_symbol(s) for s in symbols))
        if not unique:
            return []
        if len(unique) > self._max_symbols:
            raise InvalidSymbolError(
                "Too many symbols",
                details={"count": len(unique), "max": self._max_symbols},
            )

        routed: dict[RequestCoordinator, list[str]] = {}
        for symbol in unique:
            routed.setdefault(self._route(symbol), []).append(symbol)
        batches = await asyncio.gather(
            *(coordinator.get_many(group) for coordinator, group in routed.items())
        )
        results = {r.symbol: r for batch in batches for r in batch}
        return [results[s] for s in unique]

    # ---------------------------------------------------------------- history

    async def get_history(self, symbol: str, days: int = DEFAULT_HISTORY_DAYS) -> HistoryResult:
        """Return up to ``days`` daily bars: store first, then upstream, then fallback.

        Raises:
            InvalidSymbolError: If ``symbol`` is malformed or ``days`` is out of range.
        """
        normalized = normalize_symbol(symbol)
        if isinstance(days, bool) or not isinstance(days, int) or not 1 <= days <= MAX_HISTORY_DAYS:
            raise InvalidSymbolError(
                "days out of range", details={"days": days, "max": MAX_HISTORY_DAYS}
            )
        gateway = self._route(normalized).gateway

        if self._store is not None:
            try:
                stored = await self._store.get_history(normalized, days=days)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "history.store_unavailable",
                    extra={"extra": {"symbol": normalized, "error": str(exc)}},
                )
                stored = []
            if stored:
                return HistoryResult(symbol=normalized, bars=stored, source=QuoteSource.STORE)

        try:
            bars = await retry_async(
                lambda: gateway.fetch_history(normalized, days),
                policy=self._retry_policy,
            )
        except DomainError as exc:
            logger.warning(
                "history.fallback",
                extra={"extra": {"symbol": normalized, "code": exc.code, "error": str(exc)}},
            )
            return self._fallback_history(normalized, days, exc.code)
        except Exception:
            logger.exception("history.upstream_error", extra={"extra": {"symbol": normalized}})
            return self._fallback_history(normalized, days, UPSTREAM_ERROR_REASON)

        if not bars:
            logger.info("history.symbol_not_found", extra={"extra": {"symbol": normalized}})
            return self._fallback_history(normalized, days, NOT_FOUND_REASON)
        return HistoryResult(symbol=normalized, bars=bars, source=QuoteSource.LIVE)

    def _fallback_history(self, symbol: str, days: int, reason: str) -> HistoryResult:
        return HistoryResult(
            symbol=symbol,
            bars=self._fallback.fallback_history(symbol, days),
            source=QuoteSource.FALLBACK,
            fallback_reason=reason,
        )

    # -------------------------------------------------------------- telemetry

    async def get_cache_stats(self) -> CacheStatsDTO:
        """Return cache/queue telemetry aggregated across markets.

        Expired entries are swept first, so ``cache_size`` counts fresh
        quotes only.
        """
        for coordinator in self._coordinators:
            coordinator.cache.sweep()
        markets = [
            MarketCacheStatsDTO(
                market=c.market,
                cache_size=len(c.cache),
                queue_size=c.queue_size,
                pending=c.pending_count,
                is_processing=c.is_processing,
                hits=c.cache.hits,
                misses=c.cache.misses,
                hit_rate=_hit_rate(c.cache.hits, c.cache.misses),
            )
            for c in self._coordinators
        ]
        return CacheStatsDTO(
            cache_size=sum(m.cache_size for m in markets),
            queue_size=sum(m.queue_size for m in markets),
            is_processing=any(m.is_processing for m in markets),
            hit_rate=_hit_rate(sum(m.hits for m in markets), sum(m.misses for m in markets)),
            supported_markets=[m.value for m in Market],
            popular_symbols={
                Market.US.value: len(POPULAR_US_SYMBOLS),
                Market.TSE.value: len(POPULAR_TSE_SYMBOLS),
                Market.OTC.value: len(POPULAR_OTC_SYMBOLS),
            },
            markets=markets,
        )

    async def clear_cache(self) -> None:
        """Drop every cached quote and reset hit statistics."""
        for coordinator in self._coordinators:
            coordinator.clear()
        logger.info("cache.cleared")

    async def preload_popular(self) -> int:
        """Warm the caches with popular US and Taiwan symbols.

        Returns:
            Number of symbols that were loaded with real (non-fallback) data.
        """
        results = await self.get_many(PRELOAD_SYMBOLS)
        fallbacks = [r.symbol for r in results if r.is_fallback]
        if fallbacks:
            logger.warning(
                "cache.preload_partial",
                extra={"extra": {"requested": len(results), "fallback_symbols": fallbacks}},
            )
        else:
            logger.info("cache.preload_complete", extra={"extra": {"requested": len(results)}})
        return len(results) - len(fallbacks)

    # -------------------------------------------------------- daily store

    async def get_discovery(self, kind: DiscoveryKind | str) -> list[QuoteResult]:
        """Rank today's stored snapshots as gainers, losers, most active or trending.

        Without a store, or before the refresh job stored anything today, the
        popular US symbols are fetched through the regular quote path and
        ranked instead. A store read failure ranks synthetic quotes.

        Raises:
            InvalidSymbolError: If ``kind`` is not a known ranking.
        """
        try:
            kind = DiscoveryKind(kind)
        except ValueError:
            raise InvalidSymbolError(
                "Unknown discovery ranking",
                details={"kind": kind, "allowed": [k.value for k in DiscoveryKind]},
            ) from None

        candidates: list[QuoteResult] = []
        if self._store is not None:
            try:
                stored = await self._store.list_daily_quotes(on=self._today())
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "discovery.store_unavailable",
                    extra={"extra": {"kind": kind.value, "error": str(exc)}},
                )
                candidates = [
                    QuoteResult.fallback(self._fallback.fallback_quote(s), STORE_ERROR_REASON)
                    for s in DISCOVERY_SYMBOLS
                ]
            else:
                candidates = [QuoteResult.stored(q) for q in stored]
        if not candidates:
            candidates = await self.get_many(DISCOVERY_SYMBOLS)
        return rank_discovery(candidates, kind)

    async def get_refresh_status(self, day: date | None = None) -> RefreshStatusDTO:
        """Report what the daily refresh job logged for ``day`` (default today)."""
        day = day or self._today()
        if self._store is None:
            return RefreshStatusDTO(day=day, store_available=False, has_refreshed=False)
        try:
            entries = await self._store.get_refresh_log(day)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "refresh_status.store_unavailable",
                extra={"extra": {"day": day.isoformat(), "error": str(exc)}},
            )
            return RefreshStatusDTO(day=day, store_available=False, has_refreshed=False)

        last = entries[-1] if entries else None
        return RefreshStatusDTO(
            day=day,
            store_available=True,
            has_refreshed=last is not None,
            status=str(last["status"]) if last and "status" in last else None,
            last_refresh=last,
            entries=len(entries),
        )

    async def aclose(self) -> None:
        """Stop background work of every coordinator."""
        for coordinator in self._coordinators:
            await coordinator.aclose()
