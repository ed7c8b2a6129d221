# src/quoteflow/application/services/quote_cache.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Quote Cache

Purpose:
    Time-bounded symbol -> last-known :class:`QuoteResult` store. An entry is
    fresh iff ``now - fetched_at < ttl``; at exactly ``ttl`` it is stale and
    reads treat it as absent even while it is still stored. Physical
    eviction happens lazily in :meth:`QuoteCache.sweep`.

Concurrency:
    Not locked. Callers run on a single asyncio event loop and no method
    awaits, so every operation is atomic with respect to other tasks.

Layer: application/services
"""
from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from quoteflow.domain.value_objects.quote_result import QuoteResult
from quoteflow.infrastructure.observability.metrics_market_data import (
    get_quote_cache_hits_total,
    get_quote_cache_misses_total,
)

DEFAULT_TTL_S = 300.0


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A cached result and the clock reading when it was stored."""

    value: QuoteResult
    fetched_at: float


class QuoteCache:
    """In-process TTL cache keyed by symbol."""

    def __init__(
        self,
        *,
        ttl_s: float = DEFAULT_TTL_S,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ) -> None:
        """Initialize the cache.

        Args:
            ttl_s: Freshness window in seconds.
            clock: Monotonic clock in seconds; injectable for tests.
            name: Market label used for metrics.
        """
        if ttl_s <= 0:
            raise ValueError("ttl_s must be > 0")
        self._ttl_s = ttl_s
        self._clock = clock
        self._name = name
        self._entries: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    @property
    def ttl_s(self) -> float:
        return self._ttl_s

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.fetched_at < self._ttl_s

    def peek(self, symbol: str) -> QuoteResult | None:
        """Return the fresh entry for ``symbol`` without touching statistics."""
        entry = self._entries.get(symbol)
        if entry is None or not self._is_fresh(entry, self._clock()):
            return None
        return entry.value

    def get(self, symbol: str) -> QuoteResult | None:
        """Return the fresh entry for ``symbol`` and record a hit or miss."""
        value = self.peek(symbol)
        if value is None:
            self.misses += 1
            get_quote_cache_misses_total().labels(market=self._name).inc()
        else:
            self.hits += 1
            get_quote_cache_hits_total().labels(market=self._name).inc()
        return value

    def put(self, symbol: str, value: QuoteResult) -> None:
        """Store ``value`` for ``symbol``, replacing any previous entry."""
        self._entries[symbol] = CacheEntry(value=value, fetched_at=self._clock())

    def sweep(self) -> int:
        """Drop stale entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        stale = [s for s, e in self._entries.items() if not self._is_fresh(e, now)]
        for symbol in stale:
            del self._entries[symbol]
        return len(stale)

    def clear(self) -> None:
        """Drop every entry and reset hit/miss counters."""
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and self.peek(symbol) is not None
