# src/quoteflow/application/services/request_coordinator.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Request Coordinator

Purpose:
    Accept quote requests from many independent callers for one market,
    coalesce them into batches for the :class:`BatchFetcher`, and guarantee
    at most one upstream fetch per symbol in flight at any time.

Design:
    * Pending requests are a ``dict[str, asyncio.Future[QuoteResult]]``. The
      check-then-create sequence in :meth:`get_one` and :meth:`get_many`
      contains no ``await``, so two tasks cannot both miss the registry.
    * Single-symbol requests go through a FIFO queue drained by one
      background task, ``batch_size`` symbols at a time.
    * Callers await ``asyncio.shield(future)`` with a timeout. A caller that
      times out (or is cancelled) never cancels the fetch; late results still
      land in the cache. On timeout the caller gets a cached fallback.
    * Every future registered for a fetch is resolved exactly once, in a
      ``finally`` block, so no caller can wait on an orphaned future.
    * Failures (transport, not found, timeout) become fallback results; only
      malformed input raises. An unexpected error inside one batch resolves
      that batch with ``"UPSTREAM_ERROR"`` fallbacks and draining moves on.
      If the drain loop itself fails, every queued request is released with
      a fallback before the task ends.
    * Requests that time out leave the queue at once, so ``queue_size`` only
      counts symbols still waiting for a drain pass.

Layer: application/services
"""
from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable, Coroutine, Sequence
from datetime import date
from typing import Any

from quoteflow.application.services.batch_fetcher import BatchFetcher
from quoteflow.application.services.fallback_generator import FallbackGenerator
from quoteflow.application.services.quote_cache import QuoteCache
from quoteflow.domain.exceptions.market_data import InvalidSymbolError
from quoteflow.domain.interfaces.gateways.quote_gateway import MarketQuoteGateway
from quoteflow.domain.interfaces.repositories.quote_store_repository import (
    QuoteStoreRepository,
)
from quoteflow.domain.value_objects.quote_result import (
    NOT_FOUND_REASON,
    TIMEOUT_REASON,
    UPSTREAM_ERROR_REASON,
    QuoteResult,
)
from quoteflow.infrastructure.logging.logger import get_json_logger
from quoteflow.infrastructure.observability.metrics_market_data import (
    get_coalesced_requests_total,
    get_fallback_quotes_total,
    get_queue_depth,
)

logger = get_json_logger(__name__)

UNRESOLVED_REASON = "unresolved"
SHUTDOWN_REASON = "shutdown"


class RequestCoordinator:
    """Queue + de-duplication front of one market's batch fetcher."""

    def __init__(
        self,
        fetcher: BatchFetcher,
        cache: QuoteCache,
        fallback: FallbackGenerator,
        *,
        store: QuoteStoreRepository | None = None,
        batch_size: int = 10,
        inter_batch_pause_s: float = 0.2,
        timeout_s: float = 10.0,
        max_symbols: int = 50,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the coordinator.

        Args:
            fetcher: Batch fetcher bound to this market's gateway.
            cache: Quote cache shared with ``fetcher``.
            fallback: Synthetic data source for failures.
            store: Optional persistent daily store consulted before upstream.
            batch_size: Symbols taken from the queue per drain pass.
            inter_batch_pause_s: Pause between drain passes.
            timeout_s: Upper bound a caller waits on a pending request.
            max_symbols: Largest unique symbol set accepted by :meth:`get_many`.
            today: Day used for store lookups.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        self._fetcher = fetcher
        self._cache = cache
        self._fallback = fallback
        self._store = store
        self._batch_size = batch_size
        self._pause_s = inter_batch_pause_s
        self._timeout_s = timeout_s
        self._max_symbols = max_symbols
        self._today = today
        self._market = fetcher.gateway.name

        self._pending: dict[str, asyncio.Future[QuoteResult]] = {}
        self._queue: deque[tuple[str, asyncio.Future[QuoteResult]]] = deque()
        self._drain_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------ telemetry

    @property
    def market(self) -> str:
        return self._market

    @property
    def cache(self) -> QuoteCache:
        return self._cache

    @property
    def gateway(self) -> MarketQuoteGateway:
        return self._fetcher.gateway

    @property
    def queue_size(self) -> int:
        """Symbols queued by :meth:`get_one` and not yet taken by a drain pass."""
        return len(self._queue)

    @property
    def pending_count(self) -> int:
        """Symbols with an outstanding upstream fetch."""
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    def is_pending(self, symbol: str) -> bool:
        return symbol in self._pending

    # ----------------------------------------------------------- public API

    async def get_one(self, symbol: str) -> QuoteResult:
        """Return the quote for one normalized symbol.

        Fresh cache entries return without suspending. Otherwise the caller
        attaches to the symbol's pending request, creating and enqueueing it
        if none exists, and waits at most ``timeout_s``.
        """
        self._cache.sweep()
        cached = self._cache.get(symbol)
        if cached is not None:
            return cached

        future = self._pending.get(symbol)
        if future is None:
            future = self._register(symbol)
            self._queue.append((symbol, future))
            self._set_queue_gauge()
            self._ensure_draining()
        else:
            get_coalesced_requests_total().labels(market=self._market).inc()
        return await self._wait(symbol, future)

    async def get_many(self, symbols: Sequence[str]) -> list[QuoteResult]:
        """Return quotes for normalized symbols, de-duplicated, in first-seen order.

        Symbols that are neither cached nor pending are fetched with a single
        :meth:`BatchFetcher.fetch_batch` call instead of per-symbol queueing.

        Raises:
            InvalidSymbolError: If more than ``max_symbols`` unique symbols are given.
        """
        unique = list(dict.fromkeys(symbols))
        if not unique:
            return []
        if len(unique) > self._max_symbols:
            raise InvalidSymbolError(
                "Too many symbols",
                details={"count": len(unique), "max": self._max_symbols},
            )

        self._cache.sweep()
        results: dict[str, QuoteResult] = {}
        waiting: dict[str, asyncio.Future[QuoteResult]] = {}
        owned: list[str] = []
        for symbol in unique:
            cached = self._cache.get(symbol)
            if cached is not None:
                results[symbol] = cached
                continue
            future = self._pending.get(symbol)
            if future is None:
                waiting[symbol] = self._register(symbol)
                owned.append(symbol)
            else:
                waiting[symbol] = future
                get_coalesced_requests_total().labels(market=self._market).inc()

        if owned:
            self._spawn(self._fetch_and_resolve(owned), name=f"quote-batch-{self._market}")

        if waiting:
            values = await asyncio.gather(*(self._wait(s, f) for s, f in waiting.items()))
            results.update(zip(waiting, values, strict=True))
        return [results[s] for s in unique]

    def clear(self) -> None:
        """Drop cached quotes and statistics. In-flight requests keep running."""
        self._cache.clear()

    async def aclose(self) -> None:
        """Cancel background work and release every waiter with a fallback."""
        tasks = [t for t in (self._drain_task, *self._background) if t is not None]
        for task in tasks:
            task.cancel()
        # Failures were already logged by the done callback.
        await asyncio.gather(*tasks, return_exceptions=True)
        self._queue.clear()
        self._set_queue_gauge()
        for symbol in list(self._pending):
            self._resolve(symbol, self._make_fallback(symbol, SHUTDOWN_REASON))

    # ------------------------------------------------------------ internals

    def _register(self, symbol: str) -> asyncio.Future[QuoteResult]:
        future: asyncio.Future[QuoteResult] = asyncio.get_running_loop().create_future()
        self._pending[symbol] = future
        return future

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        task.add_done_callback(self._log_task_failure)
        return task

    def _ensure_draining(self) -> None:
        if self.is_processing:
            return
        self._drain_task = asyncio.get_running_loop().create_task(
            self._drain(), name=f"quote-drain-{self._market}"
        )
        self._drain_task.add_done_callback(self._log_task_failure)

    def _log_task_failure(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "coordinator.task_failed",
                exc_info=exc,
                extra={"extra": {"market": self._market, "task": task.get_name()}},
            )

    async def _wait(self, symbol: str, future: asyncio.Future[QuoteResult]) -> QuoteResult:
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout=self._timeout_s)
        except TimeoutError:
            if future.done():
                return future.result()
            result = self._make_fallback(symbol, TIMEOUT_REASON)
            self._cache.put(symbol, result)
            if self._pending.get(symbol) is future:
                del self._pending[symbol]
            self._discard_queued(future)
            future.set_result(result)
            return result

    def _discard_queued(self, future: asyncio.Future[QuoteResult]) -> None:
        if any(queued is future for _, queued in self._queue):
            self._queue = deque(entry for entry in self._queue if entry[1] is not future)
            self._set_queue_gauge()

    def _take_batch(self) -> list[str]:
        batch: list[str] = []
        while self._queue and len(batch) < self._batch_size:
            symbol, future = self._queue.popleft()
            # Skip entries whose request already timed out or was answered.
            if self._pending.get(symbol) is future and symbol not in batch:
                batch.append(symbol)
        self._set_queue_gauge()
        return batch

    async def _drain(self) -> None:
        try:
            while self._queue:
                batch = self._take_batch()
                if batch:
                    await self._fetch_and_resolve(batch)
                if self._queue and self._pause_s > 0:
                    await asyncio.sleep(self._pause_s)
        except Exception:
            logger.exception("coordinator.drain_failed", extra={"extra": {"market": self._market}})
            self._release_queued(UPSTREAM_ERROR_REASON)
            raise

    def _release_queued(self, reason: str) -> None:
        while self._queue:
            symbol, future = self._queue.popleft()
            if self._pending.get(symbol) is future:
                result = self._make_fallback(symbol, reason)
                self._cache.put(symbol, result)
                self._resolve(symbol, result)
        self._set_queue_gauge()

    async def _fetch_and_resolve(self, symbols: list[str]) -> None:
        """Fetch ``symbols`` and resolve their pending futures, no matter what.

        Unexpected errors are logged and turn the batch into fallbacks, so a
        draining loop moves on to the next batch.
        """
        reason = UNRESOLVED_REASON
        try:
            remaining = await self._consult_store(symbols)
            if not remaining:
                return
            outcome = await self._fetcher.fetch_batch(remaining)
            for quote in outcome.succeeded:
                self._resolve(quote.symbol, QuoteResult.live(quote))
            for failure in outcome.failed:
                result = self._make_fallback(failure.symbol, failure.reason)
                self._cache.put(failure.symbol, result)
                self._resolve(failure.symbol, result)
        except asyncio.CancelledError:
            reason = SHUTDOWN_REASON
            raise
        except Exception:
            logger.exception(
                "coordinator.batch_failed",
                extra={"extra": {"market": self._market, "symbols": symbols}},
            )
            reason = UPSTREAM_ERROR_REASON
        finally:
            for symbol in symbols:
                future = self._pending.get(symbol)
                if future is not None and not future.done():
                    result = self._make_fallback(symbol, reason)
                    self._cache.put(symbol, result)
                    self._resolve(symbol, result)

    async def _consult_store(self, symbols: list[str]) -> list[str]:
        if self._store is None:
            return symbols
        try:
            stored = await self._store.get_daily_quotes(symbols, on=self._today())
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "coordinator.store_unavailable",
                extra={"extra": {"market": self._market, "error": str(exc)}},
            )
            return symbols
        for symbol, quote in stored.items():
            result = QuoteResult.stored(quote)
            self._cache.put(symbol, result)
            self._resolve(symbol, result)
        return [s for s in symbols if s not in stored]

    def _resolve(self, symbol: str, result: QuoteResult) -> None:
        future = self._pending.pop(symbol, None)
        if future is not None and not future.done():
            future.set_result(result)

    def _make_fallback(self, symbol: str, reason: str) -> QuoteResult:
        if reason == NOT_FOUND_REASON:
            logger.info(
                "coordinator.symbol_not_found",
                extra={"extra": {"market": self._market, "symbol": symbol}},
            )
        else:
            logger.warning(
                "coordinator.fallback",
                extra={"extra": {"market": self._market, "symbol": symbol, "reason": reason}},
            )
        get_fallback_quotes_total().labels(market=self._market, reason=reason).inc()
        return QuoteResult.fallback(self._fallback.fallback_quote(symbol), reason)

    def _set_queue_gauge(self) -> None:
        get_queue_depth().labels(market=self._market).set(len(self._queue))
