# src/quoteflow/application/services/batch_fetcher.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Batch Fetcher

Purpose:
    Turn a list of symbols into as few upstream calls as the provider allows
    and report, per symbol, whether live data came back.

Algorithm:
    1. Split the symbols into chunks of at most ``batch_size``.
    2. Ask the gateway how each chunk maps to upstream requests (one group
       for US tickers, one per TSE/OTC segment for Taiwan codes).
    3. Issue each group through :func:`retry_async`; every exception is
       retried until the attempt budget is spent.
    4. Requested symbols present in the answer succeed and are written to the
       quote cache; absent ones fail with ``"not found"``. A group whose
       request still fails after retries fails every symbol in it with the
       domain error code (``"UPSTREAM_ERROR"`` for anything else) as reason.
       Other groups are still fetched.
    5. Pause ``inter_batch_pause_s`` between chunks, never after the last.

Result order is not meaningful; callers match by symbol.

Layer: application/services
"""
from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

from quoteflow.application.services.quote_cache import QuoteCache
from quoteflow.domain.entities.quote import Quote
from quoteflow.domain.exceptions.base import DomainError
from quoteflow.domain.interfaces.gateways.quote_gateway import MarketQuoteGateway
from quoteflow.domain.value_objects.quote_result import (
    NOT_FOUND_REASON,
    UPSTREAM_ERROR_REASON,
    QuoteResult,
)
from quoteflow.infrastructure.logging.logger import get_json_logger
from quoteflow.infrastructure.observability.metrics_market_data import get_upstream_retries_total
from quoteflow.infrastructure.resilience.retry import RetryPolicy, retry_async

logger = get_json_logger(__name__)


@dataclass(frozen=True, slots=True)
class FailedSymbol:
    """A symbol the batch could not fetch, and why."""

    symbol: str
    reason: str


@dataclass(slots=True)
class BatchResult:
    """Outcome of :meth:`BatchFetcher.fetch_batch`."""

    succeeded: list[Quote] = field(default_factory=list)
    failed: list[FailedSymbol] = field(default_factory=list)


class BatchFetcher:
    """Chunked, retried multi-symbol fetches for one market gateway."""

    def __init__(
        self,
        gateway: MarketQuoteGateway,
        cache: QuoteCache,
        *,
        batch_size: int = 10,
        inter_batch_pause_s: float = 0.2,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._gateway = gateway
        self._cache = cache
        self._batch_size = batch_size
        self._pause_s = inter_batch_pause_s
        self._retry_policy = retry_policy or RetryPolicy()

    @property
    def gateway(self) -> MarketQuoteGateway:
        return self._gateway

    def chunks(self, symbols: Sequence[str]) -> list[list[str]]:
        """Split ``symbols`` into consecutive chunks of at most ``batch_size``."""
        return [
            list(symbols[i : i + self._batch_size])
            for i in range(0, len(symbols), self._batch_size)
        ]

    async def fetch_batch(self, symbols: Sequence[str]) -> BatchResult:
        """Fetch ``symbols`` and partition them into successes and failures.

        Args:
            symbols: Normalized, de-duplicated symbols of this gateway's market.

        Returns:
            Successes (already cached as live) and per-symbol failures.
        """
        result = BatchResult()
        chunks = self.chunks(symbols)
        for index, chunk in enumerate(chunks):
            for group in self._gateway.request_groups(chunk):
                await self._fetch_group(group, result)
            if index < len(chunks) - 1 and self._pause_s > 0:
                await asyncio.sleep(self._pause_s)
        return result

    def _record_retry(self, exc: Exception) -> bool:
        logger.info(
            "batch.retry",
            extra={"extra": {"market": self._gateway.name, "error": type(exc).__name__}},
        )
        get_upstream_retries_total().labels(
            market=self._gateway.name, reason=type(exc).__name__
        ).inc()
        return True

    async def _fetch_group(self, group: list[str], result: BatchResult) -> None:
        try:
            quotes = await retry_async(
                lambda: self._gateway.fetch_quotes(group),
                policy=self._retry_policy,
                retry_on=self._record_retry,
            )
        except DomainError as exc:
            logger.warning(
                "batch.group_failed",
                extra={
                    "extra": {
                        "market": self._gateway.name,
                        "symbols": group,
                        "code": exc.code,
                        "error": str(exc),
                    }
                },
            )
            result.failed.extend(FailedSymbol(symbol, exc.code) for symbol in group)
            return
        except Exception:
            logger.exception(
                "batch.group_error",
                extra={"extra": {"market": self._gateway.name, "symbols": group}},
            )
            result.failed.extend(FailedSymbol(symbol, UPSTREAM_ERROR_REASON) for symbol in group)
            return

        for symbol in group:
            quote = quotes.get(symbol)
            if quote is None:
                result.failed.append(FailedSymbol(symbol, NOT_FOUND_REASON))
                continue
            self._cache.put(symbol, QuoteResult.live(quote))
            result.succeeded.append(quote)
