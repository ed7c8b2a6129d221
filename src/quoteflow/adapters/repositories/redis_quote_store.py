# src/quoteflow/adapters/repositories/redis_quote_store.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Redis-backed Quote Store.

Synopsis:
    Implements :class:`QuoteStoreRepository` on the shared async Redis client.
    The refresh job writes daily snapshots, history bars and its run log; the
    quote layer reads snapshots and bars as a second-tier cache.

Design:
    * Key policy under the namespace ``quoteflow:store:v1``:
        - ``daily:{YYYY-MM-DD}:{SYMBOL}``  JSON quote snapshot (string)
        - ``history:{SYMBOL}``             hash of ``{YYYY-MM-DD: JSON bar}``
        - ``refresh_log:{YYYY-MM-DD}``     list of JSON records (append-only)
    * Pure JSON (utf-8) serialization; decimals as strings.
    * Snapshots expire after ``snapshot_ttl_s``; history and logs persist.

Layer:
    adapters/repositories
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import InvalidOperation
from typing import Any

from quoteflow.adapters.mappers.quote_payloads import (
    bar_from_payload,
    bar_to_payload,
    quote_from_payload,
    quote_to_payload,
)
from quoteflow.domain.entities.historical_bar import HistoricalBar
from quoteflow.domain.entities.quote import Quote
from quoteflow.infrastructure.caching.redis_client import RedisClient, get_redis_client
from quoteflow.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

DEFAULT_NAMESPACE = "quoteflow:store:v1"
DEFAULT_SNAPSHOT_TTL_S = 3 * 24 * 60 * 60


class RedisQuoteStore:
    """Daily snapshot / history / refresh-log store on Redis."""

    def __init__(
        self,
        redis: RedisClient | None = None,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        snapshot_ttl_s: int = DEFAULT_SNAPSHOT_TTL_S,
    ) -> None:
        self._redis = redis
        self._ns = namespace.rstrip(":")
        self._snapshot_ttl_s = snapshot_ttl_s

    @property
    def redis(self) -> RedisClient:
        return self._redis if self._redis is not None else get_redis_client()

    def _k(self, *parts: str) -> str:
        return ":".join((self._ns, *parts))

    # ------------------------------------------------------------------ reads

    async def get_daily_quotes(self, symbols: Sequence[str], *, on: date) -> dict[str, Quote]:
        if not symbols:
            return {}
        day = on.isoformat()
        raw_values = await self.redis.mget([self._k("daily", day, s) for s in symbols])
        quotes: dict[str, Quote] = {}
        for symbol, raw in zip(symbols, raw_values, strict=True):
            if raw is None:
                continue
            try:
                quotes[symbol] = quote_from_payload(json.loads(raw))
            except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
                logger.warning(
                    "store.snapshot_corrupt",
                    extra={"extra": {"symbol": symbol, "day": day, "error": str(exc)}},
                )
        return quotes

    async def list_daily_quotes(self, *, on: date) -> list[Quote]:
        day = on.isoformat()
        prefix = self._k("daily", day, "")
        symbols = sorted(
            [key[len(prefix) :] async for key in self.redis.scan_iter(match=f"{prefix}*")]
        )
        quotes = await self.get_daily_quotes(symbols, on=on)
        return list(quotes.values())

    async def get_history(self, symbol: str, *, days: int) -> list[HistoricalBar]:
        raw_map: Mapping[str, str] = await self.redis.hgetall(self._k("history", symbol)) or {}
        bars: list[HistoricalBar] = []
        for day in sorted(raw_map)[-days:] if days > 0 else []:
            try:
                bars.append(bar_from_payload(json.loads(raw_map[day])))
            except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
                logger.warning(
                    "store.bar_corrupt",
                    extra={"extra": {"symbol": symbol, "day": day, "error": str(exc)}},
                )
        return bars

    async def get_refresh_log(self, on: date) -> list[dict[str, Any]]:
        raw_items = await self.redis.lrange(self._k("refresh_log", on.isoformat()), 0, -1)
        return [json.loads(item) for item in raw_items or []]

    # ----------------------------------------------------- refresh-job writes

    async def upsert_daily_quote(self, quote: Quote, *, on: date) -> None:
        await self.redis.set(
            self._k("daily", on.isoformat(), quote.symbol),
            json.dumps(quote_to_payload(quote), separators=(",", ":"), ensure_ascii=False),
            ex=self._snapshot_ttl_s,
        )

    async def upsert_history_bar(self, bar: HistoricalBar) -> None:
        await self.redis.hset(
            self._k("history", bar.symbol),
            bar.date.isoformat(),
            json.dumps(bar_to_payload(bar), separators=(",", ":")),
        )

    async def append_refresh_log(self, on: date, entry: Mapping[str, Any]) -> None:
        await self.redis.rpush(
            self._k("refresh_log", on.isoformat()),
            json.dumps(dict(entry), separators=(",", ":"), ensure_ascii=False, default=str),
        )
