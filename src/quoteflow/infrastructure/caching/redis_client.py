# src/quoteflow/infrastructure/caching/redis_client.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Async Redis client factory backing the persistent quote store."""

from __future__ import annotations

from contextlib import suppress
from typing import TYPE_CHECKING, Any, Protocol, cast, runtime_checkable

import redis.asyncio as aioredis

if TYPE_CHECKING:
    from redis.asyncio.client import Redis as _RedisGeneric

    type AioredisRedis = _RedisGeneric[str]
else:
    from redis.asyncio.client import Redis as AioredisRedis  # type: ignore[assignment]

from quoteflow.config.settings import Settings, get_settings

__all__ = [
    "RedisClient",
    "init_redis",
    "close_redis",
    "get_redis_client",
]


@runtime_checkable
class RedisClient(Protocol):
    """Minimal async Redis protocol used by the quote store."""

    async def ping(self) -> Any: ...
    async def aclose(self) -> None: ...

    async def set(self, key: str, value: Any, *, ex: int | None = None) -> Any: ...
    async def mget(self, keys: list[str]) -> Any: ...
    async def hset(self, name: str, key: str, value: Any) -> Any: ...
    async def hgetall(self, name: str) -> Any: ...
    async def rpush(self, name: str, *values: Any) -> Any: ...
    async def lrange(self, name: str, start: int, end: int) -> Any: ...


_client: RedisClient | None = None
_DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def _create_aioredis_client(url: str) -> AioredisRedis:
    """Build the concrete asyncio Redis client from URL."""
    _from_url: Any = aioredis.from_url
    client = _from_url(
        url=url,
        encoding="utf-8",
        decode_responses=True,
        health_check_interval=15,
        socket_timeout=3.0,
        socket_connect_timeout=3.0,
    )
    return cast(AioredisRedis, client)


def init_redis(settings: Settings) -> RedisClient:
    """Initialize the process-wide async Redis client (idempotent)."""
    global _client
    if _client is None:
        url = settings.redis_url or _DEFAULT_REDIS_URL
        _client = cast(RedisClient, _create_aioredis_client(url))
    return _client


async def close_redis() -> None:
    """Close the process-wide Redis client at shutdown."""
    global _client
    if _client is not None:
        with suppress(RuntimeError):
            await _client.aclose()
        _client = None


def get_redis_client() -> RedisClient:
    """Return the initialized Redis client (lazy-inits from settings)."""
    if _client is None:
        return init_redis(get_settings())
    return _client
