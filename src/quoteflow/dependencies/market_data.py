# src/quoteflow/dependencies/market_data.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Dependency wiring for Market Data (gateways, coordinators, client).

Overview:
    Builds the process-wide :class:`MarketDataClient` from :class:`Settings`
    and exposes it to routers as a FastAPI dependency.

Layer:
    dependencies

Design:
    * One coordinator per market gateway (US via Yahoo, Taiwan via TWSE),
      each with its own cache; all share one fallback generator.
    * One shared ``httpx.AsyncClient`` for both providers when supplied by
      the lifespan; each provider gets its own circuit breaker.
    * The Redis-backed store is wired only when ``store_enabled`` is set.
    * The client is built once in the lifespan and stored on ``app.state``;
      routers receive it through :func:`get_market_data_client`, which tests
      override with ``app.dependency_overrides``.
"""

from __future__ import annotations

import httpx
from fastapi import Request

from quoteflow.adapters.gateways.twse_quote_gateway import TwseQuoteGateway
from quoteflow.adapters.gateways.yahoo_quote_gateway import YahooQuoteGateway
from quoteflow.adapters.repositories.redis_quote_store import RedisQuoteStore
from quoteflow.application.services.batch_fetcher import BatchFetcher
from quoteflow.application.services.fallback_generator import FallbackGenerator
from quoteflow.application.services.quote_cache import QuoteCache
from quoteflow.application.services.request_coordinator import RequestCoordinator
from quoteflow.application.use_cases.market_data_client import MarketDataClient
from quoteflow.config.settings import Settings
from quoteflow.domain.interfaces.gateways.quote_gateway import MarketQuoteGateway
from quoteflow.domain.interfaces.repositories.quote_store_repository import (
    QuoteStoreRepository,
)
from quoteflow.infrastructure.caching.redis_client import RedisClient, init_redis
from quoteflow.infrastructure.external_apis.twse.client import TwseClient
from quoteflow.infrastructure.external_apis.twse.settings import TwseSettings
from quoteflow.infrastructure.external_apis.yahoo.client import YahooFinanceClient
from quoteflow.infrastructure.external_apis.yahoo.settings import YahooFinanceSettings
from quoteflow.infrastructure.logging.logger import get_json_logger
from quoteflow.infrastructure.resilience.retry import RetryPolicy

logger = get_json_logger(__name__)

APP_STATE_KEY = "market_data_client"


def build_gateways(http: httpx.AsyncClient | None = None) -> list[MarketQuoteGateway]:
    """Return the market gateways in routing order (US first, then Taiwan)."""
    return [
        YahooQuoteGateway(YahooFinanceClient(YahooFinanceSettings(), http=http)),
        TwseQuoteGateway(TwseClient(TwseSettings(), http=http)),
    ]


def build_market_data_client(
    settings: Settings,
    *,
    http: httpx.AsyncClient | None = None,
    redis: RedisClient | None = None,
    gateways: list[MarketQuoteGateway] | None = None,
) -> MarketDataClient:
    """Assemble a :class:`MarketDataClient` from settings.

    Args:
        settings: Validated application settings.
        http: Optional shared HTTP client for the upstream providers.
        redis: Optional Redis client; initialized from settings when the store
            is enabled and none is given.
        gateways: Override the default Yahoo/TWSE gateways (tests).

    Returns:
        MarketDataClient: A ready-to-use client. Call ``aclose()`` on shutdown.
    """
    retry_policy = RetryPolicy(
        max_attempts=settings.retry_max_attempts,
        base_delay_s=settings.retry_base_delay_s,
    )
    fallback = FallbackGenerator(seed=settings.fallback_seed)

    store: QuoteStoreRepository | None = None
    if settings.store_enabled:
        store = RedisQuoteStore(redis or init_redis(settings))

    coordinators: list[RequestCoordinator] = []
    for gateway in gateways if gateways is not None else build_gateways(http):
        cache = QuoteCache(ttl_s=settings.cache_duration_s, name=gateway.name)
        fetcher = BatchFetcher(
            gateway,
            cache,
            batch_size=settings.batch_size,
            inter_batch_pause_s=settings.inter_batch_pause_s,
            retry_policy=retry_policy,
        )
        coordinators.append(
            RequestCoordinator(
                fetcher,
                cache,
                fallback,
                store=store,
                batch_size=settings.batch_size,
                inter_batch_pause_s=settings.inter_batch_pause_s,
                timeout_s=settings.coordinator_timeout_s,
                max_symbols=settings.max_symbols_per_request,
            )
        )

    logger.info(
        "market_data.client_built",
        extra={
            "extra": {
                "markets": [c.market for c in coordinators],
                "store_enabled": store is not None,
                "cache_duration_s": settings.cache_duration_s,
                "batch_size": settings.batch_size,
            }
        },
    )
    return MarketDataClient(
        coordinators,
        fallback,
        store=store,
        retry_policy=retry_policy,
        max_symbols=settings.max_symbols_per_request,
    )


def get_market_data_client(request: Request) -> MarketDataClient:
    """FastAPI dependency returning the client built by the lifespan.

    Raises:
        RuntimeError: If the application was started without its lifespan.
    """
    client = getattr(request.app.state, APP_STATE_KEY, None)
    if client is None:
        raise RuntimeError("MarketDataClient is not initialized; was the lifespan run?")
    return client
