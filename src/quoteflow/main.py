# src/quoteflow/main.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Application Entry (Adapters Bootstrap)

Synopsis:
    FastAPI bootstrap that wires middleware, exception handlers and routers.
    Provides an application factory (`create_app`).

Design:
    • Bootstrap only (no business logic): routers + middleware + handlers.
    • Lifespan builds one `MarketDataClient` per process on a shared
      `httpx.AsyncClient` and tears everything down on shutdown (pending
      quote requests are released with fallbacks, Redis is closed).
    • Root JSON logging is configured from settings at startup.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from quoteflow.adapters.routers import api_router, metrics_router
from quoteflow.config.settings import Settings, get_settings
from quoteflow.dependencies.market_data import APP_STATE_KEY, build_market_data_client
from quoteflow.infrastructure.caching.redis_client import close_redis
from quoteflow.infrastructure.http.errors import install_exception_handlers
from quoteflow.infrastructure.logging.logger import configure_root_logging, get_json_logger
from quoteflow.infrastructure.middleware.request_id import RequestIdMiddleware

logger = get_json_logger(__name__)


def _stable_operation_id(route: APIRoute) -> str:
    """Deterministic operationId, e.g. ``get__v1_quotes_symbol``."""
    methods = ",".join(sorted(route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "")
    return f"{methods.lower()}_{path.lower()}"


@asynccontextmanager
async def runtime_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the market data client and release it on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to FastAPI to serve requests.
    """
    settings: Settings = app.state.settings
    http = httpx.AsyncClient(follow_redirects=True)
    client = build_market_data_client(settings, http=http)
    setattr(app.state, APP_STATE_KEY, client)
    logger.info(
        "service_startup",
        extra={
            "extra": {
                "service": settings.service_name,
                "env": settings.environment.value,
                "version": settings.service_version,
            }
        },
    )
    try:
        yield
    finally:
        await client.aclose()
        await http.aclose()
        if settings.store_enabled:
            await close_redis()
        logger.info("service_shutdown", extra={"extra": {"service": settings.service_name}})


def _attach_cors(app: FastAPI, settings: Settings) -> None:
    """Attach CORS middleware when origins are configured."""
    if not settings.cors_allow_origins:
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials="*" not in settings.cors_allow_origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "ETag"],
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings override (tests); defaults to :func:`get_settings`.

    Returns:
        FastAPI: Fully configured application instance.
    """
    settings = settings or get_settings()
    configure_root_logging(settings.log_level)

    app = FastAPI(
        title="Quoteflow API",
        version=settings.service_version,
        description="Cached, batched latest quotes for US and Taiwan stocks.",
        lifespan=runtime_lifespan,
        generate_unique_id_function=_stable_operation_id,
    )
    app.state.settings = settings

    install_exception_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    _attach_cors(app, settings)

    app.include_router(api_router)
    app.include_router(metrics_router)
    return app


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(
        "quoteflow.main:create_app",
        factory=True,
        host="127.0.0.1",
        port=int(os.getenv("PORT", "8080")),
    )
