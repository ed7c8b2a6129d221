# src/quoteflow/adapters/routers/api_router.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""API Router Aggregator (Adapters Layer).

Purpose:
    Compose and expose the top-level `router` that includes all feature routers.

Responsibilities:
    • Mount the liveness check at `/healthz`.
    • Mount latest quotes and histories under `/v1/quotes/...`.
    • Mount discovery rankings under `/v1/discovery/...`.
    • Mount cache administration under `/v1/cache/...`.

Layer:
    adapters/routers
"""

from __future__ import annotations

from fastapi import APIRouter

from quoteflow.adapters.routers.cache_router import router as cache_router
from quoteflow.adapters.routers.discovery_router import router as discovery_router
from quoteflow.adapters.routers.health_router import router as health_router
from quoteflow.adapters.routers.quotes_router import router as quotes_router

router = APIRouter()

router.include_router(health_router)

# BaseRouter already includes the /v1/<resource> prefixes.
router.include_router(quotes_router)
router.include_router(discovery_router)
router.include_router(cache_router)
