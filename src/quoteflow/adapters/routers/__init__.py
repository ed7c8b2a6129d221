"""Routers Package Export (Adapters Layer).

Purpose:
    Stable exports for the application router aggregator (`api_router`) and
    the Prometheus scrape router (`metrics_router`).

Layer:
    adapters/routers
"""

from __future__ import annotations

from .api_router import router as api_router
from .metrics_router import router as metrics_router

__all__ = ["api_router", "metrics_router"]
