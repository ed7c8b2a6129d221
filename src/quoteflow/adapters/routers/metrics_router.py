# src/quoteflow/adapters/routers/metrics_router.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Prometheus scrape endpoint (`/metrics`).

Importing the quote metrics module registers every collector, so all quote
series are listed on the very first scrape.

Layer:
    adapters/routers
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

import quoteflow.infrastructure.observability.metrics_market_data  # noqa: F401

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics_endpoint() -> Response:
    """Expose Prometheus metrics in the text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
