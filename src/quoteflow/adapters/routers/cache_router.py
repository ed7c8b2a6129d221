# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Cache Router.

Summary:
    Operational endpoints for the quote cache: telemetry, reset and warm-up
    with popular US and Taiwan symbols, and the daily refresh job status.

Layer:
    adapters/routers
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any

from fastapi import Depends, Query, Request, Response, status

from quoteflow.adapters.presenters.quotes_presenter import QuotesPresenter
from quoteflow.adapters.routers.base_router import BaseRouter
from quoteflow.adapters.schemas.http.envelopes import SuccessEnvelope
from quoteflow.adapters.schemas.http.quotes import (
    CacheCleared,
    CacheStatsHTTP,
    PreloadResult,
    RefreshStatusHTTP,
)
from quoteflow.application.use_cases.market_data_client import MarketDataClient
from quoteflow.dependencies.market_data import get_market_data_client

router = BaseRouter(version="v1", resource="cache", tags=["Cache"])
presenter = QuotesPresenter()

ClientDep = Annotated[MarketDataClient, Depends(get_market_data_client)]


def _trace_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.get(
    "/stats",
    response_model=SuccessEnvelope[CacheStatsHTTP],
    status_code=status.HTTP_200_OK,
    summary="Cache and queue telemetry per market",
)
async def get_cache_stats(request: Request, response: Response, client: ClientDep) -> Any:
    result = presenter.present_cache_stats(
        await client.get_cache_stats(), trace_id=_trace_id(request)
    )
    presenter.apply_headers(result, response)
    return result.body


@router.delete(
    "",
    response_model=SuccessEnvelope[CacheCleared],
    status_code=status.HTTP_200_OK,
    summary="Drop cached quotes and reset hit statistics",
)
async def clear_cache(request: Request, response: Response, client: ClientDep) -> Any:
    await client.clear_cache()
    result = presenter.present_success(CacheCleared(), trace_id=_trace_id(request))
    presenter.apply_headers(result, response)
    return result.body


@router.post(
    "/preload",
    response_model=SuccessEnvelope[PreloadResult],
    status_code=status.HTTP_200_OK,
    summary="Warm the cache with popular symbols",
)
async def preload(request: Request, response: Response, client: ClientDep) -> Any:
    loaded = await client.preload_popular()
    result = presenter.present_success(PreloadResult(loaded=loaded), trace_id=_trace_id(request))
    presenter.apply_headers(result, response)
    return result.body


@router.get(
    "/refresh-status",
    response_model=SuccessEnvelope[RefreshStatusHTTP],
    status_code=status.HTTP_200_OK,
    summary="Latest daily refresh job record for a day",
)
async def get_refresh_status(
    request: Request,
    response: Response,
    client: ClientDep,
    day: Annotated[date | None, Query(description="Defaults to today")] = None,
) -> Any:
    result = presenter.present_refresh_status(
        await client.get_refresh_status(day), trace_id=_trace_id(request)
    )
    presenter.apply_headers(result, response)
    return result.body
