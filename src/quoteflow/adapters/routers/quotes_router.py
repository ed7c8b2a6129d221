# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Quotes Router.

Summary:
    Latest quotes and daily histories for US and Taiwan symbols. Upstream
    failures never surface as errors here: callers receive synthetic quotes
    flagged with ``is_fallback`` and a ``fallback_reason``. Malformed symbols
    are rejected with ``400 INVALID_SYMBOL`` by the shared exception handlers.

Layer:
    adapters/routers
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, Path, Query, Request, Response, status

from quoteflow.adapters.presenters.quotes_presenter import QuotesPresenter
from quoteflow.adapters.routers.base_router import BaseRouter
from quoteflow.adapters.schemas.http.envelopes import SuccessEnvelope
from quoteflow.adapters.schemas.http.quotes import (
    BatchQuotesRequest,
    HistoryPayload,
    QuoteItem,
    QuotesBatch,
)
from quoteflow.application.services.fallback_generator import DEFAULT_HISTORY_DAYS
from quoteflow.application.use_cases.market_data_client import (
    MAX_HISTORY_DAYS,
    MarketDataClient,
)
from quoteflow.dependencies.market_data import get_market_data_client

router = BaseRouter(version="v1", resource="quotes", tags=["Market Data"])
presenter = QuotesPresenter()

ClientDep = Annotated[MarketDataClient, Depends(get_market_data_client)]


def _trace_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _parse_symbols(symbols_csv: str) -> list[str]:
    return [s.strip() for s in symbols_csv.split(",") if s.strip()]


@router.get(
    "",
    response_model=SuccessEnvelope[QuotesBatch],
    status_code=status.HTTP_200_OK,
    responses=BaseRouter.std_error_responses(),
    summary="Get latest quotes for a comma-separated symbol list",
)
async def get_quotes(
    request: Request,
    response: Response,
    symbols: Annotated[str, Query(min_length=1, examples=["AAPL,2330"])],
    client: ClientDep,
) -> Any:
    results = await client.get_many(_parse_symbols(symbols))
    result = presenter.present_quotes(results, trace_id=_trace_id(request))
    presenter.apply_headers(result, response)
    return result.body


@router.post(
    "/batch",
    response_model=SuccessEnvelope[QuotesBatch],
    status_code=status.HTTP_200_OK,
    responses=BaseRouter.std_error_responses(),
    summary="Get latest quotes for up to 20 symbols",
)
async def post_quotes_batch(
    request: Request,
    response: Response,
    body: BatchQuotesRequest,
    client: ClientDep,
) -> Any:
    results = await client.get_many(body.symbols)
    result = presenter.present_quotes(results, trace_id=_trace_id(request))
    presenter.apply_headers(result, response)
    return result.body


@router.get(
    "/{symbol}",
    response_model=SuccessEnvelope[QuoteItem],
    status_code=status.HTTP_200_OK,
    responses=BaseRouter.std_error_responses(),
    summary="Get the latest quote for one symbol",
)
async def get_quote(
    request: Request,
    response: Response,
    symbol: Annotated[str, Path(min_length=1, max_length=16, examples=["AAPL", "2330"])],
    client: ClientDep,
) -> Any:
    quote = await client.get_one(symbol)
    result = presenter.present_quote(quote, trace_id=_trace_id(request))
    presenter.apply_headers(result, response)
    return result.body


@router.get(
    "/{symbol}/history",
    response_model=SuccessEnvelope[HistoryPayload],
    status_code=status.HTTP_200_OK,
    responses=BaseRouter.std_error_responses(),
    summary="Get daily bars for one symbol",
)
async def get_history(
    request: Request,
    response: Response,
    symbol: Annotated[str, Path(min_length=1, max_length=16)],
    client: ClientDep,
    days: Annotated[int, Query(ge=1, le=MAX_HISTORY_DAYS)] = DEFAULT_HISTORY_DAYS,
) -> Any:
    history = await client.get_history(symbol, days)
    result = presenter.present_history(history, trace_id=_trace_id(request))
    presenter.apply_headers(result, response)
    return result.body
