# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
Discovery Router.

Summary:
    Top ten gainers, losers, most active and trending symbols of the day,
    ranked from the snapshots stored by the daily refresh job. Unknown
    rankings are rejected with ``422`` by path validation.

Layer:
    adapters/routers
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, Path, Request, Response, status

from quoteflow.adapters.presenters.quotes_presenter import QuotesPresenter
from quoteflow.adapters.routers.base_router import BaseRouter
from quoteflow.adapters.schemas.http.envelopes import SuccessEnvelope
from quoteflow.adapters.schemas.http.quotes import DiscoveryPayload
from quoteflow.application.use_cases.market_data_client import MarketDataClient
from quoteflow.dependencies.market_data import get_market_data_client
from quoteflow.domain.enums.market import DiscoveryKind

router = BaseRouter(version="v1", resource="discovery", tags=["Discovery"])
presenter = QuotesPresenter()

ClientDep = Annotated[MarketDataClient, Depends(get_market_data_client)]


def _trace_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.get(
    "/{kind}",
    response_model=SuccessEnvelope[DiscoveryPayload],
    status_code=status.HTTP_200_OK,
    responses=BaseRouter.std_error_responses(),
    summary="Rank today's quotes as gainers, losers, most active or trending",
)
async def get_discovery(
    request: Request,
    response: Response,
    kind: Annotated[DiscoveryKind, Path(examples=["gainers"])],
    client: ClientDep,
) -> Any:
    ranked = await client.get_discovery(kind)
    result = presenter.present_discovery(kind, ranked, trace_id=_trace_id(request))
    presenter.apply_headers(result, response)
    return result.body
