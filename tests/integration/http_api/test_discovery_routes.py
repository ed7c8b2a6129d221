from __future__ import annotations

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from quoteflow.dependencies import market_data as dep
from quoteflow.main import create_app

pytestmark = pytest.mark.integration


@pytest.fixture
def app(test_settings, fake_gateway) -> FastAPI:
    application = create_app(test_settings)
    client = dep.build_market_data_client(
        test_settings, gateways=[fake_gateway("us"), fake_gateway("tw")]
    )
    application.dependency_overrides[dep.get_market_data_client] = lambda: client
    return application


def _http(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.asyncio
async def test_gainers_without_store_rank_live_popular_quotes(app: FastAPI) -> None:
    async with _http(app) as http:
        r = await http.get("/v1/discovery/gainers")

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["kind"] == "gainers"
    assert len(data["items"]) == 8
    assert all(item["source"] == "live" for item in data["items"])
    assert all(item["market"] == "US" for item in data["items"])


@pytest.mark.asyncio
async def test_losers_can_be_empty(app: FastAPI) -> None:
    async with _http(app) as http:
        r = await http.get("/v1/discovery/losers")

    assert r.status_code == 200
    assert r.json()["data"] == {"kind": "losers", "items": []}


@pytest.mark.asyncio
async def test_unknown_ranking_is_rejected(app: FastAPI) -> None:
    async with _http(app) as http:
        r = await http.get("/v1/discovery/cheapest")

    assert r.status_code == 422
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"
