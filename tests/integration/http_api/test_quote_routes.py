from __future__ import annotations

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from quoteflow.dependencies import market_data as dep
from quoteflow.domain.exceptions.market_data import MarketDataUnavailable
from quoteflow.main import create_app

pytestmark = pytest.mark.integration


@pytest.fixture
def gateways(fake_gateway, make_bars):
    return {
        "us": fake_gateway(
            "us", known={"AAPL", "MSFT", "GOOGL"}, history={"AAPL": make_bars("AAPL", 40)}
        ),
        "tw": fake_gateway("tw"),
    }


@pytest.fixture
def app(test_settings, gateways) -> FastAPI:
    application = create_app(test_settings)
    client = dep.build_market_data_client(
        test_settings, gateways=[gateways["us"], gateways["tw"]]
    )
    application.dependency_overrides[dep.get_market_data_client] = lambda: client
    return application


def _http(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.asyncio
async def test_get_single_quote(app: FastAPI) -> None:
    async with _http(app) as http:
        r = await http.get("/v1/quotes/aapl", headers={"X-Request-ID": "req-42"})

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["symbol"] == "AAPL"
    assert data["market"] == "US"
    assert data["price"] == "100"
    assert data["source"] == "live"
    assert data["is_fallback"] is False
    assert r.headers["X-Request-ID"] == "req-42"
    assert r.headers["Cache-Control"] == "public, max-age=5"


@pytest.mark.asyncio
async def test_unknown_symbol_is_flagged_fallback(app: FastAPI) -> None:
    async with _http(app) as http:
        r = await http.get("/v1/quotes/ZZZZ")

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["is_fallback"] is True
    assert data["source"] == "fallback"
    assert data["fallback_reason"] == "not found"
    assert "Cache-Control" not in r.headers


@pytest.mark.asyncio
async def test_taiwan_quote(app: FastAPI, gateways) -> None:
    async with _http(app) as http:
        r = await http.get("/v1/quotes/6547")

    assert r.json()["data"]["market"] == "OTC"
    assert gateways["tw"].calls == [["6547"]]


@pytest.mark.asyncio
async def test_invalid_symbol_returns_error_envelope(app: FastAPI) -> None:
    async with _http(app) as http:
        r = await http.get("/v1/quotes/@@@")

    assert r.status_code == 400
    err = r.json()["error"]
    assert err["code"] == "INVALID_SYMBOL"
    assert err["http_status"] == 400
    assert err["trace_id"] == r.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_csv_quotes_are_deduplicated_with_etag(app: FastAPI, gateways) -> None:
    async with _http(app) as http:
        r = await http.get("/v1/quotes", params={"symbols": "AAPL, 2330,aapl,MSFT"})

    assert r.status_code == 200
    items = r.json()["data"]["items"]
    assert [i["symbol"] for i in items] == ["AAPL", "2330", "MSFT"]
    assert r.headers["ETag"].startswith('"')
    assert gateways["us"].calls == [["AAPL", "MSFT"]]


@pytest.mark.asyncio
async def test_batch_post(app: FastAPI) -> None:
    async with _http(app) as http:
        r = await http.post("/v1/quotes/batch", json={"symbols": ["AAPL", "GOOGL", "AAPL"]})

    assert r.status_code == 200
    assert [i["symbol"] for i in r.json()["data"]["items"]] == ["AAPL", "GOOGL"]


@pytest.mark.asyncio
async def test_batch_post_limits(app: FastAPI) -> None:
    async with _http(app) as http:
        too_many = await http.post(
            "/v1/quotes/batch", json={"symbols": [f"S{i}" for i in range(21)]}
        )
        empty = await http.post("/v1/quotes/batch", json={"symbols": []})
        wrong_type = await http.post("/v1/quotes/batch", json={"symbols": "AAPL"})

    assert too_many.status_code == 422
    assert too_many.json()["error"]["code"] == "VALIDATION_ERROR"
    assert empty.status_code == 422
    assert wrong_type.status_code == 422


@pytest.mark.asyncio
async def test_history(app: FastAPI) -> None:
    async with _http(app) as http:
        r = await http.get("/v1/quotes/AAPL/history", params={"days": 7})

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["source"] == "live"
    assert data["days"] == 7
    assert len(data["bars"]) == 7
    assert data["bars"][-1]["date"] == "2024-05-10"
    assert r.headers["ETag"]


@pytest.mark.asyncio
async def test_history_default_window_falls_back(app: FastAPI, gateways) -> None:
    gateways["us"].history_errors = [MarketDataUnavailable("down")] * 3
    async with _http(app) as http:
        r = await http.get("/v1/quotes/MSFT/history")

    data = r.json()["data"]
    assert data["is_fallback"] is True
    assert data["fallback_reason"] == "MARKET_DATA_UNAVAILABLE"
    assert data["days"] == 30


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, 366, "abc"])
async def test_history_days_out_of_range(app: FastAPI, days) -> None:
    async with _http(app) as http:
        r = await http.get("/v1/quotes/AAPL/history", params={"days": days})

    assert r.status_code == 422
