from __future__ import annotations

from datetime import date

import fakeredis.aioredis
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from quoteflow.adapters.repositories.redis_quote_store import RedisQuoteStore
from quoteflow.config.settings import Settings
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
async def test_stats_reflect_lookups(app: FastAPI) -> None:
    async with _http(app) as http:
        await http.get("/v1/quotes/AAPL")
        await http.get("/v1/quotes/AAPL")
        r = await http.get("/v1/cache/stats")

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["cache_size"] == 1
    assert data["hit_rate"] == 50.0
    assert data["supported_markets"] == ["US", "TSE", "OTC"]
    assert {m["market"] for m in data["markets"]} == {"us", "tw"}
    assert data["popular_symbols"] == {"US": 10, "TSE": 15, "OTC": 10}


@pytest.mark.asyncio
async def test_clear_then_stats_are_empty(app: FastAPI) -> None:
    async with _http(app) as http:
        await http.get("/v1/quotes/AAPL")
        cleared = await http.delete("/v1/cache")
        stats = await http.get("/v1/cache/stats")

    assert cleared.json() == {"data": {"cleared": True}}
    assert stats.json()["data"]["cache_size"] == 0
    assert stats.json()["data"]["hit_rate"] == 0.0


@pytest.mark.asyncio
async def test_preload_warms_popular_symbols(app: FastAPI) -> None:
    async with _http(app) as http:
        r = await http.post("/v1/cache/preload")
        stats = await http.get("/v1/cache/stats")

    assert r.json()["data"]["loaded"] == 18
    assert stats.json()["data"]["cache_size"] == 18


@pytest.mark.asyncio
async def test_refresh_status_without_store(app: FastAPI) -> None:
    async with _http(app) as http:
        r = await http.get("/v1/cache/refresh-status", params={"day": "2024-05-10"})

    assert r.status_code == 200
    data = r.json()["data"]
    assert data["day"] == "2024-05-10"
    assert data["store_available"] is False
    assert data["has_refreshed"] is False
    assert data["entries"] == 0


@pytest.mark.asyncio
async def test_refresh_status_reads_the_store_log(fake_gateway) -> None:
    settings = Settings(
        ENVIRONMENT="test",
        QUOTE_STORE_ENABLED=True,
        REDIS_URL="redis://localhost:6379/0",
        QUOTE_INTER_BATCH_PAUSE_S=0.0,
        QUOTE_RETRY_BASE_DELAY_S=0.0,
    )
    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)
    day = date(2024, 5, 10)
    store = RedisQuoteStore(fake)
    await store.append_refresh_log(day, {"status": "in_progress"})
    await store.append_refresh_log(day, {"status": "success", "updated": 35})
    application = create_app(settings)
    client = dep.build_market_data_client(
        settings, redis=fake, gateways=[fake_gateway("us"), fake_gateway("tw")]
    )
    application.dependency_overrides[dep.get_market_data_client] = lambda: client

    async with _http(application) as http:
        r = await http.get("/v1/cache/refresh-status", params={"day": "2024-05-10"})
        bad = await http.get("/v1/cache/refresh-status", params={"day": "yesterday"})

    data = r.json()["data"]
    assert data["store_available"] is True
    assert data["has_refreshed"] is True
    assert data["status"] == "success"
    assert data["last_refresh"] == {"status": "success", "updated": 35}
    assert data["entries"] == 2
    assert bad.status_code == 422
