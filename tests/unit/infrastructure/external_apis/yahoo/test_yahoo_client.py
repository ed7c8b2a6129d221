from __future__ import annotations

import asyncio

import httpx
import pytest
import respx

from quoteflow.domain.exceptions.market_data import (
    MarketDataBadRequest,
    MarketDataRateLimited,
    MarketDataUnavailable,
    MarketDataValidationError,
)
from quoteflow.infrastructure.external_apis.yahoo.client import YahooFinanceClient
from quoteflow.infrastructure.external_apis.yahoo.settings import YahooFinanceSettings
from quoteflow.infrastructure.logging.logger import set_request_context
from quoteflow.infrastructure.resilience.circuit_breaker import CircuitBreaker

CFG = YahooFinanceSettings()


@pytest.mark.asyncio
@respx.mock
async def test_quote_joins_symbols_and_returns_rows() -> None:
    route = respx.get(CFG.quote_url).mock(
        return_value=httpx.Response(
            200,
            json={
                "quoteResponse": {
                    "result": [{"symbol": "AAPL", "regularMarketPrice": 189.5}, "junk"],
                    "error": None,
                }
            },
        )
    )

    async def call_with_request_id() -> list:
        set_request_context(request_id="req-123")
        async with httpx.AsyncClient() as http:
            return await YahooFinanceClient(CFG, http=http).quote(["AAPL", "MSFT"])

    rows = await asyncio.create_task(call_with_request_id())

    request = route.calls.last.request
    assert request.url.params["symbols"] == "AAPL,MSFT"
    assert request.headers["X-Request-ID"] == "req-123"
    assert request.headers["User-Agent"]
    assert rows == [{"symbol": "AAPL", "regularMarketPrice": 189.5}]


@pytest.mark.asyncio
@respx.mock
async def test_quote_with_empty_result() -> None:
    respx.get(CFG.quote_url).mock(
        return_value=httpx.Response(200, json={"quoteResponse": {"result": None}})
    )
    async with httpx.AsyncClient() as http:
        assert await YahooFinanceClient(CFG, http=http).quote(["ZZZZ"]) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "exc"),
    [
        (429, MarketDataRateLimited),
        (500, MarketDataUnavailable),
        (503, MarketDataUnavailable),
        (400, MarketDataBadRequest),
        (404, MarketDataBadRequest),
    ],
)
async def test_status_codes_map_to_domain_errors(status: int, exc: type[Exception]) -> None:
    with respx.mock:
        respx.get(CFG.quote_url).mock(return_value=httpx.Response(status, json={}))
        async with httpx.AsyncClient() as http:
            with pytest.raises(exc):
                await YahooFinanceClient(CFG, http=http).quote(["AAPL"])


@pytest.mark.asyncio
@respx.mock
async def test_non_json_and_bad_shape_are_validation_errors() -> None:
    route = respx.get(CFG.quote_url)
    async with httpx.AsyncClient() as http:
        client = YahooFinanceClient(CFG, http=http)

        route.mock(return_value=httpx.Response(200, text="<html>nope</html>"))
        with pytest.raises(MarketDataValidationError, match="non_json"):
            await client.quote(["AAPL"])

        route.mock(return_value=httpx.Response(200, json={"unexpected": True}))
        with pytest.raises(MarketDataValidationError, match="bad_shape"):
            await client.quote(["AAPL"])


@pytest.mark.asyncio
@respx.mock
async def test_transport_error_is_unavailable() -> None:
    respx.get(CFG.quote_url).mock(side_effect=httpx.ConnectError("refused"))
    async with httpx.AsyncClient() as http:
        with pytest.raises(MarketDataUnavailable, match="transport_error"):
            await YahooFinanceClient(CFG, http=http).quote(["AAPL"])


@pytest.mark.asyncio
@respx.mock
async def test_open_breaker_fails_fast_without_request() -> None:
    route = respx.get(CFG.quote_url).mock(return_value=httpx.Response(503))
    breaker = CircuitBreaker(name="yahoo", failure_threshold=1, recovery_timeout_s=60.0)
    async with httpx.AsyncClient() as http:
        client = YahooFinanceClient(CFG, http=http, breaker=breaker)
        with pytest.raises(MarketDataUnavailable, match="upstream_status"):
            await client.quote(["AAPL"])
        with pytest.raises(MarketDataUnavailable, match="circuit_open"):
            await client.quote(["AAPL"])

    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_bad_request_does_not_trip_breaker() -> None:
    respx.get(CFG.quote_url).mock(return_value=httpx.Response(400))
    breaker = CircuitBreaker(name="yahoo", failure_threshold=1)
    async with httpx.AsyncClient() as http:
        with pytest.raises(MarketDataBadRequest):
            await YahooFinanceClient(CFG, http=http, breaker=breaker).quote(["AAPL"])

    assert breaker.state == "CLOSED"


@pytest.mark.asyncio
@respx.mock
async def test_chart_returns_first_result_or_none() -> None:
    route = respx.get(f"{CFG.chart_url}/AAPL")
    async with httpx.AsyncClient() as http:
        client = YahooFinanceClient(CFG, http=http)

        route.mock(
            return_value=httpx.Response(200, json={"chart": {"result": [{"timestamp": [1]}]}})
        )
        assert await client.chart("AAPL", period1=10, period2=20) == {"timestamp": [1]}
        params = route.calls.last.request.url.params
        assert (params["period1"], params["period2"], params["interval"]) == ("10", "20", "1d")

        route.mock(return_value=httpx.Response(200, json={"chart": {"result": None}}))
        assert await client.chart("AAPL", period1=10, period2=20) is None


@pytest.mark.asyncio
async def test_owned_client_is_closed() -> None:
    client = YahooFinanceClient(CFG)

    await client.aclose()

    assert client._client.is_closed
