# src/quoteflow/infrastructure/external_apis/http_transport.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Shared upstream JSON transport: breaker-guarded, instrumented, async.

Provider clients (Yahoo Finance, TWSE) subclass :class:`UpstreamJsonClient`
and only describe endpoints and payload shapes. This base provides:

* Async HTTP (httpx) with per-request timeout and baseline headers.
* Circuit breaker per provider (CLOSED <-> OPEN <-> HALF_OPEN).
* Deterministic mapping to domain errors (429/400/401/403/404/422/5xx).
* Correlation propagation (``X-Request-ID``/``x-trace-id``).
* Prometheus metrics.

Retries are *not* performed here: the batch fetcher owns the retry budget so
that one chunk request is retried as a unit.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import suppress
from typing import Any, ClassVar, Final

import httpx

from quoteflow.domain.exceptions.market_data import (
    MarketDataBadRequest,
    MarketDataRateLimited,
    MarketDataUnavailable,
    MarketDataValidationError,
)
from quoteflow.infrastructure.logging.logger import get_json_logger, get_request_id, get_trace_id
from quoteflow.infrastructure.observability.metrics_market_data import (
    get_upstream_http_status_total,
    observe_upstream_request,
)
from quoteflow.infrastructure.resilience.circuit_breaker import CircuitBreaker, CircuitOpenError

logger = get_json_logger(__name__)

_DEFAULT_TIMEOUT: Final[float] = 10.0
_DEFAULT_USER_AGENT: Final[str] = (
    "Mozilla/5.0 (compatible; quoteflow/0.1; +https://github.com/stacklion/quoteflow)"
)


class UpstreamJsonClient:
    """Base class for JSON-over-HTTP quote providers."""

    provider: ClassVar[str] = "upstream"

    def __init__(
        self,
        *,
        http: httpx.AsyncClient | None = None,
        timeout_s: float | None = None,
        user_agent: str | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            http: Optional shared ``httpx.AsyncClient``. If omitted, a client
                is created and owned by this instance.
            timeout_s: Per-request timeout in seconds.
            user_agent: ``User-Agent`` header; some providers reject empty ones.
            breaker: Circuit breaker instance; created if omitted.
        """
        self._timeout = float(timeout_s) if timeout_s is not None else _DEFAULT_TIMEOUT
        headers = {
            "Accept": "application/json",
            "User-Agent": user_agent or _DEFAULT_USER_AGENT,
        }
        self._owns_client = http is None
        self._client = http or httpx.AsyncClient(timeout=self._timeout, headers=headers)
        if http is not None:
            for key, value in headers.items():
                self._client.headers.setdefault(key, value)

        self._breaker = breaker or CircuitBreaker(name=self.provider)
        self._status_total = get_upstream_http_status_total()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance owns it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_json(
        self,
        *,
        endpoint: str,
        url: str,
        params: Mapping[str, Any],
    ) -> Any:
        """Issue one GET and return the decoded JSON body.

        Args:
            endpoint: Logical endpoint name for metrics and logs.
            url: Absolute URL.
            params: Query parameters.

        Returns:
            The decoded JSON document.

        Raises:
            MarketDataUnavailable: Network error, timeout, 5xx, or open circuit.
            MarketDataRateLimited: HTTP 429.
            MarketDataBadRequest: HTTP 400/401/403/404/422.
            MarketDataValidationError: Body is not JSON.
        """
        headers: dict[str, str] = {}
        request_id = get_request_id()
        trace_id = get_trace_id()
        if request_id:
            headers["X-Request-ID"] = request_id
        if trace_id:
            headers["x-trace-id"] = trace_id

        with observe_upstream_request(provider=self.provider, endpoint=endpoint) as obs:
            try:
                # Only transport failures, 429 and 5xx count against the breaker.
                async with self._breaker.guard():
                    try:
                        response = await self._client.get(
                            url, params=params, headers=headers, timeout=self._timeout
                        )
                    except httpx.RequestError as exc:
                        obs.mark_error("transport")
                        raise MarketDataUnavailable(
                            "transport_error",
                            details={"provider": self.provider, "error": type(exc).__name__},
                        ) from exc

                    status = response.status_code
                    with suppress(Exception):
                        self._status_total.labels(
                            provider=self.provider,
                            endpoint=endpoint,
                            status_code=str(status),
                        ).inc()

                    if status == 429:
                        obs.mark_error("rate_limited")
                        raise MarketDataRateLimited("rate_limited", details=self._details(status))
                    if status >= 500:
                        obs.mark_error("unavailable")
                        raise MarketDataUnavailable(
                            "upstream_status", details=self._details(status)
                        )
            except CircuitOpenError as exc:
                obs.mark_error("circuit_open")
                raise MarketDataUnavailable(
                    "circuit_open", details={"provider": self.provider}
                ) from exc

            if status >= 400:
                obs.mark_error("bad_request")
                logger.warning(
                    "upstream.bad_request",
                    extra={
                        "extra": {"provider": self.provider, "endpoint": endpoint, "status": status}
                    },
                )
                raise MarketDataBadRequest("bad_request", details=self._details(status))

            try:
                return response.json()
            except ValueError as exc:
                obs.mark_error("non_json")
                raise MarketDataValidationError(
                    "non_json", details={"provider": self.provider, "error": str(exc)}
                ) from exc

    def _details(self, status: int) -> dict[str, Any]:
        return {"provider": self.provider, "status": status}
