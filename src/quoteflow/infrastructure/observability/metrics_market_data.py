# src/quoteflow/infrastructure/observability/metrics_market_data.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Quote layer observability helpers and Prometheus metrics.

Exports
-------
Collectors (names are part of the public contract and must remain stable):

* ``quoteflow_upstream_latency_seconds`` (Histogram)
* ``quoteflow_upstream_errors_total`` (Counter)
* ``quoteflow_upstream_http_status_total`` (Counter)
* ``quoteflow_upstream_retries_total`` (Counter)
* ``quoteflow_breaker_events_total`` (Counter)
* ``quoteflow_quote_cache_hits_total`` (Counter)
* ``quoteflow_quote_cache_misses_total`` (Counter)
* ``quoteflow_coalesced_requests_total`` (Counter)
* ``quoteflow_fallback_quotes_total`` (Counter)
* ``quoteflow_queue_depth`` (Gauge)

Helpers:

* :func:`observe_upstream_request` - context manager for one upstream call.
* ``get_*`` accessors returning the underlying collector.

Design
------
Collectors are created against the *current* default registry
(:data:`prometheus_client.REGISTRY`). If a collector with the same name is
already registered (module re-import, tests swapping the registry), the
existing instance is reused instead of registering a duplicate.
"""

from __future__ import annotations

from collections.abc import Generator, Sequence
from contextlib import contextmanager, suppress
from dataclasses import dataclass, field
from time import perf_counter
from typing import TypeVar

import prometheus_client as prom
from prometheus_client import Counter, Gauge, Histogram
from prometheus_client.registry import CollectorRegistry

_C = TypeVar("_C", Counter, Gauge, Histogram)


def _get_or_create(
    kind: type[_C],
    name: str,
    doc: str,
    labelnames: Sequence[str] | None = None,
) -> _C:
    """Return a collector of ``kind`` bound to the current default registry.

    Idempotent per active registry:

    1. Reuse an existing collector with the given name if it has the right type.
    2. Otherwise register a new one on the same registry.
    3. If a concurrent registration raised ``Duplicated timeseries``, look the
       collector up again and reuse it.

    Args:
        kind: Collector class (``Counter``, ``Gauge`` or ``Histogram``).
        name: Metric name.
        doc: Human-readable metric description.
        labelnames: Optional iterable of label names.

    Returns:
        A collector bound to the current :data:`prom.REGISTRY`.
    """
    registry: CollectorRegistry = prom.REGISTRY
    mapping = getattr(registry, "_names_to_collectors", {})
    existing = mapping.get(name)
    if isinstance(existing, kind):
        return existing

    labels = tuple(labelnames) if labelnames is not None else ()
    try:
        return kind(name, doc, labels, registry=registry)
    except ValueError as exc:
        if "Duplicated timeseries" in str(exc):
            again = getattr(registry, "_names_to_collectors", {}).get(name)
            if isinstance(again, kind):
                return again
        raise


# ---------------------------------------------------------------------------
# Upstream provider metrics
# ---------------------------------------------------------------------------

upstream_latency_seconds: Histogram = _get_or_create(
    Histogram,
    "quoteflow_upstream_latency_seconds",
    "Latency of upstream quote provider calls (seconds).",
    labelnames=("provider", "endpoint", "outcome"),
)

upstream_errors_total: Counter = _get_or_create(
    Counter,
    "quoteflow_upstream_errors_total",
    "Errors encountered when calling upstream quote providers.",
    labelnames=("provider", "endpoint", "reason"),
)

upstream_http_status_total: Counter = _get_or_create(
    Counter,
    "quoteflow_upstream_http_status_total",
    "HTTP status codes returned by upstream quote providers.",
    labelnames=("provider", "endpoint", "status_code"),
)

upstream_retries_total: Counter = _get_or_create(
    Counter,
    "quoteflow_upstream_retries_total",
    "Retries attempted for upstream quote requests.",
    labelnames=("market", "reason"),
)

breaker_events_total: Counter = _get_or_create(
    Counter,
    "quoteflow_breaker_events_total",
    "Circuit-breaker state transitions per provider.",
    labelnames=("provider", "state"),
)

# ---------------------------------------------------------------------------
# Cache / coordinator metrics
# ---------------------------------------------------------------------------

quote_cache_hits_total: Counter = _get_or_create(
    Counter,
    "quoteflow_quote_cache_hits_total",
    "Fresh quote cache hits.",
    labelnames=("market",),
)

quote_cache_misses_total: Counter = _get_or_create(
    Counter,
    "quoteflow_quote_cache_misses_total",
    "Quote cache misses (absent or stale).",
    labelnames=("market",),
)

coalesced_requests_total: Counter = _get_or_create(
    Counter,
    "quoteflow_coalesced_requests_total",
    "Callers attached to an already pending request instead of fetching.",
    labelnames=("market",),
)

fallback_quotes_total: Counter = _get_or_create(
    Counter,
    "quoteflow_fallback_quotes_total",
    "Synthetic quotes handed out instead of live data.",
    labelnames=("market", "reason"),
)

queue_depth: Gauge = _get_or_create(
    Gauge,
    "quoteflow_queue_depth",
    "Symbols waiting in the coordinator queue.",
    labelnames=("market",),
)


@dataclass
class UpstreamObservation:
    """State captured while observing an upstream call.

    Attributes:
        provider: Upstream provider identifier (for labelling).
        endpoint: Logical endpoint name (for labelling).
        start: Monotonic start time in seconds.
        outcome: ``"success"`` or ``"error"``.
        error_reason: Short, machine-readable error reason if any.
    """

    provider: str
    endpoint: str
    start: float = field(default_factory=perf_counter)
    outcome: str = "success"
    error_reason: str | None = None

    def mark_error(self, reason: str) -> None:
        """Mark the upstream call as failed.

        Args:
            reason: Short, machine-readable error reason (e.g. ``"rate_limited"``).
        """
        self.outcome = "error"
        self.error_reason = reason


@contextmanager
def observe_upstream_request(
    *,
    provider: str,
    endpoint: str,
) -> Generator[UpstreamObservation, None, None]:
    """Observe one upstream quote provider request.

    Records a latency sample and, when :meth:`UpstreamObservation.mark_error`
    was called or an exception escaped, an error increment.

    Args:
        provider: Upstream provider identifier (e.g. ``"yahoo"``).
        endpoint: Logical endpoint name (e.g. ``"quote"`` or ``"stock_day"``).

    Yields:
        A mutable :class:`UpstreamObservation`.
    """
    obs = UpstreamObservation(provider=provider, endpoint=endpoint)
    try:
        yield obs
    except Exception:
        if obs.error_reason is None:
            obs.mark_error("exception")
        raise
    finally:
        elapsed = perf_counter() - obs.start

        with suppress(Exception):
            upstream_latency_seconds.labels(
                provider=obs.provider,
                endpoint=obs.endpoint,
                outcome=obs.outcome,
            ).observe(elapsed)

            if obs.error_reason is not None:
                upstream_errors_total.labels(
                    provider=obs.provider,
                    endpoint=obs.endpoint,
                    reason=obs.error_reason,
                ).inc()


def get_upstream_http_status_total() -> Counter:
    """Return the upstream HTTP status counter."""
    return upstream_http_status_total


def get_upstream_retries_total() -> Counter:
    """Return the upstream retry counter."""
    return upstream_retries_total


def get_breaker_events_total() -> Counter:
    """Return the circuit-breaker events counter."""
    return breaker_events_total


def get_quote_cache_hits_total() -> Counter:
    """Return the quote cache hits counter."""
    return quote_cache_hits_total


def get_quote_cache_misses_total() -> Counter:
    """Return the quote cache misses counter."""
    return quote_cache_misses_total


def get_coalesced_requests_total() -> Counter:
    """Return the coalesced-request counter."""
    return coalesced_requests_total


def get_fallback_quotes_total() -> Counter:
    """Return the fallback quotes counter."""
    return fallback_quotes_total


def get_queue_depth() -> Gauge:
    """Return the coordinator queue depth gauge."""
    return queue_depth
