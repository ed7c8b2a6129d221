# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Minimal async circuit breaker (in-memory).

State machine:
    - CLOSED -> count failures; when threshold reached, go OPEN.
    - OPEN   -> fail-fast until recovery timeout expires; then HALF_OPEN.
    - HALF_OPEN -> allow limited calls; on success -> CLOSED; on failure -> OPEN.

Process-local; one breaker per upstream provider.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from quoteflow.infrastructure.observability.metrics_market_data import get_breaker_events_total


class CircuitOpenError(RuntimeError):
    """Raised by :meth:`CircuitBreaker.guard` when calls are short-circuited."""


@dataclass
class CircuitBreaker:
    """Simple circuit breaker suitable for HTTP client protection."""

    name: str = "upstream"
    failure_threshold: int = 5
    recovery_timeout_s: float = 30.0
    half_open_max_calls: int = 1

    _state: str = "CLOSED"  # CLOSED|OPEN|HALF_OPEN
    _failures: int = 0
    _opened_at: float = 0.0
    _half_open_calls: int = 0
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def state(self) -> str:
        return self._state

    def _transition(self, state: str) -> None:
        self._state = state
        get_breaker_events_total().labels(provider=self.name, state=state.lower()).inc()

    def _trip(self) -> None:
        self._opened_at = time.monotonic()
        self._transition("OPEN")

    @asynccontextmanager
    async def guard(self) -> AsyncIterator[None]:
        """Guard an async call with the breaker.

        Raises:
            CircuitOpenError: While OPEN, or when HALF_OPEN trial calls are exhausted.
        """
        async with self._lock:
            now = time.monotonic()
            if self._state == "OPEN":
                if now - self._opened_at >= self.recovery_timeout_s:
                    self._half_open_calls = 0
                    self._transition("HALF_OPEN")
                else:
                    raise CircuitOpenError("circuit_open")
            if self._state == "HALF_OPEN":
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitOpenError("circuit_half_open_limit")
                self._half_open_calls += 1

        try:
            yield
        except Exception:
            async with self._lock:
                if self._state == "HALF_OPEN":
                    self._trip()
                else:
                    self._failures += 1
                    if self._state == "CLOSED" and self._failures >= self.failure_threshold:
                        self._trip()
            raise
        else:
            async with self._lock:
                self._failures = 0
                if self._state == "HALF_OPEN":
                    self._transition("CLOSED")
