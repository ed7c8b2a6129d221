# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Retry utilities (async) with exponential backoff.

Delay before attempt ``k`` (``k >= 2``) is ``base_delay_s * 2 ** (k - 2)``,
optionally capped and optionally jittered. The last attempt's exception
propagates unchanged.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry attempts."""

    max_attempts: int = 3  # total attempts, including the first
    base_delay_s: float = 1.0  # delay before the second attempt
    cap_s: float | None = None  # upper bound for a single delay
    jitter: bool = False  # full jitter if True

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay_s < 0:
            raise ValueError("base_delay_s must be >= 0")

    def delay_before(self, attempt: int) -> float:
        """Return the backoff (seconds) slept before ``attempt`` (1-based).

        Args:
            attempt: Attempt number; the first attempt has no delay.

        Returns:
            Seconds to sleep before issuing ``attempt``.
        """
        if attempt <= 1:
            return 0.0
        delay = self.base_delay_s * (2 ** (attempt - 2))
        if self.cap_s is not None:
            delay = min(self.cap_s, delay)
        if self.jitter:
            delay = random.uniform(0, delay)  # noqa: S311
        return delay


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy | None = None,
    retry_on: Callable[[Exception], bool] | None = None,
) -> T:
    """Run ``fn`` until it succeeds or the attempt budget is exhausted.

    Args:
        fn: Zero-arg async function to execute.
        policy: Attempt count and backoff; defaults to 3 attempts, 1s base.
        retry_on: Predicate deciding whether an exception is retried. Only
            consulted when another attempt remains. ``None`` retries every
            exception.

    Returns:
        The return value of ``fn`` if successful.

    Raises:
        Exception: The last exception raised by ``fn``.
    """
    policy = policy or RetryPolicy()
    attempt = 1
    while True:
        try:
            return await fn()
        except Exception as exc:  # noqa: BLE001
            if attempt >= policy.max_attempts:
                raise
            if retry_on is not None and not retry_on(exc):
                raise
        attempt += 1
        await asyncio.sleep(policy.delay_before(attempt))
