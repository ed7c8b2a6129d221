from __future__ import annotations

import time

import pytest

from quoteflow.infrastructure.resilience import retry as retry_module
from quoteflow.infrastructure.resilience.retry import RetryPolicy, retry_async


class _Flaky:
    def __init__(self, failures: int, exc: Exception | None = None) -> None:
        self.failures = failures
        self.exc = exc or ConnectionError("flaky")
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return "ok"


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    recorded: list[float] = []

    async def fake_sleep(delay: float) -> None:
        recorded.append(delay)

    monkeypatch.setattr(retry_module.asyncio, "sleep", fake_sleep)
    return recorded


def test_delay_schedule_doubles_from_base() -> None:
    policy = RetryPolicy(max_attempts=4, base_delay_s=1.0)

    assert [policy.delay_before(k) for k in (1, 2, 3, 4)] == [0.0, 1.0, 2.0, 4.0]


def test_delay_is_capped() -> None:
    policy = RetryPolicy(max_attempts=5, base_delay_s=1.0, cap_s=1.5)

    assert policy.delay_before(4) == 1.5


def test_jitter_stays_within_bound() -> None:
    policy = RetryPolicy(base_delay_s=2.0, jitter=True)

    assert all(0.0 <= policy.delay_before(3) <= 4.0 for _ in range(50))


@pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"base_delay_s": -1.0}])
def test_invalid_policy(kwargs) -> None:
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


@pytest.mark.asyncio
async def test_third_attempt_success_sleeps_base_then_double(sleeps) -> None:
    fn = _Flaky(failures=2)

    assert await retry_async(fn, policy=RetryPolicy(max_attempts=3, base_delay_s=1.0)) == "ok"
    assert fn.calls == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_last_error_propagates_after_budget(sleeps) -> None:
    fn = _Flaky(failures=5)

    with pytest.raises(ConnectionError):
        await retry_async(fn, policy=RetryPolicy(max_attempts=3, base_delay_s=1.0))
    assert fn.calls == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_non_retryable_errors_propagate_immediately(sleeps) -> None:
    fn = _Flaky(failures=1, exc=ValueError("bad"))

    with pytest.raises(ValueError):
        await retry_async(fn, retry_on=lambda exc: isinstance(exc, ConnectionError))
    assert fn.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_real_backoff_timing() -> None:
    fn = _Flaky(failures=2)
    started = time.monotonic()

    await retry_async(fn, policy=RetryPolicy(max_attempts=3, base_delay_s=0.05))

    assert time.monotonic() - started >= 0.15 - 0.01
