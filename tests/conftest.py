# tests/conftest.py
from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Iterator, Sequence
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

import pytest

from quoteflow.application.services.batch_fetcher import BatchFetcher
from quoteflow.application.services.fallback_generator import FallbackGenerator
from quoteflow.application.services.quote_cache import QuoteCache
from quoteflow.application.services.request_coordinator import RequestCoordinator
from quoteflow.config.settings import Settings, get_settings
from quoteflow.domain.entities.historical_bar import HistoricalBar
from quoteflow.domain.entities.quote import Quote
from quoteflow.domain.enums.market import Market
from quoteflow.domain.services.market_classifier import classify_symbol, is_taiwan_symbol
from quoteflow.infrastructure.resilience.retry import RetryPolicy


def build_quote(symbol: str, price: str = "100") -> Quote:
    """Return a minimal live-looking quote for ``symbol``."""
    return Quote(
        symbol=symbol,
        price=Decimal(price),
        change=Decimal("1.5"),
        change_percent=Decimal("1.52"),
        market=classify_symbol(symbol),
        volume=1_000,
    )


def build_bars(symbol: str, days: int, *, end: date = date(2024, 5, 10)) -> list[HistoricalBar]:
    return [
        HistoricalBar(
            symbol=symbol,
            date=end - timedelta(days=offset),
            open=Decimal("10"),
            high=Decimal("11"),
            low=Decimal("9"),
            close=Decimal("10.5"),
            volume=100,
        )
        for offset in range(days - 1, -1, -1)
    ]


class FakeGateway:
    """In-memory market gateway that records every upstream request.

    Args:
        name: ``"us"`` serves non-numeric tickers, ``"tw"`` serves four-digit codes.
        known: Symbols the provider answers for; ``None`` answers for all.
        errors: Exceptions raised by successive ``fetch_quotes`` calls.
        release: When given, ``fetch_quotes`` waits for this event first.
        history: Bars returned by ``fetch_history`` per symbol.
        history_errors: Exceptions raised by successive ``fetch_history`` calls.
    """

    def __init__(
        self,
        name: str = "us",
        *,
        known: Iterable[str] | None = None,
        errors: Iterable[Exception] = (),
        release: asyncio.Event | None = None,
        history: dict[str, list[HistoricalBar]] | None = None,
        history_errors: Iterable[Exception] = (),
    ) -> None:
        self.name = name
        self.known = set(known) if known is not None else None
        self.errors = list(errors)
        self.release = release
        self.history = history or {}
        self.history_errors = list(history_errors)
        self.calls: list[list[str]] = []
        self.history_calls: list[tuple[str, int]] = []

    def handles(self, symbol: str) -> bool:
        return is_taiwan_symbol(symbol) == (self.name == "tw")

    def request_groups(self, symbols: Sequence[str]) -> list[list[str]]:
        if self.name != "tw":
            return [list(symbols)] if symbols else []
        groups: dict[Market, list[str]] = {}
        for symbol in symbols:
            groups.setdefault(classify_symbol(symbol), []).append(symbol)
        return list(groups.values())

    async def fetch_quotes(self, symbols: Sequence[str]) -> dict[str, Quote]:
        self.calls.append(list(symbols))
        if self.release is not None:
            await self.release.wait()
        if self.errors:
            raise self.errors.pop(0)
        return {
            s: build_quote(s)
            for s in symbols
            if self.known is None or s in self.known
        }

    async def fetch_history(self, symbol: str, days: int) -> list[HistoricalBar]:
        self.history_calls.append((symbol, days))
        if self.history_errors:
            raise self.history_errors.pop(0)
        return self.history.get(symbol, [])[-days:]


class FakeStore:
    """Store double returning canned snapshots and histories."""

    def __init__(
        self,
        *,
        quotes: dict[str, Quote] | None = None,
        history: dict[str, list[HistoricalBar]] | None = None,
        refresh_log: list[dict[str, Any]] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.quotes = quotes or {}
        self.history = history or {}
        self.refresh_log = refresh_log or []
        self.error = error
        self.lookups: list[list[str]] = []

    async def get_daily_quotes(self, symbols: Sequence[str], *, on: date) -> dict[str, Quote]:
        self.lookups.append(list(symbols))
        if self.error is not None:
            raise self.error
        return {s: self.quotes[s] for s in symbols if s in self.quotes}

    async def list_daily_quotes(self, *, on: date) -> list[Quote]:
        if self.error is not None:
            raise self.error
        return list(self.quotes.values())

    async def get_history(self, symbol: str, *, days: int) -> list[HistoricalBar]:
        if self.error is not None:
            raise self.error
        return self.history.get(symbol, [])[-days:]

    async def upsert_daily_quote(self, quote: Quote, *, on: date) -> None:
        self.quotes[quote.symbol] = quote

    async def upsert_history_bar(self, bar: HistoricalBar) -> None:
        self.history.setdefault(bar.symbol, []).append(bar)

    async def append_refresh_log(self, on: date, entry: Any) -> None:
        self.refresh_log.append(dict(entry))

    async def get_refresh_log(self, on: date) -> list[dict[str, Any]]:
        if self.error is not None:
            raise self.error
        return list(self.refresh_log)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


NO_WAIT = RetryPolicy(max_attempts=3, base_delay_s=0.0)


@pytest.fixture
def fake_gateway() -> type[FakeGateway]:
    return FakeGateway


@pytest.fixture
def fake_store() -> type[FakeStore]:
    return FakeStore


@pytest.fixture
def make_quote() -> Callable[..., Quote]:
    return build_quote


@pytest.fixture
def make_bars() -> Callable[..., list[HistoricalBar]]:
    return build_bars


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_wait_policy() -> RetryPolicy:
    return NO_WAIT


@pytest.fixture
def make_coordinator() -> Callable[..., RequestCoordinator]:
    """Factory wiring a coordinator around a gateway with no pauses or backoff."""

    def _make(
        gateway: FakeGateway,
        *,
        store: FakeStore | None = None,
        timeout_s: float = 2.0,
        batch_size: int = 10,
        max_symbols: int = 50,
        cache: QuoteCache | None = None,
    ) -> RequestCoordinator:
        if cache is None:
            cache = QuoteCache(name=gateway.name)
        fetcher = BatchFetcher(
            gateway, cache, batch_size=batch_size, inter_batch_pause_s=0.0, retry_policy=NO_WAIT
        )
        return RequestCoordinator(
            fetcher,
            cache,
            FallbackGenerator(seed=7),
            store=store,
            batch_size=batch_size,
            inter_batch_pause_s=0.0,
            timeout_s=timeout_s,
            max_symbols=max_symbols,
            today=lambda: date(2024, 5, 10),
        )

    return _make


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        ENVIRONMENT="test",
        QUOTE_INTER_BATCH_PAUSE_S=0.0,
        QUOTE_RETRY_BASE_DELAY_S=0.0,
        QUOTE_COORDINATOR_TIMEOUT_S=2.0,
        QUOTE_FALLBACK_SEED=7,
    )


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
