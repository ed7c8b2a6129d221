from __future__ import annotations

from decimal import Decimal

import pytest

from quoteflow.application.services.quote_cache import QuoteCache
from quoteflow.domain.entities.quote import Quote
from quoteflow.domain.value_objects.quote_result import QuoteResult


def _result(symbol: str = "AAPL") -> QuoteResult:
    return QuoteResult.live(
        Quote(symbol=symbol, price=Decimal("1"), change=Decimal("0"), change_percent=Decimal("0"))
    )


def test_entry_is_fresh_just_before_ttl_and_absent_at_ttl(clock) -> None:
    cache = QuoteCache(ttl_s=300, clock=clock)
    value = _result()
    cache.put("AAPL", value)

    clock.advance(299.999)
    assert cache.get("AAPL") is value

    clock.advance(0.001)  # exactly 300 s after the write
    assert cache.get("AAPL") is None
    # Stale entries are still physically present until swept.
    assert len(cache) == 1
    assert cache.sweep() == 1
    assert len(cache) == 0


def test_put_replaces_entry_and_restarts_its_clock(clock) -> None:
    cache = QuoteCache(ttl_s=10, clock=clock)
    cache.put("AAPL", _result())
    clock.advance(8)
    newer = _result()
    cache.put("AAPL", newer)
    clock.advance(8)
    assert cache.get("AAPL") is newer


def test_hits_and_misses_are_counted_but_peek_is_not(clock) -> None:
    cache = QuoteCache(ttl_s=10, clock=clock)
    cache.put("AAPL", _result())

    assert cache.peek("AAPL") is not None
    assert cache.get("AAPL") is not None
    assert cache.get("MSFT") is None

    assert (cache.hits, cache.misses) == (1, 1)
    assert "AAPL" in cache
    assert "MSFT" not in cache


def test_clear_drops_entries_and_statistics(clock) -> None:
    cache = QuoteCache(ttl_s=10, clock=clock)
    cache.put("AAPL", _result())
    cache.get("AAPL")
    cache.clear()
    assert len(cache) == 0
    assert (cache.hits, cache.misses) == (0, 0)


def test_sweep_keeps_fresh_entries(clock) -> None:
    cache = QuoteCache(ttl_s=10, clock=clock)
    cache.put("OLD", _result("OLD"))
    clock.advance(6)
    cache.put("NEW", _result("NEW"))
    clock.advance(5)
    assert cache.sweep() == 1
    assert cache.peek("NEW") is not None


def test_ttl_must_be_positive() -> None:
    with pytest.raises(ValueError):
        QuoteCache(ttl_s=0)
