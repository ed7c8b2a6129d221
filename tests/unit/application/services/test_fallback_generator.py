from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from quoteflow.application.services.fallback_generator import (
    DEFAULT_BASE_PRICE,
    FallbackGenerator,
)
from quoteflow.domain.enums.market import Market


@pytest.mark.parametrize("seed", [None, 1, 42])
def test_fallback_quote_price_stays_within_bounds(seed: int | None) -> None:
    generator = FallbackGenerator(seed=seed)
    for _ in range(50):
        quote = generator.fallback_quote("AAPL")
        assert Decimal("120") <= quote.price <= Decimal("157.5")
        assert quote.price == quote.price.quantize(Decimal("0.01"))
        assert quote.previous_close == Decimal("150.00")


def test_unknown_symbol_uses_default_base_price() -> None:
    quote = FallbackGenerator(seed=3).fallback_quote("ZZZZ")
    assert DEFAULT_BASE_PRICE * Decimal("0.8") <= quote.price <= DEFAULT_BASE_PRICE * Decimal("1.05")


def test_seeded_output_is_deterministic_per_symbol() -> None:
    a = FallbackGenerator(seed=11)
    b = FallbackGenerator(seed=11)
    assert a.fallback_quote("MSFT") == b.fallback_quote("MSFT")
    assert a.fallback_history("2330", 5) == b.fallback_history("2330", 5)


def test_taiwan_fallback_carries_market_and_local_name() -> None:
    quote = FallbackGenerator(seed=1).fallback_quote("6547")
    assert quote.market is Market.OTC
    assert quote.company_name == "6547 股份有限公司"
    assert FallbackGenerator(seed=1).fallback_quote("AAPL").company_name == "AAPL Inc."


def test_fallback_history_is_ascending_and_ends_today() -> None:
    today = date(2024, 5, 10)
    bars = FallbackGenerator(seed=5, today=lambda: today).fallback_history("AAPL", 30)

    assert len(bars) == 30
    assert bars[-1].date == today
    assert bars[0].date == today - timedelta(days=29)
    assert all(b.low <= b.high for b in bars)
    assert all(b.close >= Decimal("120") for b in bars)
