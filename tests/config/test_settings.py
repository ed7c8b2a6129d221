from __future__ import annotations

import pytest
from pydantic import ValidationError

from quoteflow.config.settings import Environment, Settings, get_settings
from quoteflow.infrastructure.external_apis.twse.settings import TwseSettings
from quoteflow.infrastructure.external_apis.yahoo.settings import YahooFinanceSettings


def test_defaults_match_documented_tuning() -> None:
    s = Settings(ENVIRONMENT="test")

    assert s.cache_duration_s == 300.0
    assert s.batch_size == 10
    assert s.max_symbols_per_request == 50
    assert s.inter_batch_pause_s == 0.2
    assert s.coordinator_timeout_s == 10.0
    assert s.retry_max_attempts == 3
    assert s.retry_base_delay_s == 1.0
    assert s.store_enabled is False
    assert s.cors_allow_origins == []


def test_settings_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")
    monkeypatch.setenv("QUOTE_CACHE_DURATION_S", "60")
    monkeypatch.setenv("QUOTE_BATCH_SIZE", "5")
    monkeypatch.setenv("QUOTE_STORE_ENABLED", "true")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/1")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example ,")

    s = Settings()

    assert s.environment == Environment.STAGING
    assert s.cache_duration_s == 60.0
    assert s.batch_size == 5
    assert s.store_enabled is True
    assert s.cors_allow_origins == ["https://a.example", "https://b.example"]


def test_settings_forbid_extra_fields() -> None:
    with pytest.raises(ValidationError):
        Settings(ENVIRONMENT="test", unexpected_field="boom")


@pytest.mark.parametrize(
    "overrides",
    [
        {"QUOTE_CACHE_DURATION_S": 0},
        {"QUOTE_BATCH_SIZE": 0},
        {"QUOTE_COORDINATOR_TIMEOUT_S": -1},
        {"QUOTE_RETRY_MAX_ATTEMPTS": 0},
        {"QUOTE_INTER_BATCH_PAUSE_S": -0.1},
    ],
)
def test_out_of_range_values_are_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        Settings(ENVIRONMENT="test", **overrides)


def test_store_requires_redis_url() -> None:
    with pytest.raises(ValidationError, match="REDIS_URL"):
        Settings(ENVIRONMENT="test", QUOTE_STORE_ENABLED=True, REDIS_URL=None)


def test_wildcard_cors_only_outside_production() -> None:
    assert Settings(ENVIRONMENT="development", ALLOWED_ORIGINS="*").cors_allow_origins == ["*"]
    with pytest.raises(ValidationError, match="Wildcard"):
        Settings(ENVIRONMENT="production", ALLOWED_ORIGINS="*")


def test_get_settings_is_cached_and_wraps_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "test")
    assert get_settings() is get_settings()

    get_settings.cache_clear()
    monkeypatch.setenv("QUOTE_BATCH_SIZE", "not-a-number")
    with pytest.raises(RuntimeError, match="Invalid configuration"):
        get_settings()


def test_provider_settings_use_prefixed_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("YAHOO_TIMEOUT_S", "3.5")
    monkeypatch.setenv("TWSE_QUOTE_URL", "http://mis.local/getStockInfo.jsp")

    assert YahooFinanceSettings().timeout_s == 3.5
    assert TwseSettings().quote_url == "http://mis.local/getStockInfo.jsp"
    assert "STOCK_DAY" in TwseSettings().history_url
