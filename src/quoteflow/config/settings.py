# src/quoteflow/config/settings.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Quoteflow Configuration (Pydantic Settings, v2)

Summary:
    Typed, validated configuration for the quote caching and batching service.
    Environment parsing and validation live here; only adapters and
    infrastructure read the process environment at runtime. Other layers
    receive `Settings` (or the plain values derived from it) via DI.

Design:
    - Pydantic v2 BaseSettings with `extra='forbid'` to catch unknown env.
    - Explicit env aliases with constrained types and ranges.
    - Environment enumeration for behavior toggles (includes TEST).
    - Singleton accessor `get_settings()` with LRU cache.
    - Provider endpoints live in their own settings classes
      (`YahooFinanceSettings`, `TwseSettings`).
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Logical deployment environment."""

    DEVELOPMENT = "development"
    TEST = "test"
    CI = "ci"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Typed application configuration for quoteflow."""

    # ---------------------------
    # Core environment
    # ---------------------------
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Logical deployment environment.",
        validation_alias="ENVIRONMENT",
    )
    service_name: str = Field(
        default="quoteflow",
        min_length=1,
        description="Service name reported in logs and health checks.",
        validation_alias="SERVICE_NAME",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version reported by /healthz.",
        validation_alias="SERVICE_VERSION",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR).",
        validation_alias="LOG_LEVEL",
    )

    # ---------------------------
    # Quote cache / coordinator
    # ---------------------------
    cache_duration_s: float = Field(
        default=300.0,
        gt=0,
        le=24 * 60 * 60,
        description="Freshness window of a cached quote in seconds.",
        validation_alias="QUOTE_CACHE_DURATION_S",
    )
    batch_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum number of symbols per upstream request chunk.",
        validation_alias="QUOTE_BATCH_SIZE",
    )
    max_symbols_per_request: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Largest unique symbol set accepted by get_many.",
        validation_alias="QUOTE_MAX_SYMBOLS",
    )
    inter_batch_pause_s: float = Field(
        default=0.2,
        ge=0.0,
        le=10.0,
        description="Pause between consecutive upstream chunks.",
        validation_alias="QUOTE_INTER_BATCH_PAUSE_S",
    )
    coordinator_timeout_s: float = Field(
        default=10.0,
        gt=0,
        le=120.0,
        description="Upper bound a caller waits on a pending request before falling back.",
        validation_alias="QUOTE_COORDINATOR_TIMEOUT_S",
    )
    retry_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts per upstream request, including the first.",
        validation_alias="QUOTE_RETRY_MAX_ATTEMPTS",
    )
    retry_base_delay_s: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Backoff delay before the second attempt; doubles afterwards.",
        validation_alias="QUOTE_RETRY_BASE_DELAY_S",
    )
    fallback_seed: int | None = Field(
        default=None,
        description="Seed for synthetic fallback data. Unset means non-deterministic.",
        validation_alias="QUOTE_FALLBACK_SEED",
    )

    # ---------------------------
    # Persistent store (optional second-tier cache)
    # ---------------------------
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL backing the daily quote store.",
        validation_alias="REDIS_URL",
    )
    store_enabled: bool = Field(
        default=False,
        description="Consult the persistent daily store before calling upstream.",
        validation_alias="QUOTE_STORE_ENABLED",
    )

    # ---------------------------
    # HTTP surface
    # ---------------------------
    cors_allow_origins_raw: str | None = Field(
        default=None,
        description="Raw env for allowed CORS origins (comma-separated).",
        validation_alias="ALLOWED_ORIGINS",
    )
    cors_allow_origins: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins, derived from ALLOWED_ORIGINS.",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="forbid",
        case_sensitive=False,
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _derive_and_validate(self) -> Settings:
        """Compute the CORS list and check cross-field invariants.

        Returns:
            Settings: The validated and possibly mutated settings instance.

        Raises:
            ValueError: If the store is enabled without a Redis URL or a
                wildcard origin is configured outside development/test.
        """
        raw = (self.cors_allow_origins_raw or "").strip()
        entries = [e.strip() for e in raw.split(",") if e.strip()]
        if "*" in entries and self.environment not in (Environment.DEVELOPMENT, Environment.TEST):
            raise ValueError("Wildcard CORS origin is not allowed in this environment")
        self.cors_allow_origins = entries

        if self.store_enabled and not self.redis_url:
            raise ValueError("QUOTE_STORE_ENABLED requires REDIS_URL")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton `Settings` instance.

    Returns:
        Settings: Validated application settings.

    Raises:
        RuntimeError: If configuration is invalid.
    """
    try:
        settings = Settings()
    except ValidationError as exc:
        logger.exception("Invalid application configuration")
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    logger.info(
        "Settings initialized",
        extra={
            "extra": {
                "environment": settings.environment.value,
                "cache_duration_s": settings.cache_duration_s,
                "batch_size": settings.batch_size,
                "store_enabled": settings.store_enabled,
                "redis_url_set": bool(settings.redis_url),
                "cors_count": len(settings.cors_allow_origins),
            }
        },
    )
    return settings
