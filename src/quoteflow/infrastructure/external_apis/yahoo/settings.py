# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Pydantic settings for the Yahoo Finance transport client."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class YahooFinanceSettings(BaseSettings):
    """Configuration for the Yahoo Finance client.

    Environment variables (with ``model_config.env_prefix``):

    * ``YAHOO_QUOTE_URL``
    * ``YAHOO_CHART_URL``
    * ``YAHOO_TIMEOUT_S``
    * ``YAHOO_USER_AGENT``
    """

    quote_url: str = Field(
        "https://query1.finance.yahoo.com/v7/finance/quote",
        description="Multi-symbol quote endpoint (symbols as a comma-separated list).",
    )
    chart_url: str = Field(
        "https://query1.finance.yahoo.com/v8/finance/chart",
        description="Chart endpoint; the symbol is appended as a path segment.",
    )
    timeout_s: float = Field(
        10.0,
        gt=0,
        description="Per-request timeout in seconds.",
    )
    user_agent: str | None = Field(
        None,
        description="Override for the User-Agent header.",
    )

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_prefix="YAHOO_",
        extra="ignore",
    )
