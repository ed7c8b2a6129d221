# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Pydantic settings for the Taiwan Stock Exchange transport client."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TwseSettings(BaseSettings):
    """Configuration for the TWSE client.

    Environment variables (with ``model_config.env_prefix``):

    * ``TWSE_QUOTE_URL``
    * ``TWSE_HISTORY_URL``
    * ``TWSE_TIMEOUT_S``
    * ``TWSE_USER_AGENT``
    """

    quote_url: str = Field(
        "https://mis.twse.com.tw/stock/api/getStockInfo.jsp",
        description="MIS real-time quote endpoint (``ex_ch`` pipe-joined channels).",
    )
    history_url: str = Field(
        "https://www.twse.com.tw/exchangeReport/STOCK_DAY",
        description="Monthly daily-bar report endpoint.",
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
        env_prefix="TWSE_",
        extra="ignore",
    )
