# src/quoteflow/infrastructure/external_apis/twse/client.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Taiwan Stock Exchange Transport Client.

Two endpoints are used:

* ``stock_info``: MIS ``getStockInfo.jsp?ex_ch=tse_2330.tw|otc_6547.tw&json=1&delay=0``
  returning ``{"rtcode": "0000", "msgArray": [...]}`` with string-typed fields.
* ``stock_day``: ``STOCK_DAY?response=json&date=YYYYMM01&stockNo=2330``
  returning ``{"stat": "OK", "fields": [...], "data": [[...], ...]}`` for one
  calendar month.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, ClassVar, Final

import httpx

from quoteflow.domain.exceptions.market_data import MarketDataValidationError
from quoteflow.infrastructure.external_apis.http_transport import UpstreamJsonClient
from quoteflow.infrastructure.external_apis.twse.settings import TwseSettings
from quoteflow.infrastructure.resilience.circuit_breaker import CircuitBreaker

_RTCODE_OK: Final[str] = "0000"
_STAT_OK: Final[str] = "OK"


class TwseClient(UpstreamJsonClient):
    """Instrumented transport client for TWSE real-time and monthly data."""

    provider: ClassVar[str] = "twse"

    def __init__(
        self,
        settings: TwseSettings | None = None,
        *,
        http: httpx.AsyncClient | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self._settings = settings or TwseSettings()
        super().__init__(
            http=http,
            timeout_s=self._settings.timeout_s,
            user_agent=self._settings.user_agent,
            breaker=breaker,
        )

    async def stock_info(self, channels: Sequence[str]) -> list[Mapping[str, Any]]:
        """Fetch real-time rows for ``channels`` (``tse_2330.tw`` style tokens).

        Args:
            channels: Market-prefixed channel tokens of a single request group.

        Returns:
            The raw ``msgArray`` rows (possibly empty).

        Raises:
            MarketDataValidationError: On a non-OK ``rtcode`` or unexpected shape.
        """
        payload = await self._get_json(
            endpoint="stock_info",
            url=self._settings.quote_url,
            params={"ex_ch": "|".join(channels), "json": 1, "delay": 0},
        )
        if not isinstance(payload, dict):
            raise MarketDataValidationError("bad_shape", details={"expected": "object"})
        rtcode = payload.get("rtcode")
        if rtcode != _RTCODE_OK:
            raise MarketDataValidationError(
                "provider_status",
                details={"rtcode": rtcode, "message": payload.get("rtmessage")},
            )
        rows = payload.get("msgArray") or []
        if not isinstance(rows, list):
            raise MarketDataValidationError("bad_shape", details={"expected": "msgArray:list"})
        return [row for row in rows if isinstance(row, dict)]

    async def stock_day(self, symbol: str, *, year: int, month: int) -> list[list[Any]]:
        """Fetch the daily rows of one calendar month.

        Args:
            symbol: Four-digit Taiwan code.
            year: Gregorian year.
            month: Month (1-12).

        Returns:
            The raw ``data`` rows of the month (possibly empty).

        Raises:
            MarketDataValidationError: On a non-OK ``stat`` or unexpected shape.
        """
        payload = await self._get_json(
            endpoint="stock_day",
            url=self._settings.history_url,
            params={"response": "json", "date": f"{year:04d}{month:02d}01", "stockNo": symbol},
        )
        if not isinstance(payload, dict):
            raise MarketDataValidationError("bad_shape", details={"expected": "object"})
        stat = payload.get("stat")
        if stat != _STAT_OK:
            raise MarketDataValidationError("provider_status", details={"stat": stat})
        rows = payload.get("data") or []
        if not isinstance(rows, list):
            raise MarketDataValidationError("bad_shape", details={"expected": "data:list"})
        return [row for row in rows if isinstance(row, list)]
