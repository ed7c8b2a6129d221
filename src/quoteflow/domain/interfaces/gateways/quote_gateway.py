# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Market Quote Gateway Protocol.

Synopsis:
    Domain-level Protocol (PEP 544) over one market's upstream quote feeds.
    Concrete adapters (Yahoo Finance for US tickers, TWSE for Taiwan codes)
    live in the adapters layer and must satisfy this contract.

Design:
    * A gateway decides how a chunk of symbols is split into upstream
      requests (``request_groups``); the batch fetcher issues one request per
      group and owns retry.
    * ``fetch_quotes`` returns whatever the provider answered, keyed by the
      requested symbol. Absent keys mean "not found"; exceptions mean the
      whole group failed.
    * No HTTP types leak through; failures surface as domain exceptions.

Layer:
    domain/interfaces/gateways
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from quoteflow.domain.entities.historical_bar import HistoricalBar
from quoteflow.domain.entities.quote import Quote


class MarketQuoteGateway(Protocol):
    """Abstraction over one market's quote and history providers."""

    name: str

    def handles(self, symbol: str) -> bool:
        """Return True if ``symbol`` belongs to this gateway's market."""
        ...

    def request_groups(self, symbols: Sequence[str]) -> list[list[str]]:
        """Split a chunk of symbols into the upstream requests it needs."""
        ...

    async def fetch_quotes(self, symbols: Sequence[str]) -> dict[str, Quote]:
        """Fetch one request group.

        Args:
            symbols: Symbols of a single request group.

        Returns:
            Quotes keyed by requested symbol. Symbols missing from the
            provider response are absent from the mapping.

        Raises:
            MarketDataUnavailable: Provider unreachable, 5xx, or circuit open.
            MarketDataRateLimited: Upstream rate limits were exceeded.
            MarketDataValidationError: Provider payload invalid/unexpected.
            MarketDataBadRequest: Invalid parameters sent upstream.
        """
        ...

    async def fetch_history(self, symbol: str, days: int) -> list[HistoricalBar]:
        """Return up to ``days`` of daily bars, ascending by date.

        Raises:
            Same as :meth:`fetch_quotes`.
        """
        ...
