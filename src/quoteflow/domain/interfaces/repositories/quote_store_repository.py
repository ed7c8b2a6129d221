# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Quote Store Repository Protocol.

Synopsis:
    Persistent daily store filled by the scheduled refresh job. The quote
    layer only reads from it, as a second-tier cache consulted before any
    live upstream call. The write side is part of the contract so the refresh
    job and the read side agree on keys and shapes.

Layer:
    domain/interfaces/repositories
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any, Protocol

from quoteflow.domain.entities.historical_bar import HistoricalBar
from quoteflow.domain.entities.quote import Quote


class QuoteStoreRepository(Protocol):
    """Query-by-symbol-and-date store with an append-only refresh log."""

    async def get_daily_quotes(self, symbols: Sequence[str], *, on: date) -> dict[str, Quote]:
        """Return stored snapshots for ``symbols`` on day ``on`` (missing keys absent)."""
        ...

    async def list_daily_quotes(self, *, on: date) -> list[Quote]:
        """Return every snapshot stored for day ``on``, in no particular order."""
        ...

    async def get_history(self, symbol: str, *, days: int) -> list[HistoricalBar]:
        """Return the most recent ``days`` stored bars, ascending."""
        ...

    async def upsert_daily_quote(self, quote: Quote, *, on: date) -> None:
        """Insert or replace the snapshot for ``(quote.symbol, on)``."""
        ...

    async def upsert_history_bar(self, bar: HistoricalBar) -> None:
        """Insert or replace the bar for ``(bar.symbol, bar.date)``."""
        ...

    async def append_refresh_log(self, on: date, entry: Mapping[str, Any]) -> None:
        """Append one refresh-job record to the log of day ``on``."""
        ...

    async def get_refresh_log(self, on: date) -> list[dict[str, Any]]:
        """Return the refresh-job records of day ``on`` in insertion order."""
        ...
