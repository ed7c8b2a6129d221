# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""
TWSE field parsing helpers.

Purpose:
    Pure conversions for Taiwan Stock Exchange payloads:

    * Minguo (ROC) calendar dates ``"113/05/10"`` -> ``date(2024, 5, 10)``.
    * String numerics with thousands separators (``"1,234.50"``) and the
      exchange's placeholders for "no value" (``"-"``, ``"--"``, ``""``).
    * Epoch-millisecond timestamps rendered as Taipei local time.

Layer: adapters/mappers
"""
from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Final

MINGUO_YEAR_OFFSET: Final[int] = 1911
TAIPEI_TZ: Final[timezone] = timezone(timedelta(hours=8), name="Asia/Taipei")
DISPLAY_FORMAT: Final[str] = "%Y/%m/%d %H:%M:%S"

_PLACEHOLDERS: Final[frozenset[str]] = frozenset({"", "-", "--", "---", "X"})


def minguo_to_date(raw: str) -> date:
    """Convert a Minguo calendar date string to a Gregorian date.

    Args:
        raw: Date such as ``"113/05/10"`` (ROC year 113 is 2024).

    Returns:
        The Gregorian calendar date.

    Raises:
        ValueError: If ``raw`` is not ``YYY/MM/DD`` or not a valid day.
    """
    parts = raw.strip().split("/")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"invalid Minguo date: {raw!r}")
    year, month, day = (int(p) for p in parts)
    return date(year + MINGUO_YEAR_OFFSET, month, day)


def parse_decimal(raw: Any) -> Decimal | None:
    """Parse a TWSE numeric string, stripping thousands separators.

    Returns:
        The value, or ``None`` for placeholders and unparseable input.
    """
    if raw is None:
        return None
    text = str(raw).replace(",", "").strip()
    if text in _PLACEHOLDERS:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def parse_int(raw: Any) -> int | None:
    """Parse a TWSE integer string such as ``"25,351,123"``."""
    value = parse_decimal(raw)
    return int(value) if value is not None else None


def format_epoch_ms(raw: Any) -> str | None:
    """Render an epoch-millisecond timestamp as Taipei local time.

    Args:
        raw: Milliseconds since the epoch (string or int).

    Returns:
        ``YYYY/MM/DD HH:MM:SS`` in UTC+8, or ``None`` if ``raw`` is invalid.
    """
    millis = parse_int(raw)
    if millis is None or millis <= 0:
        return None
    moment = datetime.fromtimestamp(millis / 1000, tz=UTC).astimezone(TAIPEI_TZ)
    return moment.strftime(DISPLAY_FORMAT)
