# src/quoteflow/application/schemas/dto/refresh_status.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Application DTO for the daily refresh job's status.

Layer:
    application/schemas/dto
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import Field

from quoteflow.application.schemas.dto.base import BaseDTO


class RefreshStatusDTO(BaseDTO):
    """What the refresh job recorded for one day.

    Attributes:
        day: Day the log belongs to.
        store_available: False when no store is configured or it could not be read.
        has_refreshed: Whether the job logged anything for ``day``.
        status: ``status`` of the latest record (``"success"``, ``"failed"``,
            ``"in_progress"``), if any.
        last_refresh: The latest record as written by the job.
        entries: Number of records logged for ``day``.
    """

    day: date
    store_available: bool
    has_refreshed: bool
    status: str | None = None
    last_refresh: dict[str, Any] | None = None
    entries: int = Field(default=0, ge=0)
