# src/quoteflow/infrastructure/logging/logger.py
# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Structured JSON logging.

One JSON object per line with the keys ``ts``, ``level``, ``logger``,
``service`` and ``message``. Correlation ids (``request_id``, ``trace_id``)
live in contextvars. Tasks copy the context they were created in, so the
coordinator's drain task logs with the id of the request that started it.

Structured fields go in ``extra={"extra": {...}}``. Values that JSON cannot
encode (``Decimal``, ``date``) are written as strings.

Typical usage:
    configure_root_logging("INFO")
    log = get_json_logger(__name__)
    log.info("quote.fallback", extra={"extra": {"symbol": "AAPL"}})
"""

from __future__ import annotations

import json
import logging
import os
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

__all__ = [
    "configure_root_logging",
    "get_json_logger",
    "set_request_context",
    "get_request_id",
    "get_trace_id",
]

DEFAULT_SERVICE = "quoteflow"

_request_id: ContextVar[str | None] = ContextVar("quoteflow_request_id", default=None)
_trace_id: ContextVar[str | None] = ContextVar("quoteflow_trace_id", default=None)


def set_request_context(*, request_id: str | None = None, trace_id: str | None = None) -> None:
    """Bind correlation ids to the current context.

    Only the ids that are given are changed.
    """
    if request_id is not None:
        _request_id.set(request_id)
    if trace_id is not None:
        _trace_id.set(trace_id)


def get_request_id() -> str | None:
    return _request_id.get()


def get_trace_id() -> str | None:
    return _trace_id.get()


def _correlation_fields(record: logging.LogRecord) -> dict[str, str]:
    # Record attribute wins over context; env REQUEST_ID covers batch jobs.
    fields: dict[str, str] = {}
    rid = getattr(record, "request_id", None) or _request_id.get() or os.getenv("REQUEST_ID")
    if rid:
        fields["request_id"] = rid
    tid = getattr(record, "trace_id", None) or _trace_id.get()
    if tid:
        fields["trace_id"] = tid
    return fields


def _exception_fields(record: logging.LogRecord) -> dict[str, str]:
    if not record.exc_info:
        return {}
    exc_type, exc_value, _ = record.exc_info
    fields: dict[str, str] = {}
    if exc_type is not None:
        fields["exc_type"] = exc_type.__name__
    if exc_value is not None:
        fields["exc_message"] = str(exc_value)
    return fields


class _JsonFormatter(logging.Formatter):
    """Render a :class:`logging.LogRecord` as a single compact JSON line."""

    def __init__(self, service: str = DEFAULT_SERVICE) -> None:
        super().__init__()
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "service": self._service,
            "message": record.getMessage(),
        }
        payload.update(_correlation_fields(record))
        payload.update(_exception_fields(record))

        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def configure_root_logging(
    level: str | int | None = None, *, service: str = DEFAULT_SERVICE
) -> None:
    """Install the JSON handler on the root logger.

    Calling it again only updates the level, so hot reloads do not stack
    handlers.

    Args:
        level: Level or level name. Defaults to env ``LOG_LEVEL``, then ``INFO``.
        service: Value of the ``service`` key on every line.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL") or "INFO"
    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    if root.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter(service))
    root.addHandler(handler)


def get_json_logger(name: str) -> logging.Logger:
    """Return the logger for ``name``; output goes through the root JSON handler."""
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
