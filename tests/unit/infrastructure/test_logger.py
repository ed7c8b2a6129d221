# tests/unit/infrastructure/test_logger.py
from __future__ import annotations

import asyncio
import json
import logging

import pytest

from quoteflow.infrastructure.logging.logger import (
    _JsonFormatter,  # internal but importable
    configure_root_logging,
    get_json_logger,
    get_request_id,
    set_request_context,
)


def _render(msg: str, level: int = logging.INFO, **attrs) -> dict:
    """Format a synthetic record and return the parsed JSON payload."""
    record = logging.getLogger("test.quoteflow").makeRecord(
        name="test.quoteflow",
        level=level,
        fn="test_logger",
        lno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return json.loads(_JsonFormatter().format(record))


def test_configure_root_logging_installs_json_handler(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)

    configure_root_logging()
    configure_root_logging()

    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, _JsonFormatter)


def test_basic_fields() -> None:
    payload = _render("coordinator.fallback", level=logging.WARNING)

    assert payload["message"] == "coordinator.fallback"
    assert payload["level"] == "WARNING"
    assert payload["logger"] == "test.quoteflow"
    assert payload["service"] == "quoteflow"
    assert "ts" in payload


def test_service_name_is_configurable() -> None:
    record = logging.LogRecord("svc", logging.INFO, "f", 1, "hello", (), None)

    payload = json.loads(_JsonFormatter("quoteflow-worker").format(record))

    assert payload["service"] == "quoteflow-worker"


def test_structured_extra_is_merged() -> None:
    payload = _render("batch.group_failed", extra={"market": "tw", "symbols": ["2330"]})

    assert payload["market"] == "tw"
    assert payload["symbols"] == ["2330"]


def test_request_id_from_record_then_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("REQUEST_ID", raising=False)
    assert _render("x", request_id="abc-123")["request_id"] == "abc-123"

    monkeypatch.setenv("REQUEST_ID", "env-id")
    assert _render("x")["request_id"] == "env-id"


@pytest.mark.asyncio
async def test_request_context_is_task_local() -> None:
    async def handler() -> dict:
        set_request_context(request_id="rid-1", trace_id="trace-1")
        return _render("inside")

    payload = await asyncio.create_task(handler())

    assert payload["request_id"] == "rid-1"
    assert payload["trace_id"] == "trace-1"
    assert get_request_id() is None


def test_exception_info_is_rendered(caplog: pytest.LogCaptureFixture) -> None:
    logger = get_json_logger("test.quoteflow.exc")

    try:
        raise ValueError("boom")
    except ValueError:
        with caplog.at_level(logging.ERROR, logger="test.quoteflow.exc"):
            logger.exception("failure")

    payload = json.loads(_JsonFormatter().format(caplog.records[-1]))
    assert payload["level"] == "ERROR"
    assert payload["exc_type"] == "ValueError"
    assert payload["exc_message"] == "boom"
