from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from quoteflow.dependencies import market_data as dep
from quoteflow.main import create_app

pytestmark = pytest.mark.integration


def test_healthz_reports_service_and_version(test_settings) -> None:
    client = TestClient(create_app(test_settings))

    r = client.get("/healthz")

    assert r.status_code == 200
    assert r.json() == {"status": "ok", "service": "quoteflow", "version": "0.1.0"}
    assert r.headers["X-Request-ID"]


def test_metrics_exposes_quote_collectors(test_settings) -> None:
    client = TestClient(create_app(test_settings))

    r = client.get("/metrics")

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert "quoteflow_quote_cache_hits_total" in r.text


def test_lifespan_builds_and_releases_client(test_settings) -> None:
    app = create_app(test_settings)

    with TestClient(app):
        client = getattr(app.state, dep.APP_STATE_KEY)
        assert [c.market for c in client.coordinators] == ["us", "tw"]


def test_missing_client_is_internal_error(test_settings) -> None:
    client = TestClient(create_app(test_settings), raise_server_exceptions=False)

    r = client.get("/v1/cache/stats")

    assert r.status_code == 500
    assert r.json()["error"]["code"] == "INTERNAL_ERROR"


def test_cors_only_when_origins_configured(test_settings) -> None:
    plain = TestClient(create_app(test_settings))
    configured = TestClient(
        create_app(test_settings.model_copy(update={"cors_allow_origins": ["https://app.example"]}))
    )
    preflight = {
        "Origin": "https://app.example",
        "Access-Control-Request-Method": "GET",
    }

    assert "access-control-allow-origin" not in plain.options("/healthz", headers=preflight).headers
    r = configured.options("/healthz", headers=preflight)
    assert r.headers["access-control-allow-origin"] == "https://app.example"
