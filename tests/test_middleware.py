"""Request instrumentation and per-request log lines."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from app.config.dependencies import build_services
from app.config.settings import DatabaseConfig, Settings, StorageConfig
from app.main import create_app
from app.middleware.logging import StructuredLoggingMiddleware
from app.middleware.telemetry import UNMATCHED_ROUTE, route_label


def test_route_label_prefers_route_template():
    scope = {"route": SimpleNamespace(path="/stats/{contributor_id}"), "root_path": ""}

    assert route_label(scope) == "/stats/{contributor_id}"


def test_route_label_collapses_mounted_files():
    scope = {"endpoint": object(), "root_path": "/uploads/audio"}

    assert route_label(scope) == "/uploads/audio/{path}"


def test_route_label_for_unrouted_request():
    assert route_label({"root_path": ""}) == UNMATCHED_ROUTE


def test_console_message_lists_request_fields():
    message = StructuredLoggingMiddleware._format_console_message(
        {
            "method": "POST",
            "url": "http://testserver/audios",
            "contributor_id": None,
            "status_code": 404,
            "duration_ms": 1.5,
        }
    )

    assert "method=POST" in message
    assert "user_id=-" in message
    assert "status=404" in message


@pytest.fixture
def client(tmp_path):
    settings = Settings(
        log_file=str(tmp_path / "app.log"),
        submission_log_file=str(tmp_path / "submissions.log"),
        database=DatabaseConfig(backend="memory"),
        storage=StorageConfig(local_dir=str(tmp_path / "audio")),
    )
    app = create_app(settings, services=build_services(settings))
    with TestClient(app) as test_client:
        yield test_client


def _requests(route: str, status: str) -> float:
    value = REGISTRY.get_sample_value(
        "http_requests_total", {"method": "GET", "route": route, "status": status}
    )
    return value or 0.0


def test_requests_are_counted_by_route_template(client):
    before = _requests("/stats/{contributor_id}", "200")

    client.get("/stats/alice")
    client.get("/stats/bob")

    assert _requests("/stats/{contributor_id}", "200") == before + 2


def test_unknown_paths_share_one_label(client):
    before = _requests(UNMATCHED_ROUTE, "404")

    client.get("/no-such-page")
    client.get("/another-missing-page")

    assert _requests(UNMATCHED_ROUTE, "404") == before + 2
