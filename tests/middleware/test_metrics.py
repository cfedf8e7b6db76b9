"""Prometheus metrics for HTTP traffic and domain writes.

Counters live in the global registry and cannot be reset between tests,
so every assertion compares a value before and after the action.
"""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from coursetrack.db.store import document_store
from tests.conftest import add_user, auth, mint_token, seed


def _get_sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    assert _get_sample("http_requests_total", labels) - before >= 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    assert _get_sample("http_request_duration_seconds_count", labels) - before >= 1


def test_endpoint_label_is_the_route_template(client: TestClient) -> None:
    admin = seed(add_user(document_store, "admin"))
    headers = auth(mint_token(admin.id, ["admin"]))
    labels = {
        "method": "GET",
        "endpoint": "/v1/admin/classes/{class_id}/roster",
        "status_code": "404",
    }
    before = _get_sample("http_requests_total", labels)

    client.get("/v1/admin/classes/abc/roster", headers=headers)
    client.get("/v1/admin/classes/xyz/roster", headers=headers)

    assert _get_sample("http_requests_total", labels) - before == 2
    raw = {
        "method": "GET",
        "endpoint": "/v1/admin/classes/abc/roster",
        "status_code": "404",
    }
    assert _get_sample("http_requests_total", raw) == 0


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)
    client.get("/no/such/page")
    assert _get_sample("http_requests_total", labels) - before == 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "progress_writes_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/metrics")
    client.get("/metrics")
    assert _get_sample("http_requests_total", labels) == before
