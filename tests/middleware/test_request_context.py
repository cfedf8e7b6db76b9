"""Every response carries an X-Request-ID; log records carry the same id."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from coursetrack.middleware.request_context import request_id_var


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "my-request-123"})
    assert resp.headers.get("x-request-id") == "my-request-123"


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/v1/student/dashboard")
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_request_summary_is_logged_with_the_id(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="coursetrack.middleware"):
        client.get("/health", headers={"X-Request-ID": "trace-me"})

    summary = [r for r in caplog.records if "GET /health -> 200" in r.getMessage()]
    assert summary
    assert summary[0].request_id == "trace-me"
    assert summary[0].status_code == 200


def test_context_is_reset_after_the_request(client: TestClient) -> None:
    client.get("/health", headers={"X-Request-ID": "short-lived"})
    assert request_id_var.get() == "-"
