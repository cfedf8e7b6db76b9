from __future__ import annotations

from fastapi.testclient import TestClient


def test_health_reports_in_memory_backends(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    # No DATABASE_URL or REDIS_URL in the test environment.
    assert data["checks"] == {"database": "in_memory", "redis": "not_configured"}
