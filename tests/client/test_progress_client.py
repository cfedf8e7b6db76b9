"""ProgressApiClient against a mocked transport and against the real app."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from coursetrack.client.progress_client import ProgressApiClient
from coursetrack.services.progress_tracker import ProgressWriteError


def _run(handler, call):
    async def scenario():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(
            transport=transport, base_url="http://testserver"
        ) as http:
            return await call(ProgressApiClient(http, "tok-123"))

    return asyncio.run(scenario())


def test_sample_posts_with_bearer_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"video_id": "v1", "watch_count": 0})

    body = _run(handler, lambda c: c.record_sample("s1", "v1", 12.5, 50.0))

    assert body["video_id"] == "v1"
    (request,) = seen
    assert request.url.path == "/v1/student/progress/samples"
    assert request.headers["authorization"] == "Bearer tok-123"
    assert json.loads(request.content) == {
        "video_id": "v1",
        "position": 12.5,
        "duration": 50.0,
    }


def test_ended_posts_to_the_completion_endpoint() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json={"watch_count": 1})

    _run(handler, lambda c: c.record_ended("s1", "v1", 50))

    assert paths == ["/v1/student/progress/ended"]


def test_rejections_become_progress_write_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"detail": "not assigned"})

    with pytest.raises(ProgressWriteError, match="403"):
        _run(handler, lambda c: c.record_sample("s1", "v9", 1, 10))


def test_transport_failures_become_progress_write_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProgressWriteError, match="connection refused"):
        _run(handler, lambda c: c.record_ended("s1", "v1"))
