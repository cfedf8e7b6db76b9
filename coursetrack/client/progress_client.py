"""HTTP progress sink for a PlaybackSession running outside the server.

Sends samples and completions to the student progress endpoints with the
student's bearer token.  Any transport failure or non-2xx answer is raised
as ProgressWriteError, which the session treats like a failed store write:
tracking stops and the error is reported, nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from coursetrack.services.progress_tracker import ProgressWriteError

logger = logging.getLogger(__name__)


class ProgressApiClient:
    def __init__(self, client: httpx.AsyncClient, access_token: str) -> None:
        self._client = client
        self._headers = {"Authorization": f"Bearer {access_token}"}

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self._client.post(path, json=body, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = e.response.text
            logger.warning(
                "Progress API rejected %s: %d %s", path, e.response.status_code, detail
            )
            raise ProgressWriteError(
                f"{e.response.status_code} from {path}: {detail}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Progress API unreachable %s: %s", path, e)
            raise ProgressWriteError(str(e)) from e
        return response.json()

    async def record_sample(
        self, user_id: str, video_id: str, position: float, duration: float | None
    ) -> dict[str, Any]:
        # The server takes the user from the token; user_id is only for logs.
        logger.debug("Sending sample user=%s video=%s", user_id, video_id)
        return await self._post(
            "/v1/student/progress/samples",
            {"video_id": video_id, "position": position, "duration": duration},
        )

    async def record_ended(
        self, user_id: str, video_id: str, position: float = 0
    ) -> dict[str, Any]:
        logger.debug("Sending completion user=%s video=%s", user_id, video_id)
        return await self._post(
            "/v1/student/progress/ended",
            {"video_id": video_id, "position": position},
        )
