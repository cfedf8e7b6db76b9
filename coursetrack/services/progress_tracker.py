"""Per (student, video) progress tracking.

State per pair: no record -> in progress -> completed.

  sample:  watch time and completion percentage are merged with max(), in a
           transaction, so out-of-order, duplicate or concurrent samples
           (two open tabs, client retries) can never move them backwards.
  ended:   completion is forced to 100 (players often report 99% at the
           end because of buffering and rounding), then the watch count is
           bumped with a single atomic increment.

Non-finite positions and durations are refused with ValidationError.
Storage failures are raised to the caller as ProgressWriteError.  Nothing
here retries.
"""

from __future__ import annotations

import logging
import math

from coursetrack.core.metrics import PROGRESS_WRITES
from coursetrack.models.progress import Progress
from coursetrack.repos.document_store import DocumentStore, StorageError
from coursetrack.repos.progress_repo import ProgressRepo
from coursetrack.services.errors import ValidationError

logger = logging.getLogger(__name__)


class ProgressWriteError(Exception):
    """A progress write did not reach the store."""


def completion_percentage(position: float, duration: float | None) -> int:
    """floor(100 * position / duration), 0 when the duration is unknown."""
    if not duration or duration <= 0:
        return 0
    return max(0, min(100, math.floor(100 * position / duration)))


def _require_finite(**values: float | None) -> None:
    for name, value in values.items():
        if value is not None and not math.isfinite(value):
            raise ValidationError(f"{name} must be a finite number")


class ProgressTracker:
    def __init__(self, store: DocumentStore) -> None:
        self._repo = ProgressRepo(store)

    async def record_sample(
        self,
        user_id: str,
        video_id: str,
        position: float,
        duration: float | None,
    ) -> Progress:
        """Merge one playback position sample into the stored progress."""
        _require_finite(position=position, duration=duration)
        watch_time = max(0, math.floor(position))
        percentage = completion_percentage(position, duration)
        try:
            progress = await self._repo.merge_max(
                user_id, video_id, watch_time, percentage
            )
        except StorageError as e:
            PROGRESS_WRITES.labels(kind="sample", result="error").inc()
            logger.warning(
                "Progress sample failed user=%s video=%s: %s",
                user_id,
                video_id,
                e,
                extra={"user_id": user_id, "video_id": video_id},
            )
            raise ProgressWriteError(str(e)) from e

        PROGRESS_WRITES.labels(kind="sample", result="ok").inc()
        logger.debug(
            "Progress sample user=%s video=%s t=%ds pct=%d",
            user_id,
            video_id,
            progress.watch_time,
            progress.completion_percentage,
        )
        return progress

    async def record_ended(
        self,
        user_id: str,
        video_id: str,
        position: float = 0,
    ) -> Progress:
        """Mark a full watch: completion 100 and exactly one more view."""
        _require_finite(position=position)
        watch_time = max(0, math.floor(position))
        try:
            progress = await self._repo.merge_max(user_id, video_id, watch_time, 100)
            watch_count = await self._repo.increment_watch_count(user_id, video_id)
        except StorageError as e:
            PROGRESS_WRITES.labels(kind="ended", result="error").inc()
            logger.warning(
                "Progress completion failed user=%s video=%s: %s",
                user_id,
                video_id,
                e,
                extra={"user_id": user_id, "video_id": video_id},
            )
            raise ProgressWriteError(str(e)) from e

        PROGRESS_WRITES.labels(kind="ended", result="ok").inc()
        logger.info(
            "Video completed user=%s video=%s views=%d",
            user_id,
            video_id,
            watch_count,
            extra={"user_id": user_id, "video_id": video_id},
        )
        return Progress(
            user_id=user_id,
            video_id=video_id,
            watch_time=progress.watch_time,
            completion_percentage=progress.completion_percentage,
            watch_count=watch_count,
        )
