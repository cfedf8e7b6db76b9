from __future__ import annotations

from dataclasses import dataclass


def progress_key(user_id: str, video_id: str) -> str:
    """Deterministic document id for one (student, video) pair.

    Repeated writes for the same pair land on the same document by
    construction, never through a query-then-write lookup.  User ids are
    uuid hex, so the first ':' always ends the user id.
    """
    return f"{user_id}:{video_id}"


@dataclass(frozen=True, slots=True)
class Progress:
    user_id: str
    video_id: str
    watch_time: int = 0  # seconds, never decreases
    completion_percentage: int = 0  # 0..100, never decreases
    watch_count: int = 0  # full watches
