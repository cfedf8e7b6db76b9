from __future__ import annotations

from coursetrack.models.progress import Progress, progress_key
from coursetrack.repos.document_store import Document, DocumentStore, Eq, Transaction

PROGRESS = "progress"


class ProgressRepo:
    """Typed access to the `progress` collection.

    Writes go through exactly two paths: `merge_max`, a transactional
    read-compare-write for the monotonic fields, and `increment_watch_count`,
    a single atomic increment.  Nothing here overwrites progress blindly.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get(self, user_id: str, video_id: str) -> Progress | None:
        doc = await self._store.get(PROGRESS, progress_key(user_id, video_id))
        if doc is None:
            return None
        return _doc_to_progress(doc)

    async def list_for_user(self, user_id: str) -> list[Progress]:
        docs = await self._store.query(PROGRESS, [Eq("userId", user_id)])
        return [_doc_to_progress(d) for d in docs]

    async def merge_max(
        self,
        user_id: str,
        video_id: str,
        watch_time: int,
        completion_percentage: int,
    ) -> Progress:
        key = progress_key(user_id, video_id)

        async def _merge(tx: Transaction) -> Progress:
            existing = await tx.get(PROGRESS, key)
            current = _doc_to_progress(existing) if existing else None
            merged = Progress(
                user_id=user_id,
                video_id=video_id,
                watch_time=max(current.watch_time if current else 0, watch_time),
                completion_percentage=max(
                    current.completion_percentage if current else 0,
                    completion_percentage,
                ),
                watch_count=current.watch_count if current else 0,
            )
            data: dict[str, object] = {
                "userId": user_id,
                "videoId": video_id,
                "watchTime": merged.watch_time,
                "completionPercentage": merged.completion_percentage,
            }
            # Initialise the counter without clobbering an existing one.
            if existing is None or "watchCount" not in existing.data:
                data["watchCount"] = 0
            await tx.set(PROGRESS, key, data, merge=True)
            return merged

        return await self._store.transaction(_merge)

    async def increment_watch_count(self, user_id: str, video_id: str) -> int:
        return await self._store.atomic_increment(
            PROGRESS,
            progress_key(user_id, video_id),
            "watchCount",
            1,
            defaults={
                "userId": user_id,
                "videoId": video_id,
                "watchTime": 0,
                "completionPercentage": 0,
            },
        )


def _doc_to_progress(doc: Document) -> Progress:
    data = doc.data
    return Progress(
        user_id=data.get("userId", ""),
        video_id=str(data.get("videoId", "")),
        watch_time=int(data.get("watchTime") or 0),
        completion_percentage=int(data.get("completionPercentage") or 0),
        watch_count=int(data.get("watchCount") or 0),
    )
