from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from coursetrack.models.course import Course, Topic, Video
from coursetrack.repos.document_store import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    Eq,
    Transaction,
)

COURSES = "courses"


class CourseRepo:
    """Typed access to the `courses` collection.

    Stored shape: {title, teacherId, topics: {name: [{title, videoId,
    playerRef?}]}}.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_by_id(self, course_id: str) -> Course | None:
        doc = await self._store.get(COURSES, course_id)
        if doc is None:
            return None
        return doc_to_course(doc)

    async def add(self, title: str, teacher_id: str) -> Course:
        doc_id = await self._store.create(
            COURSES, {"title": title, "teacherId": teacher_id, "topics": {}}
        )
        return Course(id=doc_id, title=title, teacher_id=teacher_id)

    async def list_all(self) -> list[Course]:
        return [doc_to_course(d) for d in await self._store.query(COURSES)]

    async def list_by_teacher(self, teacher_id: str) -> list[Course]:
        docs = await self._store.query(COURSES, [Eq("teacherId", teacher_id)])
        return [doc_to_course(d) for d in docs]

    async def set_topic(
        self, course_id: str, topic_name: str, videos: Sequence[Video]
    ) -> None:
        """Create or overwrite one topic's whole video list."""
        await self._store.update_field(
            COURSES,
            course_id,
            f"topics.{topic_name}",
            [_video_to_doc(v) for v in videos],
        )

    async def append_video(self, course_id: str, topic_name: str, video: Video) -> bool:
        """Append a video to a topic unless the course already holds its id.

        Returns False when the id was already present.  Raises
        DocumentNotFoundError when the course or topic is gone.
        """

        async def _append(tx: Transaction) -> bool:
            doc = await tx.get(COURSES, course_id)
            if doc is None:
                raise DocumentNotFoundError(f"{COURSES}/{course_id}")
            topics: dict[str, list[dict[str, Any]]] = dict(doc.data.get("topics") or {})
            if topic_name not in topics:
                raise DocumentNotFoundError(f"{COURSES}/{course_id}#{topic_name}")
            if doc_to_course(doc).has_video(video.video_id):
                return False
            topics[topic_name] = [*topics[topic_name], _video_to_doc(video)]
            await tx.set(COURSES, course_id, {"topics": topics}, merge=True)
            return True

        return await self._store.transaction(_append)


def _video_to_doc(video: Video) -> dict[str, Any]:
    data = {"title": video.title, "videoId": video.video_id}
    if video.player_ref and video.player_ref != video.video_id:
        data["playerRef"] = video.player_ref
    return data


def _doc_to_video(data: dict[str, Any]) -> Video:
    return Video(
        video_id=str(data.get("videoId", "")),
        title=data.get("title", ""),
        player_ref=data.get("playerRef") or None,
    )


def doc_to_course(doc: Document) -> Course:
    topics = doc.data.get("topics") or {}
    return Course(
        id=doc.id,
        title=doc.data.get("title", ""),
        teacher_id=doc.data.get("teacherId", ""),
        topics=tuple(
            Topic(name=name, videos=tuple(_doc_to_video(v) for v in videos or ()))
            for name, videos in topics.items()
        ),
    )
