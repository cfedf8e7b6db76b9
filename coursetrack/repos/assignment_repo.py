from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from coursetrack.models.assignment import (
    Assignment,
    AssignmentTarget,
    Content,
    TopicContent,
    VideoContent,
)
from coursetrack.repos.document_store import Document, DocumentStore, Eq, Transaction

logger = logging.getLogger(__name__)

ASSIGNMENTS = "assignments"


class UnknownContentError(ValueError):
    """A stored content descriptor carries a tag this code does not know."""


def content_to_doc(content: Content) -> dict[str, Any]:
    if isinstance(content, VideoContent):
        return {"type": "video", "videoId": content.video_id}
    if isinstance(content, TopicContent):
        return {
            "type": "topic",
            "courseId": content.course_id,
            "topicName": content.topic_name,
        }
    raise TypeError(f"unknown content descriptor {content!r}")


def content_from_doc(data: dict[str, Any]) -> Content:
    kind = data.get("type")
    if kind == "video":
        # Older records stored the video id under "id".
        video_id = data.get("videoId") or data.get("id")
        if not video_id:
            raise UnknownContentError("video content without a video id")
        return VideoContent(video_id=str(video_id))
    if kind == "topic":
        if not data.get("courseId") or not data.get("topicName"):
            raise UnknownContentError("topic content without course or topic")
        return TopicContent(course_id=data["courseId"], topic_name=data["topicName"])
    raise UnknownContentError(f"unknown content type {kind!r}")


class AssignmentRepo:
    """Typed access to the `assignments` collection.

    Records whose content descriptor cannot be decoded are skipped with a
    warning on read: they grant nothing, and they must not take down every
    view that lists assignments.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def list_for_learner(
        self, user_id: str, class_id: str | None
    ) -> list[Assignment]:
        """Assignments aimed at the student directly or at their class."""
        docs = await self._store.query(
            ASSIGNMENTS,
            [Eq("assignedToType", "student"), Eq("assignedToId", user_id)],
        )
        if class_id:
            docs += await self._store.query(
                ASSIGNMENTS,
                [Eq("assignedToType", "class"), Eq("assignedToId", class_id)],
            )
        return decode_assignments(docs)

    async def add(self, content: Content, target: AssignmentTarget) -> Assignment:
        doc_id = await self._store.create(ASSIGNMENTS, _to_doc(content, target))
        return Assignment(
            id=doc_id,
            content=content,
            assigned_to_type=target.type,
            assigned_to_id=target.id,
        )

    async def replace(
        self, content: Content, targets: Sequence[AssignmentTarget]
    ) -> tuple[list[Assignment], list[Assignment]]:
        """Swap every record for `content` for one record per target, atomically.

        Returns the (removed, created) records.
        """

        async def _swap(
            tx: Transaction,
        ) -> tuple[list[Assignment], list[Assignment]]:
            docs = await tx.query(ASSIGNMENTS)
            stale = [a for a in decode_assignments(docs) if a.content == content]
            for assignment in stale:
                await tx.delete(ASSIGNMENTS, assignment.id)
            created = []
            for target in targets:
                doc_id = await tx.create(ASSIGNMENTS, _to_doc(content, target))
                created.append(
                    Assignment(
                        id=doc_id,
                        content=content,
                        assigned_to_type=target.type,
                        assigned_to_id=target.id,
                    )
                )
            return stale, created

        return await self._store.transaction(_swap)


def _to_doc(content: Content, target: AssignmentTarget) -> dict[str, Any]:
    return {
        "content": content_to_doc(content),
        "assignedToType": target.type,
        "assignedToId": target.id,
    }


def decode_assignments(docs: list[Document]) -> list[Assignment]:
    """Decode assignment documents, skipping any this code cannot read."""
    assignments = []
    for doc in docs:
        try:
            content = content_from_doc(doc.data.get("content") or {})
        except UnknownContentError as e:
            logger.warning("Skipping assignment id=%s: %s", doc.id, e)
            continue
        target_type = doc.data.get("assignedToType")
        if target_type not in ("student", "class"):
            logger.warning(
                "Skipping assignment id=%s: unknown target type %r",
                doc.id,
                target_type,
            )
            continue
        assignments.append(
            Assignment(
                id=doc.id,
                content=content,
                assigned_to_type=target_type,
                assigned_to_id=doc.data.get("assignedToId", ""),
            )
        )
    return assignments
