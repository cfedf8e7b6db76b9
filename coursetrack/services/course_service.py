"""Teacher edits to course content: topics, videos and bulk uploads."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from coursetrack.models.course import Course, Video
from coursetrack.repos.course_repo import CourseRepo
from coursetrack.repos.document_store import DocumentNotFoundError, DocumentStore
from coursetrack.services.content_model import (
    conflicting_video_ids,
    parse_topic_upload,
    validate_topic_name,
    validate_video,
)
from coursetrack.services.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)


async def _owned_course(
    store: DocumentStore, teacher_id: str, course_id: str
) -> Course:
    course = await CourseRepo(store).get_by_id(course_id)
    if course is None:
        raise NotFoundError(f"course {course_id!r} not found")
    if course.teacher_id != teacher_id:
        raise PermissionDeniedError("You can only edit your own courses.")
    return course


async def add_topic(
    store: DocumentStore, teacher_id: str, course_id: str, name: str
) -> Course:
    name = validate_topic_name(name)
    course = await _owned_course(store, teacher_id, course_id)
    if course.topic(name) is not None:
        raise ConflictError(f"topic {name!r} already exists in this course")

    await CourseRepo(store).set_topic(course_id, name, [])
    logger.info(
        "Topic added course=%s topic=%s",
        course_id,
        name,
        extra={"course_id": course_id},
    )
    return await _owned_course(store, teacher_id, course_id)


async def add_video(
    store: DocumentStore,
    teacher_id: str,
    course_id: str,
    topic_name: str,
    title: str,
    video_id: str,
    player_ref: str | None = None,
) -> Video:
    video = validate_video(title, video_id, player_ref)
    course = await _owned_course(store, teacher_id, course_id)
    if course.topic(topic_name) is None:
        raise NotFoundError(f"topic {topic_name!r} not found")

    try:
        added = await CourseRepo(store).append_video(course_id, topic_name, video)
    except DocumentNotFoundError:
        # Deleted between the ownership check and the write.
        raise NotFoundError(f"topic {topic_name!r} not found") from None
    if not added:
        raise ConflictError(
            f"video id {video.video_id!r} already exists in this course"
        )

    logger.info(
        "Video added course=%s topic=%s video=%s",
        course_id,
        topic_name,
        video.video_id,
        extra={"course_id": course_id, "video_id": video.video_id},
    )
    return video


async def upload_topic(
    store: DocumentStore,
    teacher_id: str,
    course_id: str,
    document: Mapping[str, Any],
) -> Course:
    """Create or overwrite one topic from a `{topicName, videos}` document."""
    upload = parse_topic_upload(document)
    course = await _owned_course(store, teacher_id, course_id)
    clashes = conflicting_video_ids(
        course, upload.videos, except_topic=upload.topic_name
    )
    if clashes:
        raise ConflictError(
            f"video ids already used by other topics: {', '.join(sorted(clashes))}"
        )

    await CourseRepo(store).set_topic(course_id, upload.topic_name, upload.videos)
    logger.info(
        "Topic uploaded course=%s topic=%s videos=%d replaced=%s",
        course_id,
        upload.topic_name,
        len(upload.videos),
        course.topic(upload.topic_name) is not None,
        extra={"course_id": course_id},
    )
    return await _owned_course(store, teacher_id, course_id)
