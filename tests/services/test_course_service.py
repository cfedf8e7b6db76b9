"""Teacher edits to topics and videos."""

from __future__ import annotations

import asyncio

import pytest

from coursetrack.repos.course_repo import CourseRepo
from coursetrack.repos.document_store import InMemoryDocumentStore
from coursetrack.services import course_service
from coursetrack.services.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from tests.conftest import add_course, add_user


def _seed(store: InMemoryDocumentStore):
    async def scenario():
        teacher = await add_user(store, "teacher")
        course = await add_course(
            store,
            teacher.id,
            topics={"Intro": [("v1", "One")], "Cells": [("v2", "Two")]},
        )
        return teacher, course

    return asyncio.run(scenario())


def test_add_topic_creates_an_empty_topic(store: InMemoryDocumentStore) -> None:
    teacher, course = _seed(store)

    updated = asyncio.run(
        course_service.add_topic(store, teacher.id, course.id, " Genetics ")
    )

    genetics = updated.topic("Genetics")
    assert genetics is not None and genetics.videos == ()
    assert updated.topic("Intro") is not None


@pytest.mark.parametrize(
    "name,error", [("Intro", ConflictError), ("a.b", ValidationError)]
)
def test_add_topic_rejects(store: InMemoryDocumentStore, name, error) -> None:
    teacher, course = _seed(store)

    with pytest.raises(error):
        asyncio.run(course_service.add_topic(store, teacher.id, course.id, name))


def test_only_the_owner_edits_a_course(store: InMemoryDocumentStore) -> None:
    _, course = _seed(store)
    intruder = asyncio.run(add_user(store, "teacher"))

    with pytest.raises(PermissionDeniedError):
        asyncio.run(course_service.add_topic(store, intruder.id, course.id, "New"))
    with pytest.raises(NotFoundError):
        asyncio.run(course_service.add_topic(store, intruder.id, "missing", "New"))


def test_add_video_appends_in_order(store: InMemoryDocumentStore) -> None:
    teacher, course = _seed(store)

    async def scenario():
        video = await course_service.add_video(
            store, teacher.id, course.id, "Intro", "Three", "v3", "yt-3"
        )
        return video, await CourseRepo(store).get_by_id(course.id)

    video, stored = asyncio.run(scenario())

    assert video.playback_ref == "yt-3"
    intro = stored.topic("Intro")
    assert intro is not None and intro.video_ids() == ["v1", "v3"]


def test_video_ids_are_unique_per_course(store: InMemoryDocumentStore) -> None:
    teacher, course = _seed(store)

    with pytest.raises(ConflictError):
        asyncio.run(
            course_service.add_video(store, teacher.id, course.id, "Intro", "Dup", "v2")
        )
    with pytest.raises(NotFoundError):
        asyncio.run(
            course_service.add_video(store, teacher.id, course.id, "Nope", "New", "v9")
        )
    with pytest.raises(ValidationError):
        asyncio.run(
            course_service.add_video(store, teacher.id, course.id, "Intro", "", "v9")
        )


def test_upload_overwrites_an_existing_topic(store: InMemoryDocumentStore) -> None:
    teacher, course = _seed(store)
    document = {
        "topicName": "Intro",
        "videos": [
            {"title": "New One", "videoId": "v1"},
            {"title": "Extra", "videoId": "v5"},
        ],
    }

    updated = asyncio.run(
        course_service.upload_topic(store, teacher.id, course.id, document)
    )

    intro = updated.topic("Intro")
    assert intro is not None
    assert [(v.video_id, v.title) for v in intro.videos] == [
        ("v1", "New One"),
        ("v5", "Extra"),
    ]
    assert updated.topic("Cells") is not None


def test_upload_rejects_ids_from_other_topics(store: InMemoryDocumentStore) -> None:
    teacher, course = _seed(store)
    document = {"topicName": "New", "videos": [{"title": "Clash", "videoId": "v2"}]}

    with pytest.raises(ConflictError, match="v2"):
        asyncio.run(course_service.upload_topic(store, teacher.id, course.id, document))
