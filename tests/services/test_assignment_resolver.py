"""Pure resolution of the videos a learner may open."""

from __future__ import annotations

import pytest

from coursetrack.models.assignment import Assignment, TopicContent, VideoContent
from coursetrack.models.course import Course
from coursetrack.services.assignment_resolver import (
    assignments_for_learner,
    resolve_accessible_videos,
)
from tests.conftest import topic


def _course(*topics, course_id: str = "X") -> Course:
    return Course(id=course_id, title="Course X", teacher_id="t1", topics=topics)


def _to_class(content, class_id: str = "C", assignment_id: str = "a1") -> Assignment:
    return Assignment(
        id=assignment_id,
        content=content,
        assigned_to_type="class",
        assigned_to_id=class_id,
    )


def _to_student(
    content, student_id: str = "S", assignment_id: str = "a2"
) -> Assignment:
    return Assignment(
        id=assignment_id,
        content=content,
        assigned_to_type="student",
        assigned_to_id=student_id,
    )


def test_class_topic_assignment_expands_to_topic_videos() -> None:
    courses = [_course(topic("Intro", "v1", "v2"))]
    assignments = [_to_class(TopicContent(course_id="X", topic_name="Intro"))]

    assert resolve_accessible_videos("S", "C", assignments, courses) == {"v1", "v2"}


def test_topic_assignment_is_late_bound() -> None:
    assignments = [_to_class(TopicContent(course_id="X", topic_name="Intro"))]
    before = [_course(topic("Intro", "v1", "v2"))]
    after = [_course(topic("Intro", "v1", "v2", "v3"))]

    assert resolve_accessible_videos("S", "C", assignments, before) == {"v1", "v2"}
    assert resolve_accessible_videos("S", "C", assignments, after) == {
        "v1",
        "v2",
        "v3",
    }


def test_direct_and_topic_access_are_deduplicated() -> None:
    courses = [_course(topic("Intro", "v1", "v2"))]
    assignments = [
        _to_class(TopicContent(course_id="X", topic_name="Intro")),
        _to_student(VideoContent(video_id="v1")),
    ]

    result = resolve_accessible_videos("S", "C", assignments, courses)

    assert result == {"v1", "v2"}
    assert isinstance(result, frozenset)


def test_unassigned_student_matches_no_class_assignment() -> None:
    courses = [_course(topic("Intro", "v1"))]
    assignments = [_to_class(TopicContent(course_id="X", topic_name="Intro"))]

    assert resolve_accessible_videos("S", None, assignments, courses) == frozenset()


def test_other_learners_assignments_are_ignored() -> None:
    assignments = [
        _to_student(VideoContent(video_id="v1"), student_id="someone-else"),
        _to_class(VideoContent(video_id="v2"), class_id="other-class"),
    ]

    assert resolve_accessible_videos("S", "C", assignments, []) == frozenset()


def test_missing_course_or_topic_resolves_to_nothing() -> None:
    courses = [_course(topic("Intro", "v1"))]
    assignments = [
        _to_class(TopicContent(course_id="gone", topic_name="Intro"), "C", "a"),
        _to_class(TopicContent(course_id="X", topic_name="Removed"), "C", "b"),
    ]

    assert resolve_accessible_videos("S", "C", assignments, courses) == frozenset()


def test_direct_video_assignment_needs_no_course() -> None:
    assignments = [_to_student(VideoContent(video_id="orphan"))]

    assert resolve_accessible_videos("S", None, assignments, []) == {"orphan"}


def test_assignments_for_learner_filters_by_student_and_class() -> None:
    mine = _to_student(VideoContent(video_id="v1"))
    my_class = _to_class(VideoContent(video_id="v2"))
    other = _to_student(VideoContent(video_id="v3"), student_id="T")

    assert assignments_for_learner("S", "C", [mine, my_class, other]) == [
        mine,
        my_class,
    ]


def test_unknown_content_descriptor_raises() -> None:
    bogus = Assignment(
        id="a",
        content=object(),  # type: ignore[arg-type]
        assigned_to_type="student",
        assigned_to_id="S",
    )
    with pytest.raises(TypeError, match="unknown content descriptor"):
        resolve_accessible_videos("S", None, [bogus], [])
