"""Report aggregation at global, teacher and student scope."""

from __future__ import annotations

import asyncio

import pytest

from coursetrack.models.assignment import AssignmentTarget, TopicContent, VideoContent
from coursetrack.repos.assignment_repo import AssignmentRepo
from coursetrack.repos.document_store import InMemoryDocumentStore
from coursetrack.services import report_service
from coursetrack.services.errors import PermissionDeniedError
from coursetrack.services.progress_tracker import ProgressTracker
from coursetrack.services.workspace import TeacherWorkspace
from tests.conftest import add_class, add_course, add_user


def _emails(report) -> list[str]:
    return [s.email for s in report.students]


def test_class_filter_wins_over_teacher_filter(store: InMemoryDocumentStore) -> None:
    async def scenario():
        t1 = await add_user(store, "teacher")
        t2 = await add_user(store, "teacher")
        c = await add_class(store, t1.id, "C", class_id="C")
        d = await add_class(store, t2.id, "D", class_id="D")
        await add_user(store, "student", email="in-c@test.com", class_id=c.id)
        await add_user(store, "student", email="in-d@test.com", class_id=d.id)
        return await report_service.global_report(
            store, teacher_id=t2.id, class_id="C"
        )

    report = asyncio.run(scenario())

    assert _emails(report) == ["in-c@test.com"]


def test_teacher_filter_selects_students_of_their_classes(
    store: InMemoryDocumentStore,
) -> None:
    async def scenario():
        t1 = await add_user(store, "teacher")
        t2 = await add_user(store, "teacher")
        c1 = await add_class(store, t1.id, "A")
        c2 = await add_class(store, t1.id, "B")
        c3 = await add_class(store, t2.id, "Z")
        await add_user(store, "student", email="a@test.com", class_id=c1.id)
        await add_user(store, "student", email="b@test.com", class_id=c2.id)
        await add_user(store, "student", email="z@test.com", class_id=c3.id)
        return await report_service.global_report(store, teacher_id=t1.id)

    report = asyncio.run(scenario())

    assert _emails(report) == ["a@test.com", "b@test.com"]


def test_global_report_labels_unknown_videos(store: InMemoryDocumentStore) -> None:
    async def scenario():
        t = await add_user(store, "teacher")
        await add_course(store, t.id, topics={"Intro": [("v1", "Welcome")]})
        s = await add_user(store, "student", email="s@test.com")
        tracker = ProgressTracker(store)
        await tracker.record_sample(s.id, "v1", 50, 100)
        await tracker.record_ended(s.id, "deleted-video", 10)
        return await report_service.global_report(store)

    report = asyncio.run(scenario())

    (student,) = report.students
    rows = {r.video_id: r for r in student.rows}
    assert rows["v1"].video_title == "Welcome"
    assert rows["v1"].completion_percentage == 50
    assert rows["v1"].watch_count == 0
    assert rows["deleted-video"].video_title == "Unknown Video (deleted-video)"
    assert rows["deleted-video"].watch_count == 1


def test_student_without_progress_gets_message(store: InMemoryDocumentStore) -> None:
    async def scenario():
        await add_user(store, "student")
        return await report_service.global_report(store)

    report = asyncio.run(scenario())

    assert report.message is None
    assert report.students[0].rows == ()
    assert report.students[0].message == report_service.NO_PROGRESS


@pytest.mark.parametrize(
    "filters,expected",
    [
        ({}, report_service.NO_MATCHING_STUDENTS),
        ({"class_id": "nope"}, report_service.NO_MATCHING_STUDENTS),
        ({"teacher_id": "no-classes"}, report_service.TEACHER_HAS_NO_CLASSES),
    ],
)
def test_global_report_empty_states(store, filters, expected) -> None:
    report = asyncio.run(report_service.global_report(store, **filters))

    assert report.students == ()
    assert report.message == expected


def test_teacher_report_drops_videos_outside_own_courses(
    store: InMemoryDocumentStore,
) -> None:
    async def scenario():
        t = await add_user(store, "teacher")
        other = await add_user(store, "teacher")
        await add_course(store, t.id, topics={"Intro": [("v1", "Mine")]})
        await add_course(store, other.id, topics={"Other": [("v9", "Theirs")]})
        c = await add_class(store, t.id)
        s = await add_user(store, "student", class_id=c.id)
        tracker = ProgressTracker(store)
        await tracker.record_sample(s.id, "v1", 30, 100)
        await tracker.record_sample(s.id, "v9", 30, 100)
        await tracker.record_sample(s.id, "gone", 30, 100)
        ws = await TeacherWorkspace.load(store, t.id)
        return await report_service.teacher_report(ws)

    report = asyncio.run(scenario())

    (student,) = report.students
    assert [r.video_id for r in student.rows] == ["v1"]


def test_teacher_report_empty_states(store: InMemoryDocumentStore) -> None:
    async def scenario():
        t = await add_user(store, "teacher")
        no_courses = await report_service.teacher_report(
            TeacherWorkspace(store, t.id)
        )
        await add_course(store, t.id)
        no_students = await report_service.teacher_report(
            await TeacherWorkspace.load(store, t.id)
        )
        return no_courses, no_students

    no_courses, no_students = asyncio.run(scenario())

    assert no_courses.message == report_service.NO_TEACHER_COURSES
    assert no_students.message == report_service.NO_TEACHER_STUDENTS


def test_dashboard_marks_locked_and_unlocked_videos(
    store: InMemoryDocumentStore,
) -> None:
    async def scenario():
        t = await add_user(store, "teacher")
        course = await add_course(
            store,
            t.id,
            topics={
                "Intro": [("v1", "One"), ("v2", "Two")],
                "Advanced": [("v3", "Three")],
                "Empty": [],
            },
        )
        c = await add_class(store, t.id, class_id="C")
        s = await add_user(store, "student", class_id=c.id)
        repo = AssignmentRepo(store)
        await repo.add(
            TopicContent(course_id=course.id, topic_name="Intro"),
            AssignmentTarget(type="class", id="C"),
        )
        await ProgressTracker(store).record_ended(s.id, "v1", 100)
        return await report_service.student_dashboard(store, s.id)

    board = asyncio.run(scenario())

    assert board.message is None
    assert board.accessible_video_ids == {"v1", "v2"}
    (course,) = board.courses
    topics = {t.name: t for t in course.topics}
    videos = {v.video_id: v for t in course.topics for v in t.videos}
    assert videos["v1"].unlocked and videos["v1"].completion_percentage == 100
    assert videos["v1"].watch_count == 1
    assert videos["v2"].unlocked and videos["v2"].completion_percentage == 0
    assert not videos["v3"].unlocked
    assert topics["Empty"].message == report_service.NO_VIDEOS


def test_dashboard_hides_progress_on_locked_videos(
    store: InMemoryDocumentStore,
) -> None:
    async def scenario():
        t = await add_user(store, "teacher")
        await add_course(store, t.id, topics={"Intro": [("v1", "One")]})
        s = await add_user(store, "student")
        await ProgressTracker(store).record_sample(s.id, "v1", 50, 100)
        return await report_service.student_dashboard(store, s.id)

    board = asyncio.run(scenario())

    video = board.courses[0].topics[0].videos[0]
    assert not video.unlocked
    assert video.completion_percentage == 0


def test_dashboard_empty_states(store: InMemoryDocumentStore) -> None:
    async def scenario():
        s = await add_user(store, "student")
        empty = await report_service.student_dashboard(store, s.id)
        t = await add_user(store, "teacher")
        await add_course(store, t.id, title="Bare")
        bare = await report_service.student_dashboard(store, s.id)
        return empty, bare

    empty, bare = asyncio.run(scenario())

    assert empty.message == report_service.NO_COURSES
    assert bare.courses[0].message == report_service.NO_TOPICS


def test_direct_video_assignment_unlocks_single_video(
    store: InMemoryDocumentStore,
) -> None:
    async def scenario():
        t = await add_user(store, "teacher")
        await add_course(store, t.id, topics={"Intro": [("v1", "One"), ("v2", "Two")]})
        s = await add_user(store, "student")
        await AssignmentRepo(store).add(
            VideoContent(video_id="v2"), AssignmentTarget(type="student", id=s.id)
        )
        return await report_service.accessible_videos(store, s)

    assert asyncio.run(scenario()) == {"v2"}


def test_dashboard_refuses_non_students(store: InMemoryDocumentStore) -> None:
    async def scenario():
        t = await add_user(store, "teacher")
        return await report_service.student_dashboard(store, t.id)

    with pytest.raises(PermissionDeniedError, match="not registered as a student"):
        asyncio.run(scenario())
