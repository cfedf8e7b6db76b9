"""Progress reports at three scopes.

Every report joins the same four things: course structure (for video
titles), the student population of the scope, each student's progress
records, and (for the student view) the assignments.

  global_report     admin view, optional teacher or class filter.  When both
                    filters are given the class filter wins.  Progress on
                    videos that no course knows any more is shown as
                    "Unknown Video (<id>)".
  teacher_report    students of the teacher's classes, restricted to videos
                    of the teacher's own courses; anything else is dropped.
  student_dashboard one student's view of every course, each video unlocked
                    (with progress) or locked.

Reports never fail on dangling references.  Empty scopes produce a report
carrying an explanatory message instead of an empty table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from coursetrack.models.progress import Progress
from coursetrack.models.user import User
from coursetrack.repos.assignment_repo import AssignmentRepo
from coursetrack.repos.class_repo import ClassRepo
from coursetrack.repos.course_repo import CourseRepo
from coursetrack.repos.document_store import DocumentStore
from coursetrack.repos.progress_repo import ProgressRepo
from coursetrack.repos.user_repo import UserRepo
from coursetrack.services.assignment_resolver import resolve_accessible_videos
from coursetrack.services.content_model import unknown_video_label, video_title_lookup
from coursetrack.services.errors import PermissionDeniedError
from coursetrack.services.workspace import TeacherWorkspace

logger = logging.getLogger(__name__)

NO_PROGRESS = "No progress recorded."
NO_MATCHING_STUDENTS = "No students found matching criteria."
TEACHER_HAS_NO_CLASSES = "This teacher has no classes."
NO_TEACHER_COURSES = "You have no courses yet."
NO_TEACHER_STUDENTS = "You have no students assigned to your classes."
NO_COURSES = "No courses are available in the system yet."
NO_TOPICS = "This course has no topics yet."
NO_VIDEOS = "This topic has no videos yet."


@dataclass(frozen=True, slots=True)
class ReportRow:
    video_id: str
    video_title: str
    completion_percentage: int = 0
    watch_count: int = 0
    watch_time: int = 0


@dataclass(frozen=True, slots=True)
class StudentReport:
    student_id: str
    email: str
    class_id: str | None
    rows: tuple[ReportRow, ...] = ()

    @property
    def message(self) -> str | None:
        return None if self.rows else NO_PROGRESS


@dataclass(frozen=True, slots=True)
class Report:
    students: tuple[StudentReport, ...] = ()
    message: str | None = None

    @staticmethod
    def empty(message: str) -> Report:
        return Report(students=(), message=message)


def _row(progress: Progress, title: str) -> ReportRow:
    return ReportRow(
        video_id=progress.video_id,
        video_title=title,
        completion_percentage=progress.completion_percentage,
        watch_count=progress.watch_count,
        watch_time=progress.watch_time,
    )


async def _student_reports(
    store: DocumentStore,
    students: list[User],
    titles: dict[str, str],
    *,
    keep_unknown: bool,
) -> tuple[StudentReport, ...]:
    progress_repo = ProgressRepo(store)
    reports = []
    for student in sorted(students, key=lambda s: (s.email, s.id)):
        rows = []
        for progress in await progress_repo.list_for_user(student.id):
            title = titles.get(progress.video_id)
            if title is None:
                if not keep_unknown:
                    continue
                title = unknown_video_label(progress.video_id)
            rows.append(_row(progress, title))
        rows.sort(key=lambda r: (r.video_title, r.video_id))
        reports.append(
            StudentReport(
                student_id=student.id,
                email=student.email,
                class_id=student.class_id,
                rows=tuple(rows),
            )
        )
    return tuple(reports)


async def global_report(
    store: DocumentStore,
    *,
    teacher_id: str | None = None,
    class_id: str | None = None,
) -> Report:
    titles = video_title_lookup(await CourseRepo(store).list_all())
    users = UserRepo(store)

    if class_id:
        # Class filter takes precedence over the teacher filter.
        students = await users.list_students_in_class(class_id)
    elif teacher_id:
        classes = await ClassRepo(store).list_by_teacher(teacher_id)
        if not classes:
            return Report.empty(TEACHER_HAS_NO_CLASSES)
        students = await users.list_students_in_classes([c.id for c in classes])
    else:
        students = await users.list_by_role("student")

    if not students:
        return Report.empty(NO_MATCHING_STUDENTS)

    logger.info(
        "Global report students=%d teacher_filter=%s class_filter=%s",
        len(students),
        teacher_id if not class_id else None,
        class_id,
    )
    return Report(
        students=await _student_reports(store, students, titles, keep_unknown=True)
    )


async def teacher_report(workspace: TeacherWorkspace) -> Report:
    if not workspace.loaded:
        await workspace.refresh()
    if not workspace.courses:
        return Report.empty(NO_TEACHER_COURSES)
    if not workspace.students:
        return Report.empty(NO_TEACHER_STUDENTS)

    titles = video_title_lookup(workspace.courses)
    return Report(
        students=await _student_reports(
            workspace.store, workspace.students, titles, keep_unknown=False
        )
    )


# ---------------------------------------------------------------------------
# Student dashboard
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class VideoEntry:
    video_id: str
    title: str
    player_ref: str
    unlocked: bool
    completion_percentage: int = 0
    watch_count: int = 0


@dataclass(frozen=True, slots=True)
class TopicEntry:
    name: str
    videos: tuple[VideoEntry, ...]

    @property
    def message(self) -> str | None:
        return None if self.videos else NO_VIDEOS


@dataclass(frozen=True, slots=True)
class CourseEntry:
    id: str
    title: str
    topics: tuple[TopicEntry, ...]

    @property
    def message(self) -> str | None:
        return None if self.topics else NO_TOPICS


@dataclass(frozen=True, slots=True)
class StudentDashboard:
    student_id: str
    accessible_video_ids: frozenset[str]
    courses: tuple[CourseEntry, ...] = ()

    @property
    def message(self) -> str | None:
        return None if self.courses else NO_COURSES


async def load_student(store: DocumentStore, student_id: str) -> User:
    student = await UserRepo(store).get_by_id(student_id)
    if student is None or not student.is_student:
        raise PermissionDeniedError("You are not registered as a student.")
    return student


async def accessible_videos(store: DocumentStore, student: User) -> frozenset[str]:
    courses = await CourseRepo(store).list_all()
    assignments = await AssignmentRepo(store).list_for_learner(
        student.id, student.class_id
    )
    return resolve_accessible_videos(student.id, student.class_id, assignments, courses)


async def student_dashboard(store: DocumentStore, student_id: str) -> StudentDashboard:
    student = await load_student(store, student_id)
    courses = await CourseRepo(store).list_all()
    assignments = await AssignmentRepo(store).list_for_learner(
        student.id, student.class_id
    )
    allowed = resolve_accessible_videos(
        student.id, student.class_id, assignments, courses
    )
    progress = {
        p.video_id: p for p in await ProgressRepo(store).list_for_user(student.id)
    }

    entries = []
    for course in courses:
        topics = []
        for topic in course.topics:
            videos = []
            for video in topic.videos:
                unlocked = video.video_id in allowed
                record = progress.get(video.video_id) if unlocked else None
                videos.append(
                    VideoEntry(
                        video_id=video.video_id,
                        title=video.title,
                        player_ref=video.playback_ref,
                        unlocked=unlocked,
                        completion_percentage=record.completion_percentage
                        if record
                        else 0,
                        watch_count=record.watch_count if record else 0,
                    )
                )
            topics.append(TopicEntry(name=topic.name, videos=tuple(videos)))
        entries.append(
            CourseEntry(id=course.id, title=course.title, topics=tuple(topics))
        )

    return StudentDashboard(
        student_id=student.id,
        accessible_video_ids=allowed,
        courses=tuple(entries),
    )
