"""Response schemas shared by the admin, teacher and student routers."""

from __future__ import annotations

from pydantic import BaseModel

from coursetrack.models.course import Course
from coursetrack.models.progress import Progress
from coursetrack.models.school_class import SchoolClass
from coursetrack.models.user import User
from coursetrack.services.report_service import Report, StudentDashboard


class UserOut(BaseModel):
    id: str
    email: str
    role: str
    class_id: str | None = None

    @classmethod
    def from_user(cls, user: User) -> UserOut:
        return cls(id=user.id, email=user.email, role=user.role, class_id=user.class_id)


class ClassOut(BaseModel):
    id: str
    name: str
    teacher_id: str

    @classmethod
    def from_class(cls, school_class: SchoolClass) -> ClassOut:
        return cls(
            id=school_class.id,
            name=school_class.name,
            teacher_id=school_class.teacher_id,
        )


class VideoOut(BaseModel):
    video_id: str
    title: str
    player_ref: str


class TopicOut(BaseModel):
    name: str
    videos: list[VideoOut]


class CourseOut(BaseModel):
    id: str
    title: str
    teacher_id: str
    topics: list[TopicOut]

    @classmethod
    def from_course(cls, course: Course) -> CourseOut:
        return cls(
            id=course.id,
            title=course.title,
            teacher_id=course.teacher_id,
            topics=[
                TopicOut(
                    name=topic.name,
                    videos=[
                        VideoOut(
                            video_id=v.video_id,
                            title=v.title,
                            player_ref=v.playback_ref,
                        )
                        for v in topic.videos
                    ],
                )
                for topic in course.topics
            ],
        )


class ProgressOut(BaseModel):
    video_id: str
    watch_time: int
    completion_percentage: int
    watch_count: int

    @classmethod
    def from_progress(cls, progress: Progress) -> ProgressOut:
        return cls(
            video_id=progress.video_id,
            watch_time=progress.watch_time,
            completion_percentage=progress.completion_percentage,
            watch_count=progress.watch_count,
        )


# --- Reports ---------------------------------------------------------------


class ReportRowOut(BaseModel):
    video_id: str
    video_title: str
    completion_percentage: int
    watch_count: int
    watch_time: int


class StudentReportOut(BaseModel):
    student_id: str
    email: str
    class_id: str | None
    rows: list[ReportRowOut]
    message: str | None = None


class ReportOut(BaseModel):
    students: list[StudentReportOut]
    message: str | None = None

    @classmethod
    def from_report(cls, report: Report) -> ReportOut:
        return cls(
            message=report.message,
            students=[
                StudentReportOut(
                    student_id=s.student_id,
                    email=s.email,
                    class_id=s.class_id,
                    message=s.message,
                    rows=[
                        ReportRowOut(
                            video_id=r.video_id,
                            video_title=r.video_title,
                            completion_percentage=r.completion_percentage,
                            watch_count=r.watch_count,
                            watch_time=r.watch_time,
                        )
                        for r in s.rows
                    ],
                )
                for s in report.students
            ],
        )


# --- Student dashboard -----------------------------------------------------


class DashboardVideoOut(BaseModel):
    video_id: str
    title: str
    player_ref: str
    unlocked: bool
    completion_percentage: int
    watch_count: int


class DashboardTopicOut(BaseModel):
    name: str
    videos: list[DashboardVideoOut]
    message: str | None = None


class DashboardCourseOut(BaseModel):
    id: str
    title: str
    topics: list[DashboardTopicOut]
    message: str | None = None


class DashboardOut(BaseModel):
    student_id: str
    courses: list[DashboardCourseOut]
    message: str | None = None

    @classmethod
    def from_dashboard(cls, dashboard: StudentDashboard) -> DashboardOut:
        return cls(
            student_id=dashboard.student_id,
            message=dashboard.message,
            courses=[
                DashboardCourseOut(
                    id=c.id,
                    title=c.title,
                    message=c.message,
                    topics=[
                        DashboardTopicOut(
                            name=t.name,
                            message=t.message,
                            videos=[
                                DashboardVideoOut(
                                    video_id=v.video_id,
                                    title=v.title,
                                    player_ref=v.player_ref,
                                    unlocked=v.unlocked,
                                    completion_percentage=v.completion_percentage,
                                    watch_count=v.watch_count,
                                )
                                for v in t.videos
                            ],
                        )
                        for t in c.topics
                    ],
                )
                for c in dashboard.courses
            ],
        )
