"""A teacher's working set: their courses, classes and students.

This is the one place teacher-scoped data is cached.  It is owned by the
caller, loaded explicitly, and reloaded with `refresh()` after any mutation
the caller wants to see, instead of living in shared module state where
one handler's write leaves another handler's copy stale.
"""

from __future__ import annotations

import logging

from coursetrack.models.course import Course
from coursetrack.models.school_class import SchoolClass
from coursetrack.models.user import User
from coursetrack.repos.class_repo import ClassRepo
from coursetrack.repos.course_repo import CourseRepo
from coursetrack.repos.document_store import DocumentStore
from coursetrack.repos.user_repo import UserRepo

logger = logging.getLogger(__name__)


class TeacherWorkspace:
    def __init__(self, store: DocumentStore, teacher_id: str) -> None:
        self.store = store
        self.teacher_id = teacher_id
        self.courses: list[Course] = []
        self.classes: list[SchoolClass] = []
        self.students: list[User] = []
        self.loaded = False

    @classmethod
    async def load(cls, store: DocumentStore, teacher_id: str) -> TeacherWorkspace:
        workspace = cls(store, teacher_id)
        await workspace.refresh()
        return workspace

    async def refresh(self) -> None:
        self.courses = await CourseRepo(self.store).list_by_teacher(self.teacher_id)
        self.classes = await ClassRepo(self.store).list_by_teacher(self.teacher_id)
        self.students = await UserRepo(self.store).list_students_in_classes(
            [c.id for c in self.classes]
        )
        self.loaded = True
        logger.debug(
            "Workspace refreshed teacher=%s courses=%d classes=%d students=%d",
            self.teacher_id,
            len(self.courses),
            len(self.classes),
            len(self.students),
        )

    def course(self, course_id: str) -> Course | None:
        return next((c for c in self.courses if c.id == course_id), None)

    def owns_class(self, class_id: str) -> bool:
        return any(c.id == class_id for c in self.classes)

    def has_student(self, student_id: str) -> bool:
        return any(s.id == student_id for s in self.students)

    def class_name(self, class_id: str | None) -> str:
        match = next((c for c in self.classes if c.id == class_id), None)
        return match.name if match else "No Class"
