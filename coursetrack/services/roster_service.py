"""Admin operations on users, classes, courses and class membership."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from coursetrack.core.metrics import BULK_USER_ROWS
from coursetrack.models.course import Course
from coursetrack.models.school_class import SchoolClass
from coursetrack.models.user import ROLES, User
from coursetrack.repos.class_repo import ClassRepo
from coursetrack.repos.course_repo import CourseRepo
from coursetrack.repos.document_store import (
    DocumentExistsError,
    DocumentStore,
    StorageError,
)
from coursetrack.repos.user_repo import UserRepo
from coursetrack.services.errors import ConflictError, NotFoundError, ValidationError
from coursetrack.services.identity import (
    IdentityError,
    IdentityExistsError,
    IdentityProvider,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def create_user(
    store: DocumentStore,
    email: str,
    password: str,
    role: str,
    class_id: str | None = None,
) -> User:
    """Create the identity, then the user profile keyed by its id.

    The class id is kept for students only.
    """
    email = email.strip().lower()
    role = role.strip().lower()
    class_id = (class_id or "").strip() or None
    if not email or not password or not role:
        raise ValidationError("email, password and role are required")
    if role not in ROLES:
        raise ValidationError(f"role must be admin|teacher|student (got {role!r})")
    if role == "student" and class_id is not None:
        if await ClassRepo(store).get_by_id(class_id) is None:
            raise ValidationError(f"unknown class {class_id!r}")

    try:
        identity = await IdentityProvider(store).create_identity(email, password)
    except IdentityExistsError:
        logger.warning("Rejected duplicate email=%s", email)
        raise ConflictError(f"a user with email {email} already exists") from None
    except IdentityError as e:
        logger.warning("Rejected user payload email=%s: %s", email, e)
        raise ValidationError(str(e)) from None

    user = User.new(
        id=identity.id,
        email=identity.email,
        role=role,  # type: ignore[arg-type]
        class_id=class_id,
    )
    await UserRepo(store).add(user)
    logger.info(
        "Created user id=%s email=%s role=%s class=%s",
        user.id,
        user.email,
        user.role,
        user.class_id,
    )
    return user


@dataclass(frozen=True, slots=True)
class BulkRowOutcome:
    line_no: int
    line: str
    status: Literal["success", "error"]
    message: str
    email: str | None = None
    user_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @property
    def log_line(self) -> str:
        if self.ok:
            return f"SUCCESS: {self.message}"
        return f"ERROR: line {self.line_no}: {self.message}"


@dataclass(frozen=True, slots=True)
class BulkCreateResult:
    rows: tuple[BulkRowOutcome, ...]

    @property
    def created(self) -> int:
        return sum(1 for r in self.rows if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.rows if not r.ok)

    @property
    def log(self) -> list[str]:
        return [r.log_line for r in self.rows]


def parse_bulk_rows(text: str) -> list[tuple[int, str, list[str]]]:
    """Split `email,password,role[,classId]` text into numbered rows.

    Blank lines are skipped but still count toward line numbers.
    """
    rows = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        rows.append((line_no, line.strip(), [f.strip() for f in line.split(",")]))
    return rows


async def bulk_create_users(store: DocumentStore, text: str) -> BulkCreateResult:
    """Create users row by row.

    Rows are processed in order and independently: a bad row is reported
    and the next row still runs.  Nothing is rolled back.
    """
    outcomes = []
    for line_no, line, fields in parse_bulk_rows(text):
        email, password, role = (fields + ["", "", ""])[:3]
        class_id = fields[3] if len(fields) > 3 else None
        try:
            user = await create_user(store, email, password, role, class_id)
        except (ValidationError, ConflictError) as e:
            BULK_USER_ROWS.labels(result="error").inc()
            outcomes.append(
                BulkRowOutcome(
                    line_no=line_no,
                    line=line,
                    status="error",
                    message=f"Could not create {email or '<no email>'}. {e}",
                    email=email or None,
                )
            )
            continue
        except StorageError as e:
            BULK_USER_ROWS.labels(result="error").inc()
            logger.warning("Bulk row %d storage failure: %s", line_no, e)
            outcomes.append(
                BulkRowOutcome(
                    line_no=line_no,
                    line=line,
                    status="error",
                    message=f"Could not create {email}. {e}",
                    email=email,
                )
            )
            continue

        BULK_USER_ROWS.labels(result="success").inc()
        outcomes.append(
            BulkRowOutcome(
                line_no=line_no,
                line=line,
                status="success",
                message=f"Created {user.email} ({user.role})",
                email=user.email,
                user_id=user.id,
            )
        )

    result = BulkCreateResult(rows=tuple(outcomes))
    logger.info(
        "Bulk user creation finished created=%d failed=%d",
        result.created,
        result.failed,
    )
    return result


# ---------------------------------------------------------------------------
# Classes and courses
# ---------------------------------------------------------------------------


async def _require_teacher(store: DocumentStore, teacher_id: str) -> User:
    teacher = await UserRepo(store).get_by_id(teacher_id)
    if teacher is None:
        raise NotFoundError(f"teacher {teacher_id!r} not found")
    if not teacher.is_teacher:
        raise ValidationError(f"user {teacher_id!r} is not a teacher")
    return teacher


async def create_class(
    store: DocumentStore,
    name: str,
    teacher_id: str,
    class_id: str | None = None,
) -> SchoolClass:
    name = name.strip()
    if not name or not teacher_id:
        raise ValidationError("class name and teacher are required")
    await _require_teacher(store, teacher_id)
    try:
        school_class = await ClassRepo(store).add(
            name, teacher_id, (class_id or "").strip() or None
        )
    except DocumentExistsError:
        raise ConflictError(f"class id {class_id!r} already exists") from None
    logger.info(
        "Created class id=%s name=%s teacher=%s",
        school_class.id,
        school_class.name,
        teacher_id,
        extra={"class_id": school_class.id},
    )
    return school_class


async def create_course(store: DocumentStore, title: str, teacher_id: str) -> Course:
    title = title.strip()
    if not title or not teacher_id:
        raise ValidationError("course title and teacher are required")
    await _require_teacher(store, teacher_id)
    course = await CourseRepo(store).add(title, teacher_id)
    logger.info(
        "Created course id=%s title=%s teacher=%s",
        course.id,
        course.title,
        teacher_id,
        extra={"course_id": course.id},
    )
    return course


# ---------------------------------------------------------------------------
# Class membership
# ---------------------------------------------------------------------------


async def _require_student(store: DocumentStore, student_id: str) -> User:
    student = await UserRepo(store).get_by_id(student_id)
    if student is None:
        raise NotFoundError(f"student {student_id!r} not found")
    if not student.is_student:
        raise ValidationError(f"user {student_id!r} is not a student")
    return student


async def add_to_class(store: DocumentStore, student_id: str, class_id: str) -> User:
    student = await _require_student(store, student_id)
    if await ClassRepo(store).get_by_id(class_id) is None:
        raise NotFoundError(f"class {class_id!r} not found")
    if student.class_id == class_id:
        return student

    await UserRepo(store).set_class(student_id, class_id)
    logger.info(
        "Student %s moved from class=%s to class=%s",
        student_id,
        student.class_id,
        class_id,
        extra={"user_id": student_id, "class_id": class_id},
    )
    return User.new(
        id=student.id, email=student.email, role="student", class_id=class_id
    )


async def remove_from_class(store: DocumentStore, student_id: str) -> User:
    """Unassign a student.  Already-unassigned students are left untouched."""
    student = await _require_student(store, student_id)
    if student.class_id is None:
        return student

    await UserRepo(store).set_class(student_id, None)
    logger.info(
        "Student %s removed from class=%s",
        student_id,
        student.class_id,
        extra={"user_id": student_id, "class_id": student.class_id},
    )
    return User.new(id=student.id, email=student.email, role="student")


@dataclass(frozen=True, slots=True)
class Roster:
    school_class: SchoolClass
    in_class: tuple[User, ...]
    unassigned: tuple[User, ...]


async def list_roster(store: DocumentStore, class_id: str) -> Roster:
    school_class = await ClassRepo(store).get_by_id(class_id)
    if school_class is None:
        raise NotFoundError(f"class {class_id!r} not found")
    users = UserRepo(store)
    in_class = await users.list_students_in_class(class_id)
    unassigned = await users.list_students_in_class(None)
    return Roster(
        school_class=school_class,
        in_class=tuple(sorted(in_class, key=lambda u: u.email)),
        unassigned=tuple(sorted(unassigned, key=lambda u: u.email)),
    )


async def ensure_admin(store: DocumentStore, email: str, password: str) -> User | None:
    """Create the first admin account unless the email is already registered.

    Returns the new admin, or None when nothing was created.
    """
    if await UserRepo(store).get_by_email(email.strip().lower()) is not None:
        return None
    try:
        return await create_user(store, email, password, "admin")
    except ConflictError:
        # Identity exists without a profile; leave it for an operator.
        logger.warning("Bootstrap admin %s has an identity but no profile", email)
        return None
