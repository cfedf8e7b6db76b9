"""Admin endpoints: users, classes, rosters, courses and global reports."""

from __future__ import annotations

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from coursetrack.api.dependencies import require_role
from coursetrack.api.errors import service_errors
from coursetrack.api.schemas import ClassOut, CourseOut, ReportOut, UserOut
from coursetrack.db.store import get_store
from coursetrack.models.principal import Principal
from coursetrack.repos.class_repo import ClassRepo
from coursetrack.repos.course_repo import CourseRepo
from coursetrack.repos.document_store import DocumentStore
from coursetrack.repos.user_repo import UserRepo
from coursetrack.services import cache, report_service, roster_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])

AdminPrincipal = Annotated[Principal, Depends(require_role("admin"))]
Store = Annotated[DocumentStore, Depends(get_store)]


# --- Request / Response schemas -------------------------------------------


class UserCreateIn(BaseModel):
    email: str
    password: str
    role: Literal["admin", "teacher", "student"]
    class_id: str | None = None


class BulkUsersIn(BaseModel):
    text: str  # newline-separated email,password,role[,classId]


class BulkRowOut(BaseModel):
    line: int
    ok: bool
    message: str
    user_id: str | None = None


class BulkUsersOut(BaseModel):
    created: int
    failed: int
    log: list[str]
    rows: list[BulkRowOut]


class ClassCreateIn(BaseModel):
    name: str
    teacher_id: str
    class_id: str | None = None


class RosterOut(BaseModel):
    school_class: ClassOut
    students: list[UserOut]
    unassigned: list[UserOut]


class CourseCreateIn(BaseModel):
    title: str
    teacher_id: str


# --- Users -----------------------------------------------------------------


@router.post("/users", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreateIn, principal: AdminPrincipal, store: Store
) -> UserOut:
    with service_errors():
        user = await roster_service.create_user(
            store, payload.email, payload.password, payload.role, payload.class_id
        )
    logger.info("Admin %s created user %s", principal.user_id, user.id)
    if user.is_student:
        await cache.invalidate_reports()
    return UserOut.from_user(user)


@router.get("/users", response_model=list[UserOut])
async def list_users(
    principal: AdminPrincipal,
    store: Store,
    role: Annotated[Literal["admin", "teacher", "student"] | None, Query()] = None,
) -> list[UserOut]:
    repo = UserRepo(store)
    with service_errors():
        roles = [role] if role else ["admin", "teacher", "student"]
        users = [u for r in roles for u in await repo.list_by_role(r)]
    return [UserOut.from_user(u) for u in sorted(users, key=lambda u: u.email)]


@router.post("/users/bulk", response_model=BulkUsersOut)
async def bulk_create_users(
    payload: BulkUsersIn, principal: AdminPrincipal, store: Store
) -> BulkUsersOut:
    """Create users row by row; each row reports its own outcome."""
    with service_errors():
        result = await roster_service.bulk_create_users(store, payload.text)
    logger.info(
        "Admin %s bulk upload created=%d failed=%d",
        principal.user_id,
        result.created,
        result.failed,
    )
    if result.created:
        await cache.invalidate_reports()
    return BulkUsersOut(
        created=result.created,
        failed=result.failed,
        log=result.log,
        rows=[
            BulkRowOut(line=r.line_no, ok=r.ok, message=r.message, user_id=r.user_id)
            for r in result.rows
        ],
    )


# --- Classes and rosters ---------------------------------------------------


@router.post("/classes", response_model=ClassOut, status_code=status.HTTP_201_CREATED)
async def create_class(
    payload: ClassCreateIn, principal: AdminPrincipal, store: Store
) -> ClassOut:
    with service_errors():
        school_class = await roster_service.create_class(
            store, payload.name, payload.teacher_id, payload.class_id
        )
    await cache.invalidate_reports()
    return ClassOut.from_class(school_class)


@router.get("/classes", response_model=list[ClassOut])
async def list_classes(principal: AdminPrincipal, store: Store) -> list[ClassOut]:
    with service_errors():
        classes = await ClassRepo(store).list_all()
    return [ClassOut.from_class(c) for c in sorted(classes, key=lambda c: c.name)]


@router.get("/classes/{class_id}/roster", response_model=RosterOut)
async def get_roster(
    class_id: str, principal: AdminPrincipal, store: Store
) -> RosterOut:
    with service_errors():
        roster = await roster_service.list_roster(store, class_id)
    return RosterOut(
        school_class=ClassOut.from_class(roster.school_class),
        students=[UserOut.from_user(u) for u in roster.in_class],
        unassigned=[UserOut.from_user(u) for u in roster.unassigned],
    )


@router.put("/classes/{class_id}/students/{student_id}", response_model=UserOut)
async def add_student_to_class(
    class_id: str, student_id: str, principal: AdminPrincipal, store: Store
) -> UserOut:
    with service_errors():
        student = await roster_service.add_to_class(store, student_id, class_id)
    await cache.invalidate_reports()
    await cache.invalidate_dashboards(student_id)
    return UserOut.from_user(student)


@router.delete("/students/{student_id}/class", response_model=UserOut)
async def remove_student_from_class(
    student_id: str, principal: AdminPrincipal, store: Store
) -> UserOut:
    with service_errors():
        student = await roster_service.remove_from_class(store, student_id)
    await cache.invalidate_reports()
    await cache.invalidate_dashboards(student_id)
    return UserOut.from_user(student)


# --- Courses ---------------------------------------------------------------


@router.post("/courses", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreateIn, principal: AdminPrincipal, store: Store
) -> CourseOut:
    with service_errors():
        course = await roster_service.create_course(
            store, payload.title, payload.teacher_id
        )
    await cache.invalidate_all()
    return CourseOut.from_course(course)


@router.get("/courses", response_model=list[CourseOut])
async def list_courses(principal: AdminPrincipal, store: Store) -> list[CourseOut]:
    with service_errors():
        courses = await CourseRepo(store).list_all()
    return [CourseOut.from_course(c) for c in sorted(courses, key=lambda c: c.title)]


# --- Reports ---------------------------------------------------------------


@router.get("/reports", response_model=ReportOut)
async def global_report(
    principal: AdminPrincipal,
    store: Store,
    teacher_id: str | None = None,
    class_id: str | None = None,
) -> ReportOut:
    """Progress of every student, optionally filtered.

    When both filters are given the class filter wins.
    """

    async def _build() -> str:
        report = await report_service.global_report(
            store, teacher_id=teacher_id, class_id=class_id
        )
        return ReportOut.from_report(report).model_dump_json()

    with service_errors():
        body = await cache.read_through(
            cache.global_report_key(teacher_id, class_id), _build
        )
    return ReportOut.model_validate_json(body)
