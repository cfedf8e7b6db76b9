"""Teacher endpoints: workspace, course content, assignments and reports.

Every handler loads a fresh TeacherWorkspace for the caller, so checks
such as "is this one of my classes" always run against current data.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel, Field

from coursetrack.api.dependencies import require_role
from coursetrack.api.errors import service_errors
from coursetrack.api.schemas import ClassOut, CourseOut, ReportOut, UserOut, VideoOut
from coursetrack.db.store import get_store
from coursetrack.models.assignment import (
    AssignmentTarget,
    Content,
    TopicContent,
    VideoContent,
)
from coursetrack.models.principal import Principal
from coursetrack.repos.document_store import DocumentStore
from coursetrack.services import (
    assignment_service,
    cache,
    course_service,
    report_service,
)
from coursetrack.services.workspace import TeacherWorkspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/teacher", tags=["teacher"])

TeacherPrincipal = Annotated[Principal, Depends(require_role("teacher"))]
Store = Annotated[DocumentStore, Depends(get_store)]


# --- Request / Response schemas -------------------------------------------


class VideoContentIn(BaseModel):
    type: Literal["video"]
    video_id: str


class TopicContentIn(BaseModel):
    type: Literal["topic"]
    course_id: str
    topic_name: str


class TargetIn(BaseModel):
    type: Literal["student", "class"]
    id: str


class AssignmentIn(BaseModel):
    content: Annotated[VideoContentIn | TopicContentIn, Field(discriminator="type")]
    targets: list[TargetIn]

    def to_content(self) -> Content:
        if isinstance(self.content, VideoContentIn):
            return VideoContent(video_id=self.content.video_id)
        return TopicContent(
            course_id=self.content.course_id, topic_name=self.content.topic_name
        )

    def to_targets(self) -> list[AssignmentTarget]:
        return [AssignmentTarget(type=t.type, id=t.id) for t in self.targets]


class TargetResultOut(BaseModel):
    type: str
    id: str
    ok: bool
    assignment_id: str | None = None
    error: str | None = None


class AssignmentResultsOut(BaseModel):
    results: list[TargetResultOut]


class ReplaceResultOut(BaseModel):
    removed: int
    created: list[TargetResultOut]


class StudentOut(UserOut):
    class_name: str


class WorkspaceOut(BaseModel):
    courses: list[CourseOut]
    classes: list[ClassOut]
    students: list[StudentOut]


class TopicIn(BaseModel):
    name: str


class VideoIn(BaseModel):
    title: str
    video_id: str
    player_ref: str | None = None


# --- Workspace -------------------------------------------------------------


async def _workspace(store: DocumentStore, principal: Principal) -> TeacherWorkspace:
    with service_errors():
        return await TeacherWorkspace.load(store, principal.user_id)


@router.get("/workspace", response_model=WorkspaceOut)
async def get_workspace(principal: TeacherPrincipal, store: Store) -> WorkspaceOut:
    ws = await _workspace(store, principal)
    return WorkspaceOut(
        courses=[CourseOut.from_course(c) for c in ws.courses],
        classes=[ClassOut.from_class(c) for c in ws.classes],
        students=[
            StudentOut(
                **UserOut.from_user(s).model_dump(),
                class_name=ws.class_name(s.class_id),
            )
            for s in sorted(ws.students, key=lambda s: s.email)
        ],
    )


# --- Course content --------------------------------------------------------


@router.post(
    "/courses/{course_id}/topics",
    response_model=CourseOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_topic(
    course_id: str, payload: TopicIn, principal: TeacherPrincipal, store: Store
) -> CourseOut:
    with service_errors():
        course = await course_service.add_topic(
            store, principal.user_id, course_id, payload.name
        )
    await cache.invalidate_all()
    return CourseOut.from_course(course)


@router.post(
    "/courses/{course_id}/topics/{topic_name}/videos",
    response_model=VideoOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_video(
    course_id: str,
    topic_name: str,
    payload: VideoIn,
    principal: TeacherPrincipal,
    store: Store,
) -> VideoOut:
    with service_errors():
        video = await course_service.add_video(
            store,
            principal.user_id,
            course_id,
            topic_name,
            payload.title,
            payload.video_id,
            payload.player_ref,
        )
    # Topic assignments are late-bound, so a new video can unlock for students.
    await cache.invalidate_all()
    return VideoOut(
        video_id=video.video_id, title=video.title, player_ref=video.playback_ref
    )


@router.post("/courses/{course_id}/uploads", response_model=CourseOut)
async def upload_topic(
    course_id: str,
    document: Annotated[dict[str, Any], Body()],
    principal: TeacherPrincipal,
    store: Store,
) -> CourseOut:
    """Bulk content upload: `{topicName, videos: [{title, videoId}]}`.

    Uploading to an existing topic replaces its whole video list.
    """
    with service_errors():
        course = await course_service.upload_topic(
            store, principal.user_id, course_id, document
        )
    await cache.invalidate_all()
    return CourseOut.from_course(course)


# --- Assignments -----------------------------------------------------------


@router.post("/assignments", response_model=AssignmentResultsOut)
async def create_assignment(
    payload: AssignmentIn, principal: TeacherPrincipal, store: Store
) -> AssignmentResultsOut:
    """Assign content to students and classes.

    Targets are written independently; the response carries one result
    per target and a failed target does not undo the others.
    """
    ws = await _workspace(store, principal)
    with service_errors():
        results = await assignment_service.create_assignment(
            store, payload.to_content(), payload.to_targets(), workspace=ws
        )
    if any(r.ok for r in results):
        await cache.invalidate_dashboards()
    return AssignmentResultsOut(
        results=[
            TargetResultOut(
                type=r.target.type,
                id=r.target.id,
                ok=r.ok,
                assignment_id=r.assignment_id,
                error=r.error,
            )
            for r in results
        ]
    )


@router.put("/assignments", response_model=ReplaceResultOut)
async def replace_assignments(
    payload: AssignmentIn, principal: TeacherPrincipal, store: Store
) -> ReplaceResultOut:
    """Make `targets` the complete set of assignees for the content."""
    ws = await _workspace(store, principal)
    with service_errors():
        result = await assignment_service.replace_assignments(
            store, payload.to_content(), payload.to_targets(), workspace=ws
        )
    await cache.invalidate_dashboards()
    return ReplaceResultOut(
        removed=result.removed,
        created=[
            TargetResultOut(
                type=a.assigned_to_type,
                id=a.assigned_to_id,
                ok=True,
                assignment_id=a.id,
            )
            for a in result.created
        ],
    )


# --- Reports ---------------------------------------------------------------


@router.get("/reports", response_model=ReportOut)
async def teacher_report(principal: TeacherPrincipal, store: Store) -> ReportOut:
    """Progress of the students in the caller's classes on the caller's videos."""

    async def _build() -> str:
        ws = await TeacherWorkspace.load(store, principal.user_id)
        report = await report_service.teacher_report(ws)
        return ReportOut.from_report(report).model_dump_json()

    with service_errors():
        body = await cache.read_through(
            cache.teacher_report_key(principal.user_id), _build
        )
    return ReportOut.model_validate_json(body)
