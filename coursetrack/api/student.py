"""Student endpoints: dashboard, accessible videos and progress writes.

Progress writes are only accepted for videos the student can currently
open; anything else is refused with 403 before touching the store.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from coursetrack.api.dependencies import require_role
from coursetrack.api.errors import service_errors
from coursetrack.api.schemas import DashboardOut, ProgressOut
from coursetrack.db.store import get_store
from coursetrack.models.principal import Principal
from coursetrack.models.user import User
from coursetrack.repos.document_store import DocumentStore
from coursetrack.services import cache, report_service
from coursetrack.services.progress_tracker import ProgressTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/student", tags=["student"])

StudentPrincipal = Annotated[Principal, Depends(require_role("student"))]
Store = Annotated[DocumentStore, Depends(get_store)]


class AccessibleVideosOut(BaseModel):
    video_ids: list[str]


class SampleIn(BaseModel):
    video_id: str
    position: float = Field(ge=0, allow_inf_nan=False)
    duration: float | None = Field(default=None, ge=0, allow_inf_nan=False)


class EndedIn(BaseModel):
    video_id: str
    position: float = Field(default=0, ge=0, allow_inf_nan=False)


async def _load_student(store: DocumentStore, principal: Principal) -> User:
    with service_errors():
        return await report_service.load_student(store, principal.user_id)


async def _require_access(store: DocumentStore, student: User, video_id: str) -> None:
    with service_errors():
        allowed = await report_service.accessible_videos(store, student)
    if video_id not in allowed:
        logger.warning(
            "Progress rejected: video=%s not assigned to user=%s",
            video_id,
            student.id,
            extra={"user_id": student.id, "video_id": video_id},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This video is not assigned to you.",
        )


@router.get("/dashboard", response_model=DashboardOut)
async def dashboard(principal: StudentPrincipal, store: Store) -> DashboardOut:
    """Every course, with each video unlocked (with progress) or locked."""

    async def _build() -> str:
        board = await report_service.student_dashboard(store, principal.user_id)
        return DashboardOut.from_dashboard(board).model_dump_json()

    with service_errors():
        body = await cache.read_through(cache.dashboard_key(principal.user_id), _build)
    return DashboardOut.model_validate_json(body)


@router.get("/videos", response_model=AccessibleVideosOut)
async def accessible_videos(
    principal: StudentPrincipal, store: Store
) -> AccessibleVideosOut:
    student = await _load_student(store, principal)
    with service_errors():
        allowed = await report_service.accessible_videos(store, student)
    return AccessibleVideosOut(video_ids=sorted(allowed))


@router.post("/progress/samples", response_model=ProgressOut)
async def record_sample(
    payload: SampleIn, principal: StudentPrincipal, store: Store
) -> ProgressOut:
    student = await _load_student(store, principal)
    await _require_access(store, student, payload.video_id)
    with service_errors():
        progress = await ProgressTracker(store).record_sample(
            student.id, payload.video_id, payload.position, payload.duration
        )
    await cache.invalidate_dashboards(student.id)
    await cache.invalidate_reports()
    return ProgressOut.from_progress(progress)


@router.post("/progress/ended", response_model=ProgressOut)
async def record_ended(
    payload: EndedIn, principal: StudentPrincipal, store: Store
) -> ProgressOut:
    student = await _load_student(store, principal)
    await _require_access(store, student, payload.video_id)
    with service_errors():
        progress = await ProgressTracker(store).record_ended(
            student.id, payload.video_id, payload.position
        )
    await cache.invalidate_dashboards(student.id)
    await cache.invalidate_reports()
    return ProgressOut.from_progress(progress)
