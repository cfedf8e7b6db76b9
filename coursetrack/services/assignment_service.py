"""Issuing and replacing assignments.

create_assignment fans out one record per target concurrently.  Each
target succeeds or fails on its own and the caller gets a result per
target; a failed write is reported, never retried, and does not undo the
others.

replace_assignments swaps every record for a piece of content in one
transaction: either the old records are gone and the new ones exist, or
nothing changed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from coursetrack.core.metrics import ASSIGNMENT_WRITES
from coursetrack.models.assignment import (
    Assignment,
    AssignmentTarget,
    Content,
    TopicContent,
    VideoContent,
    describe_content,
)
from coursetrack.repos.assignment_repo import AssignmentRepo
from coursetrack.repos.document_store import DocumentStore, StorageError
from coursetrack.services.errors import (
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from coursetrack.services.workspace import TeacherWorkspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TargetResult:
    target: AssignmentTarget
    assignment_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class ReplaceResult:
    removed: int
    created: tuple[Assignment, ...]


def unique_targets(targets: Iterable[AssignmentTarget]) -> list[AssignmentTarget]:
    seen: set[AssignmentTarget] = set()
    ordered = []
    for target in targets:
        if target not in seen:
            seen.add(target)
            ordered.append(target)
    return ordered


def check_content(workspace: TeacherWorkspace, content: Content) -> None:
    """The content must belong to one of the teacher's own courses."""
    if isinstance(content, VideoContent):
        if not any(c.has_video(content.video_id) for c in workspace.courses):
            raise NotFoundError(f"video {content.video_id!r} is not in your courses")
    elif isinstance(content, TopicContent):
        course = workspace.course(content.course_id)
        if course is None:
            raise NotFoundError(f"course {content.course_id!r} is not one of yours")
        if course.topic(content.topic_name) is None:
            raise NotFoundError(
                f"topic {content.topic_name!r} not found in course {course.title!r}"
            )
    else:
        raise TypeError(f"unknown content descriptor {content!r}")


def _target_error(
    workspace: TeacherWorkspace | None, target: AssignmentTarget
) -> str | None:
    if workspace is None:
        return None
    if target.type == "class" and not workspace.owns_class(target.id):
        return f"class {target.id} is not one of your classes"
    if target.type == "student" and not workspace.has_student(target.id):
        return f"student {target.id} is not in your classes"
    return None


async def create_assignment(
    store: DocumentStore,
    content: Content,
    targets: Iterable[AssignmentTarget],
    *,
    workspace: TeacherWorkspace | None = None,
) -> list[TargetResult]:
    """One assignment record per distinct target, written concurrently.

    With a workspace, the content and every target are checked against the
    teacher's own courses, classes and students.
    """
    targets = unique_targets(targets)
    if not targets:
        raise ValidationError("select content and at least one student or class")
    if workspace is not None:
        check_content(workspace, content)

    repo = AssignmentRepo(store)
    label = describe_content(content)

    async def _issue(target: AssignmentTarget) -> TargetResult:
        error = _target_error(workspace, target)
        if error is not None:
            ASSIGNMENT_WRITES.labels(result="failed").inc()
            return TargetResult(target=target, error=error)
        try:
            assignment = await repo.add(content, target)
        except StorageError as e:
            ASSIGNMENT_WRITES.labels(result="failed").inc()
            logger.warning(
                "Assignment write failed content=%s target=%s:%s: %s",
                label,
                target.type,
                target.id,
                e,
            )
            return TargetResult(target=target, error=str(e))
        ASSIGNMENT_WRITES.labels(result="created").inc()
        return TargetResult(target=target, assignment_id=assignment.id)

    results = list(await asyncio.gather(*(_issue(t) for t in targets)))
    logger.info(
        "Assigned content=%s targets=%d ok=%d failed=%d",
        label,
        len(results),
        sum(1 for r in results if r.ok),
        sum(1 for r in results if not r.ok),
    )
    return results


async def replace_assignments(
    store: DocumentStore,
    content: Content,
    targets: Iterable[AssignmentTarget],
    *,
    workspace: TeacherWorkspace | None = None,
) -> ReplaceResult:
    """Make `targets` the complete set of assignees for `content`.

    An empty target list removes every assignment of the content.
    """
    targets = unique_targets(targets)
    if workspace is not None:
        check_content(workspace, content)
        for target in targets:
            error = _target_error(workspace, target)
            if error is not None:
                raise PermissionDeniedError(error)

    repo = AssignmentRepo(store)
    try:
        stale, created = await repo.replace(content, targets)
    except StorageError:
        ASSIGNMENT_WRITES.labels(result="failed").inc()
        raise

    ASSIGNMENT_WRITES.labels(result="replaced").inc()
    logger.info(
        "Replaced assignments content=%s removed=%d created=%d",
        describe_content(content),
        len(stale),
        len(created),
    )
    return ReplaceResult(removed=len(stale), created=tuple(created))
