"""Assignment records and the content descriptor union.

Content is either a single video or a whole topic.  A topic descriptor is
a reference, not a snapshot: it expands to whatever videos the topic holds
when access is resolved, so videos added to an assigned topic later are
granted without issuing new assignments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

TargetType = Literal["student", "class"]


@dataclass(frozen=True, slots=True)
class VideoContent:
    video_id: str


@dataclass(frozen=True, slots=True)
class TopicContent:
    course_id: str
    topic_name: str


Content = VideoContent | TopicContent


def describe_content(content: Content) -> str:
    if isinstance(content, VideoContent):
        return f"video:{content.video_id}"
    if isinstance(content, TopicContent):
        return f"topic:{content.course_id}/{content.topic_name}"
    raise TypeError(f"unknown content descriptor {content!r}")


@dataclass(frozen=True, slots=True)
class AssignmentTarget:
    type: TargetType
    id: str


@dataclass(frozen=True, slots=True)
class Assignment:
    id: str
    content: Content
    assigned_to_type: TargetType
    assigned_to_id: str

    @property
    def target(self) -> AssignmentTarget:
        return AssignmentTarget(type=self.assigned_to_type, id=self.assigned_to_id)
