"""Which videos may a learner open?

Resolution is a pure function of the learner, the assignment records and
the course structure at call time.  Topic assignments are late-bound: they
expand to the videos the topic holds now, so editing a topic changes
access without touching any assignment record.  References to courses or
topics that no longer exist resolve to nothing.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from coursetrack.models.assignment import Assignment, TopicContent, VideoContent
from coursetrack.models.course import Course
from coursetrack.services.content_model import find_topic


def assignments_for_learner(
    learner_id: str,
    learner_class_id: str | None,
    assignments: Iterable[Assignment],
) -> list[Assignment]:
    matched = []
    for a in assignments:
        if a.assigned_to_type == "student" and a.assigned_to_id == learner_id:
            matched.append(a)
        elif (
            a.assigned_to_type == "class"
            and learner_class_id is not None
            and a.assigned_to_id == learner_class_id
        ):
            matched.append(a)
    return matched


def resolve_accessible_videos(
    learner_id: str,
    learner_class_id: str | None,
    assignments: Iterable[Assignment],
    courses: Sequence[Course],
) -> frozenset[str]:
    accessible: set[str] = set()
    matched = assignments_for_learner(learner_id, learner_class_id, assignments)
    for assignment in matched:
        content = assignment.content
        if isinstance(content, VideoContent):
            accessible.add(content.video_id)
        elif isinstance(content, TopicContent):
            topic = find_topic(courses, content.course_id, content.topic_name)
            if topic is not None:
                accessible.update(topic.video_ids())
        else:
            raise TypeError(f"unknown content descriptor {content!r}")
    return frozenset(accessible)
