"""Pure transformations over the course -> topic -> video tree.

Nothing in this module touches storage; callers pass in the courses they
already loaded.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from coursetrack.models.course import Course, Topic, Video
from coursetrack.services.errors import ValidationError


def unknown_video_label(video_id: str) -> str:
    return f"Unknown Video ({video_id})"


def video_title_lookup(courses: Iterable[Course]) -> dict[str, str]:
    """Map every video id in `courses` to its title.

    When two courses share a video id the later course wins, matching the
    order the courses were loaded in.
    """
    return {
        video.video_id: video.title
        for course in courses
        for _, video in course.iter_videos()
    }


def find_topic(
    courses: Iterable[Course], course_id: str, topic_name: str
) -> Topic | None:
    for course in courses:
        if course.id == course_id:
            return course.topic(topic_name)
    return None


def validate_topic_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("topic name is required")
    if "." in name:
        # Topic names become dotted field paths in the course document.
        raise ValidationError("topic name must not contain '.'")
    return name


def validate_video(title: str, video_id: str, player_ref: str | None = None) -> Video:
    title = title.strip()
    video_id = video_id.strip()
    if not title or not video_id:
        raise ValidationError("video title and video id are required")
    player_ref = (player_ref or "").strip() or None
    return Video(video_id=video_id, title=title, player_ref=player_ref)


@dataclass(frozen=True, slots=True)
class TopicUpload:
    topic_name: str
    videos: tuple[Video, ...]


def parse_topic_upload(document: Mapping[str, Any]) -> TopicUpload:
    """Validate a bulk content upload `{topicName, videos: [{title, videoId}]}`."""
    topic_name = document.get("topicName")
    videos = document.get("videos")
    if not isinstance(topic_name, str) or not isinstance(videos, list):
        raise ValidationError(
            'Invalid upload format. Must have "topicName" (string) '
            'and "videos" (array).'
        )
    if not videos:
        raise ValidationError('"videos" must contain at least one video.')
    parsed = []
    for entry in videos:
        if (
            not isinstance(entry, Mapping)
            or not entry.get("title")
            or not entry.get("videoId")
        ):
            raise ValidationError(
                'Invalid "videos" array. Each object must have "title" and "videoId".'
            )
        parsed.append(
            validate_video(
                str(entry["title"]), str(entry["videoId"]), entry.get("playerRef")
            )
        )
    ids = [v.video_id for v in parsed]
    if len(set(ids)) != len(ids):
        raise ValidationError("video ids must be unique within an upload")
    return TopicUpload(topic_name=validate_topic_name(topic_name), videos=tuple(parsed))


def conflicting_video_ids(
    course: Course, videos: Iterable[Video], *, except_topic: str
) -> list[str]:
    """Ids in `videos` already used by another topic of the same course."""
    taken = {
        video.video_id
        for topic, video in course.iter_videos()
        if topic.name != except_topic
    }
    return [v.video_id for v in videos if v.video_id in taken]
