from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Video:
    video_id: str  # unique within the course; join key for progress/assignments
    title: str
    player_ref: str | None = None  # id handed to the player, when it differs

    @property
    def playback_ref(self) -> str:
        return self.player_ref or self.video_id


@dataclass(frozen=True, slots=True)
class Topic:
    """An ordered run of videos.  The topic name doubles as its title."""

    name: str
    videos: tuple[Video, ...] = ()

    @property
    def title(self) -> str:
        return self.name

    def video_ids(self) -> list[str]:
        return [v.video_id for v in self.videos]


@dataclass(frozen=True, slots=True)
class Course:
    id: str
    title: str
    teacher_id: str
    topics: tuple[Topic, ...] = ()  # in stored order

    def topic(self, name: str) -> Topic | None:
        for topic in self.topics:
            if topic.name == name:
                return topic
        return None

    def iter_videos(self) -> Iterator[tuple[Topic, Video]]:
        for topic in self.topics:
            for video in topic.videos:
                yield topic, video

    def has_video(self, video_id: str) -> bool:
        return any(v.video_id == video_id for _, v in self.iter_videos())
