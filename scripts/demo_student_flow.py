"""Demo: admin sets up a class, teacher assigns a topic, student watches.

Drives the API with FastAPI TestClient, then plays one video through a
PlaybackSession whose samples go over HTTP via ProgressApiClient.

Run with:
    python scripts/demo_student_flow.py
"""

from __future__ import annotations

import asyncio

import httpx
from fastapi.testclient import TestClient

from coursetrack.client.progress_client import ProgressApiClient
from coursetrack.db.store import document_store
from coursetrack.main import app
from coursetrack.services.playback import PlaybackSession
from coursetrack.services.roster_service import ensure_admin

ADMIN_EMAIL = "admin@example.com"
PASSWORD = "demo-pass"


class ScriptedPlayer:
    """Stands in for the embedded player: the position jumps 30s per read."""

    def __init__(self, duration: float = 90.0) -> None:
        self.position = 0.0
        self.duration = duration

    def create(self, container: str, content_ref: str) -> None:
        print(f"   player created in #{container} with {content_ref}")

    def load_content(self, content_ref: str) -> None:
        print(f"   player loaded {content_ref}")

    def play(self) -> None:
        print("   player started")

    def get_position(self) -> float:
        self.position = min(self.duration, self.position + 30)
        return self.position

    def get_duration(self) -> float:
        return self.duration

    def destroy(self) -> None:
        print("   player destroyed")


def _login(client: TestClient, email: str) -> dict[str, str]:
    r = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    r.raise_for_status()
    return {"Authorization": f"Bearer {r.json()['accessToken']}"}


async def _watch(token: str, user_id: str, video_id: str) -> None:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as http:
        session = PlaybackSession(
            user_id=user_id,
            widget=ScriptedPlayer(),
            sink=ProgressApiClient(http, token),
            interval=0.05,
        )
        session.open(video_id)
        session.handle_ready()
        await session.handle_state_change("playing")
        await asyncio.sleep(0.12)
        await session.handle_state_change("ended")
        session.close()
        if session.error is not None:
            raise session.error


def main() -> None:
    client = TestClient(app)

    # ── Seed the first admin ────────────────────────────────────────
    asyncio.run(ensure_admin(document_store, ADMIN_EMAIL, PASSWORD))
    admin = _login(client, ADMIN_EMAIL)
    print("1. admin logged in")

    # ── Admin: teacher, class, student, course ──────────────────────
    teacher = client.post(
        "/v1/admin/users",
        json={"email": "teacher@example.com", "password": PASSWORD, "role": "teacher"},
        headers=admin,
    ).json()
    school_class = client.post(
        "/v1/admin/classes",
        json={"name": "Year 9", "teacher_id": teacher["id"]},
        headers=admin,
    ).json()
    r = client.post(
        "/v1/admin/users/bulk",
        json={
            "text": f"student@example.com,{PASSWORD},student,{school_class['id']}\n"
            "broken@example.com,,student"
        },
        headers=admin,
    )
    print("2. bulk upload:")
    for line in r.json()["log"]:
        print(f"   {line}")
    course = client.post(
        "/v1/admin/courses",
        json={"title": "Biology", "teacher_id": teacher["id"]},
        headers=admin,
    ).json()

    # ── Teacher: content and assignment ─────────────────────────────
    teacher_auth = _login(client, "teacher@example.com")
    client.post(
        f"/v1/teacher/courses/{course['id']}/uploads",
        json={
            "topicName": "Intro",
            "videos": [
                {"title": "What is a cell?", "videoId": "cell-101"},
                {"title": "Membranes", "videoId": "cell-102"},
            ],
        },
        headers=teacher_auth,
    )
    r = client.post(
        "/v1/teacher/assignments",
        json={
            "content": {
                "type": "topic",
                "course_id": course["id"],
                "topic_name": "Intro",
            },
            "targets": [{"type": "class", "id": school_class["id"]}],
        },
        headers=teacher_auth,
    )
    print(f"3. topic assigned to class → {r.status_code}  {r.json()['results']}")

    # ── Student: watch one video ────────────────────────────────────
    student_auth = _login(client, "student@example.com")
    videos = client.get("/v1/student/videos", headers=student_auth).json()
    print(f"4. student can open {videos['video_ids']}")
    me = client.get("/auth/me", headers=student_auth).json()
    token = student_auth["Authorization"].removeprefix("Bearer ")
    print("5. watching cell-101")
    asyncio.run(_watch(token, me["id"], "cell-101"))

    # ── Reports ─────────────────────────────────────────────────────
    report = client.get("/v1/teacher/reports", headers=teacher_auth).json()
    for student in report["students"]:
        for row in student["rows"]:
            print(
                f"6. {student['email']}  {row['video_title']}: "
                f"{row['completion_percentage']}%  views={row['watch_count']}"
            )

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
