from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from coursetrack.db.store import document_store
from coursetrack.main import app
from coursetrack.models.assignment import Assignment, Content
from coursetrack.models.course import Course, Topic, Video
from coursetrack.models.school_class import SchoolClass
from coursetrack.models.user import Role, User
from coursetrack.repos.assignment_repo import ASSIGNMENTS, decode_assignments
from coursetrack.repos.class_repo import ClassRepo
from coursetrack.repos.course_repo import CourseRepo
from coursetrack.repos.document_store import (
    DocumentStore,
    InMemoryDocumentStore,
    StorageError,
    new_document_id,
)
from coursetrack.repos.user_repo import UserRepo
from coursetrack.services import token_service
from coursetrack.services.cache import cache_service

# Ensure repo root is on sys.path so `import coursetrack` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_document_store() -> None:
    """Empty the process-wide in-memory store between tests."""
    if hasattr(document_store, "_collections"):
        document_store._collections.clear()  # type: ignore[union-attr]
        document_store._lock = asyncio.Lock()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """A private store for service-level tests."""
    return InMemoryDocumentStore()


def mint_token(user_id: str = "test-user", roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=user_id, roles=roles or [])


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Seed helpers (async, for use inside asyncio.run)
# ---------------------------------------------------------------------------


async def add_user(
    store: DocumentStore,
    role: Role,
    *,
    email: str | None = None,
    class_id: str | None = None,
) -> User:
    user = User.new(
        id=new_document_id(),
        email=email or f"{role}-{uuid4().hex[:6]}@test.com",
        role=role,
        class_id=class_id,
    )
    await UserRepo(store).add(user)
    return user


async def add_class(
    store: DocumentStore,
    teacher_id: str,
    name: str = "Class A",
    class_id: str | None = None,
) -> SchoolClass:
    return await ClassRepo(store).add(name, teacher_id, class_id)


async def add_course(
    store: DocumentStore,
    teacher_id: str,
    title: str = "Course X",
    topics: dict[str, list[tuple[str, str]]] | None = None,
) -> Course:
    """Create a course; `topics` maps topic name -> [(video_id, title)]."""
    repo = CourseRepo(store)
    course = await repo.add(title, teacher_id)
    for name, videos in (topics or {}).items():
        await repo.set_topic(
            course.id, name, [Video(video_id=vid, title=t) for vid, t in videos]
        )
    loaded = await repo.get_by_id(course.id)
    assert loaded is not None
    return loaded


async def assigned(store: DocumentStore, content: Content) -> list[Assignment]:
    """Every stored assignment of `content`."""
    docs = await store.query(ASSIGNMENTS)
    return [a for a in decode_assignments(docs) if a.content == content]


def seed(coro: Any) -> Any:
    """Run a seed coroutine against the shared store from a sync API test."""
    return asyncio.run(coro)


def topic(name: str, *video_ids: str) -> Topic:
    videos = tuple(Video(video_id=v, title=v.upper()) for v in video_ids)
    return Topic(name=name, videos=videos)


class FailingStore:
    """Wraps a store and raises StorageError from the named operations."""

    def __init__(self, inner: DocumentStore, *failing: str) -> None:
        self._inner = inner
        self.failing = set(failing)

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._inner, name)
        if name in self.failing:

            async def _fail(*args: Any, **kwargs: Any) -> Any:
                raise StorageError(f"{name} unavailable")

            return _fail
        return attr
