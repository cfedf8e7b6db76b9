from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from coursetrack.models.user import User
from coursetrack.repos.document_store import Document, DocumentStore, Eq, In

USERS = "users"


class UserRepo:
    """Typed access to the `users` collection."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_by_id(self, user_id: str) -> User | None:
        doc = await self._store.get(USERS, user_id)
        if doc is None:
            return None
        return _doc_to_user(doc)

    async def get_by_email(self, email: str) -> User | None:
        docs = await self._store.query(USERS, [Eq("email", email)])
        if not docs:
            return None
        return _doc_to_user(docs[0])

    async def add(self, user: User) -> None:
        # Keyed by identity id; raises DocumentExistsError on reuse.
        await self._store.create(USERS, _user_to_doc(user), doc_id=user.id)

    async def list_by_role(self, role: str) -> list[User]:
        docs = await self._store.query(USERS, [Eq("role", role)])
        return [_doc_to_user(d) for d in docs]

    async def list_students_in_class(self, class_id: str | None) -> list[User]:
        """Students of one class, or the unassigned students for None."""
        docs = await self._store.query(
            USERS, [Eq("role", "student"), Eq("classId", class_id)]
        )
        return [_doc_to_user(d) for d in docs]

    async def list_students_in_classes(self, class_ids: Sequence[str]) -> list[User]:
        if not class_ids:
            return []
        docs = await self._store.query(
            USERS, [Eq("role", "student"), In("classId", tuple(class_ids))]
        )
        return [_doc_to_user(d) for d in docs]

    async def set_class(self, user_id: str, class_id: str | None) -> None:
        await self._store.update_field(USERS, user_id, "classId", class_id)


def _user_to_doc(user: User) -> dict[str, Any]:
    return {"email": user.email, "role": user.role, "classId": user.class_id}


def _doc_to_user(doc: Document) -> User:
    return User(
        id=doc.id,
        email=doc.data.get("email", ""),
        role=doc.data.get("role", "student"),
        class_id=doc.data.get("classId") or None,
    )
