from __future__ import annotations

from coursetrack.models.school_class import SchoolClass
from coursetrack.repos.document_store import Document, DocumentStore, Eq

CLASSES = "classes"


class ClassRepo:
    """Typed access to the `classes` collection."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def get_by_id(self, class_id: str) -> SchoolClass | None:
        doc = await self._store.get(CLASSES, class_id)
        if doc is None:
            return None
        return _doc_to_class(doc)

    async def add(
        self, name: str, teacher_id: str, class_id: str | None = None
    ) -> SchoolClass:
        doc_id = await self._store.create(
            CLASSES, {"name": name, "teacherId": teacher_id}, doc_id=class_id
        )
        return SchoolClass(id=doc_id, name=name, teacher_id=teacher_id)

    async def list_all(self) -> list[SchoolClass]:
        return [_doc_to_class(d) for d in await self._store.query(CLASSES)]

    async def list_by_teacher(self, teacher_id: str) -> list[SchoolClass]:
        docs = await self._store.query(CLASSES, [Eq("teacherId", teacher_id)])
        return [_doc_to_class(d) for d in docs]


def _doc_to_class(doc: Document) -> SchoolClass:
    return SchoolClass(
        id=doc.id,
        name=doc.data.get("name", ""),
        teacher_id=doc.data.get("teacherId", ""),
    )
