"""Document store protocol and in-memory implementation.

Every collection (users, classes, courses, assignments, progress,
identities) is a flat mapping of document id -> JSON-like dict.  The
typed repositories in this package sit on top of this protocol and convert
documents to the frozen domain dataclasses in coursetrack.models.

Queries support field equality and field-in-list predicates combined with
AND only.  A missing field compares equal to None, so Eq("classId", None)
matches both `{"classId": null}` and documents without the key.

Transactions follow a read-then-write model: the callback reads through
the Transaction handle and stages writes on it; staged writes are applied
together when the callback returns and discarded if it raises.  Do not
call the store itself from inside a transaction callback.

A query made through the Transaction handle sees no create() into that
collection land before the transaction ends, so a callback can delete
"everything that matches" without missing a concurrent insert.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar
from uuid import uuid4

T = TypeVar("T")


class DocumentNotFoundError(KeyError):
    """A write targeted a document that does not exist."""


class DocumentExistsError(ValueError):
    """create() was given an id that is already taken."""


class StorageError(Exception):
    """The backing store failed (connection, permission, quota...)."""


@dataclass(frozen=True, slots=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True, slots=True)
class In:
    field: str
    values: tuple[Any, ...]


Predicate = Eq | In


@dataclass(frozen=True, slots=True)
class Document:
    id: str
    data: dict[str, Any] = field(default_factory=dict)


def new_document_id() -> str:
    return uuid4().hex


class Transaction(Protocol):
    async def get(self, collection: str, doc_id: str) -> Document | None: ...
    async def query(
        self, collection: str, predicates: Sequence[Predicate] = ()
    ) -> list[Document]: ...
    async def set(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False
    ) -> None: ...
    async def create(self, collection: str, data: dict[str, Any]) -> str: ...
    async def delete(self, collection: str, doc_id: str) -> None: ...


class DocumentStore(Protocol):
    async def get(self, collection: str, doc_id: str) -> Document | None: ...
    async def query(
        self, collection: str, predicates: Sequence[Predicate] = ()
    ) -> list[Document]: ...
    async def create(
        self, collection: str, data: dict[str, Any], *, doc_id: str | None = None
    ) -> str: ...
    async def set_with_merge(
        self, collection: str, doc_id: str, data: dict[str, Any]
    ) -> None: ...
    async def update_field(
        self, collection: str, doc_id: str, path: str, value: Any
    ) -> None: ...
    async def atomic_increment(
        self,
        collection: str,
        doc_id: str,
        field_name: str,
        delta: int,
        *,
        defaults: dict[str, Any] | None = None,
    ) -> int: ...
    async def delete(self, collection: str, doc_id: str) -> bool: ...
    async def transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T: ...


def matches(data: dict[str, Any], predicates: Sequence[Predicate]) -> bool:
    """Evaluate a conjunction of predicates against one document body."""
    for predicate in predicates:
        if isinstance(predicate, Eq):
            if data.get(predicate.field) != predicate.value:
                return False
        elif isinstance(predicate, In):
            if data.get(predicate.field) not in predicate.values:
                return False
        else:
            raise TypeError(f"unsupported predicate {predicate!r}")
    return True


def _set_path(data: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


class _InMemoryTransaction:
    def __init__(self, store: InMemoryDocumentStore) -> None:
        self._store = store
        self._writes: list[Callable[[], None]] = []

    async def get(self, collection: str, doc_id: str) -> Document | None:
        return self._store._read(collection, doc_id)

    async def query(
        self, collection: str, predicates: Sequence[Predicate] = ()
    ) -> list[Document]:
        return await self._store.query(collection, predicates)

    async def set(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False
    ) -> None:
        staged = copy.deepcopy(data)
        self._writes.append(
            lambda: self._store._write(collection, doc_id, staged, merge=merge)
        )

    async def create(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = new_document_id()
        await self.set(collection, doc_id, data)
        return doc_id

    async def delete(self, collection: str, doc_id: str) -> None:
        self._writes.append(
            lambda: self._store._collection(collection).pop(doc_id, None)
        )

    def commit(self) -> None:
        for write in self._writes:
            write()


class InMemoryDocumentStore:
    """In-memory store for dev and tests.

    All writes and whole transactions run under one asyncio.Lock, so a
    read-compare-write transaction can never interleave with another write.
    The autouse fixture in conftest.py clears `_collections` between tests.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def _read(self, collection: str, doc_id: str) -> Document | None:
        data = self._collection(collection).get(doc_id)
        if data is None:
            return None
        return Document(id=doc_id, data=copy.deepcopy(data))

    def _write(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool
    ) -> None:
        docs = self._collection(collection)
        if merge and doc_id in docs:
            docs[doc_id].update(copy.deepcopy(data))
        else:
            docs[doc_id] = copy.deepcopy(data)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        return self._read(collection, doc_id)

    async def query(
        self, collection: str, predicates: Sequence[Predicate] = ()
    ) -> list[Document]:
        return [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collection(collection).items()
            if matches(data, predicates)
        ]

    async def create(
        self, collection: str, data: dict[str, Any], *, doc_id: str | None = None
    ) -> str:
        doc_id = doc_id or new_document_id()
        async with self._lock:
            if doc_id in self._collection(collection):
                raise DocumentExistsError(f"{collection}/{doc_id} already exists")
            self._write(collection, doc_id, data, merge=False)
        return doc_id

    async def set_with_merge(
        self, collection: str, doc_id: str, data: dict[str, Any]
    ) -> None:
        async with self._lock:
            self._write(collection, doc_id, data, merge=True)

    async def update_field(
        self, collection: str, doc_id: str, path: str, value: Any
    ) -> None:
        async with self._lock:
            data = self._collection(collection).get(doc_id)
            if data is None:
                raise DocumentNotFoundError(f"{collection}/{doc_id}")
            _set_path(data, path, copy.deepcopy(value))

    async def atomic_increment(
        self,
        collection: str,
        doc_id: str,
        field_name: str,
        delta: int,
        *,
        defaults: dict[str, Any] | None = None,
    ) -> int:
        async with self._lock:
            docs = self._collection(collection)
            data = docs.get(doc_id)
            if data is None:
                data = copy.deepcopy(defaults or {})
                docs[doc_id] = data
            data[field_name] = int(data.get(field_name) or 0) + delta
            return data[field_name]

    async def delete(self, collection: str, doc_id: str) -> bool:
        async with self._lock:
            return self._collection(collection).pop(doc_id, None) is not None

    async def transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        async with self._lock:
            tx = _InMemoryTransaction(self)
            result = await fn(tx)
            tx.commit()
            return result
