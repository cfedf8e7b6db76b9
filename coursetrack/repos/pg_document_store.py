"""PostgreSQL implementation of DocumentStore.

Documents live in the single `documents` table (collection, id, JSONB).
Each store call runs in its own short transaction.

Every write path first takes a transaction-scoped advisory lock on the
(collection, id) key.  Row locks (SELECT ... FOR UPDATE) cannot protect a
document that does not exist yet, and the progress tracker's first sample
for a (student, video) pair is exactly that case.  With the advisory lock,
two concurrent read-compare-write transactions on the same key run one
after the other, and an atomic increment can never be clobbered by a
transaction that read the document before the increment landed.

Creates and transactional queries also take a per-collection advisory
lock, so a transaction that queries and then deletes the matches cannot
miss a row inserted while it runs.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import sqlalchemy as sa
from sqlalchemy import delete, false, func, or_, select, update
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursetrack.db.tables import DocumentRow
from coursetrack.repos.document_store import (
    Document,
    DocumentExistsError,
    DocumentNotFoundError,
    Eq,
    In,
    Predicate,
    StorageError,
    Transaction,
    new_document_id,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _equals(field_name: str, value: Any) -> sa.ColumnElement[bool]:
    if value is None:
        # ->> yields NULL both for a JSON null and for a missing key
        return DocumentRow.data[field_name].astext.is_(None)
    return DocumentRow.data.contains({field_name: value})


def _clause(predicate: Predicate) -> sa.ColumnElement[bool]:
    if isinstance(predicate, Eq):
        return _equals(predicate.field, predicate.value)
    if isinstance(predicate, In):
        if not predicate.values:
            return false()
        return or_(*(_equals(predicate.field, v) for v in predicate.values))
    raise TypeError(f"unsupported predicate {predicate!r}")


async def _lock_key(session: AsyncSession, collection: str, doc_id: str) -> None:
    key = f"{collection}/{doc_id}"
    await session.execute(select(func.pg_advisory_xact_lock(func.hashtext(key))))


async def _lock_collection(session: AsyncSession, collection: str) -> None:
    # Creates and transactional queries in one collection queue on this key.
    await _lock_key(session, collection, "*")


async def _select(
    session: AsyncSession, collection: str, predicates: Sequence[Predicate]
) -> list[Document]:
    stmt = (
        select(DocumentRow)
        .where(DocumentRow.collection == collection, *map(_clause, predicates))
        .order_by(DocumentRow.id)
    )
    rows = (await session.execute(stmt)).scalars().all()
    return [Document(id=row.id, data=dict(row.data)) for row in rows]


async def _upsert_merge(
    session: AsyncSession, collection: str, doc_id: str, data: dict[str, Any]
) -> None:
    stmt = pg_insert(DocumentRow).values(collection=collection, id=doc_id, data=data)
    stmt = stmt.on_conflict_do_update(
        index_elements=[DocumentRow.collection, DocumentRow.id],
        set_={"data": DocumentRow.data.op("||")(stmt.excluded.data)},
    )
    await session.execute(stmt)


async def _replace(
    session: AsyncSession, collection: str, doc_id: str, data: dict[str, Any]
) -> None:
    stmt = pg_insert(DocumentRow).values(collection=collection, id=doc_id, data=data)
    stmt = stmt.on_conflict_do_update(
        index_elements=[DocumentRow.collection, DocumentRow.id],
        set_={"data": stmt.excluded.data},
    )
    await session.execute(stmt)


class _PgTransaction:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, collection: str, doc_id: str) -> Document | None:
        await _lock_key(self._session, collection, doc_id)
        stmt = select(DocumentRow).where(
            DocumentRow.collection == collection, DocumentRow.id == doc_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return Document(id=row.id, data=dict(row.data))

    async def query(
        self, collection: str, predicates: Sequence[Predicate] = ()
    ) -> list[Document]:
        await _lock_collection(self._session, collection)
        return await _select(self._session, collection, predicates)

    async def set(
        self, collection: str, doc_id: str, data: dict[str, Any], *, merge: bool = False
    ) -> None:
        await _lock_key(self._session, collection, doc_id)
        if merge:
            await _upsert_merge(self._session, collection, doc_id, data)
        else:
            await _replace(self._session, collection, doc_id, data)

    async def create(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = new_document_id()
        await _lock_collection(self._session, collection)
        self._session.add(DocumentRow(collection=collection, id=doc_id, data=data))
        await self._session.flush()
        return doc_id

    async def delete(self, collection: str, doc_id: str) -> None:
        await _lock_key(self._session, collection, doc_id)
        await self._session.execute(
            delete(DocumentRow).where(
                DocumentRow.collection == collection, DocumentRow.id == doc_id
            )
        )


class PgDocumentStore:
    """Satisfies the DocumentStore Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session inside a transaction; commit on success.

        Database errors surface as StorageError with the driver's message.
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.exception("Document store operation failed")
            raise StorageError(str(e)) from e

    async def get(self, collection: str, doc_id: str) -> Document | None:
        async with self._session() as session:
            row = await session.get(DocumentRow, (collection, doc_id))
            if row is None:
                return None
            return Document(id=row.id, data=dict(row.data))

    async def query(
        self, collection: str, predicates: Sequence[Predicate] = ()
    ) -> list[Document]:
        async with self._session() as session:
            return await _select(session, collection, predicates)

    async def create(
        self, collection: str, data: dict[str, Any], *, doc_id: str | None = None
    ) -> str:
        doc_id = doc_id or new_document_id()
        async with self._session() as session:
            await _lock_collection(session, collection)
            session.add(DocumentRow(collection=collection, id=doc_id, data=data))
            try:
                await session.flush()
            except IntegrityError:
                raise DocumentExistsError(
                    f"{collection}/{doc_id} already exists"
                ) from None
        return doc_id

    async def set_with_merge(
        self, collection: str, doc_id: str, data: dict[str, Any]
    ) -> None:
        async with self._session() as session:
            await _lock_key(session, collection, doc_id)
            await _upsert_merge(session, collection, doc_id, data)

    async def update_field(
        self, collection: str, doc_id: str, path: str, value: Any
    ) -> None:
        stmt = (
            update(DocumentRow)
            .where(DocumentRow.collection == collection, DocumentRow.id == doc_id)
            .values(
                data=func.jsonb_set(
                    DocumentRow.data,
                    sa.literal(path.split("."), ARRAY(sa.Text)),
                    sa.literal(value, JSONB),
                    True,
                )
            )
        )
        async with self._session() as session:
            await _lock_key(session, collection, doc_id)
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise DocumentNotFoundError(f"{collection}/{doc_id}")

    async def atomic_increment(
        self,
        collection: str,
        doc_id: str,
        field_name: str,
        delta: int,
        *,
        defaults: dict[str, Any] | None = None,
    ) -> int:
        initial = {**(defaults or {}), field_name: delta}
        current = func.coalesce(DocumentRow.data[field_name].astext.cast(sa.Integer), 0)
        stmt = pg_insert(DocumentRow).values(
            collection=collection, id=doc_id, data=initial
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[DocumentRow.collection, DocumentRow.id],
            set_={
                "data": DocumentRow.data.op("||")(
                    func.jsonb_build_object(field_name, current + delta)
                )
            },
        ).returning(DocumentRow.data)
        async with self._session() as session:
            await _lock_key(session, collection, doc_id)
            data = (await session.execute(stmt)).scalar_one()
            return int(data[field_name])

    async def delete(self, collection: str, doc_id: str) -> bool:
        stmt = delete(DocumentRow).where(
            DocumentRow.collection == collection, DocumentRow.id == doc_id
        )
        async with self._session() as session:
            await _lock_key(session, collection, doc_id)
            result = await session.execute(stmt)
            return result.rowcount > 0

    async def transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        async with self._session() as session:
            return await fn(_PgTransaction(session))
