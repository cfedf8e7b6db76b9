"""Module-level document store singleton.

Follows the engine.py/redis.py pattern: PostgreSQL when DATABASE_URL is
configured, the in-memory store otherwise.
"""

from __future__ import annotations

from coursetrack.db.engine import async_session_factory
from coursetrack.repos.document_store import DocumentStore, InMemoryDocumentStore
from coursetrack.repos.pg_document_store import PgDocumentStore

if async_session_factory is not None:
    document_store: DocumentStore = PgDocumentStore(async_session_factory)
else:
    document_store = InMemoryDocumentStore()


def get_store() -> DocumentStore:
    """FastAPI dependency returning the process-wide document store."""
    return document_store
