"""SQLAlchemy table definitions.

Every collection (users, classes, courses, assignments, progress,
identities) lives in one table keyed by (collection, id) with the document
body in a JSONB column.  Collections are correlated only by id references
inside the documents, so no foreign keys are declared.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from coursetrack.db.engine import Base


class DocumentRow(Base):
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    __table_args__ = (
        # Containment queries (data @> '{"classId": "..."}') per collection
        Index("ix_documents_data", "data", postgresql_using="gin"),
    )
