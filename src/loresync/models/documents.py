"""Document and DocumentHistory models.

``Document`` holds the live (title, content) of one file in one project.
``DocumentHistory`` is append-only: one row per version transition, holding
the state the document had *before* the change.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


class Document(SQLModel, table=True):
    """A versioned knowledge document: ``documents``."""

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("project_id", "file_path", name="uq_documents_project_path"),)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    project_id: str = Field(index=True)
    file_path: str = Field(index=True)
    title: str = Field(default="")
    content: str = Field(default="")
    checksum: str = Field(default="")
    version: int = Field(default=1)
    doc_type: str | None = Field(default=None, index=True)
    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )


class DocumentHistory(SQLModel, table=True):
    """Immutable snapshot of a prior document version: ``document_history``."""

    __tablename__ = "document_history"
    __table_args__ = (
        UniqueConstraint("document_id", "version", name="uq_document_history_version"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    document_id: str = Field(index=True)
    version: int
    title: str = Field(default="")
    content: str = Field(default="")
    archived_by: str | None = Field(default=None)
    change_source: str = Field(default="sync")
    archived_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
