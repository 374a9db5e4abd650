"""DocumentEmbedding model: one stored vector per distinct chunk of a document."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


class DocumentEmbedding(SQLModel, table=True):
    """Chunk text, its hash, and its vector: ``document_embeddings``.

    ``(document_id, chunk_hash)`` is unique: an identical chunk is never
    embedded twice for the same document.
    """

    __tablename__ = "document_embeddings"
    __table_args__ = (
        UniqueConstraint("document_id", "chunk_hash", name="uq_document_embeddings_hash"),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    document_id: str = Field(index=True)
    content_chunk: str = Field(default="")
    chunk_hash: str = Field(default="")
    chunk_index: int = Field(default=0)
    embedding: list[float] = Field(default_factory=list, sa_type=JSON)
    chunk_metadata: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    model_name: str = Field(default="")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
