"""EmbeddingRepository: stored chunk vectors, always reached through their document's project."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete as sa_delete
from sqlalchemy import func
from sqlalchemy import update as sa_update
from sqlmodel import select

from loresync.models import Document, DocumentEmbedding

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True, slots=True)
class StoredChunk:
    """A stored chunk joined with its document's identity."""

    id: str
    document_id: str
    chunk_index: int
    content: str
    embedding: list[float]
    metadata: dict[str, Any]


class EmbeddingRepository:
    """Queries over ``document_embeddings``.

    Tenant scoping is done in SQL: every project-level query joins on
    ``documents.project_id`` so rows of other projects never leave the
    database.
    """

    async def hashes_for(self, session: AsyncSession, document_id: str) -> dict[str, DocumentEmbedding]:
        """Stored embeddings of one document, keyed by chunk hash."""
        result = await session.execute(
            select(DocumentEmbedding).where(DocumentEmbedding.document_id == document_id)
        )
        return {row.chunk_hash: row for row in result.scalars().all()}

    def add_many(self, session: AsyncSession, rows: list[DocumentEmbedding]) -> None:
        session.add_all(rows)

    async def delete_hashes(self, session: AsyncSession, document_id: str, hashes: set[str]) -> int:
        if not hashes:
            return 0
        result = await session.execute(
            sa_delete(DocumentEmbedding).where(
                DocumentEmbedding.document_id == document_id,  # type: ignore[arg-type]
                DocumentEmbedding.chunk_hash.in_(hashes),  # type: ignore[attr-defined]
            )
        )
        return int(result.rowcount or 0)  # type: ignore[attr-defined]

    async def reposition(
        self,
        session: AsyncSession,
        row_id: str,
        chunk_index: int,
        metadata: dict[str, Any],
    ) -> None:
        """Move a reused embedding to its chunk's new position."""
        await session.execute(
            sa_update(DocumentEmbedding)
            .where(DocumentEmbedding.id == row_id)  # type: ignore[arg-type]
            .values(chunk_index=chunk_index, chunk_metadata=metadata)
            .execution_options(synchronize_session=False)
        )

    async def delete_for_document(self, session: AsyncSession, document_id: str) -> int:
        result = await session.execute(
            sa_delete(DocumentEmbedding).where(DocumentEmbedding.document_id == document_id)  # type: ignore[arg-type]
        )
        return int(result.rowcount or 0)  # type: ignore[attr-defined]

    async def candidates(self, session: AsyncSession, project_id: str) -> list[StoredChunk]:
        """Every stored chunk of *project_id*; the candidate set for a similarity scan."""
        result = await session.execute(
            select(DocumentEmbedding)
            .join(Document, Document.id == DocumentEmbedding.document_id)  # type: ignore[arg-type]
            .where(Document.project_id == project_id)
            .order_by(DocumentEmbedding.document_id, DocumentEmbedding.chunk_index)
        )
        return [_stored(row) for row in result.scalars().all()]

    async def get_chunks(self, session: AsyncSession, project_id: str, ids: list[str]) -> list[StoredChunk]:
        """Chunks by id, silently dropping ids that belong to other projects."""
        if not ids:
            return []
        result = await session.execute(
            select(DocumentEmbedding)
            .join(Document, Document.id == DocumentEmbedding.document_id)  # type: ignore[arg-type]
            .where(
                Document.project_id == project_id,
                DocumentEmbedding.id.in_(ids),  # type: ignore[union-attr]
            )
        )
        by_id = {row.id: _stored(row) for row in result.scalars().all()}
        return [by_id[i] for i in dict.fromkeys(ids) if i in by_id]

    async def chunk_counts(self, session: AsyncSession, project_id: str) -> dict[str, int]:
        """Number of stored chunks per document of *project_id*."""
        result = await session.execute(
            select(DocumentEmbedding.document_id, func.count())
            .join(Document, Document.id == DocumentEmbedding.document_id)  # type: ignore[arg-type]
            .where(Document.project_id == project_id)
            .group_by(DocumentEmbedding.document_id)
        )
        return {doc_id: int(n) for doc_id, n in result.all()}


def _stored(row: DocumentEmbedding) -> StoredChunk:
    return StoredChunk(
        id=row.id,
        document_id=row.document_id,
        chunk_index=row.chunk_index,
        content=row.content_chunk,
        embedding=list(row.embedding or []),
        metadata=dict(row.chunk_metadata or {}),
    )
