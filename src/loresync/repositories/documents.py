"""DocumentRepository: stateless CRUD for documents and their history."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, or_
from sqlalchemy import update as sa_update
from sqlmodel import select

from loresync.models import Document, DocumentHistory

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession


class DocumentRepository:
    """Queries over ``documents`` and ``document_history``.

    Never creates, commits, or closes sessions; callers own the
    transaction.  Every lookup takes the project id.
    """

    async def get(self, session: AsyncSession, project_id: str, document_id: str) -> Document | None:
        result = await session.execute(
            select(Document).where(
                Document.project_id == project_id,
                Document.id == document_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_path(self, session: AsyncSession, project_id: str, file_path: str) -> Document | None:
        result = await session.execute(
            select(Document).where(
                Document.project_id == project_id,
                Document.file_path == file_path,
            )
        )
        return result.scalar_one_or_none()

    async def find(self, session: AsyncSession, project_id: str, identifier: str) -> Document | None:
        """Exact match on id, file path, or title; id and path win over title."""
        result = await session.execute(
            select(Document).where(
                Document.project_id == project_id,
                or_(
                    Document.id == identifier,  # type: ignore[arg-type]
                    Document.file_path == identifier,  # type: ignore[arg-type]
                    Document.title == identifier,  # type: ignore[arg-type]
                ),
            )
        )
        matches = list(result.scalars().all())
        for doc in matches:
            if identifier in (doc.id, doc.file_path):
                return doc
        if not matches:
            return None
        return min(matches, key=lambda d: d.file_path)

    async def list_for_project(self, session: AsyncSession, project_id: str) -> list[Document]:
        result = await session.execute(
            select(Document).where(Document.project_id == project_id).order_by(Document.file_path)
        )
        return list(result.scalars().all())

    async def get_many(self, session: AsyncSession, project_id: str, ids: list[str]) -> dict[str, Document]:
        if not ids:
            return {}
        result = await session.execute(
            select(Document).where(
                Document.project_id == project_id,
                Document.id.in_(ids),  # type: ignore[union-attr]
            )
        )
        return {doc.id: doc for doc in result.scalars().all()}

    async def count(self, session: AsyncSession, project_id: str) -> int:
        result = await session.execute(
            select(func.count()).select_from(Document).where(Document.project_id == project_id)
        )
        return int(result.scalar_one())

    async def last_updated(self, session: AsyncSession, project_id: str) -> datetime | None:
        result = await session.execute(
            select(func.max(Document.last_updated)).where(Document.project_id == project_id)
        )
        return result.scalar_one_or_none()

    def add(self, session: AsyncSession, document: Document) -> None:
        session.add(document)

    async def compare_and_set(
        self,
        session: AsyncSession,
        document_id: str,
        expected_version: int,
        *,
        title: str,
        content: str,
        checksum: str,
        doc_type: str | None,
        last_updated: datetime,
    ) -> bool:
        """Apply new values with ``version + 1`` only if the stored version is still *expected_version*."""
        result = await session.execute(
            sa_update(Document)
            .where(
                Document.id == document_id,  # type: ignore[arg-type]
                Document.version == expected_version,  # type: ignore[arg-type]
            )
            .values(
                title=title,
                content=content,
                checksum=checksum,
                doc_type=doc_type,
                last_updated=last_updated,
                version=Document.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def delete(self, session: AsyncSession, document_id: str) -> None:
        """Delete the document row and its history."""
        await session.execute(
            sa_delete(DocumentHistory).where(DocumentHistory.document_id == document_id)  # type: ignore[arg-type]
        )
        await session.execute(sa_delete(Document).where(Document.id == document_id))  # type: ignore[arg-type]

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def archive(
        self,
        session: AsyncSession,
        document: Document,
        *,
        archived_by: str | None,
        change_source: str,
    ) -> DocumentHistory:
        """Record *document*'s current (title, content) as its current version."""
        row = DocumentHistory(
            document_id=document.id,
            version=document.version,
            title=document.title,
            content=document.content,
            archived_by=archived_by,
            change_source=change_source,
        )
        session.add(row)
        return row

    async def list_history(self, session: AsyncSession, document_id: str) -> list[DocumentHistory]:
        result = await session.execute(
            select(DocumentHistory)
            .where(DocumentHistory.document_id == document_id)
            .order_by(DocumentHistory.version.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def get_history_version(
        self,
        session: AsyncSession,
        document_id: str,
        version: int,
    ) -> DocumentHistory | None:
        result = await session.execute(
            select(DocumentHistory).where(
                DocumentHistory.document_id == document_id,
                DocumentHistory.version == version,
            )
        )
        return result.scalar_one_or_none()
