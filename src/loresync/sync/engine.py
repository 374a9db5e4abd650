"""SyncEngine: incremental, hash-based reconciliation of documents with the vector index."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from loresync._utils import content_hash, utcnow
from loresync.chunking import Chunker
from loresync.doctypes import DocType, extract_doc_type
from loresync.exceptions import VersionConflictError
from loresync.models import Document, DocumentEmbedding
from loresync.repositories import DocumentRepository, EmbeddingRepository
from loresync.sync.locks import DocumentLocks
from loresync.sync.plan import ChunkPlan
from loresync.types import DeleteResult, SyncResult, SyncStatus

if TYPE_CHECKING:
    from loresync._db import Database
    from loresync.embeddings import EmbeddingGateway, EmbeddingOutcome

logger = logging.getLogger(__name__)

CHANGE_SOURCES = frozenset({"sync", "rollback"})


class _LostRace(Exception):
    """The optimistic write found the document changed since it was read."""


@dataclass(frozen=True, slots=True)
class _Snapshot:
    """What a sync pass read before doing any work."""

    document: Document | None
    stored: dict[str, DocumentEmbedding]

    @property
    def version(self) -> int:
        return self.document.version if self.document is not None else 0


class SyncEngine:
    """Keeps stored embeddings consistent with document content.

    Only chunks whose hash has no stored embedding are sent to the provider.
    All writes for one pass happen in a single transaction guarded by an
    optimistic version check, so a reader sees either the old document
    state or the new one, never a mix.
    """

    def __init__(
        self,
        db: Database,
        gateway: EmbeddingGateway,
        *,
        chunker: Chunker | None = None,
        documents: DocumentRepository | None = None,
        embeddings: EmbeddingRepository | None = None,
    ) -> None:
        self._db = db
        self._gateway = gateway
        self._chunker = chunker or Chunker()
        self._documents = documents or DocumentRepository()
        self._embeddings = embeddings or EmbeddingRepository()
        self._locks = DocumentLocks()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def sync_document(
        self,
        project_id: str,
        file_path: str,
        title: str,
        content: str,
        *,
        expected_version: int | None = None,
        actor: str | None = None,
    ) -> SyncResult:
        """Reconcile the document at *file_path* with (*title*, *content*)."""
        return await self.apply_content(
            project_id,
            file_path,
            title,
            content,
            expected_version=expected_version,
            actor=actor,
            source="sync",
        )

    async def apply_content(
        self,
        project_id: str,
        file_path: str,
        title: str,
        content: str,
        *,
        expected_version: int | None = None,
        actor: str | None = None,
        source: str = "sync",
    ) -> SyncResult:
        """Write new (title, content) for a document and bring its embeddings up to date.

        Both direct syncs and rollbacks go through here; *source* is recorded
        on the history row.  A lost race against a concurrent writer is
        retried once from a fresh read before :class:`VersionConflictError`
        is raised.
        """
        if source not in CHANGE_SOURCES:
            msg = f"Unknown change source {source!r}"
            raise ValueError(msg)

        async with self._locks.hold(project_id, file_path):
            try:
                result = await self._sync_once(
                    project_id, file_path, title, content, expected_version, actor, source
                )
            except _LostRace:
                logger.info("Concurrent update of %s in %s, retrying once", file_path, project_id)
                try:
                    result = await self._sync_once(
                        project_id, file_path, title, content, expected_version, actor, source
                    )
                except _LostRace as exc:
                    msg = f"Document {file_path} in project {project_id} changed during sync"
                    raise VersionConflictError(msg, expected=expected_version) from exc

        logger.info(
            "Synced %s in %s: v%d indexed=%d reused=%d deleted=%d failed=%d",
            file_path,
            project_id,
            result.version,
            result.chunks_indexed,
            result.chunks_reused,
            result.chunks_deleted,
            result.chunks_failed,
        )
        return result

    async def delete_document(self, project_id: str, document_id: str) -> DeleteResult:
        """Remove a document with its embeddings and history."""
        async with self._db.session() as session:
            document = await self._documents.get(session, project_id, document_id)
        if document is None:
            return DeleteResult(success=False, message=f"Document not found: {document_id}")

        async with self._locks.hold(project_id, document.file_path), self._db.session() as session:
            deleted = await self._embeddings.delete_for_document(session, document.id)
            await self._documents.delete(session, document.id)

        logger.info("Deleted %s from %s (%d embeddings)", document.file_path, project_id, deleted)
        return DeleteResult(
            success=True,
            message=f"Deleted {document.file_path}",
            document_id=document.id,
            file_path=document.file_path,
            chunks_deleted=deleted,
        )

    async def get_sync_status(self, project_id: str) -> SyncStatus:
        async with self._db.session() as session:
            count = await self._documents.count(session, project_id)
            chunk_counts = await self._embeddings.chunk_counts(session, project_id)
            last = await self._documents.last_updated(session, project_id)
        return SyncStatus(
            project_id=project_id,
            document_count=count,
            embedding_count=sum(chunk_counts.values()),
            last_synced=last,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _read(self, project_id: str, file_path: str) -> _Snapshot:
        async with self._db.session() as session:
            document = await self._documents.get_by_path(session, project_id, file_path)
            stored = await self._embeddings.hashes_for(session, document.id) if document else {}
        return _Snapshot(document=document, stored=stored)

    async def _sync_once(
        self,
        project_id: str,
        file_path: str,
        title: str,
        content: str,
        expected_version: int | None,
        actor: str | None,
        source: str,
    ) -> SyncResult:
        snapshot = await self._read(project_id, file_path)
        if expected_version is not None and expected_version != snapshot.version:
            msg = (
                f"Document {file_path} is at version {snapshot.version}, "
                f"caller expected {expected_version}"
            )
            raise VersionConflictError(msg, expected=expected_version, actual=snapshot.version)

        existing = snapshot.document
        created = existing is None
        changed = created or (existing.title, existing.content) != (title, content)  # type: ignore[union-attr]
        document_id = existing.id if existing is not None else str(uuid.uuid4())

        chunks = self._chunker.chunk(file_path, content)
        plan = ChunkPlan.build(chunks, snapshot.stored)
        for chunk in plan.insert:
            logger.debug("Chunk %d of %s needs embedding (%s)", chunk.index, file_path, chunk.chunk_hash[:12])

        outcomes = await self._gateway.embed_many([c.content for c in plan.insert]) if plan.insert else []
        rows, errors = self._collect(document_id, plan, outcomes)
        indexed_hashes = {row.chunk_hash for row in rows}
        failed_hashes = {c.chunk_hash for c in plan.insert} - indexed_hashes

        moved = [
            (snapshot.stored[h].id, chunk)
            for h, chunk in plan.first_positions.items()
            if h in plan.keep and snapshot.stored[h].chunk_index != chunk.index
        ]

        version = snapshot.version
        deleted = 0
        if changed or rows or plan.delete or moved:
            now = utcnow()
            doc_type = extract_doc_type(file_path, content)
            try:
                async with self._db.session() as session:
                    if existing is None:
                        self._documents.add(
                            session,
                            Document(
                                id=document_id,
                                project_id=project_id,
                                file_path=file_path,
                                title=title,
                                content=content,
                                checksum=content_hash(content),
                                version=1,
                                doc_type=None if doc_type is DocType.UNCATEGORIZED else doc_type.value,
                                last_updated=now,
                                created_at=now,
                            ),
                        )
                        await session.flush()
                        version = 1
                    elif changed:
                        swapped = await self._documents.compare_and_set(
                            session,
                            existing.id,
                            existing.version,
                            title=title,
                            content=content,
                            checksum=content_hash(content),
                            doc_type=None if doc_type is DocType.UNCATEGORIZED else doc_type.value,
                            last_updated=now,
                        )
                        if not swapped:
                            raise _LostRace
                        self._documents.archive(session, existing, archived_by=actor, change_source=source)
                        version = existing.version + 1

                    deleted = await self._embeddings.delete_hashes(session, document_id, set(plan.delete))
                    for row_id, chunk in moved:
                        await self._embeddings.reposition(session, row_id, chunk.index, chunk.metadata_dict())
                    self._embeddings.add_many(session, rows)
                    await session.flush()
            except IntegrityError as exc:
                raise _LostRace from exc

        return SyncResult(
            document_id=document_id,
            file_path=file_path,
            version=version,
            created=created,
            changed=changed,
            chunks_total=len(plan.chunks),
            chunks_indexed=plan.positions_for(indexed_hashes),
            chunks_reused=plan.positions_reused(),
            chunks_deleted=deleted,
            chunks_failed=plan.positions_for(failed_hashes),
            errors=errors,
        )

    def _collect(
        self,
        document_id: str,
        plan: ChunkPlan,
        outcomes: list[EmbeddingOutcome],
    ) -> tuple[list[DocumentEmbedding], list[str]]:
        rows: list[DocumentEmbedding] = []
        errors: list[str] = []
        for chunk, outcome in zip(plan.insert, outcomes, strict=True):
            if outcome.vector is None:
                errors.append(f"chunk {chunk.index} ({chunk.chunk_type.value}): {outcome.error}")
                continue
            rows.append(
                DocumentEmbedding(
                    document_id=document_id,
                    content_chunk=chunk.content,
                    chunk_hash=chunk.chunk_hash,
                    chunk_index=chunk.index,
                    embedding=outcome.vector,
                    chunk_metadata=chunk.metadata_dict(),
                    model_name=self._gateway.model_name,
                )
            )
        if errors:
            logger.warning("%d chunk(s) of %s failed to embed", len(errors), document_id)
        return rows, errors
