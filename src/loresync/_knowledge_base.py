"""KnowledgeBase: async facade wiring storage, sync, search, history, and reports."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from loresync._db import Database
from loresync.access import AccessContext, require_editor
from loresync.activity import ActivityRecorder
from loresync.chunking import Chunker
from loresync.config import EngineConfig
from loresync.coverage import CoverageCalculator, SnapshotTrigger
from loresync.drift import DriftDetector
from loresync.embeddings import EmbeddingGateway
from loresync.events import EventBus, EventType, KnowledgeEvent
from loresync.health import HealthScorer
from loresync.search import SearchEngine
from loresync.sync import SyncEngine
from loresync.versions import VersionStore

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from loresync.coverage import CodebaseCoverage, CoverageReport, SnapshotInfo
    from loresync.drift import DriftEvidence, DriftRecord, DriftSummary, ResolveResult
    from loresync.embeddings import EmbeddingProvider
    from loresync.health import DocumentHealth, ProjectHealth
    from loresync.search import ChunkContent, ChunkHit, ReadResult, SearchHit
    from loresync.types import (
        DeleteResult,
        DiffResult,
        RollbackResult,
        SyncResult,
        SyncStatus,
        VersionContent,
        VersionInfo,
    )

logger = logging.getLogger(__name__)

_DEFAULT_URL = "sqlite+aiosqlite://"


class KnowledgeBase:
    """Async facade over one knowledge corpus shared by many projects.

    Every call takes an :class:`AccessContext`; its ``project_id`` scopes all
    reads and writes, and write-class calls require the editor role.

    Typical use::

        kb = KnowledgeBase(embedding_provider=OpenAIEmbedding(), url="sqlite+aiosqlite:///kb.db")
        await kb.create_tables()
        ctx = AccessContext("proj-1", Role.EDITOR, user_id="u1")
        await kb.sync_document(ctx, "patterns/auth.md", "Auth", "Use JWT.")
        hits = await kb.search_documents(ctx, "token auth")
    """

    def __init__(
        self,
        *,
        embedding_provider: EmbeddingProvider,
        url: str | None = None,
        engine: AsyncEngine | None = None,
        config: EngineConfig | None = None,
        record_activity: bool = True,
    ) -> None:
        self.config = config or EngineConfig()
        if engine is None and url is None:
            url = _DEFAULT_URL
        self._db = Database(url, engine=engine)
        self._provider = embedding_provider
        self._gateway = EmbeddingGateway.from_config(embedding_provider, self.config)
        self._event_bus = EventBus()

        self._sync = SyncEngine(
            self._db,
            self._gateway,
            chunker=Chunker(max_chunk_chars=self.config.max_chunk_chars),
        )
        self._search = SearchEngine(self._db, self._gateway, self.config)
        self._versions = VersionStore(self._db, self._sync)
        self._health = HealthScorer(self._db, self.config)
        self._drift = DriftDetector(self._db)
        self._coverage = CoverageCalculator(self._db)

        self._activity: ActivityRecorder | None = None
        if record_activity:
            self._activity = ActivityRecorder(self._db)
            self._activity.attach(self._event_bus)
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def database(self) -> Database:
        return self._db

    async def create_tables(self) -> None:
        await self._db.create_tables()

    async def close(self) -> None:
        """Dispose of the engine and close the provider if it supports it."""
        if self._closed:
            return
        self._closed = True
        close = getattr(self._provider, "close", None)
        if close is not None:
            try:
                await close()
            except Exception:
                logger.warning("Embedding provider close failed", exc_info=True)
        await self._db.close()

    async def __aenter__(self) -> KnowledgeBase:
        await self.create_tables()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def _emit(
        self,
        event_type: EventType,
        ctx: AccessContext,
        *,
        document_id: str | None = None,
        path: str | None = None,
        **payload: Any,
    ) -> None:
        await self._event_bus.emit(
            KnowledgeEvent(
                event_type=event_type,
                project_id=ctx.project_id,
                document_id=document_id,
                path=path,
                user_id=ctx.user_id,
                payload=payload,
            )
        )

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    async def sync_document(
        self,
        ctx: AccessContext,
        file_path: str,
        title: str,
        content: str,
        *,
        expected_version: int | None = None,
    ) -> SyncResult:
        require_editor(ctx, "sync_document")
        result = await self._sync.sync_document(
            ctx.project_id,
            file_path,
            title,
            content,
            expected_version=expected_version,
            actor=ctx.user_id,
        )
        await self._emit(
            EventType.DOCUMENT_SYNCED,
            ctx,
            document_id=result.document_id,
            path=file_path,
            version=result.version,
            chunks_indexed=result.chunks_indexed,
            chunks_reused=result.chunks_reused,
            chunks_failed=result.chunks_failed,
        )
        return result

    async def delete_document(self, ctx: AccessContext, document_id: str) -> DeleteResult:
        require_editor(ctx, "delete_document")
        result = await self._sync.delete_document(ctx.project_id, document_id)
        if result.success:
            await self._emit(
                EventType.DOCUMENT_DELETED, ctx, document_id=document_id, path=result.file_path
            )
        return result

    async def get_sync_status(self, ctx: AccessContext) -> SyncStatus:
        return await self._sync.get_sync_status(ctx.project_id)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_documents(
        self,
        ctx: AccessContext,
        query: str,
        *,
        limit: int | None = None,
    ) -> list[SearchHit]:
        started = time.perf_counter()
        hits = await self._search.search_documents(query, ctx.project_id, limit=limit)
        await self._emit(
            EventType.DOCUMENTS_SEARCHED,
            ctx,
            query=query,
            result_count=len(hits),
            response_time_ms=round((time.perf_counter() - started) * 1000),
            document_ids=[h.id for h in hits],
        )
        return hits

    async def search_chunks(
        self,
        ctx: AccessContext,
        query: str,
        *,
        limit: int | None = None,
    ) -> list[ChunkHit]:
        return await self._search.search_chunks(query, ctx.project_id, limit=limit)

    async def read_chunks(self, ctx: AccessContext, chunk_ids: list[str]) -> list[ChunkContent]:
        return await self._search.read_chunks(chunk_ids, ctx.project_id)

    async def read_document(self, ctx: AccessContext, identifier: str) -> ReadResult:
        started = time.perf_counter()
        result = await self._search.read_document(identifier, ctx.project_id)
        await self._emit(
            EventType.DOCUMENT_READ,
            ctx,
            document_id=result.document.id if result.document else None,
            path=result.document.path if result.document else identifier,
            query=identifier,
            result_count=1 if result.found else 0,
            response_time_ms=round((time.perf_counter() - started) * 1000),
        )
        return result

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    async def get_history(self, ctx: AccessContext, document_id: str) -> list[VersionInfo]:
        return await self._versions.get_history(document_id, ctx.project_id)

    async def get_version(self, ctx: AccessContext, document_id: str, version: int) -> VersionContent:
        return await self._versions.get_version(document_id, version, ctx.project_id)

    async def diff_versions(
        self,
        ctx: AccessContext,
        document_id: str,
        from_version: int,
        to_version: int,
    ) -> DiffResult:
        return await self._versions.diff_versions(document_id, from_version, to_version, ctx.project_id)

    async def rollback(self, ctx: AccessContext, document_id: str, version: int) -> RollbackResult:
        require_editor(ctx, "rollback")
        result = await self._versions.rollback(document_id, version, ctx.project_id, actor=ctx.user_id)
        if result.success:
            await self._emit(
                EventType.DOCUMENT_ROLLED_BACK,
                ctx,
                document_id=document_id,
                path=result.sync.file_path if result.sync else None,
                restored_from=version,
                version=result.version,
            )
        return result

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def get_document_health(self, ctx: AccessContext, document_id: str) -> DocumentHealth | None:
        return await self._health.get_document_health(document_id, ctx.project_id)

    async def get_project_health(self, ctx: AccessContext) -> ProjectHealth:
        return await self._health.get_project_health(ctx.project_id)

    async def get_documents_needing_attention(
        self,
        ctx: AccessContext,
        limit: int = 10,
    ) -> list[DocumentHealth]:
        return await self._health.get_documents_needing_attention(ctx.project_id, limit)

    # ------------------------------------------------------------------
    # Drift
    # ------------------------------------------------------------------

    async def detect_drift(self, ctx: AccessContext, evidence: DriftEvidence) -> DriftRecord:
        require_editor(ctx, "detect_drift")
        record = await self._drift.detect_drift(ctx.project_id, evidence)
        await self._emit(
            EventType.DRIFT_DETECTED,
            ctx,
            document_id=record.document_id,
            path=record.file_path,
            drift_id=record.id,
            severity=record.severity.value,
        )
        return record

    async def resolve_drift(
        self,
        ctx: AccessContext,
        drift_id: str,
        note: str | None = None,
    ) -> ResolveResult:
        require_editor(ctx, "resolve_drift")
        result = await self._drift.resolve_drift(drift_id, ctx.project_id, ctx.user_id, note)
        if result.success and not result.already_resolved:
            await self._emit(EventType.DRIFT_RESOLVED, ctx, drift_id=drift_id)
        return result

    async def get_drift_summary(self, ctx: AccessContext) -> DriftSummary:
        return await self._drift.get_drift_summary(ctx.project_id)

    async def get_drift_timeline(
        self,
        ctx: AccessContext,
        days: int = 30,
        include_resolved: bool = False,
    ) -> list[DriftRecord]:
        return await self._drift.get_drift_timeline(ctx.project_id, days, include_resolved)

    # ------------------------------------------------------------------
    # Coverage
    # ------------------------------------------------------------------

    async def calculate_coverage(self, ctx: AccessContext) -> CoverageReport:
        return await self._coverage.calculate_coverage(ctx.project_id)

    async def calculate_codebase_coverage(
        self,
        ctx: AccessContext,
        codebase_paths: list[str],
    ) -> CodebaseCoverage:
        return await self._coverage.calculate_codebase_coverage(ctx.project_id, codebase_paths)

    async def save_coverage_snapshot(
        self,
        ctx: AccessContext,
        report: CoverageReport,
        trigger: SnapshotTrigger | str = SnapshotTrigger.MANUAL,
    ) -> SnapshotInfo:
        require_editor(ctx, "save_coverage_snapshot")
        if report.project_id != ctx.project_id:
            msg = f"Report belongs to project {report.project_id}, caller is scoped to {ctx.project_id}"
            raise ValueError(msg)
        return await self._coverage.save_coverage_snapshot(report, trigger)

    async def get_latest_coverage(self, ctx: AccessContext) -> SnapshotInfo | None:
        return await self._coverage.get_latest_coverage(ctx.project_id)
