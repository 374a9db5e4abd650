"""SearchEngine: tenant-scoped vector search, chunk reads, and document reads."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from loresync._utils import as_utc, truncate
from loresync.config import EngineConfig
from loresync.repositories import DocumentRepository, EmbeddingRepository
from loresync.search.ranking import (
    aggregate_by_document,
    hit_sort_key,
    presentation_type,
    score_chunks,
    top_with_ties,
)
from loresync.search.similarity import trigram_similarity
from loresync.search.types import (
    ChunkContent,
    ChunkHit,
    DocumentView,
    ReadResult,
    SearchHit,
    Suggestion,
)

if TYPE_CHECKING:
    from loresync._db import Database
    from loresync.embeddings import EmbeddingGateway
    from loresync.models import Document
    from loresync.search.ranking import ScoredChunk

logger = logging.getLogger(__name__)


class SearchEngine:
    """Answers queries against one project's slice of the index.

    The project filter is applied in SQL before any similarity is computed,
    so vectors of other projects are never scored.
    """

    def __init__(
        self,
        db: Database,
        gateway: EmbeddingGateway,
        config: EngineConfig | None = None,
        *,
        documents: DocumentRepository | None = None,
        embeddings: EmbeddingRepository | None = None,
    ) -> None:
        self._db = db
        self._gateway = gateway
        self._config = config or EngineConfig()
        self._documents = documents or DocumentRepository()
        self._embeddings = embeddings or EmbeddingRepository()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_documents(
        self,
        query: str,
        project_id: str,
        *,
        limit: int | None = None,
    ) -> list[SearchHit]:
        """Rank the project's documents by their best-matching chunk."""
        limit = self._config.search_limit if limit is None else limit
        scored = await self._scored_chunks(query, project_id)
        if not scored or limit <= 0:
            return []

        ranked = top_with_ties(sorted(aggregate_by_document(scored), key=lambda d: -d.relevance), limit)
        documents = await self._fetch_documents(project_id, [d.document_id for d in ranked])

        hits: list[SearchHit] = []
        for item in ranked:
            doc = documents.get(item.document_id)
            if doc is None:
                # Deleted between the scan and the fetch
                continue
            hits.append(
                SearchHit(
                    id=doc.id,
                    title=doc.title,
                    path=doc.file_path,
                    snippet=truncate(item.best.content, self._config.snippet_chars),
                    relevance=round(item.relevance, 6),
                    type=presentation_type(doc),
                    version=doc.version,
                    last_updated=as_utc(doc.last_updated),
                )
            )
        hits.sort(key=lambda h: hit_sort_key(h.relevance, h.last_updated))
        return hits[:limit]

    async def search_chunks(
        self,
        query: str,
        project_id: str,
        *,
        limit: int | None = None,
    ) -> list[ChunkHit]:
        """Chunk-level results with short previews, best first."""
        limit = self._config.candidate_pool if limit is None else limit
        scored = (await self._scored_chunks(query, project_id))[:limit]
        if not scored:
            return []

        documents = await self._fetch_documents(project_id, list({s.chunk.document_id for s in scored}))
        hits: list[ChunkHit] = []
        for item in scored:
            doc = documents.get(item.chunk.document_id)
            if doc is None:
                continue
            hits.append(
                ChunkHit(
                    chunk_id=item.chunk.id,
                    document_id=doc.id,
                    title=doc.title,
                    path=doc.file_path,
                    type=presentation_type(doc),
                    chunk_index=item.chunk.chunk_index,
                    preview=truncate(item.chunk.content, self._config.preview_chars),
                    relevance=round(item.similarity, 6),
                )
            )
        return hits

    async def read_chunks(self, chunk_ids: list[str], project_id: str) -> list[ChunkContent]:
        """Full content of the given chunks; ids outside the project are dropped."""
        max_ids = self._config.max_read_chunks
        if len(chunk_ids) > max_ids:
            msg = f"At most {max_ids} chunk ids per call, got {len(chunk_ids)}"
            raise ValueError(msg)

        async with self._db.session() as session:
            chunks = await self._embeddings.get_chunks(session, project_id, chunk_ids)
            documents = await self._documents.get_many(
                session, project_id, list({c.document_id for c in chunks})
            )
        return [
            ChunkContent(
                chunk_id=c.id,
                document_id=c.document_id,
                title=documents[c.document_id].title,
                path=documents[c.document_id].file_path,
                chunk_index=c.chunk_index,
                content=c.content,
                metadata=c.metadata,
            )
            for c in chunks
            if c.document_id in documents
        ]

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def read_document(self, identifier: str, project_id: str) -> ReadResult:
        """Exact lookup by id, path, or title; near-miss suggestions otherwise."""
        async with self._db.session() as session:
            doc = await self._documents.find(session, project_id, identifier)
            if doc is None:
                candidates = await self._documents.list_for_project(session, project_id)
        if doc is not None:
            return ReadResult(found=True, document=_view(doc))

        logger.debug("No document %r in %s; ranking suggestions", identifier, project_id)
        return ReadResult(found=False, suggestions=self._suggest(identifier, candidates))

    def _suggest(self, identifier: str, documents: list[Document]) -> list[Suggestion]:
        scored: list[Suggestion] = []
        for doc in documents:
            score = max(
                trigram_similarity(identifier, doc.file_path),
                trigram_similarity(identifier, doc.title),
            )
            if score > 0:
                scored.append(Suggestion(id=doc.id, path=doc.file_path, title=doc.title, score=round(score, 6)))
        scored.sort(key=lambda s: (-s.score, s.path))
        return scored[: self._config.suggestion_limit]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _scored_chunks(self, query: str, project_id: str) -> list[ScoredChunk]:
        if not query.strip():
            return []
        vector = await self._gateway.embed(query)
        async with self._db.session() as session:
            candidates = await self._embeddings.candidates(session, project_id)
        logger.debug("Scoring %d candidate chunks for project %s", len(candidates), project_id)
        return score_chunks(
            vector,
            candidates,
            min_similarity=self._config.min_similarity,
            pool=self._config.candidate_pool,
        )

    async def _fetch_documents(self, project_id: str, ids: list[str]) -> dict[str, Document]:
        """Fetch documents by id, one independent fetch each when the database allows it."""
        if not self._db.concurrent_sessions:
            async with self._db.session() as session:
                return await self._documents.get_many(session, project_id, ids)

        async def _one(document_id: str) -> Document | None:
            async with self._db.session() as session:
                return await self._documents.get(session, project_id, document_id)

        fetched = await asyncio.gather(*(_one(i) for i in ids))
        return {doc.id: doc for doc in fetched if doc is not None}


def _view(doc: Document) -> DocumentView:
    return DocumentView(
        id=doc.id,
        title=doc.title,
        path=doc.file_path,
        content=doc.content,
        type=presentation_type(doc),
        version=doc.version,
        last_updated=as_utc(doc.last_updated),
    )
