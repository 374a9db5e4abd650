"""Ranking: chunk scoring, per-document aggregation, and hit classification."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from loresync._utils import as_utc
from loresync.doctypes import DocType, infer_from_path
from loresync.search.similarity import cosine_scores

if TYPE_CHECKING:
    from loresync.models import Document
    from loresync.repositories import StoredChunk

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass(frozen=True, slots=True)
class ScoredChunk:
    chunk: StoredChunk
    similarity: float


@dataclass(frozen=True, slots=True)
class DocumentScore:
    """Best chunk of one document among the candidate pool."""

    document_id: str
    relevance: float
    best: StoredChunk


def score_chunks(
    query_vector: list[float],
    candidates: list[StoredChunk],
    *,
    min_similarity: float,
    pool: int,
) -> list[ScoredChunk]:
    """Top *pool* candidates at or above *min_similarity*, most similar first.

    Candidates whose vector length differs from the query are skipped.
    """
    usable = [c for c in candidates if len(c.embedding) == len(query_vector)]
    if len(usable) != len(candidates):
        logger.warning("Skipped %d candidates with mismatched dimensions", len(candidates) - len(usable))
    if not usable:
        return []

    scores = cosine_scores(query_vector, [c.embedding for c in usable])
    scored = [
        ScoredChunk(chunk=c, similarity=float(s))
        for c, s in zip(usable, scores, strict=True)
        if s >= min_similarity
    ]
    scored.sort(key=lambda s: (-s.similarity, s.chunk.document_id, s.chunk.chunk_index))
    return scored[:pool]


def aggregate_by_document(scored: list[ScoredChunk]) -> list[DocumentScore]:
    """Collapse chunk scores to one entry per document, keyed on the best chunk."""
    best: dict[str, ScoredChunk] = {}
    for item in scored:
        current = best.get(item.chunk.document_id)
        if current is None or item.similarity > current.similarity:
            best[item.chunk.document_id] = item
    return [
        DocumentScore(document_id=doc_id, relevance=item.similarity, best=item.chunk)
        for doc_id, item in best.items()
    ]


def top_with_ties(ranked: list[DocumentScore], limit: int) -> list[DocumentScore]:
    """First *limit* entries of a relevance-sorted list plus any tying the last one.

    Ties are compared at the precision hits are reported with, so recency
    can still decide between them after the cut.
    """
    if len(ranked) <= limit:
        return ranked
    cutoff = round(ranked[limit - 1].relevance, 6)
    end = limit
    while end < len(ranked) and round(ranked[end].relevance, 6) == cutoff:
        end += 1
    return ranked[:end]


def presentation_type(document: Document) -> str:
    """Category shown for a hit: the stored type, else the path convention."""
    stored = DocType.parse(document.doc_type)
    if stored is not DocType.UNCATEGORIZED:
        return stored.value
    return infer_from_path(document.file_path).value


def hit_sort_key(relevance: float, last_updated: datetime | None) -> tuple[float, float]:
    """Relevance descending, then most recently updated first."""
    updated = as_utc(last_updated) if last_updated is not None else _EPOCH
    return (-relevance, -updated.timestamp())
