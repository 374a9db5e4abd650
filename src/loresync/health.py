"""Staleness scoring and document / project health."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from loresync._utils import as_utc, round_half_up, to_jsonable, utcnow
from loresync.config import EngineConfig, StalenessThresholds
from loresync.repositories import ActivityRepository, DocumentRepository

if TYPE_CHECKING:
    from collections import Counter

    from loresync._db import Database
    from loresync.models import Document


class StalenessLevel(str, Enum):
    FRESH = "fresh"
    AGING = "aging"
    STALE = "stale"
    CRITICAL = "critical"

    @property
    def weight(self) -> int:
        """Contribution of one document at this level to the health score."""
        return _WEIGHTS[self]

    @property
    def severity(self) -> int:
        """Sort rank, worst first."""
        return _SEVERITY[self]


_WEIGHTS = {
    StalenessLevel.FRESH: 100,
    StalenessLevel.AGING: 70,
    StalenessLevel.STALE: 30,
    StalenessLevel.CRITICAL: 0,
}
_SEVERITY = {
    StalenessLevel.CRITICAL: 0,
    StalenessLevel.STALE: 1,
    StalenessLevel.AGING: 2,
    StalenessLevel.FRESH: 3,
}
_ACTIONS = {
    StalenessLevel.FRESH: None,
    StalenessLevel.AGING: "Review for accuracy",
    StalenessLevel.STALE: "Update recommended",
    StalenessLevel.CRITICAL: "Urgent update required",
}


@dataclass(frozen=True, slots=True)
class StalenessResult:
    """Staleness of one document.

    Attributes:
        level: Staleness level, from the usage-weighted age.
        days_stale: Whole days since the last update.
        effective_days: Age after usage weighting (equal to *days_stale* without reads).
        last_updated: When the document last changed.
        suggested_action: What a maintainer should do, if anything.
    """

    level: StalenessLevel
    days_stale: int
    effective_days: int
    last_updated: datetime
    suggested_action: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


@dataclass(frozen=True, slots=True)
class DocumentHealth:
    document_id: str
    title: str
    file_path: str
    staleness: StalenessResult
    read_count: int = 0
    search_hit_rate: int = 0

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


@dataclass(frozen=True, slots=True)
class ProjectHealth:
    """Staleness summary of a project; ``documents`` is sorted worst first."""

    project_id: str
    total_docs: int
    fresh_docs: int
    aging_docs: int
    stale_docs: int
    critical_docs: int
    overall_score: int
    documents: list[DocumentHealth] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


def usage_multiplier(read_count: int, *, read_cap: int = 10, max_boost: float = 0.5) -> float:
    """Age multiplier for recently read documents: heavily used docs go stale sooner."""
    if read_count <= 0 or read_cap <= 0:
        return 1.0
    return 1.0 + min(read_count, read_cap) / read_cap * max_boost


def level_for(days: int, thresholds: StalenessThresholds) -> StalenessLevel:
    if days < thresholds.fresh_days:
        return StalenessLevel.FRESH
    if days < thresholds.aging_days:
        return StalenessLevel.AGING
    if days < thresholds.stale_days:
        return StalenessLevel.STALE
    return StalenessLevel.CRITICAL


def calculate_staleness(
    last_updated: datetime,
    now: datetime | None = None,
    read_count: int = 0,
    *,
    config: EngineConfig | None = None,
) -> StalenessResult:
    """Classify a document by how long ago it changed.

    Future timestamps count as zero days old.
    """
    config = config or EngineConfig()
    last = as_utc(last_updated)
    now = as_utc(now) if now is not None else utcnow()
    days = max(0, math.floor((now - last).total_seconds() / 86400))
    multiplier = usage_multiplier(
        read_count, read_cap=config.usage_read_cap, max_boost=config.usage_max_boost
    )
    effective = math.floor(days * multiplier)
    level = level_for(effective, config.staleness)
    return StalenessResult(
        level=level,
        days_stale=days,
        effective_days=effective,
        last_updated=last,
        suggested_action=_ACTIONS[level],
    )


def health_score(levels: list[StalenessLevel]) -> int:
    """Weighted score 0-100; an empty project scores 0."""
    if not levels:
        return 0
    return round_half_up(sum(level.weight for level in levels) / len(levels))


class HealthScorer:
    """Computes staleness-based health from documents and the activity log."""

    def __init__(self, db: Database, config: EngineConfig | None = None) -> None:
        self._db = db
        self._config = config or EngineConfig()
        self._documents = DocumentRepository()
        self._activity = ActivityRepository()

    def _window_start(self, now: datetime) -> datetime:
        return now - timedelta(days=self._config.usage_window_days)

    def _health(
        self,
        doc: Document,
        now: datetime,
        read_counts: dict[str, int],
        searches: int,
        hits: Counter[str],
    ) -> DocumentHealth:
        reads = read_counts.get(doc.id, 0)
        rate = round_half_up(hits.get(doc.id, 0) * 100 / searches) if searches else 0
        return DocumentHealth(
            document_id=doc.id,
            title=doc.title,
            file_path=doc.file_path,
            staleness=calculate_staleness(doc.last_updated, now, reads, config=self._config),
            read_count=reads,
            search_hit_rate=rate,
        )

    async def get_document_health(self, document_id: str, project_id: str) -> DocumentHealth | None:
        now = utcnow()
        since = self._window_start(now)
        async with self._db.session() as session:
            doc = await self._documents.get(session, project_id, document_id)
            if doc is None:
                return None
            read_counts = await self._activity.read_counts(session, project_id, since)
            searches, hits = await self._activity.search_stats(session, project_id, since)
        return self._health(doc, now, read_counts, searches, hits)

    async def get_project_health(self, project_id: str) -> ProjectHealth:
        now = utcnow()
        since = self._window_start(now)
        async with self._db.session() as session:
            docs = await self._documents.list_for_project(session, project_id)
            read_counts = await self._activity.read_counts(session, project_id, since)
            searches, hits = await self._activity.search_stats(session, project_id, since)

        documents = [self._health(doc, now, read_counts, searches, hits) for doc in docs]
        documents.sort(key=lambda d: (d.staleness.level.severity, -d.staleness.effective_days, d.file_path))
        levels = [d.staleness.level for d in documents]
        return ProjectHealth(
            project_id=project_id,
            total_docs=len(documents),
            fresh_docs=levels.count(StalenessLevel.FRESH),
            aging_docs=levels.count(StalenessLevel.AGING),
            stale_docs=levels.count(StalenessLevel.STALE),
            critical_docs=levels.count(StalenessLevel.CRITICAL),
            overall_score=health_score(levels),
            documents=documents,
        )

    async def get_documents_needing_attention(self, project_id: str, limit: int = 10) -> list[DocumentHealth]:
        """Stale and critical documents, critical first, then oldest first."""
        health = await self.get_project_health(project_id)
        flagged = [
            d
            for d in health.documents
            if d.staleness.level in (StalenessLevel.STALE, StalenessLevel.CRITICAL)
        ]
        return flagged[:limit]
