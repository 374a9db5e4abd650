"""Coverage: how much of the corpus is indexed, and how much of a codebase is documented."""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from loresync._utils import as_utc, round_half_up, to_jsonable
from loresync.doctypes import DocType
from loresync.models import CoverageSnapshot
from loresync.repositories import CoverageRepository, DocumentRepository, EmbeddingRepository

if TYPE_CHECKING:
    from loresync._db import Database

logger = logging.getLogger(__name__)

MAX_UNDOCUMENTED = 20


class SnapshotTrigger(str, Enum):
    MANUAL = "manual"
    SCHEDULED = "scheduled"


@dataclass(frozen=True, slots=True)
class CategoryCoverage:
    total: int = 0
    with_embeddings: int = 0
    chunks: int = 0


@dataclass(frozen=True, slots=True)
class CoverageReport:
    """Index coverage of one project.

    ``coverage_percentage`` is the share of documents with at least one
    stored embedding, rounded to a whole percent (0 for an empty project).
    """

    project_id: str
    coverage_percentage: int
    total_documents: int
    docs_with_embeddings: int
    total_chunks: int
    breakdown: dict[str, CategoryCoverage] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


@dataclass(frozen=True, slots=True)
class SnapshotInfo:
    id: str
    trigger: str
    snapshot_at: datetime
    report: CoverageReport

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


# Source path conventions, tested against "/" + path; the first matching category wins.
CONVENTION_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "api_endpoints": (
        re.compile(r"/api/.*/route\.(ts|js)$"),
        re.compile(r"/pages/api/.*\.(ts|js)$"),
        re.compile(r"/app/api/.*/route\.(ts|js)$"),
    ),
    "components": (re.compile(r"/components/.*\.(tsx|jsx)$"),),
    "testing_patterns": (
        re.compile(r"\.(test|spec)\.(ts|tsx|js|jsx)$"),
        re.compile(r"/tests?/.*\.(ts|tsx|js|jsx|py)$"),
        re.compile(r"/__tests__/.*\.(ts|tsx|js|jsx)$"),
        re.compile(r"/test_[^/]*\.py$"),
    ),
    "database_models": (
        re.compile(r"/models?/.*\.(ts|js|py)$"),
        re.compile(r"/schema\.(ts|js|py)$"),
        re.compile(r"/prisma/schema\.prisma$"),
        re.compile(r"/drizzle/.*\.(ts|js)$"),
    ),
    "architecture": (
        re.compile(r"/lib/.*\.(ts|js|py|go)$"),
        re.compile(r"/utils/.*\.(ts|js|py|go)$"),
        re.compile(r"/services/.*\.(ts|js|py|go)$"),
    ),
}

SUGGESTIONS: dict[str, str] = {
    "api_endpoints": "Create API schema documentation",
    "components": "Document component patterns and props",
    "testing_patterns": "Add testing pattern documentation",
    "database_models": "Create data model documentation",
    "architecture": "Document architectural patterns",
}


@dataclass(frozen=True, slots=True)
class CategoryCount:
    documented: int = 0
    total: int = 0


@dataclass(frozen=True, slots=True)
class UndocumentedItem:
    path: str
    category: str
    suggestion: str


@dataclass(frozen=True, slots=True)
class CodebaseCoverage:
    """Convention-based documentation coverage of a list of source paths."""

    project_id: str
    total_documentable: int
    total_documented: int
    coverage_percentage: int
    breakdown: dict[str, CategoryCount] = field(default_factory=dict)
    undocumented: list[UndocumentedItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


def percentage(part: int, whole: int) -> int:
    return round_half_up(part * 100 / whole) if whole else 0


def categorize_path(file_path: str) -> str | None:
    """Convention category of a source path, or None if it is not documentable."""
    padded = "/" + file_path.lstrip("/")
    for category, patterns in CONVENTION_PATTERNS.items():
        if any(p.search(padded) for p in patterns):
            return category
    return None


class CoverageCalculator:
    """Computes and snapshots coverage reports."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._documents = DocumentRepository()
        self._embeddings = EmbeddingRepository()
        self._snapshots = CoverageRepository()

    async def calculate_coverage(self, project_id: str) -> CoverageReport:
        async with self._db.session() as session:
            docs = await self._documents.list_for_project(session, project_id)
            chunk_counts = await self._embeddings.chunk_counts(session, project_id)

        totals: dict[str, list[int]] = {t.value: [0, 0, 0] for t in DocType}
        for doc in docs:
            bucket = totals[DocType.parse(doc.doc_type).value]
            chunks = chunk_counts.get(doc.id, 0)
            bucket[0] += 1
            bucket[1] += 1 if chunks else 0
            bucket[2] += chunks

        with_embeddings = sum(1 for doc in docs if chunk_counts.get(doc.id, 0) > 0)
        return CoverageReport(
            project_id=project_id,
            coverage_percentage=percentage(with_embeddings, len(docs)),
            total_documents=len(docs),
            docs_with_embeddings=with_embeddings,
            total_chunks=sum(chunk_counts.values()),
            breakdown={k: CategoryCoverage(*v) for k, v in totals.items()},
        )

    async def calculate_codebase_coverage(self, project_id: str, codebase_paths: list[str]) -> CodebaseCoverage:
        """Classify *codebase_paths* by convention and check each against the corpus.

        A path counts as documented when some document's content mentions it
        or some document's path contains its file name.
        """
        async with self._db.session() as session:
            docs = await self._documents.list_for_project(session, project_id)
        contents = [doc.content.lower() for doc in docs]
        doc_paths = [doc.file_path.lower() for doc in docs]

        counts: dict[str, list[int]] = {category: [0, 0] for category in CONVENTION_PATTERNS}
        undocumented: list[UndocumentedItem] = []
        for path in dict.fromkeys(codebase_paths):
            category = categorize_path(path)
            if category is None:
                continue
            counts[category][1] += 1
            needle = path.lower()
            basename = posixpath.basename(needle)
            documented = any(needle in c for c in contents) or any(basename in p for p in doc_paths)
            if documented:
                counts[category][0] += 1
            else:
                undocumented.append(UndocumentedItem(path, category, SUGGESTIONS[category]))

        documentable = sum(total for _, total in counts.values())
        documented_total = sum(done for done, _ in counts.values())
        return CodebaseCoverage(
            project_id=project_id,
            total_documentable=documentable,
            total_documented=documented_total,
            coverage_percentage=percentage(documented_total, documentable),
            breakdown={k: CategoryCount(*v) for k, v in counts.items()},
            undocumented=undocumented[:MAX_UNDOCUMENTED],
        )

    async def save_coverage_snapshot(
        self,
        report: CoverageReport,
        trigger: SnapshotTrigger | str = SnapshotTrigger.MANUAL,
    ) -> SnapshotInfo:
        trigger = SnapshotTrigger(trigger)
        row = CoverageSnapshot(
            project_id=report.project_id,
            coverage_percentage=report.coverage_percentage,
            total_documents=report.total_documents,
            docs_with_embeddings=report.docs_with_embeddings,
            total_chunks=report.total_chunks,
            breakdown=to_jsonable(report.breakdown),
            trigger=trigger.value,
        )
        async with self._db.session() as session:
            self._snapshots.add(session, row)
        logger.info("Coverage snapshot for %s: %d%%", report.project_id, report.coverage_percentage)
        return _snapshot_info(row)

    async def get_latest_coverage(self, project_id: str) -> SnapshotInfo | None:
        async with self._db.session() as session:
            row = await self._snapshots.latest(session, project_id)
        return _snapshot_info(row) if row is not None else None


def _snapshot_info(row: CoverageSnapshot) -> SnapshotInfo:
    return SnapshotInfo(
        id=row.id,
        trigger=row.trigger,
        snapshot_at=as_utc(row.snapshot_at),
        report=CoverageReport(
            project_id=row.project_id,
            coverage_percentage=row.coverage_percentage,
            total_documents=row.total_documents,
            docs_with_embeddings=row.docs_with_embeddings,
            total_chunks=row.total_chunks,
            breakdown={k: CategoryCoverage(**v) for k, v in (row.breakdown or {}).items()},
        ),
    )
