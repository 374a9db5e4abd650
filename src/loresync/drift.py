"""Drift detection: recording, resolving, and summarising code/doc divergence."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from loresync._utils import as_utc, to_jsonable, utcnow
from loresync.models import DriftEvent
from loresync.repositories import DriftRepository

if TYPE_CHECKING:
    from loresync._db import Database

logger = logging.getLogger(__name__)

_DAYS_RE = re.compile(r"(\d+)\s*days?", re.IGNORECASE)


class DriftSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class DriftType(str, Enum):
    CODE_DIVERGED = "code_diverged"
    MISSING_DOC = "missing_doc"
    STALE_DOC = "stale_doc"
    PATTERN_VIOLATION = "pattern_violation"


@dataclass(frozen=True, slots=True)
class DriftEvidence:
    """What a caller observed; the detector decides the severity.

    Attributes:
        drift_type: Kind of divergence.
        file_path: Source file where it was observed.
        description: Human-readable explanation.
        document_id: The document that should cover *file_path*, if known.
        doc_path: Path of that document.
        expected_pattern: What the documentation prescribes.
        actual_code: What the code does instead.
        days_stale: Age of a stale document; parsed from *description* when omitted.
    """

    drift_type: DriftType
    file_path: str
    description: str
    document_id: str | None = None
    doc_path: str | None = None
    expected_pattern: str | None = None
    actual_code: str | None = None
    days_stale: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.drift_type, DriftType):
            object.__setattr__(self, "drift_type", DriftType(self.drift_type))


@dataclass(frozen=True, slots=True)
class DriftRecord:
    """A stored drift event as returned to callers."""

    id: str
    project_id: str
    severity: DriftSeverity
    drift_type: DriftType
    file_path: str
    description: str
    detected_at: datetime
    document_id: str | None = None
    doc_path: str | None = None
    expected_pattern: str | None = None
    actual_code: str | None = None
    resolved: bool = False
    resolved_at: datetime | None = None
    resolved_by: str | None = None
    resolution_note: str | None = None

    @classmethod
    def from_row(cls, row: DriftEvent) -> DriftRecord:
        return cls(
            id=row.id,
            project_id=row.project_id,
            severity=DriftSeverity(row.severity),
            drift_type=DriftType(row.drift_type),
            file_path=row.file_path,
            description=row.description,
            detected_at=as_utc(row.detected_at),
            document_id=row.document_id,
            doc_path=row.doc_path,
            expected_pattern=row.expected_pattern,
            actual_code=row.actual_code,
            resolved=row.resolved,
            resolved_at=as_utc(row.resolved_at) if row.resolved_at else None,
            resolved_by=row.resolved_by,
            resolution_note=row.resolution_note,
        )

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


@dataclass(frozen=True, slots=True)
class ResolveResult:
    success: bool
    message: str
    drift_id: str
    already_resolved: bool = False

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


@dataclass(frozen=True, slots=True)
class DriftSummary:
    total: int = 0
    unresolved: int = 0
    by_severity: dict[str, int] = field(default_factory=dict)
    by_type: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


def classify_severity(evidence: DriftEvidence) -> DriftSeverity:
    """Severity from the drift type; stale documents escalate with age."""
    match evidence.drift_type:
        case DriftType.PATTERN_VIOLATION:
            return DriftSeverity.CRITICAL
        case DriftType.CODE_DIVERGED | DriftType.MISSING_DOC:
            return DriftSeverity.WARNING
        case DriftType.STALE_DOC:
            days = evidence.days_stale
            if days is None:
                found = _DAYS_RE.search(evidence.description)
                days = int(found.group(1)) if found else None
            if days is not None and days > 90:
                return DriftSeverity.CRITICAL
            if days is not None and days > 60:
                return DriftSeverity.WARNING
            return DriftSeverity.INFO
    return DriftSeverity.INFO


class DriftDetector:
    """Records drift evidence and answers timeline / summary queries."""

    def __init__(self, db: Database, repository: DriftRepository | None = None) -> None:
        self._db = db
        self._drift = repository or DriftRepository()

    async def detect_drift(self, project_id: str, evidence: DriftEvidence) -> DriftRecord:
        severity = classify_severity(evidence)
        row = DriftEvent(
            project_id=project_id,
            document_id=evidence.document_id,
            severity=severity.value,
            drift_type=evidence.drift_type.value,
            file_path=evidence.file_path,
            doc_path=evidence.doc_path,
            description=evidence.description,
            expected_pattern=evidence.expected_pattern,
            actual_code=evidence.actual_code,
            detected_at=utcnow(),
        )
        async with self._db.session() as session:
            self._drift.add(session, row)
        logger.info(
            "Drift %s (%s) recorded for %s in %s",
            evidence.drift_type.value,
            severity.value,
            evidence.file_path,
            project_id,
        )
        return DriftRecord.from_row(row)

    async def resolve_drift(
        self,
        drift_id: str,
        project_id: str,
        resolver: str | None,
        note: str | None = None,
    ) -> ResolveResult:
        """Mark an event resolved; resolving twice changes nothing."""
        async with self._db.session() as session:
            row = await self._drift.get(session, project_id, drift_id)
            if row is None:
                return ResolveResult(success=False, message=f"Drift event not found: {drift_id}", drift_id=drift_id)
            if row.resolved:
                return ResolveResult(
                    success=True, message="Already resolved", drift_id=drift_id, already_resolved=True
                )
            updated = await self._drift.mark_resolved(
                session, project_id, drift_id, resolved_at=utcnow(), resolved_by=resolver, note=note
            )
        if not updated:
            return ResolveResult(success=True, message="Already resolved", drift_id=drift_id, already_resolved=True)
        logger.info("Drift %s in %s resolved by %s", drift_id, project_id, resolver)
        return ResolveResult(success=True, message="Resolved", drift_id=drift_id)

    async def get_drift_summary(self, project_id: str) -> DriftSummary:
        async with self._db.session() as session:
            rows = await self._drift.list_for_project(session, project_id)
        by_severity = {s.value: 0 for s in DriftSeverity}
        by_type = {t.value: 0 for t in DriftType}
        for row in rows:
            by_severity[row.severity] = by_severity.get(row.severity, 0) + 1
            by_type[row.drift_type] = by_type.get(row.drift_type, 0) + 1
        return DriftSummary(
            total=len(rows),
            unresolved=sum(1 for row in rows if not row.resolved),
            by_severity=by_severity,
            by_type=by_type,
        )

    async def get_drift_timeline(
        self,
        project_id: str,
        days: int = 30,
        include_resolved: bool = False,
    ) -> list[DriftRecord]:
        """Events detected in the last *days* days, newest first."""
        since = utcnow() - timedelta(days=days)
        async with self._db.session() as session:
            rows = await self._drift.list_for_project(
                session, project_id, since=since, include_resolved=include_resolved
            )
        return [DriftRecord.from_row(row) for row in rows]
