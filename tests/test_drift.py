"""Tests for drift detection, resolution, and reporting."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import update

from loresync import (
    AccessContext,
    DriftEvidence,
    DriftSeverity,
    DriftType,
    EventType,
    KnowledgeBase,
    KnowledgeEvent,
    PermissionDeniedError,
)
from loresync.drift import classify_severity
from loresync.models import DriftEvent

# =========================================================================
# Helpers
# =========================================================================


def _evidence(drift_type: DriftType | str = DriftType.CODE_DIVERGED, **kwargs) -> DriftEvidence:
    kwargs.setdefault("file_path", "src/auth.ts")
    kwargs.setdefault("description", "Auth middleware no longer checks expiry")
    return DriftEvidence(drift_type=drift_type, **kwargs)


async def _age(kb: KnowledgeBase, drift_id: str, days: int) -> None:
    stamp = datetime.now(UTC) - timedelta(days=days)
    async with kb.database.session() as session:
        await session.execute(
            update(DriftEvent).where(DriftEvent.id == drift_id).values(detected_at=stamp)  # type: ignore[arg-type]
        )


# =========================================================================
# classify_severity
# =========================================================================


class TestClassifySeverity:
    def test_pattern_violation_is_critical(self) -> None:
        assert classify_severity(_evidence(DriftType.PATTERN_VIOLATION)) == DriftSeverity.CRITICAL

    def test_divergence_and_missing_doc_warn(self) -> None:
        assert classify_severity(_evidence(DriftType.CODE_DIVERGED)) == DriftSeverity.WARNING
        assert classify_severity(_evidence(DriftType.MISSING_DOC)) == DriftSeverity.WARNING

    @pytest.mark.parametrize(
        ("days", "severity"),
        [(None, DriftSeverity.INFO), (30, DriftSeverity.INFO), (61, DriftSeverity.WARNING), (91, DriftSeverity.CRITICAL)],
    )
    def test_stale_doc_escalates(self, days: int | None, severity: DriftSeverity) -> None:
        evidence = _evidence(DriftType.STALE_DOC, description="Doc is old", days_stale=days)
        assert classify_severity(evidence) == severity

    def test_stale_days_parsed_from_description(self) -> None:
        evidence = _evidence(DriftType.STALE_DOC, description="Not updated in 120 days")
        assert classify_severity(evidence) == DriftSeverity.CRITICAL

    def test_string_drift_type_coerced(self) -> None:
        assert _evidence("missing_doc").drift_type is DriftType.MISSING_DOC

    def test_unknown_drift_type(self) -> None:
        with pytest.raises(ValueError):
            _evidence("sideways")


# =========================================================================
# detect / resolve
# =========================================================================


class TestDetectAndResolve:
    async def test_detect(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        record = await kb.detect_drift(
            editor,
            _evidence(
                DriftType.PATTERN_VIOLATION,
                doc_path="patterns/auth.md",
                expected_pattern="verify(token)",
                actual_code="decode(token)",
            ),
        )
        assert record.project_id == "proj-a"
        assert record.severity == DriftSeverity.CRITICAL
        assert record.drift_type == DriftType.PATTERN_VIOLATION
        assert record.expected_pattern == "verify(token)"
        assert not record.resolved
        assert record.detected_at.tzinfo is not None

    async def test_resolve(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        record = await kb.detect_drift(editor, _evidence())
        result = await kb.resolve_drift(editor, record.id, "Docs updated")
        assert result.success
        assert not result.already_resolved

        timeline = await kb.get_drift_timeline(editor, include_resolved=True)
        assert timeline[0].resolved
        assert timeline[0].resolved_by == "alice"
        assert timeline[0].resolution_note == "Docs updated"
        assert timeline[0].resolved_at is not None

    async def test_resolve_is_idempotent(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        record = await kb.detect_drift(editor, _evidence())
        await kb.resolve_drift(editor, record.id, "first")
        again = await kb.resolve_drift(editor, record.id, "second")
        assert again.success
        assert again.already_resolved

        timeline = await kb.get_drift_timeline(editor, include_resolved=True)
        assert timeline[0].resolution_note == "first"

    async def test_resolve_unknown(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        result = await kb.resolve_drift(editor, "missing")
        assert not result.success
        assert "not found" in result.message

    async def test_resolve_other_project(
        self, kb: KnowledgeBase, editor: AccessContext, other_editor: AccessContext
    ) -> None:
        record = await kb.detect_drift(editor, _evidence())
        result = await kb.resolve_drift(other_editor, record.id)
        assert not result.success
        assert (await kb.get_drift_summary(editor)).unresolved == 1

    async def test_viewer_cannot_write(self, kb: KnowledgeBase, editor: AccessContext, viewer: AccessContext) -> None:
        record = await kb.detect_drift(editor, _evidence())
        with pytest.raises(PermissionDeniedError):
            await kb.detect_drift(viewer, _evidence())
        with pytest.raises(PermissionDeniedError):
            await kb.resolve_drift(viewer, record.id)

    async def test_events(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        seen: list[KnowledgeEvent] = []

        async def handler(event: KnowledgeEvent) -> None:
            seen.append(event)

        kb.event_bus.register(EventType.DRIFT_DETECTED, handler)
        kb.event_bus.register(EventType.DRIFT_RESOLVED, handler)
        record = await kb.detect_drift(editor, _evidence())
        await kb.resolve_drift(editor, record.id)
        await kb.resolve_drift(editor, record.id)

        assert [e.event_type for e in seen] == [EventType.DRIFT_DETECTED, EventType.DRIFT_RESOLVED]
        assert seen[0].payload["severity"] == "warning"


# =========================================================================
# summary / timeline
# =========================================================================


class TestReports:
    async def test_summary(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        first = await kb.detect_drift(editor, _evidence(DriftType.PATTERN_VIOLATION))
        await kb.detect_drift(editor, _evidence(DriftType.MISSING_DOC))
        await kb.detect_drift(editor, _evidence(DriftType.MISSING_DOC))
        await kb.resolve_drift(editor, first.id)

        summary = await kb.get_drift_summary(editor)

        assert summary.total == 3
        assert summary.unresolved == 2
        assert summary.by_severity == {"info": 0, "warning": 2, "critical": 1}
        assert summary.by_type["missing_doc"] == 2
        assert summary.by_type["stale_doc"] == 0

    async def test_empty_summary(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        summary = await kb.get_drift_summary(editor)
        assert summary.total == 0
        assert summary.to_dict()["by_severity"] == {"info": 0, "warning": 0, "critical": 0}

    async def test_timeline_newest_first_and_windowed(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        old = await kb.detect_drift(editor, _evidence(file_path="old.ts"))
        mid = await kb.detect_drift(editor, _evidence(file_path="mid.ts"))
        new = await kb.detect_drift(editor, _evidence(file_path="new.ts"))
        await _age(kb, old.id, 45)
        await _age(kb, mid.id, 5)

        timeline = await kb.get_drift_timeline(editor, days=30)
        assert [r.id for r in timeline] == [new.id, mid.id]

        wide = await kb.get_drift_timeline(editor, days=60)
        assert [r.id for r in wide] == [new.id, mid.id, old.id]

    async def test_timeline_excludes_resolved_by_default(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        record = await kb.detect_drift(editor, _evidence())
        await kb.resolve_drift(editor, record.id)
        assert await kb.get_drift_timeline(editor) == []
        assert len(await kb.get_drift_timeline(editor, include_resolved=True)) == 1

    async def test_timeline_project_scoped(
        self, kb: KnowledgeBase, editor: AccessContext, other_editor: AccessContext
    ) -> None:
        await kb.detect_drift(editor, _evidence())
        assert await kb.get_drift_timeline(other_editor) == []
        assert (await kb.get_drift_summary(other_editor)).total == 0
