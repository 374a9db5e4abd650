"""Tests for index coverage, codebase coverage, and snapshots."""

from __future__ import annotations

import pytest

from loresync import AccessContext, DocType, KnowledgeBase, PermissionDeniedError, SnapshotTrigger
from loresync.coverage import MAX_UNDOCUMENTED, categorize_path, percentage

# =========================================================================
# Helpers
# =========================================================================


class TestHelpers:
    def test_percentage(self) -> None:
        assert percentage(0, 0) == 0
        assert percentage(2, 3) == 67
        assert percentage(3, 3) == 100

    def test_percentage_rounds_half_up(self) -> None:
        assert percentage(1, 8) == 13
        assert percentage(3, 8) == 38

    @pytest.mark.parametrize(
        ("path", "category"),
        [
            ("src/app/api/users/route.ts", "api_endpoints"),
            ("pages/api/login.js", "api_endpoints"),
            ("src/components/Button.tsx", "components"),
            ("src/utils/date.test.ts", "testing_patterns"),
            ("tests/test_sync.py", "testing_patterns"),
            ("app/models/user.py", "database_models"),
            ("prisma/schema.prisma", "database_models"),
            ("src/lib/db.ts", "architecture"),
            ("services/billing.go", "architecture"),
            ("README.md", None),
            ("src/index.css", None),
        ],
    )
    def test_categorize_path(self, path: str, category: str | None) -> None:
        assert categorize_path(path) == category


# =========================================================================
# calculate_coverage
# =========================================================================


class TestCalculateCoverage:
    async def test_empty_project(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        report = await kb.calculate_coverage(editor)
        assert report.coverage_percentage == 0
        assert report.total_documents == 0
        assert set(report.breakdown) == {t.value for t in DocType}

    async def test_counts(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        await kb.sync_document(editor, "patterns/auth.md", "Auth", "Use JWT. Use PKCE.")
        await kb.sync_document(editor, "architecture/stack.md", "Stack", "Python everywhere.")
        await kb.sync_document(editor, "notes/empty.md", "Empty", "")

        report = await kb.calculate_coverage(editor)

        assert report.project_id == "proj-a"
        assert report.total_documents == 3
        assert report.docs_with_embeddings == 2
        assert report.coverage_percentage == 67
        assert report.total_chunks == 3
        assert report.breakdown["testing-pattern"].total == 1
        assert report.breakdown["testing-pattern"].chunks == 2
        assert report.breakdown["architecture"].with_embeddings == 1
        assert report.breakdown["uncategorized"].total == 1
        assert report.breakdown["uncategorized"].with_embeddings == 0
        assert report.breakdown["contract"].total == 0

    async def test_half_percent_rounds_up(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        await kb.sync_document(editor, "indexed.md", "Indexed", "Some text.")
        for i in range(7):
            await kb.sync_document(editor, f"empty-{i}.md", f"Empty {i}", "")

        report = await kb.calculate_coverage(editor)

        assert report.total_documents == 8
        assert report.docs_with_embeddings == 1
        assert report.coverage_percentage == 13

    async def test_project_scoped(
        self, kb: KnowledgeBase, editor: AccessContext, other_editor: AccessContext
    ) -> None:
        await kb.sync_document(editor, "a.md", "A", "Text.")
        report = await kb.calculate_coverage(other_editor)
        assert report.total_documents == 0


# =========================================================================
# calculate_codebase_coverage
# =========================================================================


class TestCodebaseCoverage:
    PATHS = [
        "src/app/api/users/route.ts",
        "src/components/Button.tsx",
        "src/components/Card.tsx",
        "src/lib/db.ts",
        "README.md",
    ]

    async def test_documented_by_mention_or_path(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        await kb.sync_document(
            editor, "guides/ui.md", "UI", "The button lives in src/components/Button.tsx and takes a label."
        )
        await kb.sync_document(editor, "architecture/db.ts-notes.md", "DB", "Connection pooling.")

        coverage = await kb.calculate_codebase_coverage(editor, self.PATHS)

        assert coverage.total_documentable == 4
        assert coverage.total_documented == 2
        assert coverage.coverage_percentage == 50
        assert coverage.breakdown["components"].documented == 1
        assert coverage.breakdown["components"].total == 2
        assert coverage.breakdown["architecture"].documented == 1
        assert coverage.breakdown["testing_patterns"].total == 0
        undocumented = {item.path: item for item in coverage.undocumented}
        assert set(undocumented) == {"src/app/api/users/route.ts", "src/components/Card.tsx"}
        assert undocumented["src/app/api/users/route.ts"].suggestion == "Create API schema documentation"

    async def test_empty_paths(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        coverage = await kb.calculate_codebase_coverage(editor, [])
        assert coverage.total_documentable == 0
        assert coverage.coverage_percentage == 0
        assert coverage.undocumented == []

    async def test_duplicates_counted_once(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        coverage = await kb.calculate_codebase_coverage(editor, ["src/lib/a.ts", "src/lib/a.ts"])
        assert coverage.total_documentable == 1

    async def test_undocumented_capped(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        paths = [f"src/components/C{i}.tsx" for i in range(MAX_UNDOCUMENTED + 5)]
        coverage = await kb.calculate_codebase_coverage(editor, paths)
        assert coverage.total_documentable == MAX_UNDOCUMENTED + 5
        assert len(coverage.undocumented) == MAX_UNDOCUMENTED


# =========================================================================
# Snapshots
# =========================================================================


class TestSnapshots:
    async def test_save_and_latest(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        assert await kb.get_latest_coverage(editor) is None
        await kb.sync_document(editor, "patterns/auth.md", "Auth", "Use JWT.")
        report = await kb.calculate_coverage(editor)

        saved = await kb.save_coverage_snapshot(editor, report, "scheduled")
        latest = await kb.get_latest_coverage(editor)

        assert saved.trigger == SnapshotTrigger.SCHEDULED.value
        assert latest is not None
        assert latest.id == saved.id
        assert latest.report == report
        assert latest.snapshot_at.tzinfo is not None

    async def test_latest_wins(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        first = await kb.save_coverage_snapshot(editor, await kb.calculate_coverage(editor))
        await kb.sync_document(editor, "a.md", "A", "Text.")
        second = await kb.save_coverage_snapshot(editor, await kb.calculate_coverage(editor))
        latest = await kb.get_latest_coverage(editor)
        assert latest is not None
        assert latest.id == second.id != first.id
        assert latest.report.total_documents == 1

    async def test_invalid_trigger(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        report = await kb.calculate_coverage(editor)
        with pytest.raises(ValueError):
            await kb.save_coverage_snapshot(editor, report, "hourly")

    async def test_viewer_cannot_save(
        self, kb: KnowledgeBase, editor: AccessContext, viewer: AccessContext
    ) -> None:
        report = await kb.calculate_coverage(editor)
        with pytest.raises(PermissionDeniedError):
            await kb.save_coverage_snapshot(viewer, report)

    async def test_report_from_other_project_rejected(
        self, kb: KnowledgeBase, editor: AccessContext, other_editor: AccessContext
    ) -> None:
        report = await kb.calculate_coverage(editor)
        with pytest.raises(ValueError, match="proj-a"):
            await kb.save_coverage_snapshot(other_editor, report)
        assert await kb.get_latest_coverage(other_editor) is None
