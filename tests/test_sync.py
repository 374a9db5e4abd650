"""Tests for incremental sync, delete, and sync status."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from loresync import (
    AccessContext,
    EventType,
    KnowledgeBase,
    KnowledgeEvent,
    PermissionDeniedError,
    VersionConflictError,
)
from loresync._utils import content_hash
from loresync.chunking import Chunker
from loresync.repositories import EmbeddingRepository
from loresync.sync import ChunkPlan, DocumentLocks
from tests.fakes import FailingTextProvider, WordHashProvider

if TYPE_CHECKING:
    from pathlib import Path

    from loresync import EngineConfig

AUTH_PATH = "patterns/auth.md"


# =========================================================================
# Helpers
# =========================================================================


async def _stored_positions(kb: KnowledgeBase, document_id: str) -> dict[str, int]:
    """Stored chunk content -> chunk_index for one document."""
    async with kb.database.session() as session:
        rows = await EmbeddingRepository().hashes_for(session, document_id)
    return {row.content_chunk: row.chunk_index for row in rows.values()}


# =========================================================================
# ChunkPlan
# =========================================================================


class TestChunkPlan:
    def test_new_document_inserts_everything(self) -> None:
        chunks = Chunker().chunk("a.md", "One. Two.")
        plan = ChunkPlan.build(chunks, [])
        assert [c.content for c in plan.insert] == ["One.", "Two."]
        assert plan.keep == frozenset()
        assert plan.delete == frozenset()

    def test_diff_against_stored(self) -> None:
        chunks = Chunker().chunk("a.md", "One. Three.")
        stored = [content_hash("One."), content_hash("Two.")]
        plan = ChunkPlan.build(chunks, stored)
        assert [c.content for c in plan.insert] == ["Three."]
        assert plan.keep == {content_hash("One.")}
        assert plan.delete == {content_hash("Two.")}

    def test_duplicates_inserted_once(self) -> None:
        chunks = Chunker().chunk("a.md", "Same. Same. Other.")
        plan = ChunkPlan.build(chunks, [])
        assert [c.content for c in plan.insert] == ["Same.", "Other."]
        assert plan.first_positions[content_hash("Same.")].index == 0
        assert plan.positions_for({content_hash("Same.")}) == 2

    def test_unchanged_content(self) -> None:
        chunks = Chunker().chunk("a.md", "One.")
        plan = ChunkPlan.build(chunks, [content_hash("One.")])
        assert not plan.insert
        assert not plan.delete
        assert plan.positions_reused() == 1


# =========================================================================
# DocumentLocks
# =========================================================================


class TestDocumentLocks:
    def test_same_key_same_lock(self) -> None:
        locks = DocumentLocks()
        assert locks.get("p", "a.md") is locks.get("p", "a.md")
        assert locks.get("p", "a.md") is not locks.get("q", "a.md")

    async def test_unused_locks_are_released(self) -> None:
        locks = DocumentLocks()
        async with locks.hold("p", "a.md"):
            assert len(locks) == 1
        assert len(locks) == 0


# =========================================================================
# sync_document
# =========================================================================


class TestSyncDocument:
    async def test_create(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        result = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT.")
        assert result.created
        assert result.changed
        assert result.version == 1
        assert result.chunks_total == 1
        assert result.chunks_indexed == 1
        assert result.chunks_reused == 0
        assert result.success

    async def test_append_reuses_existing_chunk(
        self, kb: KnowledgeBase, editor: AccessContext, provider: WordHashProvider
    ) -> None:
        first = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT.")
        provider.calls.clear()

        second = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT. Use PKCE.")

        assert second.document_id == first.document_id
        assert second.version == 2
        assert second.chunks_indexed == 1
        assert second.chunks_reused == 1
        assert second.chunks_deleted == 0
        assert provider.calls == ["Use PKCE."]

        history = await kb.get_history(editor, first.document_id)
        assert [h.version for h in history] == [1]
        v1 = await kb.get_version(editor, first.document_id, 1)
        assert v1.content == "Use JWT."

    async def test_unchanged_resync_embeds_nothing(
        self, kb: KnowledgeBase, editor: AccessContext, provider: WordHashProvider
    ) -> None:
        await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT. Use PKCE.")
        provider.calls.clear()

        again = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT. Use PKCE.")

        assert not again.changed
        assert not again.created
        assert again.version == 1
        assert again.chunks_indexed == 0
        assert again.chunks_reused == 2
        assert provider.calls == []
        assert await kb.get_history(editor, again.document_id) == []

    async def test_removed_chunk_is_deleted(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT. Use PKCE.")
        result = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use PKCE.")
        assert result.chunks_deleted == 1
        assert result.chunks_reused == 1
        assert await _stored_positions(kb, result.document_id) == {"Use PKCE.": 0}

    async def test_title_change_bumps_version(
        self, kb: KnowledgeBase, editor: AccessContext, provider: WordHashProvider
    ) -> None:
        await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT.")
        provider.calls.clear()
        result = await kb.sync_document(editor, AUTH_PATH, "Authentication", "Use JWT.")
        assert result.changed
        assert result.version == 2
        assert result.chunks_reused == 1
        assert provider.calls == []

    async def test_reorder_repositions_without_embedding(
        self, kb: KnowledgeBase, editor: AccessContext, provider: WordHashProvider
    ) -> None:
        first = await kb.sync_document(editor, AUTH_PATH, "Auth", "Alpha first. Beta second.")
        provider.calls.clear()

        result = await kb.sync_document(editor, AUTH_PATH, "Auth", "Beta second. Alpha first.")

        assert result.chunks_indexed == 0
        assert result.chunks_reused == 2
        assert provider.calls == []
        positions = await _stored_positions(kb, first.document_id)
        assert positions == {"Beta second.": 0, "Alpha first.": 1}

    async def test_duplicate_chunks_stored_once(
        self, kb: KnowledgeBase, editor: AccessContext, provider: WordHashProvider
    ) -> None:
        result = await kb.sync_document(editor, AUTH_PATH, "Auth", "Same. Same. Other.")
        assert result.chunks_total == 3
        assert result.chunks_indexed == 3
        assert sorted(provider.calls) == ["Other.", "Same."]
        assert await _stored_positions(kb, result.document_id) == {"Same.": 0, "Other.": 2}

    async def test_empty_document(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        result = await kb.sync_document(editor, "notes/empty.md", "Empty", "")
        assert result.created
        assert result.chunks_total == 1
        assert result.chunks_failed == 1
        assert not result.success
        status = await kb.get_sync_status(editor)
        assert status.document_count == 1
        assert status.embedding_count == 0

    async def test_frontmatter_type_is_stored(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        content = "---\ntype: contract\n---\nOrders have ids."
        await kb.sync_document(editor, "notes/orders.md", "Orders", content)
        read = await kb.read_document(editor, "notes/orders.md")
        assert read.document is not None
        assert read.document.type == "contract"

    async def test_emits_synced_event(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        events: list[KnowledgeEvent] = []

        async def handler(event: KnowledgeEvent) -> None:
            events.append(event)

        kb.event_bus.register(EventType.DOCUMENT_SYNCED, handler)
        result = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT.")

        assert len(events) == 1
        assert events[0].document_id == result.document_id
        assert events[0].path == AUTH_PATH
        assert events[0].user_id == "alice"
        assert events[0].payload["version"] == 1


# =========================================================================
# Partial failure
# =========================================================================


class TestPartialFailure:
    @pytest.fixture
    async def flaky_kb(self, tmp_path: Path, config: EngineConfig):
        provider = FailingTextProvider("poison", ValueError("content policy"))
        base = KnowledgeBase(
            embedding_provider=provider,
            url=f"sqlite+aiosqlite:///{tmp_path / 'flaky.db'}",
            config=config,
        )
        await base.create_tables()
        yield base, provider
        await base.close()

    async def test_failed_chunk_reported_and_document_saved(self, flaky_kb, editor: AccessContext) -> None:
        kb, _ = flaky_kb
        result = await kb.sync_document(editor, AUTH_PATH, "Auth", "Good line. A poison line.")
        assert result.version == 1
        assert result.chunks_indexed == 1
        assert result.chunks_failed == 1
        assert len(result.errors) == 1
        assert "chunk 1" in result.errors[0]
        assert not result.success
        read = await kb.read_document(editor, AUTH_PATH)
        assert read.document is not None
        assert read.document.content == "Good line. A poison line."

    async def test_resync_repairs_missing_embedding(self, flaky_kb, editor: AccessContext) -> None:
        kb, provider = flaky_kb
        await kb.sync_document(editor, AUTH_PATH, "Auth", "Good line. A poison line.")
        provider.marker = "never-matches"

        result = await kb.sync_document(editor, AUTH_PATH, "Auth", "Good line. A poison line.")

        assert not result.changed
        assert result.version == 1
        assert result.chunks_indexed == 1
        assert result.chunks_reused == 1
        assert result.success
        assert await _stored_positions(kb, result.document_id) == {
            "Good line.": 0,
            "A poison line.": 1,
        }


# =========================================================================
# Concurrency and version checks
# =========================================================================


class TestVersionChecks:
    async def test_expected_version_matches(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        created = await kb.sync_document(editor, AUTH_PATH, "Auth", "One.", expected_version=0)
        updated = await kb.sync_document(editor, AUTH_PATH, "Auth", "Two.", expected_version=1)
        assert (created.version, updated.version) == (1, 2)

    async def test_expected_version_conflict(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        await kb.sync_document(editor, AUTH_PATH, "Auth", "One.")
        await kb.sync_document(editor, AUTH_PATH, "Auth", "Two.")
        with pytest.raises(VersionConflictError) as exc_info:
            await kb.sync_document(editor, AUTH_PATH, "Auth", "Three.", expected_version=1)
        assert exc_info.value.expected == 1
        assert exc_info.value.actual == 2

    async def test_concurrent_syncs_serialize(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        await kb.sync_document(editor, AUTH_PATH, "Auth", "Base.")
        results = await asyncio.gather(
            kb.sync_document(editor, AUTH_PATH, "Auth", "Base. First edit."),
            kb.sync_document(editor, AUTH_PATH, "Auth", "Base. Second edit."),
        )
        assert sorted(r.version for r in results) == [2, 3]
        history = await kb.get_history(editor, results[0].document_id)
        assert [h.version for h in history] == [2, 1]

    async def test_lost_race_is_retried_once(
        self, kb: KnowledgeBase, editor: AccessContext, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        await kb.sync_document(editor, AUTH_PATH, "Auth", "One.")
        documents = kb._sync._documents
        real = documents.compare_and_set
        attempts: list[int] = []

        async def flaky(*args, **kwargs):
            attempts.append(1)
            if len(attempts) == 1:
                return False
            return await real(*args, **kwargs)

        monkeypatch.setattr(documents, "compare_and_set", flaky)
        result = await kb.sync_document(editor, AUTH_PATH, "Auth", "Two.")
        assert result.version == 2
        assert len(attempts) == 2

    async def test_lost_race_twice_raises(
        self, kb: KnowledgeBase, editor: AccessContext, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        await kb.sync_document(editor, AUTH_PATH, "Auth", "One.")

        async def always_lose(*args, **kwargs):
            return False

        monkeypatch.setattr(kb._sync._documents, "compare_and_set", always_lose)
        with pytest.raises(VersionConflictError):
            await kb.sync_document(editor, AUTH_PATH, "Auth", "Two.")
        read = await kb.read_document(editor, AUTH_PATH)
        assert read.document is not None
        assert read.document.content == "One."
        assert read.document.version == 1


# =========================================================================
# Access control and tenancy
# =========================================================================


class TestAccess:
    async def test_viewer_cannot_sync(self, kb: KnowledgeBase, viewer: AccessContext) -> None:
        with pytest.raises(PermissionDeniedError, match="sync_document"):
            await kb.sync_document(viewer, AUTH_PATH, "Auth", "Use JWT.")

    async def test_viewer_cannot_delete(
        self, kb: KnowledgeBase, editor: AccessContext, viewer: AccessContext
    ) -> None:
        result = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT.")
        with pytest.raises(PermissionDeniedError):
            await kb.delete_document(viewer, result.document_id)

    async def test_admin_can_sync(self, kb: KnowledgeBase, admin: AccessContext) -> None:
        result = await kb.sync_document(admin, AUTH_PATH, "Auth", "Use JWT.")
        assert result.created

    async def test_same_path_in_two_projects(
        self, kb: KnowledgeBase, editor: AccessContext, other_editor: AccessContext
    ) -> None:
        a = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT.")
        b = await kb.sync_document(other_editor, AUTH_PATH, "Auth", "Use sessions.")
        assert a.document_id != b.document_id
        assert b.created
        assert (await kb.get_sync_status(editor)).document_count == 1
        assert (await kb.get_sync_status(other_editor)).document_count == 1


# =========================================================================
# delete_document / get_sync_status
# =========================================================================


class TestDeleteAndStatus:
    async def test_delete(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        synced = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT. Use PKCE.")
        await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT.")

        result = await kb.delete_document(editor, synced.document_id)

        assert result.success
        assert result.file_path == AUTH_PATH
        assert result.chunks_deleted == 1
        status = await kb.get_sync_status(editor)
        assert status.document_count == 0
        assert status.embedding_count == 0
        assert await kb.get_history(editor, synced.document_id) == []

    async def test_delete_missing(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        result = await kb.delete_document(editor, "no-such-id")
        assert not result.success
        assert "not found" in result.message

    async def test_delete_other_project_is_not_found(
        self, kb: KnowledgeBase, editor: AccessContext, other_editor: AccessContext
    ) -> None:
        synced = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT.")
        result = await kb.delete_document(other_editor, synced.document_id)
        assert not result.success
        assert (await kb.get_sync_status(editor)).document_count == 1

    async def test_resync_after_delete_starts_over(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        first = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT.")
        await kb.delete_document(editor, first.document_id)
        again = await kb.sync_document(editor, AUTH_PATH, "Auth", "Use JWT.")
        assert again.created
        assert again.version == 1
        assert again.document_id != first.document_id

    async def test_status(self, kb: KnowledgeBase, editor: AccessContext) -> None:
        empty = await kb.get_sync_status(editor)
        assert empty.document_count == 0
        assert empty.last_synced is None

        await kb.sync_document(editor, "a.md", "A", "One. Two.")
        await kb.sync_document(editor, "b.md", "B", "Three.")
        status = await kb.get_sync_status(editor)
        assert status.project_id == "proj-a"
        assert status.document_count == 2
        assert status.embedding_count == 3
        assert status.last_synced is not None
        assert status.to_dict()["document_count"] == 2
