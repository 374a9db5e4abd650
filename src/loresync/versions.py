"""VersionStore: append-only document history, diffs, and rollback."""

from __future__ import annotations

import difflib
import logging
from typing import TYPE_CHECKING

from unidiff import PatchSet

from loresync._utils import as_utc
from loresync.repositories import DocumentRepository
from loresync.types import DiffResult, RollbackResult, VersionContent, VersionInfo

if TYPE_CHECKING:
    from loresync._db import Database
    from loresync.sync import SyncEngine

logger = logging.getLogger(__name__)

_NO_NEWLINE_MARKER = "\\ No newline at end of file\n"


def compute_diff(old: str, new: str, *, fromfile: str = "a", tofile: str = "b") -> str:
    """Compute a unified diff from *old* to *new*.

    Returns a standard unified diff string (empty string if no changes).
    The output is parseable by ``unidiff.PatchSet``.
    """
    old_lines = old.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)
    raw = list(difflib.unified_diff(old_lines, new_lines, fromfile=fromfile, tofile=tofile))
    if not raw:
        return ""
    # difflib doesn't emit "\ No newline at end of file" markers, but
    # unidiff requires them after any content line without a newline.
    out: list[str] = []
    for line in raw:
        out.append(line)
        if line and line[0] in ("+", "-", " ") and not line.endswith("\n"):
            out[-1] = line + "\n"
            out.append(_NO_NEWLINE_MARKER)
    return "".join(out)


def count_changes(diff: str) -> tuple[int, int]:
    """Return ``(added, removed)`` line counts of a unified diff."""
    if not diff:
        return 0, 0
    patch = PatchSet(diff)
    return sum(f.added for f in patch), sum(f.removed for f in patch)


class VersionStore:
    """Read access to document history plus rollback.

    History rows are written only by the sync engine.  Rollback applies the
    archived (title, content) through :meth:`SyncEngine.apply_content`, so it
    gets the same versioning and chunk reuse as any other edit.
    """

    def __init__(self, db: Database, sync: SyncEngine) -> None:
        self._db = db
        self._sync = sync
        self._documents = DocumentRepository()

    async def get_history(self, document_id: str, project_id: str) -> list[VersionInfo]:
        """All archived versions of a document, newest first."""
        async with self._db.session() as session:
            doc = await self._documents.get(session, project_id, document_id)
            if doc is None:
                return []
            rows = await self._documents.list_history(session, document_id)
        return [
            VersionInfo(
                version=row.version,
                title=row.title,
                archived_at=as_utc(row.archived_at),
                archived_by=row.archived_by,
                change_source=row.change_source,
                size_chars=len(row.content),
            )
            for row in rows
        ]

    async def get_version(self, document_id: str, version: int, project_id: str) -> VersionContent:
        """The (title, content) a document had at *version*; the live row for the current one."""
        async with self._db.session() as session:
            doc = await self._documents.get(session, project_id, document_id)
            if doc is None:
                return VersionContent(success=False, message=f"Document not found: {document_id}")
            if version == doc.version:
                return VersionContent(
                    success=True,
                    message="Current version",
                    document_id=doc.id,
                    version=doc.version,
                    title=doc.title,
                    content=doc.content,
                    is_current=True,
                    timestamp=as_utc(doc.last_updated),
                )
            row = await self._documents.get_history_version(session, document_id, version)
        if row is None:
            return VersionContent(
                success=False,
                message=f"Version {version} not found for document {document_id}",
                document_id=document_id,
            )
        return VersionContent(
            success=True,
            message=f"Version {version}",
            document_id=document_id,
            version=row.version,
            title=row.title,
            content=row.content,
            timestamp=as_utc(row.archived_at),
        )

    async def diff_versions(
        self,
        document_id: str,
        from_version: int,
        to_version: int,
        project_id: str,
    ) -> DiffResult:
        """Unified diff of the content between two versions."""
        old = await self.get_version(document_id, from_version, project_id)
        if not old.success:
            return DiffResult(success=False, message=old.message, document_id=document_id)
        new = await self.get_version(document_id, to_version, project_id)
        if not new.success:
            return DiffResult(success=False, message=new.message, document_id=document_id)

        diff = compute_diff(
            old.content or "",
            new.content or "",
            fromfile=f"v{from_version}",
            tofile=f"v{to_version}",
        )
        added, removed = count_changes(diff)
        return DiffResult(
            success=True,
            message=f"v{from_version} -> v{to_version}: +{added} -{removed}",
            document_id=document_id,
            from_version=from_version,
            to_version=to_version,
            diff=diff,
            lines_added=added,
            lines_removed=removed,
        )

    async def rollback(
        self,
        document_id: str,
        version: int,
        project_id: str,
        *,
        actor: str | None = None,
    ) -> RollbackResult:
        """Restore the (title, content) of *version* as a new version."""
        async with self._db.session() as session:
            doc = await self._documents.get(session, project_id, document_id)
            row = await self._documents.get_history_version(session, document_id, version) if doc else None
        if doc is None:
            return RollbackResult(success=False, message=f"Document not found: {document_id}")
        if row is None:
            return RollbackResult(
                success=False,
                message=f"Version {version} not found for document {document_id}",
                document_id=document_id,
            )

        result = await self._sync.apply_content(
            project_id,
            doc.file_path,
            row.title,
            row.content,
            actor=actor,
            source="rollback",
        )
        logger.info(
            "Rolled back %s in %s to v%d (now v%d)", doc.file_path, project_id, version, result.version
        )
        return RollbackResult(
            success=True,
            message=f"Restored version {version} as version {result.version}",
            document_id=document_id,
            restored_from=version,
            version=result.version,
            sync=result,
        )
