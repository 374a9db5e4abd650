"""Result types: SyncResult, SyncStatus, DeleteResult, version history results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from loresync._utils import to_jsonable

if TYPE_CHECKING:
    from datetime import datetime


class _Serializable:
    __slots__ = ()

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly representation for the presentation layer."""
        return to_jsonable(self)


@dataclass
class SyncResult(_Serializable):
    """Outcome of reconciling one document with the index.

    Chunk counts are per chunk position: ``chunks_indexed + chunks_reused +
    chunks_failed == chunks_total``.  ``chunks_deleted`` counts stored
    embeddings removed because no chunk references them any more.
    """

    document_id: str
    file_path: str
    version: int
    created: bool = False
    changed: bool = False
    chunks_total: int = 0
    chunks_indexed: int = 0
    chunks_reused: int = 0
    chunks_deleted: int = 0
    chunks_failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.chunks_failed == 0


@dataclass
class SyncStatus(_Serializable):
    """Index state of one project."""

    project_id: str
    document_count: int
    embedding_count: int
    last_synced: datetime | None = None


@dataclass
class DeleteResult(_Serializable):
    """Result of deleting a document."""

    success: bool
    message: str
    document_id: str | None = None
    file_path: str | None = None
    chunks_deleted: int = 0


@dataclass
class VersionInfo(_Serializable):
    """Version history entry: the state a document had before a change."""

    version: int
    title: str
    archived_at: datetime
    archived_by: str | None = None
    change_source: str = "sync"
    size_chars: int = 0


@dataclass
class VersionContent(_Serializable):
    """Full (title, content) of one version."""

    success: bool
    message: str
    document_id: str | None = None
    version: int | None = None
    title: str | None = None
    content: str | None = None
    is_current: bool = False
    timestamp: datetime | None = None


@dataclass
class DiffResult(_Serializable):
    """Unified diff between two versions of a document."""

    success: bool
    message: str
    document_id: str | None = None
    from_version: int | None = None
    to_version: int | None = None
    diff: str = ""
    lines_added: int = 0
    lines_removed: int = 0


@dataclass
class RollbackResult(_Serializable):
    """Result of restoring a historical version.

    A rollback never rewrites history: it applies the old (title, content)
    as a new version, so ``version`` is the new current version.
    """

    success: bool
    message: str
    document_id: str | None = None
    restored_from: int | None = None
    version: int | None = None
    sync: SyncResult | None = None
