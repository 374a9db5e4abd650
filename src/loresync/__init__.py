"""loresync: a versioned knowledge corpus with an incrementally synced vector index.

Content-aware chunking, hash-based re-embedding, tenant-scoped search,
append-only history with rollback, and staleness, drift, and coverage reports.
"""

__version__ = "0.1.0"

from loresync._db import Database
from loresync._knowledge_base import KnowledgeBase
from loresync.access import AccessContext, Role
from loresync.chunking import Chunk, Chunker, ChunkType, CodeSpan, TextSpan, chunk_document
from loresync.config import DEFAULT_DIMENSIONS, EngineConfig, StalenessThresholds
from loresync.coverage import (
    CodebaseCoverage,
    CoverageReport,
    SnapshotInfo,
    SnapshotTrigger,
)
from loresync.doctypes import DocType
from loresync.drift import (
    DriftEvidence,
    DriftRecord,
    DriftSeverity,
    DriftSummary,
    DriftType,
    ResolveResult,
)
from loresync.embeddings import EmbeddingGateway, EmbeddingOutcome, EmbeddingProvider, OpenAIEmbedding
from loresync.events import EventBus, EventType, KnowledgeEvent
from loresync.exceptions import (
    DimensionMismatchError,
    DocumentNotFoundError,
    EmbeddingError,
    EmbeddingRejectedError,
    LoreSyncError,
    PermissionDeniedError,
    ProviderFatalError,
    ProviderTransientError,
    VersionConflictError,
)
from loresync.health import (
    DocumentHealth,
    ProjectHealth,
    StalenessLevel,
    StalenessResult,
    calculate_staleness,
)
from loresync.search import ChunkContent, ChunkHit, DocumentView, ReadResult, SearchHit, Suggestion
from loresync.types import (
    DeleteResult,
    DiffResult,
    RollbackResult,
    SyncResult,
    SyncStatus,
    VersionContent,
    VersionInfo,
)

__all__ = [
    "DEFAULT_DIMENSIONS",
    "AccessContext",
    "Chunk",
    "ChunkContent",
    "ChunkHit",
    "ChunkType",
    "Chunker",
    "CodeSpan",
    "CodebaseCoverage",
    "CoverageReport",
    "Database",
    "DeleteResult",
    "DiffResult",
    "DimensionMismatchError",
    "DocType",
    "DocumentHealth",
    "DocumentNotFoundError",
    "DocumentView",
    "DriftEvidence",
    "DriftRecord",
    "DriftSeverity",
    "DriftSummary",
    "DriftType",
    "EmbeddingError",
    "EmbeddingGateway",
    "EmbeddingOutcome",
    "EmbeddingProvider",
    "EmbeddingRejectedError",
    "EngineConfig",
    "EventBus",
    "EventType",
    "KnowledgeBase",
    "KnowledgeEvent",
    "LoreSyncError",
    "OpenAIEmbedding",
    "PermissionDeniedError",
    "ProjectHealth",
    "ProviderFatalError",
    "ProviderTransientError",
    "ReadResult",
    "ResolveResult",
    "Role",
    "RollbackResult",
    "SearchHit",
    "SnapshotInfo",
    "SnapshotTrigger",
    "StalenessLevel",
    "StalenessResult",
    "StalenessThresholds",
    "Suggestion",
    "SyncResult",
    "SyncStatus",
    "TextSpan",
    "VersionConflictError",
    "VersionContent",
    "VersionInfo",
    "calculate_staleness",
    "chunk_document",
]
