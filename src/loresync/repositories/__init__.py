"""Stateless repositories over the loresync tables.

Repositories receive an ``AsyncSession`` per call and never commit;
transaction boundaries belong to the services that use them.
"""

from loresync.repositories.activity import ActivityRepository
from loresync.repositories.coverage import CoverageRepository
from loresync.repositories.documents import DocumentRepository
from loresync.repositories.drift import DriftRepository
from loresync.repositories.embeddings import EmbeddingRepository, StoredChunk

__all__ = [
    "ActivityRepository",
    "CoverageRepository",
    "DocumentRepository",
    "DriftRepository",
    "EmbeddingRepository",
    "StoredChunk",
]
