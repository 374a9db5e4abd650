"""SQLModel database models for loresync."""

from loresync.models.activity import ActivityEvent
from loresync.models.coverage import CoverageSnapshot
from loresync.models.documents import Document, DocumentHistory
from loresync.models.drift import DriftEvent
from loresync.models.embeddings import DocumentEmbedding

__all__ = [
    "ActivityEvent",
    "CoverageSnapshot",
    "Document",
    "DocumentEmbedding",
    "DocumentHistory",
    "DriftEvent",
]
