"""Vector search and ranking over a project's indexed chunks."""

from loresync.search._engine import SearchEngine
from loresync.search.types import (
    ChunkContent,
    ChunkHit,
    DocumentView,
    ReadResult,
    SearchHit,
    Suggestion,
)

__all__ = [
    "ChunkContent",
    "ChunkHit",
    "DocumentView",
    "ReadResult",
    "SearchEngine",
    "SearchHit",
    "Suggestion",
]
