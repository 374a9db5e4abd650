"""Search result types: document hits, chunk hits, and document reads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from loresync._utils import to_jsonable

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class SearchHit:
    """One ranked document returned by a search.

    Attributes:
        id: Document id.
        title: Document title.
        path: Document file path.
        snippet: Best-matching chunk, truncated.
        relevance: Cosine similarity of the best-matching chunk.
        type: Presentation category of the document.
        version: Current document version.
        last_updated: When the document content last changed.
    """

    id: str
    title: str
    path: str
    snippet: str
    relevance: float
    type: str
    version: int
    last_updated: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "path": self.path,
            "snippet": self.snippet,
            "relevance": self.relevance,
            "type": self.type,
            "version": self.version,
            "lastUpdated": to_jsonable(self.last_updated),
        }


@dataclass(frozen=True, slots=True)
class ChunkHit:
    """A chunk-level search result; fetch the full text with ``read_chunks``."""

    chunk_id: str
    document_id: str
    title: str
    path: str
    type: str
    chunk_index: int
    preview: str
    relevance: float

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


@dataclass(frozen=True, slots=True)
class ChunkContent:
    """Full text of one stored chunk."""

    chunk_id: str
    document_id: str
    title: str
    path: str
    chunk_index: int
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


@dataclass(frozen=True, slots=True)
class DocumentView:
    """A document as returned by ``read_document``."""

    id: str
    title: str
    path: str
    content: str
    type: str
    version: int
    last_updated: datetime

    def to_dict(self) -> dict[str, Any]:
        data = to_jsonable(self)
        data["lastUpdated"] = data.pop("last_updated")
        return data


@dataclass(frozen=True, slots=True)
class Suggestion:
    """A near-miss identifier offered when a read finds nothing."""

    id: str
    path: str
    title: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return to_jsonable(self)


@dataclass(frozen=True, slots=True)
class ReadResult:
    """Outcome of ``read_document``: the document, or suggestions when it was not found."""

    found: bool
    document: DocumentView | None = None
    suggestions: list[Suggestion] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": self.found,
            "document": self.document.to_dict() if self.document else None,
            "suggestions": [s.to_dict() for s in self.suggestions],
        }
