"""Chunk types, metadata variants, and helpers shared by the splitters."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol, TypeAlias, runtime_checkable

from loresync._utils import content_hash


class ChunkType(str, Enum):
    """Semantic tag of a chunk."""

    FUNCTION = "function"
    CLASS = "class"
    DECLARATION = "declaration"
    MODULE = "module"
    HEADING = "heading"
    SENTENCE = "sentence"
    LIST = "list"
    TABLE = "table"
    CODE_BLOCK = "code_block"
    FRONTMATTER = "frontmatter"
    BLOCK = "block"
    FRAGMENT = "fragment"
    EMPTY = "empty"


@dataclass(frozen=True, slots=True)
class CodeSpan:
    """Position of a structural code chunk."""

    language: str
    symbol: str | None
    line_start: int
    line_end: int
    part: int | None = None

    kind = "code"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": self.kind,
            "language": self.language,
            "symbol": self.symbol,
            "line_start": self.line_start,
            "line_end": self.line_end,
        }
        if self.part is not None:
            data["part"] = self.part
        return data


@dataclass(frozen=True, slots=True)
class TextSpan:
    """Position of a prose or block chunk, with the headings above it."""

    heading_path: tuple[str, ...]
    line_start: int
    line_end: int
    part: int | None = None

    kind = "text"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": self.kind,
            "heading_path": list(self.heading_path),
            "line_start": self.line_start,
            "line_end": self.line_end,
        }
        if self.part is not None:
            data["part"] = self.part
        return data


ChunkMetadata: TypeAlias = CodeSpan | TextSpan


@dataclass(frozen=True, slots=True)
class Piece:
    """A chunk as a splitter returns it, before indexing and hashing."""

    content: str
    chunk_type: ChunkType
    metadata: ChunkMetadata


@dataclass(frozen=True, slots=True)
class Chunk:
    """A semantically bounded slice of a document.

    Attributes:
        content: Chunk text, exactly as embedded.
        chunk_type: Semantic tag.
        index: Position in the document's chunk sequence.
        metadata: Source range and context.
        chunk_hash: SHA-256 of *content*; the reuse key for embeddings.
    """

    content: str
    chunk_type: ChunkType
    index: int
    metadata: ChunkMetadata
    chunk_hash: str

    def metadata_dict(self) -> dict[str, Any]:
        """Metadata as stored alongside the embedding."""
        return {"chunk_index": self.index, "chunk_type": self.chunk_type.value, **self.metadata.to_dict()}


class SplitError(Exception):
    """A structural splitter could not parse its input.

    Never leaves the chunking package: the chunker catches it and falls back.
    """


@runtime_checkable
class Splitter(Protocol):
    """Protocol for syntax-aware splitters.

    Splitters are pure: the same ``(path, content)`` always yields the same
    pieces.  They raise :class:`SplitError` when the input does not parse.
    """

    @property
    def extensions(self) -> frozenset[str]:
        """File extensions this splitter handles (e.g. ``{".py"}``)."""
        ...

    def split(self, path: str, content: str) -> list[Piece]:
        """Split *content* into top-level structural pieces."""
        ...


@dataclass(frozen=True, slots=True)
class Span:
    """A 1-indexed inclusive line range claimed by a declaration."""

    line_start: int
    line_end: int
    chunk_type: ChunkType
    symbol: str | None


def extract_lines(content: str, line_start: int, line_end: int) -> str:
    """Extract lines from *content* (1-indexed, inclusive).

    Clamps bounds to actual content length.
    """
    lines = content.splitlines(keepends=True)
    start = max(line_start - 1, 0)
    end = min(line_end, len(lines))
    return "".join(lines[start:end])


def pieces_from_spans(content: str, spans: list[Span], language: str) -> list[Piece]:
    """Turn declaration spans into pieces, filling the gaps with ``module`` pieces.

    Spans are sorted and overlaps are dropped so each line lands in at most
    one piece.  Gaps made only of blank lines produce nothing.
    """
    lines = content.splitlines(keepends=True)
    pieces: list[Piece] = []
    cursor = 1

    def flush_gap(start: int, end: int) -> None:
        text = "".join(lines[start - 1 : end])
        if text.strip():
            pieces.append(
                Piece(
                    content=text.strip("\n"),
                    chunk_type=ChunkType.MODULE,
                    metadata=CodeSpan(language, None, start, end),
                )
            )

    for span in sorted(spans, key=lambda s: (s.line_start, s.line_end)):
        if span.line_start < cursor:
            continue
        if span.line_start > cursor:
            flush_gap(cursor, span.line_start - 1)
        text = extract_lines(content, span.line_start, span.line_end)
        pieces.append(
            Piece(
                content=text.strip("\n"),
                chunk_type=span.chunk_type,
                metadata=CodeSpan(language, span.symbol, span.line_start, span.line_end),
            )
        )
        cursor = span.line_end + 1

    if cursor <= len(lines):
        flush_gap(cursor, len(lines))
    return pieces


def _cut_long_line(line: str, max_chars: int) -> list[str]:
    """Split a single over-long line at whitespace, hard-cutting if there is none."""
    parts: list[str] = []
    rest = line
    while len(rest) > max_chars:
        cut = rest.rfind(" ", 0, max_chars)
        if cut <= 0:
            cut = max_chars
        parts.append(rest[:cut])
        rest = rest[cut:].lstrip(" ")
    if rest:
        parts.append(rest)
    return parts


def split_oversized(piece: Piece, max_chars: int) -> list[Piece]:
    """Split *piece* on line boundaries into ``fragment`` parts of at most *max_chars*."""
    if len(piece.content) <= max_chars:
        return [piece]

    groups: list[tuple[list[str], int, int]] = []
    current: list[str] = []
    size = 0
    first_line = piece.metadata.line_start
    line_no = piece.metadata.line_start
    group_start = line_no

    for raw in piece.content.split("\n"):
        segments = _cut_long_line(raw, max_chars) if len(raw) > max_chars else [raw]
        for segment in segments:
            added = len(segment) + (1 if current else 0)
            if current and size + added > max_chars:
                groups.append((current, group_start, max(line_no - 1, group_start)))
                current, size, group_start = [], 0, line_no
                added = len(segment)
            current.append(segment)
            size += added
        line_no += 1
    if current:
        groups.append((current, group_start, max(line_no - 1, group_start)))

    fragments: list[Piece] = []
    for part, (seg_lines, start, end) in enumerate(groups, start=1):
        text = "\n".join(seg_lines).strip("\n")
        if not text.strip():
            continue
        start = max(start, first_line)
        metadata = dataclasses.replace(piece.metadata, line_start=start, line_end=end, part=part)
        fragments.append(Piece(content=text, chunk_type=ChunkType.FRAGMENT, metadata=metadata))
    return fragments or [piece]


def finalize(pieces: list[Piece], max_chars: int) -> list[Chunk]:
    """Apply the size cap, then assign indexes and hashes in order."""
    sized: list[Piece] = []
    for piece in pieces:
        sized.extend(split_oversized(piece, max_chars))
    return [
        Chunk(
            content=p.content,
            chunk_type=p.chunk_type,
            index=i,
            metadata=p.metadata,
            chunk_hash=content_hash(p.content),
        )
        for i, p in enumerate(sized)
    ]
