"""Content-aware chunking: structural splitters for code, text splitting for everything else."""

from __future__ import annotations

import logging
import posixpath

from loresync.chunking._base import (
    Chunk,
    ChunkMetadata,
    ChunkType,
    CodeSpan,
    Piece,
    SplitError,
    Splitter,
    TextSpan,
    extract_lines,
    finalize,
)
from loresync.chunking.go import GoSplitter
from loresync.chunking.javascript import JavaScriptSplitter, TypeScriptSplitter
from loresync.chunking.python import PythonSplitter
from loresync.chunking.text import empty_piece, split_blocks, split_text

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK_CHARS = 1500


class Chunker:
    """Maps file extensions to structural splitters and produces final chunks.

    Paths without a registered splitter go through the text splitter.  A
    structural splitter that cannot parse its input is logged at WARNING and
    replaced by the block splitter for that call.
    """

    def __init__(self, *, max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS) -> None:
        if max_chunk_chars < 1:
            msg = f"max_chunk_chars must be positive, got {max_chunk_chars}"
            raise ValueError(msg)
        self.max_chunk_chars = max_chunk_chars
        self._ext_map: dict[str, Splitter] = {}
        self._register_builtins()

    def _register_builtins(self) -> None:
        self.register(PythonSplitter())
        self.register(JavaScriptSplitter())
        self.register(TypeScriptSplitter())
        self.register(GoSplitter())

    def register(self, splitter: Splitter) -> None:
        """Register a splitter for each of its extensions."""
        for ext in splitter.extensions:
            self._ext_map[ext.lower()] = splitter

    def get(self, path: str) -> Splitter | None:
        """Look up a splitter by file path extension (case-insensitive)."""
        ext = posixpath.splitext(path)[1].lower()
        return self._ext_map.get(ext)

    def supported_extensions(self) -> frozenset[str]:
        return frozenset(self._ext_map.keys())

    def chunk(self, path: str, content: str) -> list[Chunk]:
        """Split *content* into an ordered, non-empty list of chunks."""
        splitter = self.get(path)
        if splitter is None:
            pieces = split_text(content)
        else:
            try:
                pieces = splitter.split(path, content)
            except SplitError as exc:
                logger.warning("Structural parse of %s failed, using block fallback: %s", path, exc)
                pieces = split_blocks(content)

        if not pieces:
            pieces = [empty_piece(content)]
        chunks = finalize(pieces, self.max_chunk_chars)
        logger.debug("Chunked %s into %d chunks", path, len(chunks))
        return chunks


_default_chunker = Chunker()


def chunk_document(path: str, text: str) -> list[Chunk]:
    """Chunk *text* with the default chunker."""
    return _default_chunker.chunk(path, text)


__all__ = [
    "DEFAULT_MAX_CHUNK_CHARS",
    "Chunk",
    "ChunkMetadata",
    "ChunkType",
    "Chunker",
    "CodeSpan",
    "GoSplitter",
    "JavaScriptSplitter",
    "Piece",
    "PythonSplitter",
    "SplitError",
    "Splitter",
    "TextSpan",
    "TypeScriptSplitter",
    "chunk_document",
    "extract_lines",
    "split_blocks",
    "split_text",
]
