"""ChunkPlan: the hash diff between a document's new chunks and its stored embeddings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from loresync.chunking import Chunk


@dataclass(frozen=True, slots=True)
class ChunkPlan:
    """What a sync must do to the stored embeddings of one document.

    Attributes:
        chunks: The new chunk sequence, in order.
        insert: First occurrence of every hash with no stored embedding.
        keep: Hashes already stored and still referenced.
        delete: Stored hashes no chunk references any more.
    """

    chunks: tuple[Chunk, ...]
    insert: tuple[Chunk, ...]
    keep: frozenset[str]
    delete: frozenset[str]

    @classmethod
    def build(cls, chunks: Iterable[Chunk], stored_hashes: Iterable[str]) -> ChunkPlan:
        ordered = tuple(chunks)
        stored = frozenset(stored_hashes)
        firsts: dict[str, Chunk] = {}
        for chunk in ordered:
            firsts.setdefault(chunk.chunk_hash, chunk)

        insert = tuple(c for h, c in firsts.items() if h not in stored)
        keep = frozenset(h for h in firsts if h in stored)
        delete = stored - firsts.keys()
        return cls(chunks=ordered, insert=insert, keep=keep, delete=frozenset(delete))

    @property
    def first_positions(self) -> dict[str, Chunk]:
        """The first chunk carrying each hash; its index is the stored position."""
        firsts: dict[str, Chunk] = {}
        for chunk in self.chunks:
            firsts.setdefault(chunk.chunk_hash, chunk)
        return firsts

    def positions_reused(self) -> int:
        """Chunk positions served by an existing embedding."""
        return sum(1 for c in self.chunks if c.chunk_hash in self.keep)

    def positions_for(self, hashes: set[str]) -> int:
        """Chunk positions whose hash is in *hashes*."""
        return sum(1 for c in self.chunks if c.chunk_hash in hashes)
