"""Incremental sync: chunk, diff hashes, embed what changed, write once."""

from loresync.sync.engine import CHANGE_SOURCES, SyncEngine
from loresync.sync.locks import DocumentLocks
from loresync.sync.plan import ChunkPlan

__all__ = ["CHANGE_SOURCES", "ChunkPlan", "DocumentLocks", "SyncEngine"]
