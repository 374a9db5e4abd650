"""Per-document advisory locks for in-process reindex serialization."""

from __future__ import annotations

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


class DocumentLocks:
    """One ``asyncio.Lock`` per ``(project_id, file_path)``.

    Locks are weakly referenced: an entry disappears once no task holds or
    waits on it, so the registry does not grow with the corpus.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = weakref.WeakValueDictionary()

    def get(self, project_id: str, file_path: str) -> asyncio.Lock:
        key = (project_id, file_path)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, project_id: str, file_path: str) -> AsyncGenerator[None]:
        lock = self.get(project_id, file_path)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
