"""Database: async engine, session scope, and table creation."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from loresync.models import (
    ActivityEvent,
    CoverageSnapshot,
    Document,
    DocumentEmbedding,
    DocumentHistory,
    DriftEvent,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)

_TABLES = (Document, DocumentHistory, DocumentEmbedding, DriftEvent, CoverageSnapshot, ActivityEvent)


class Database:
    """Owns the async engine and hands out transactional sessions.

    Either pass a ready *engine* or a *url*.  SQLite file databases get WAL
    mode and a busy timeout; in-memory SQLite shares one connection so all
    sessions see the same data.
    """

    def __init__(self, url: str | None = None, *, engine: AsyncEngine | None = None) -> None:
        if (url is None) == (engine is None):
            msg = "Provide exactly one of url or engine"
            raise ValueError(msg)
        if engine is None:
            assert url is not None
            engine = _create_engine(url)
        self.engine = engine
        self._in_memory = _is_in_memory(str(engine.url))
        self._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @property
    def concurrent_sessions(self) -> bool:
        """Whether independent sessions may run at the same time.

        False for in-memory SQLite, where every session shares one connection.
        """
        return not self._in_memory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Yield a session; commit on success, roll back on error."""
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def create_tables(self) -> None:
        """Create every loresync table that does not exist yet."""
        tables = [model.__table__ for model in _TABLES]  # type: ignore[attr-defined]
        async with self.engine.begin() as conn:
            await conn.run_sync(lambda c: SQLModel.metadata.create_all(c, tables=tables, checkfirst=True))

    async def close(self) -> None:
        """Dispose of the engine and release connections."""
        await self.engine.dispose()


def _create_engine(url: str) -> AsyncEngine:
    if not url.startswith("sqlite"):
        return create_async_engine(url, echo=False)

    in_memory = _is_in_memory(url)
    if in_memory:
        engine = create_async_engine(
            url,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(url, echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: object, connection_record: object) -> None:
        cursor = dbapi_connection.cursor()  # type: ignore[union-attr]
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
            result = cursor.fetchone()
            if result[0].lower() != "wal":
                logger.warning("WAL mode not active, got: %s", result[0])
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def _is_in_memory(url: str) -> bool:
    return url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url)
