"""Shared fixtures for loresync tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from loresync import AccessContext, EngineConfig, KnowledgeBase, Role
from loresync._db import Database
from tests.fakes import FAKE_DIM, WordHashProvider

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path


@pytest.fixture
def config() -> EngineConfig:
    """Small, fast configuration: no real backoff waits."""
    return EngineConfig(dimensions=FAKE_DIM, backoff_base=0.0, max_retries=2, provider_timeout=5.0)


@pytest.fixture
def provider() -> WordHashProvider:
    return WordHashProvider()


@pytest.fixture
async def db(tmp_path: Path) -> AsyncIterator[Database]:
    """File-backed SQLite database with all tables created."""
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'kb.db'}")
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
async def kb(tmp_path: Path, provider: WordHashProvider, config: EngineConfig) -> AsyncIterator[KnowledgeBase]:
    """KnowledgeBase on a fresh file-backed SQLite database."""
    base = KnowledgeBase(
        embedding_provider=provider,
        url=f"sqlite+aiosqlite:///{tmp_path / 'kb.db'}",
        config=config,
    )
    await base.create_tables()
    yield base
    await base.close()


@pytest.fixture
async def memory_kb(provider: WordHashProvider, config: EngineConfig) -> AsyncIterator[KnowledgeBase]:
    """KnowledgeBase on in-memory SQLite."""
    base = KnowledgeBase(embedding_provider=provider, config=config)
    await base.create_tables()
    yield base
    await base.close()


@pytest.fixture
def editor() -> AccessContext:
    return AccessContext("proj-a", Role.EDITOR, user_id="alice")


@pytest.fixture
def admin() -> AccessContext:
    return AccessContext("proj-a", Role.ADMIN, user_id="root")


@pytest.fixture
def viewer() -> AccessContext:
    return AccessContext("proj-a", Role.VIEWER, user_id="victor")


@pytest.fixture
def other_editor() -> AccessContext:
    return AccessContext("proj-b", Role.EDITOR, user_id="bob")
