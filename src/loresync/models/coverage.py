"""CoverageSnapshot model: point-in-time coverage records."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime
from sqlmodel import Field, SQLModel


class CoverageSnapshot(SQLModel, table=True):
    """Persisted coverage report: ``coverage_snapshots``."""

    __tablename__ = "coverage_snapshots"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    project_id: str = Field(index=True)
    coverage_percentage: int = Field(default=0)
    total_documents: int = Field(default=0)
    docs_with_embeddings: int = Field(default=0)
    total_chunks: int = Field(default=0)
    breakdown: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    trigger: str = Field(default="manual")
    snapshot_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
