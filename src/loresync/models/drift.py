"""DriftEvent model: divergence between documented patterns and observed code."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class DriftEvent(SQLModel, table=True):
    """A recorded drift event: ``drift_events``."""

    __tablename__ = "drift_events"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    project_id: str = Field(index=True)
    document_id: str | None = Field(default=None, index=True)
    severity: str = Field(default="info")
    drift_type: str
    file_path: str
    doc_path: str | None = Field(default=None)
    description: str = Field(default="")
    expected_pattern: str | None = Field(default=None)
    actual_code: str | None = Field(default=None)
    resolved: bool = Field(default=False)
    resolved_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    resolved_by: str | None = Field(default=None)
    resolution_note: str | None = Field(default=None)
    detected_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
