"""ActivityEvent model: usage log feeding the staleness scorer."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime
from sqlmodel import Field, SQLModel


class ActivityEvent(SQLModel, table=True):
    """One search, read, sync, or rollback: ``activity_events``."""

    __tablename__ = "activity_events"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    project_id: str = Field(index=True)
    user_id: str | None = Field(default=None)
    event_type: str = Field(index=True)
    query: str | None = Field(default=None)
    document_id: str | None = Field(default=None, index=True)
    result_count: int | None = Field(default=None)
    response_time_ms: int | None = Field(default=None)
    context: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )
