"""ActivityRepository: usage log writes and the aggregates staleness scoring reads."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlmodel import select

from loresync.models import ActivityEvent

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession


class ActivityRepository:
    """Queries over ``activity_events``."""

    def add(self, session: AsyncSession, event: ActivityEvent) -> None:
        session.add(event)

    async def read_counts(self, session: AsyncSession, project_id: str, since: datetime) -> dict[str, int]:
        """Reads per document of *project_id* since *since*."""
        result = await session.execute(
            select(ActivityEvent.document_id, func.count())
            .where(
                ActivityEvent.project_id == project_id,
                ActivityEvent.event_type == "read",
                ActivityEvent.document_id.is_not(None),  # type: ignore[union-attr]
                ActivityEvent.created_at >= since,  # type: ignore[arg-type]
            )
            .group_by(ActivityEvent.document_id)
        )
        return {doc_id: int(n) for doc_id, n in result.all()}

    async def search_stats(self, session: AsyncSession, project_id: str, since: datetime) -> tuple[int, Counter[str]]:
        """Number of searches since *since* and how many of them returned each document."""
        result = await session.execute(
            select(ActivityEvent.context).where(
                ActivityEvent.project_id == project_id,
                ActivityEvent.event_type == "search",
                ActivityEvent.created_at >= since,  # type: ignore[arg-type]
            )
        )
        total = 0
        hits: Counter[str] = Counter()
        for context in result.scalars().all():
            total += 1
            hits.update(set((context or {}).get("document_ids", [])))
        return total, hits
