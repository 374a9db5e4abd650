"""DriftRepository: drift event persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import update as sa_update
from sqlmodel import select

from loresync.models import DriftEvent

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession


class DriftRepository:
    """Queries over ``drift_events``; every query is project-scoped."""

    def add(self, session: AsyncSession, event: DriftEvent) -> None:
        session.add(event)

    async def get(self, session: AsyncSession, project_id: str, drift_id: str) -> DriftEvent | None:
        result = await session.execute(
            select(DriftEvent).where(
                DriftEvent.project_id == project_id,
                DriftEvent.id == drift_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(
        self,
        session: AsyncSession,
        project_id: str,
        *,
        since: datetime | None = None,
        include_resolved: bool = True,
    ) -> list[DriftEvent]:
        """Events newest first, optionally bounded by detection time and resolution."""
        stmt = select(DriftEvent).where(DriftEvent.project_id == project_id)
        if since is not None:
            stmt = stmt.where(DriftEvent.detected_at >= since)  # type: ignore[arg-type]
        if not include_resolved:
            stmt = stmt.where(DriftEvent.resolved == False)  # noqa: E712
        stmt = stmt.order_by(DriftEvent.detected_at.desc(), DriftEvent.id)  # type: ignore[attr-defined]
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def mark_resolved(
        self,
        session: AsyncSession,
        project_id: str,
        drift_id: str,
        *,
        resolved_at: datetime,
        resolved_by: str | None,
        note: str | None,
    ) -> bool:
        """Resolve an open event. Returns False if it was already resolved."""
        result = await session.execute(
            sa_update(DriftEvent)
            .where(
                DriftEvent.project_id == project_id,  # type: ignore[arg-type]
                DriftEvent.id == drift_id,  # type: ignore[arg-type]
                DriftEvent.resolved == False,  # noqa: E712
            )
            .values(resolved=True, resolved_at=resolved_at, resolved_by=resolved_by, resolution_note=note)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]
