"""CoverageRepository: coverage snapshot persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlmodel import select

from loresync.models import CoverageSnapshot

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class CoverageRepository:
    """Queries over ``coverage_snapshots``."""

    def add(self, session: AsyncSession, snapshot: CoverageSnapshot) -> None:
        session.add(snapshot)

    async def latest(self, session: AsyncSession, project_id: str) -> CoverageSnapshot | None:
        result = await session.execute(
            select(CoverageSnapshot)
            .where(CoverageSnapshot.project_id == project_id)
            .order_by(CoverageSnapshot.snapshot_at.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        return result.scalar_one_or_none()
