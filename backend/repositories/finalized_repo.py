"""Snapshot store repository: season metadata + ranked rows (insert, range read, retention)."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.finalized import FinalizedPeriodMetadata, FinalizedSnapshotRow
from .base import BaseRepository


class FinalizedSnapshotRepository(BaseRepository[FinalizedSnapshotRow]):
    """Repository for FinalizedPeriodMetadata and FinalizedSnapshotRow entities."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get_metadata(self, season: int) -> Optional[FinalizedPeriodMetadata]:
        return await self.session.get(FinalizedPeriodMetadata, season)

    async def has_metadata(self, season: int) -> bool:
        stmt = select(FinalizedPeriodMetadata.season_number).where(
            FinalizedPeriodMetadata.season_number == season
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def insert_metadata(self, metadata: FinalizedPeriodMetadata) -> FinalizedPeriodMetadata:
        """Add and flush; a second row for the same season fails here."""
        self.session.add(metadata)
        await self.session.flush()
        return metadata

    async def insert_rows(self, rows: List[FinalizedSnapshotRow]) -> None:
        await self.add_all(rows)

    async def list_rows(self, season: int) -> List[FinalizedSnapshotRow]:
        """All rows of a season ordered by final rank ascending."""
        stmt = (
            select(FinalizedSnapshotRow)
            .where(FinalizedSnapshotRow.season_number == season)
            .order_by(FinalizedSnapshotRow.final_rank)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_metadata(self) -> List[FinalizedPeriodMetadata]:
        """All finalized seasons, newest season first."""
        stmt = select(FinalizedPeriodMetadata).order_by(
            desc(FinalizedPeriodMetadata.season_number)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_rows_before(self, season: int) -> int:
        stmt = delete(FinalizedSnapshotRow).where(FinalizedSnapshotRow.season_number < season)
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)

    async def delete_metadata_before(self, season: int) -> int:
        stmt = delete(FinalizedPeriodMetadata).where(
            FinalizedPeriodMetadata.season_number < season
        )
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)
