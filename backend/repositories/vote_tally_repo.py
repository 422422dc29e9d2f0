"""Tally cache repository: per (item, season) rows, bulk reads, scoped deletes."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, Optional

from sqlalchemy import delete, distinct, func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.vote_tally import VoteTallyCache
from .base import BaseRepository

_DIALECT_INSERTS = {"sqlite": sqlite_insert, "postgresql": postgresql_insert}


class VoteTallyRepository(BaseRepository[VoteTallyCache]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def get(self, item_id: str, season: int) -> Optional[VoteTallyCache]:
        stmt = select(VoteTallyCache).where(
            VoteTallyCache.item_id == item_id,
            VoteTallyCache.season_number == season,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(
        self, item_ids: Iterable[str], season: int
    ) -> Dict[str, VoteTallyCache]:
        """One SELECT ... IN for all ids; ids with no row are absent from the result."""
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return {}
        stmt = select(VoteTallyCache).where(
            VoteTallyCache.season_number == season,
            VoteTallyCache.item_id.in_(ids),
        )
        result = await self.session.execute(stmt)
        return {row.item_id: row for row in result.scalars().all()}

    async def upsert(
        self,
        item_id: str,
        season: int,
        total_votes: int,
        voter_count: int,
        cached_at: datetime,
    ) -> VoteTallyCache:
        """Insert or overwrite the row for (item_id, season) in one statement; latest write wins."""
        values = {
            "item_id": item_id,
            "season_number": season,
            "total_votes": str(total_votes),
            "voter_count": voter_count,
            "cached_at": cached_at,
        }
        dialect_insert = _DIALECT_INSERTS.get(self.session.get_bind().dialect.name)
        if dialect_insert is None:
            return await self._upsert_in_savepoint(values)
        stmt = dialect_insert(VoteTallyCache).values([values])
        stmt = stmt.on_conflict_do_update(
            index_elements=[VoteTallyCache.item_id, VoteTallyCache.season_number],
            set_={
                "total_votes": stmt.excluded.total_votes,
                "voter_count": stmt.excluded.voter_count,
                "cached_at": stmt.excluded.cached_at,
            },
        )
        result = await self.session.scalars(
            stmt.returning(VoteTallyCache),
            execution_options={"populate_existing": True},
        )
        return result.one()

    async def _upsert_in_savepoint(self, values: Dict[str, object]) -> VoteTallyCache:
        # dialects without ON CONFLICT: a losing concurrent insert retries as an update
        row = await self.get(values["item_id"], values["season_number"])
        if row is None:
            try:
                async with self.session.begin_nested():
                    row = VoteTallyCache(**values)
                    self.session.add(row)
                return row
            except IntegrityError:
                row = await self.get(values["item_id"], values["season_number"])
                if row is None:
                    raise
        row.total_votes = values["total_votes"]
        row.voter_count = values["voter_count"]
        row.cached_at = values["cached_at"]
        await self.session.flush()
        return row

    async def delete_scoped(
        self, item_id: Optional[str] = None, season: Optional[int] = None
    ) -> int:
        """Delete rows matching the given item and/or season (all rows when both are None)."""
        stmt = delete(VoteTallyCache)
        if item_id is not None:
            stmt = stmt.where(VoteTallyCache.item_id == item_id)
        if season is not None:
            stmt = stmt.where(VoteTallyCache.season_number == season)
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)

    async def stats(self) -> Dict[str, object]:
        stmt = select(
            func.count(VoteTallyCache.id),
            func.max(VoteTallyCache.cached_at),
            func.count(distinct(VoteTallyCache.season_number)),
        )
        result = await self.session.execute(stmt)
        total, last_updated, seasons = result.one()
        return {
            "total_entries": int(total or 0),
            "last_updated": last_updated,
            "seasons": int(seasons or 0),
        }
