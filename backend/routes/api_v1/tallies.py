"""Tally cache API: forced resync, invalidation, stats."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from core.dependencies import get_db_session, get_tally_cache
from services.tally_cache import TallyCache

router = APIRouter(prefix="/tallies", tags=["tallies"])


class SyncTalliesBody(BaseModel):
    season: int = Field(..., ge=1)
    item_ids: List[str] = Field(..., min_length=1, max_length=500)


@router.post(
    "/sync",
    summary="Resync tallies from the ledger",
    description="Reads each item's votes from the ledger and writes them through to the cache. Failed items are reported, not cached.",
)
async def post_sync_tallies(
    body: SyncTalliesBody,
    session: AsyncSession = Depends(get_db_session),
    cache: TallyCache = Depends(get_tally_cache),
) -> dict:
    summary = await cache.sync_many(body.item_ids, body.season)
    await session.commit()
    return summary


@router.delete("", summary="Clear cached tallies")
async def delete_tallies(
    item_id: Optional[str] = Query(None),
    season: Optional[int] = Query(None, ge=1),
    session: AsyncSession = Depends(get_db_session),
    cache: TallyCache = Depends(get_tally_cache),
) -> dict:
    deleted = await cache.clear(item_id=item_id, season=season)
    await session.commit()
    return {"deleted": deleted}


@router.get("/stats", summary="Tally cache stats")
async def get_tally_stats(cache: TallyCache = Depends(get_tally_cache)) -> dict:
    stats = await cache.stats()
    last = stats.get("last_updated")
    return {**stats, "last_updated": last.isoformat() if last else None}
