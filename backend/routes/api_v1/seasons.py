"""Seasons API: finalized snapshots, finalization trigger, verification, retention."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.sources import ItemCatalog
from core.dependencies import get_db_session, get_finalization_service, get_item_catalog
from ledger.errors import LedgerError
from services.finalization_service import (
    DEFAULT_DETECT_LOOKBACK,
    DEFAULT_KEEP_SEASONS,
    DuplicateFinalizationError,
    FinalizationService,
    NotFinalizedError,
)

router = APIRouter(prefix="/seasons", tags=["seasons"])


@router.get(
    "/finalized",
    summary="List finalized seasons",
    description="Stored season metadata, newest season first.",
)
async def get_finalized_seasons(
    service: FinalizationService = Depends(get_finalization_service),
) -> dict:
    seasons = await service.list_finalized_seasons()
    return {"seasons": [s.model_dump(mode="json") for s in seasons]}


@router.get("/{season}/status", summary="Ledger and snapshot status of a season")
async def get_season_status(
    season: int = Path(..., ge=1, description="Season number"),
    service: FinalizationService = Depends(get_finalization_service),
) -> dict:
    return {
        "season": season,
        "ledger_finalized": await service.is_season_finalized(season),
        "snapshotted": await service.has_stored_finalization(season),
    }


@router.get("/{season}/snapshot", summary="Stored snapshot of a finalized season")
async def get_season_snapshot(
    season: int = Path(..., ge=1, description="Season number"),
    service: FinalizationService = Depends(get_finalization_service),
) -> dict:
    metadata = await service.get_finalized_season_metadata(season)
    if metadata is None:
        raise HTTPException(status_code=404, detail=f"season {season} has no stored snapshot")
    rows = await service.get_finalized_leaderboard(season)
    return {
        "metadata": metadata.model_dump(mode="json"),
        "entries": [r.model_dump(mode="json") for r in rows],
    }


@router.get("/{season}/stats", summary="Aggregate stats of a finalized season")
async def get_season_stats(
    season: int = Path(..., ge=1, description="Season number"),
    service: FinalizationService = Depends(get_finalization_service),
) -> dict:
    stats = await service.get_finalized_season_stats(season)
    if stats is None:
        raise HTTPException(status_code=404, detail=f"season {season} has no stored snapshot")
    return stats.model_dump(mode="json")


@router.post(
    "/{season}/finalize",
    summary="Finalize a closed season",
    description="Snapshot the season's ranking once the ledger reports it closed. No-op if already stored or empty.",
)
async def post_finalize_season(
    season: int = Path(..., ge=1, description="Season number"),
    session: AsyncSession = Depends(get_db_session),
    service: FinalizationService = Depends(get_finalization_service),
    catalog: ItemCatalog = Depends(get_item_catalog),
) -> dict:
    try:
        result = await service.finalize_season_leaderboard(season, catalog.list_items())
    except (NotFinalizedError, DuplicateFinalizationError) as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except LedgerError as e:
        raise HTTPException(status_code=502, detail=f"ledger unavailable: {e}") from e
    await session.commit()
    if result is None:
        return {"season": season, "finalized": False, "rows": 0, "snapshot_hash": None}
    return {
        "season": season,
        "finalized": True,
        "rows": result.rows,
        "snapshot_hash": result.snapshot_hash,
        "total_votes": str(result.total_votes),
        "top_item_id": result.top_item_id,
        "finalized_at": result.finalized_at.isoformat(),
    }


@router.get("/{season}/verify", summary="Verify a stored snapshot against its hash")
async def get_verify_season(
    season: int = Path(..., ge=1, description="Season number"),
    service: FinalizationService = Depends(get_finalization_service),
) -> dict:
    return {"season": season, "valid": await service.verify_snapshot(season)}


@router.post(
    "/detect",
    summary="Finalize recently closed seasons",
    description="Checks the last `lookback` seasons before the current one and snapshots those closed on the ledger.",
)
async def post_detect_finalizations(
    lookback: int = Query(DEFAULT_DETECT_LOOKBACK, ge=1, le=100),
    session: AsyncSession = Depends(get_db_session),
    service: FinalizationService = Depends(get_finalization_service),
    catalog: ItemCatalog = Depends(get_item_catalog),
) -> dict:
    try:
        seasons = await service.detect_and_store_new_finalizations(catalog.list_items(), lookback)
    except LedgerError as e:
        raise HTTPException(status_code=502, detail=f"ledger unavailable: {e}") from e
    await session.commit()
    return {"finalized_seasons": seasons}


@router.post("/cleanup", summary="Delete snapshots of old seasons")
async def post_cleanup(
    keep_seasons: int = Query(DEFAULT_KEEP_SEASONS, ge=0),
    current_season: Optional[int] = Query(None, ge=1),
    session: AsyncSession = Depends(get_db_session),
    service: FinalizationService = Depends(get_finalization_service),
) -> dict:
    try:
        summary = await service.cleanup(keep_seasons=keep_seasons, current_season=current_season)
    except LedgerError as e:
        raise HTTPException(status_code=502, detail=f"ledger unavailable: {e}") from e
    await session.commit()
    return summary
