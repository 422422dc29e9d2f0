"""Leaderboard API: ranked page, aggregate stats, CSV export."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from catalog.schema import ContentType
from catalog.sources import ItemCatalog
from core.dependencies import get_item_catalog, get_ranking_engine
from leaderboard.engine import RankingEngine, compute_stats
from leaderboard.export import export_csv
from leaderboard.periods import DEFAULT_PERIOD
from leaderboard.schema import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    LeaderboardFilters,
    LeaderboardPage,
    LeaderboardQuery,
    LeaderboardStats,
    SortBy,
    SortOrder,
)

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get(
    "",
    response_model=LeaderboardPage,
    summary="Ranked leaderboard page",
    description="Items ranked by vote weight for a period (24h, 7d, 30d, all, current, season-N), then filtered, sorted and paginated.",
)
async def get_leaderboard(
    period: str = Query(DEFAULT_PERIOD),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort_by: SortBy = Query(SortBy.RANK),
    sort_order: SortOrder = Query(SortOrder.ASC),
    search: Optional[str] = Query(None, description="Case-insensitive text search"),
    content_type: Optional[ContentType] = Query(None),
    min_votes: Optional[str] = Query(None, description="Minimum votes in whole tokens, e.g. '0.5'"),
    engine: RankingEngine = Depends(get_ranking_engine),
    catalog: ItemCatalog = Depends(get_item_catalog),
) -> LeaderboardPage:
    query = LeaderboardQuery(
        period=period,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
        filters=LeaderboardFilters(
            search_query=search, content_type=content_type, min_votes=min_votes
        ),
    )
    try:
        return await engine.compute(catalog.list_items(), query)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get(
    "/stats",
    response_model=LeaderboardStats,
    summary="Leaderboard aggregate stats",
)
async def get_leaderboard_stats(
    period: str = Query(DEFAULT_PERIOD),
    engine: RankingEngine = Depends(get_ranking_engine),
    catalog: ItemCatalog = Depends(get_item_catalog),
) -> LeaderboardStats:
    try:
        ranked = await engine.rank_period(catalog.list_items(), period)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return compute_stats(ranked.period, ranked.entries)


@router.get(
    "/export",
    summary="Export ranked leaderboard as CSV",
    response_class=Response,
)
async def get_leaderboard_export(
    period: str = Query(DEFAULT_PERIOD),
    engine: RankingEngine = Depends(get_ranking_engine),
    catalog: ItemCatalog = Depends(get_item_catalog),
) -> Response:
    try:
        ranked = await engine.rank_period(catalog.list_items(), period)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    filename = f"leaderboard-{ranked.period}.csv"
    return Response(
        content=export_csv(ranked.entries),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
