"""
Ranking engine: item catalog + vote tallies -> sorted, filtered, paginated leaderboard.

Open periods resolve tallies through the tally cache (ledger bulk read when the
cache is unavailable). A closed season is served from its stored snapshot; a
closed season that was never snapshotted is computed straight from the ledger.
Tally failures degrade to zero votes; they never fail the request. Any cache
failure falls through to the ledger read, which itself degrades to zeros.

Order is strictly raw vote weight, descending. Ties keep catalog order and
still get sequential ranks. At most MAX_RANKED_ENTRIES are ranked, and the
percentages are shares of that truncated set.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from catalog.schema import Item
from ledger.errors import LedgerError
from ledger.reader import LedgerReader
from leaderboard.periods import PeriodSelector, filter_items_by_period, parse_period
from leaderboard.schema import (
    ChangeDirection,
    LeaderboardEntry,
    LeaderboardFilters,
    LeaderboardPage,
    LeaderboardQuery,
    LeaderboardStats,
    RankingChange,
    SortBy,
    SortOrder,
)
from leaderboard.scoring import (
    MAX_RANKED_ENTRIES,
    auxiliary_score,
    change_indicator,
    parse_min_votes,
    percentages,
)
from models.finalized import FinalizedSnapshotRow
from ops.ops_events import log_leaderboard_computed
from repositories.finalized_repo import FinalizedSnapshotRepository
from services.tally_cache import CacheUnavailableError, TallyCache, TallyValue, ZERO_TALLY

logger = logging.getLogger(__name__)

SOURCE_CACHE = "cache"
SOURCE_LEDGER = "ledger"
SOURCE_SNAPSHOT = "snapshot"
SOURCE_DEGRADED = "degraded"


@dataclass
class RankedLeaderboard:
    """Full ranked list for a period, before post-ranking filters and pagination."""

    period: str
    season: Optional[int]
    source: str
    entries: List[LeaderboardEntry]


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class RankingEngine:
    """Builds leaderboards; every collaborator is injected."""

    def __init__(
        self,
        ledger: LedgerReader,
        cache: Optional[TallyCache] = None,
        snapshots: Optional[FinalizedSnapshotRepository] = None,
        current_season: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._ledger = ledger
        self._cache = cache
        self._snapshots = snapshots
        self._current_season = current_season
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _now(self) -> datetime:
        return _utc(self._clock())

    @property
    def configured_current_season(self) -> Optional[int]:
        return self._current_season or None

    async def resolve_current_season(self) -> Optional[int]:
        """Configured current season, else the ledger's; None when neither is available."""
        if self._current_season:
            return self._current_season
        try:
            return await self._ledger.get_current_season()
        except LedgerError as e:
            logger.warning("Current season unavailable from ledger: %s", e)
            return None

    async def _resolve_tallies(
        self, item_ids: List[str], season: Optional[int], use_cache: bool
    ) -> Tuple[Dict[str, TallyValue], str]:
        if season is None or not item_ids:
            return {}, SOURCE_DEGRADED if season is None else SOURCE_LEDGER
        if use_cache and self._cache is not None:
            try:
                return await self._cache.get_bulk(item_ids, season), SOURCE_CACHE
            except CacheUnavailableError as e:
                logger.warning("Tally cache unavailable, reading ledger directly: %s", e)
            except Exception as e:
                logger.warning(
                    "Tally cache lookup failed for season %s, reading ledger directly: %s: %s",
                    season, type(e).__name__, e,
                )
        try:
            votes = await self._ledger.get_votes_bulk(season, item_ids)
        except Exception as e:
            logger.warning("Tally resolution failed for season %s, ranking all items at zero: %s", season, e)
            return {}, SOURCE_DEGRADED
        # voter counts are not derivable from a bare ledger read
        return {i: TallyValue(votes=v, voter_count=0) for i, v in votes.items()}, SOURCE_LEDGER

    def build_entries(
        self, items: Iterable[Item], tallies: Dict[str, TallyValue]
    ) -> List[LeaderboardEntry]:
        """Sort by raw votes, truncate, rank 1..N, attach percentages and change indicators."""
        now = self._now()
        scored: List[Tuple[Item, TallyValue]] = [
            (item, tallies.get(item.id, ZERO_TALLY)) for item in items
        ]
        # sorted() is stable: equal vote weights keep catalog order
        scored = sorted(scored, key=lambda pair: pair[1].votes, reverse=True)[:MAX_RANKED_ENTRIES]
        shares = percentages([t.votes for _, t in scored])
        entries: List[LeaderboardEntry] = []
        for index, ((item, tally), share) in enumerate(zip(scored, shares)):
            entries.append(
                LeaderboardEntry(
                    rank=index + 1,
                    item_id=item.id,
                    total_votes=tally.votes,
                    voter_count=tally.voter_count,
                    percentage_of_total=share,
                    title=item.title,
                    description=item.description,
                    creator=item.creator,
                    created_at=item.created_at,
                    content_type=item.content_type,
                    tags=list(item.tags),
                    verified=item.verified,
                    change=change_indicator(index, item.verified),
                    score=auxiliary_score(item, tally.votes, now),
                )
            )
        return entries

    def entries_from_snapshot(
        self, rows: List[FinalizedSnapshotRow], items: Iterable[Item]
    ) -> List[LeaderboardEntry]:
        """Stored rows joined with catalog metadata; ranks and shares are taken as stored."""
        now = self._now()
        by_id = {i.id: i for i in items}
        entries: List[LeaderboardEntry] = []
        for row in rows:
            votes = int(row.total_votes)
            item = by_id.get(row.item_id) or Item(
                id=row.item_id,
                title=f"Item #{row.item_id}",
                created_at=_utc(row.finalized_at),
            )
            entries.append(
                LeaderboardEntry(
                    rank=row.final_rank,
                    item_id=row.item_id,
                    total_votes=votes,
                    voter_count=0,
                    percentage_of_total=float(row.percentage_of_total),
                    title=item.title,
                    description=item.description,
                    creator=item.creator,
                    created_at=item.created_at,
                    content_type=item.content_type,
                    tags=list(item.tags),
                    verified=item.verified,
                    change=RankingChange(direction=ChangeDirection.SAME, positions=0),
                    score=auxiliary_score(item, votes, now),
                )
            )
        return entries

    async def rank_season(
        self, items: Iterable[Item], season: Optional[int], use_cache: bool = True
    ) -> Tuple[List[LeaderboardEntry], str]:
        """Rank items for one season. use_cache=False reads the ledger directly."""
        items = list(items)
        ids = list(dict.fromkeys(i.id for i in items))
        tallies, source = await self._resolve_tallies(ids, season, use_cache)
        return self.build_entries(items, tallies), source

    async def rank_period(self, items: Iterable[Item], period: Optional[str]) -> RankedLeaderboard:
        """Full ranked list for a period selector. Raises ValueError for unknown selectors."""
        selector: PeriodSelector = parse_period(period)
        items = list(items)
        t0 = time.perf_counter()

        if selector.is_closed_season:
            season = selector.season
            rows: List[FinalizedSnapshotRow] = []
            if self._snapshots is not None:
                rows = await self._snapshots.list_rows(season)
            if rows:
                entries, source = self.entries_from_snapshot(rows, items), SOURCE_SNAPSHOT
            else:
                entries, source = await self.rank_season(items, season, use_cache=False)
        else:
            eligible = filter_items_by_period(items, selector, self._now())
            season = await self.resolve_current_season()
            entries, source = await self.rank_season(eligible, season, use_cache=True)

        log_leaderboard_computed(selector.raw, season, source, len(entries), time.perf_counter() - t0)
        return RankedLeaderboard(period=selector.raw, season=season, source=source, entries=entries)

    async def compute(self, items: Iterable[Item], query: LeaderboardQuery) -> LeaderboardPage:
        """Ranked, filtered, presentation-sorted and paginated leaderboard page."""
        ranked = await self.rank_period(items, query.period)
        filtered = apply_filters(ranked.entries, query.filters)
        ordered = sort_entries(filtered, query.sort_by, query.sort_order)
        return paginate(ordered, query, ranked, self._now())


def apply_filters(
    entries: List[LeaderboardEntry], filters: LeaderboardFilters
) -> List[LeaderboardEntry]:
    """Post-ranking filters; ranks are kept as computed."""
    min_votes = parse_min_votes(filters.min_votes)
    needle = (filters.search_query or "").strip().lower()
    out: List[LeaderboardEntry] = []
    for entry in entries:
        if filters.content_type is not None and entry.content_type != filters.content_type:
            continue
        if min_votes is not None and entry.total_votes < min_votes:
            continue
        if needle:
            haystacks = [entry.title, entry.description, entry.creator, *entry.tags]
            if not any(needle in h.lower() for h in haystacks):
                continue
        out.append(entry)
    return out


_SORT_KEYS = {
    SortBy.RANK: lambda e: e.rank,
    SortBy.VOTES: lambda e: e.total_votes,
    SortBy.TITLE: lambda e: e.title.lower(),
    SortBy.CREATOR: lambda e: e.creator.lower(),
    SortBy.CREATED_AT: lambda e: e.created_at,
    SortBy.CHANGE: lambda e: e.change.positions,
}


def sort_entries(
    entries: List[LeaderboardEntry], sort_by: SortBy, sort_order: SortOrder
) -> List[LeaderboardEntry]:
    key = _SORT_KEYS.get(sort_by, _SORT_KEYS[SortBy.RANK])
    return sorted(entries, key=key, reverse=sort_order == SortOrder.DESC)


def paginate(
    entries: List[LeaderboardEntry],
    query: LeaderboardQuery,
    ranked: RankedLeaderboard,
    now: datetime,
) -> LeaderboardPage:
    total = len(entries)
    start = (query.page - 1) * query.page_size
    return LeaderboardPage(
        entries=entries[start:start + query.page_size],
        total_count=total,
        total_pages=math.ceil(total / query.page_size) if total else 0,
        current_page=query.page,
        page_size=query.page_size,
        has_next_page=query.page * query.page_size < total,
        has_previous_page=query.page > 1,
        last_updated=now,
        period=ranked.period,
        season=ranked.season,
        source=ranked.source,
    )


def compute_stats(period: str, entries: List[LeaderboardEntry]) -> LeaderboardStats:
    if not entries:
        return LeaderboardStats(
            period=period,
            total_items=0,
            total_votes=0,
            active_voters=0,
            average_votes_per_item=0,
            top_item_votes=0,
        )
    total_votes = sum(e.total_votes for e in entries)
    return LeaderboardStats(
        period=period,
        total_items=len(entries),
        total_votes=total_votes,
        active_voters=sum(e.voter_count for e in entries),
        average_votes_per_item=total_votes // len(entries),
        top_item_votes=max(e.total_votes for e in entries),
    )
