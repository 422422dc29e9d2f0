"""
Season finalization: freeze a closed season's ranking into an immutable,
hash-stamped snapshot and serve it back as historical truth.

Per season: Open -> FinalizedOnLedger (observed via getPeriodInfo) -> Snapshotted
(metadata + rows stored). The existence check before writing is only a fast
path; the uniqueness constraints on both tables are what reject a second
concurrent writer, surfaced here as DuplicateFinalizationError.

Finalization errors are not absorbed: the whole write happens inside the
caller's session and is rolled back on any failure.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel, field_serializer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.schema import Item
from ledger.errors import LedgerError
from ledger.reader import LedgerReader
from leaderboard.engine import RankingEngine
from leaderboard.schema import LeaderboardEntry
from models.finalized import FinalizedPeriodMetadata, FinalizedSnapshotRow
from ops.ops_events import (
    log_finalization_end,
    log_finalization_skipped,
    log_finalization_start,
    log_retention_cleanup,
    log_snapshot_integrity_failed,
)
from repositories.finalized_repo import FinalizedSnapshotRepository
from services.snapshot_hash import snapshot_hash
from services.tally_cache import TallyValue

logger = logging.getLogger(__name__)

DEFAULT_KEEP_SEASONS = 10
DEFAULT_DETECT_LOOKBACK = 5


class NotFinalizedError(Exception):
    """The ledger has not closed this season yet."""

    def __init__(self, season: int) -> None:
        super().__init__(f"season {season} is not finalized on the ledger")
        self.season = season


class IntegrityMismatchError(Exception):
    """Stored snapshot no longer matches its hash."""

    def __init__(self, season: int, stored: Optional[str], calculated: str) -> None:
        super().__init__(
            f"season {season} snapshot hash mismatch: stored={stored} calculated={calculated}"
        )
        self.season = season
        self.stored = stored
        self.calculated = calculated


class DuplicateFinalizationError(Exception):
    """Another writer stored this season first; treat as already finalized."""

    def __init__(self, season: int) -> None:
        super().__init__(f"season {season} is already finalized")
        self.season = season


@dataclass(frozen=True)
class FinalizationResult:
    season: int
    rows: int
    snapshot_hash: str
    total_votes: int
    top_item_id: Optional[str]
    finalized_at: datetime


class FinalizedRowOut(BaseModel):
    season_number: int
    item_id: str
    final_rank: int
    total_votes: int
    percentage_of_total: float
    finalized_at: datetime
    snapshot_hash: str

    @field_serializer("total_votes")
    def _votes_as_str(self, v: int) -> str:
        return str(v)


class FinalizedSeasonOut(BaseModel):
    season_number: int
    start_time: datetime
    end_time: datetime
    total_votes: int
    total_items_count: int
    top_item_id: Optional[str] = None
    top_item_votes: int
    finalized_at: datetime
    snapshot_hash: str

    @field_serializer("total_votes", "top_item_votes")
    def _big_as_str(self, v: int) -> str:
        return str(v)


class FinalizedSeasonStats(BaseModel):
    season_number: int
    total_votes: int
    total_items: int
    top_item_id: Optional[str] = None
    top_item_votes: int
    average_votes: int

    @field_serializer("total_votes", "top_item_votes", "average_votes")
    def _big_as_str(self, v: int) -> str:
        return str(v)


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _row_out(row: FinalizedSnapshotRow) -> FinalizedRowOut:
    return FinalizedRowOut(
        season_number=row.season_number,
        item_id=row.item_id,
        final_rank=row.final_rank,
        total_votes=int(row.total_votes),
        percentage_of_total=float(row.percentage_of_total),
        finalized_at=_utc(row.finalized_at),
        snapshot_hash=row.snapshot_hash,
    )


def _season_out(meta: FinalizedPeriodMetadata) -> FinalizedSeasonOut:
    return FinalizedSeasonOut(
        season_number=meta.season_number,
        start_time=_utc(meta.start_time),
        end_time=_utc(meta.end_time),
        total_votes=int(meta.total_votes),
        total_items_count=meta.total_items_count,
        top_item_id=meta.top_item_id,
        top_item_votes=int(meta.top_item_votes),
        finalized_at=_utc(meta.finalized_at),
        snapshot_hash=meta.snapshot_hash,
    )


class FinalizationService:
    """Writes, reads, verifies and prunes finalized season snapshots."""

    def __init__(
        self,
        session: AsyncSession,
        ledger: LedgerReader,
        engine: RankingEngine,
        batch_size: int = 50,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._session = session
        self._repo = FinalizedSnapshotRepository(session)
        self._ledger = ledger
        self._engine = engine
        self._batch_size = max(1, batch_size)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def is_season_finalized(self, season: int) -> bool:
        """Ledger closure flag; False (with a warning) when the ledger cannot answer."""
        try:
            info = await self._ledger.get_period_info(season)
        except LedgerError as e:
            logger.warning("Season %s finalization status unavailable: %s", season, e)
            return False
        return info.finalized

    async def has_stored_finalization(self, season: int) -> bool:
        return await self._repo.has_metadata(season)

    async def finalize_season_leaderboard(
        self, season: int, items: Iterable[Item]
    ) -> Optional[FinalizationResult]:
        """
        Snapshot a closed season. Returns None when already stored or when the
        ranking is empty. Raises NotFinalizedError if the ledger still has the
        season open, LedgerError if the ledger cannot be read, and
        DuplicateFinalizationError if a concurrent writer got there first.
        """
        items = list(items)
        if await self._repo.has_metadata(season):
            log_finalization_skipped(season, "already_finalized")
            return None

        info = await self._ledger.get_period_info(season)
        if not info.finalized:
            raise NotFinalizedError(season)

        t0 = log_finalization_start(season, len(items))
        entries = await self._rank_closed_season(items, season)
        if not entries:
            log_finalization_skipped(season, "empty_ranking")
            return None

        digest = snapshot_hash((e.item_id, e.rank, e.total_votes) for e in entries)
        finalized_at = _utc(self._clock())
        total_votes = sum(e.total_votes for e in entries)
        top = entries[0]

        metadata = FinalizedPeriodMetadata(
            season_number=season,
            start_time=info.start_time,
            end_time=info.end_time,
            total_votes=str(total_votes),
            total_items_count=len(entries),
            top_item_id=top.item_id,
            top_item_votes=str(top.total_votes),
            finalized_at=finalized_at,
            snapshot_hash=digest,
        )
        rows = [
            FinalizedSnapshotRow(
                season_number=season,
                item_id=e.item_id,
                final_rank=e.rank,
                total_votes=str(e.total_votes),
                percentage_of_total=e.percentage_of_total,
                finalized_at=finalized_at,
                snapshot_hash=digest,
            )
            for e in entries
        ]

        try:
            await self._repo.insert_metadata(metadata)
            for start in range(0, len(rows), self._batch_size):
                await self._repo.insert_rows(rows[start:start + self._batch_size])
        except IntegrityError as e:
            await self._session.rollback()
            log_finalization_end(season, time.perf_counter() - t0, error="duplicate")
            raise DuplicateFinalizationError(season) from e
        except Exception as e:
            await self._session.rollback()
            log_finalization_end(season, time.perf_counter() - t0, error=f"{type(e).__name__}: {e}")
            raise

        log_finalization_end(season, time.perf_counter() - t0, rows=len(rows), snapshot_hash=digest)
        return FinalizationResult(
            season=season,
            rows=len(rows),
            snapshot_hash=digest,
            total_votes=total_votes,
            top_item_id=top.item_id,
            finalized_at=finalized_at,
        )

    async def _rank_closed_season(self, items: List[Item], season: int) -> List[LeaderboardEntry]:
        """Ledger-direct ranking; a single failed read fails the finalization."""
        ids = list(dict.fromkeys(i.id for i in items))
        outcomes = await self._ledger.read_votes_bulk(season, ids)
        tallies: Dict[str, TallyValue] = {}
        for item_id, outcome in outcomes.items():
            if isinstance(outcome, LedgerError):
                raise outcome
            tallies[item_id] = TallyValue(votes=outcome, voter_count=0)
        return self._engine.build_entries(items, tallies)

    async def get_finalized_leaderboard(self, season: int) -> List[FinalizedRowOut]:
        """Stored rows, rank ascending; empty when the season was never snapshotted."""
        return [_row_out(r) for r in await self._repo.list_rows(season)]

    async def get_finalized_season_metadata(self, season: int) -> Optional[FinalizedSeasonOut]:
        meta = await self._repo.get_metadata(season)
        return _season_out(meta) if meta is not None else None

    async def list_finalized_seasons(self) -> List[FinalizedSeasonOut]:
        return [_season_out(m) for m in await self._repo.list_metadata()]

    async def get_finalized_season_stats(self, season: int) -> Optional[FinalizedSeasonStats]:
        meta = await self._repo.get_metadata(season)
        if meta is None:
            return None
        total = int(meta.total_votes)
        count = meta.total_items_count
        return FinalizedSeasonStats(
            season_number=season,
            total_votes=total,
            total_items=count,
            top_item_id=meta.top_item_id,
            top_item_votes=int(meta.top_item_votes),
            average_votes=total // count if count else 0,
        )

    async def verify_snapshot(self, season: int, strict: bool = False) -> bool:
        """
        Recompute the hash from the stored rows and compare it with the stored
        hash on the metadata and on every row. Mismatch is logged, never repaired;
        strict=True raises IntegrityMismatchError instead of returning False.
        """
        meta = await self._repo.get_metadata(season)
        rows = await self._repo.list_rows(season)
        if meta is None or not rows:
            logger.warning("Season %s has no complete stored snapshot to verify", season)
            return False

        calculated = snapshot_hash((r.item_id, r.final_rank, r.total_votes) for r in rows)
        stored = meta.snapshot_hash
        consistent = calculated == stored and all(r.snapshot_hash == stored for r in rows)
        if consistent:
            return True

        log_snapshot_integrity_failed(season, stored, calculated)
        if strict:
            raise IntegrityMismatchError(season, stored, calculated)
        return False

    async def _current_season(self) -> int:
        configured = self._engine.configured_current_season
        if configured:
            return configured
        return await self._ledger.get_current_season()

    async def detect_and_store_new_finalizations(
        self, items: Iterable[Item], lookback: int = DEFAULT_DETECT_LOOKBACK
    ) -> List[int]:
        """
        Finalize every recent season (current excluded) that the ledger has
        closed and that is not stored yet. Returns the seasons written.
        Raises LedgerError when the current season cannot be determined.
        """
        items = list(items)
        current = await self._current_season()
        written: List[int] = []
        for season in range(max(1, current - max(0, lookback)), current):
            if await self._repo.has_metadata(season):
                continue
            if not await self.is_season_finalized(season):
                continue
            try:
                result = await self.finalize_season_leaderboard(season, items)
            except DuplicateFinalizationError:
                logger.info("Season %s finalized concurrently; skipping", season)
                continue
            except LedgerError as e:
                logger.warning("Season %s finalization deferred: %s", season, e)
                continue
            if result is not None:
                written.append(season)
        return written

    async def cleanup(
        self, keep_seasons: int = DEFAULT_KEEP_SEASONS, current_season: Optional[int] = None
    ) -> Dict[str, Any]:
        """Delete stored snapshots of seasons older than current - keep_seasons."""
        if keep_seasons < 0:
            raise ValueError("keep_seasons must be >= 0")
        current = current_season or await self._current_season()
        cutoff = max(1, current - keep_seasons)
        rows_deleted = await self._repo.delete_rows_before(cutoff)
        seasons_deleted = await self._repo.delete_metadata_before(cutoff)
        log_retention_cleanup(cutoff, rows_deleted, seasons_deleted)
        return {
            "rows_deleted": rows_deleted,
            "seasons_deleted": seasons_deleted,
            "cutoff_season": cutoff,
        }
