"""
Staleness-aware cache of per-item vote tallies, scoped by season.

Reads are served from the vote_tally_cache table. A zero or missing tally
whose row is older than the freshness window is resynced from the ledger and
written back; non-zero tallies are returned without a staleness check. Lookup
and resync failures never reach the ranking code: get() falls back to the
caller's default, get_bulk() to zero for the failed items.

Concurrent sync() calls for the same key are single-statement upserts (last
writer wins); no locking is done.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.errors import LedgerError
from ledger.reader import LedgerReader
from models.vote_tally import VoteTallyCache
from ops.ops_events import log_tally_fallback, log_tally_sync
from repositories.vote_tally_repo import VoteTallyRepository

logger = logging.getLogger(__name__)


class CacheUnavailableError(Exception):
    """The cache store itself could not be read (callers fall back to the ledger)."""


@dataclass(frozen=True)
class TallyValue:
    votes: int
    voter_count: int


ZERO_TALLY = TallyValue(votes=0, voter_count=0)


def _utc(dt: datetime) -> datetime:
    # SQLite hands DateTime(timezone=True) back naive
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _row_value(row: VoteTallyCache) -> TallyValue:
    return TallyValue(votes=int(row.total_votes), voter_count=int(row.voter_count or 0))


def fallback_value(default_votes: int) -> TallyValue:
    """Caller default with the heuristic voter count (1 if any votes, else 0)."""
    votes = max(0, int(default_votes))
    return TallyValue(votes=votes, voter_count=1 if votes > 0 else 0)


class TallyCache:
    """Vote tally cache with lazy, on-read resync from the ledger."""

    def __init__(
        self,
        session: AsyncSession,
        ledger: LedgerReader,
        freshness_seconds: int = 3600,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repo = VoteTallyRepository(session)
        self._ledger = ledger
        self._freshness = timedelta(seconds=max(0, freshness_seconds))
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _now(self) -> datetime:
        return _utc(self._clock())

    def _row_is_stale(self, row: Optional[VoteTallyCache]) -> bool:
        if row is None:
            return True
        return self._now() - _utc(row.cached_at) > self._freshness

    async def _write_back(
        self, item_id: str, season: int, votes: int, existing: Optional[VoteTallyCache]
    ) -> TallyValue:
        voter_count = existing.voter_count if existing is not None else (1 if votes > 0 else 0)
        row = await self._repo.upsert(item_id, season, votes, voter_count, self._now())
        log_tally_sync(item_id, season, votes)
        return _row_value(row)

    async def get(self, item_id: str, season: int, default_votes: int = 0) -> TallyValue:
        """Cached tally for item_id; resyncs a zero/missing stale entry; never raises."""
        try:
            row = await self._repo.get(item_id, season)
            if row is not None and int(row.total_votes) > 0:
                return _row_value(row)
            if self._row_is_stale(row):
                await self.sync(item_id, season)
                row = await self._repo.get(item_id, season)
            if row is None:
                return fallback_value(default_votes)
            return _row_value(row)
        except Exception as e:
            log_tally_fallback(item_id, season, default_votes, f"{type(e).__name__}: {e}")
            return fallback_value(default_votes)

    async def get_bulk(self, item_ids: Iterable[str], season: int) -> Dict[str, TallyValue]:
        """
        Tallies for every id in one cache query plus one concurrent ledger fan-out
        for the ids that need a resync. Ids with no usable value map to zero.
        Raises CacheUnavailableError only when the cache table cannot be read.
        """
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return {}
        try:
            rows = await self._repo.get_many(ids, season)
        except SQLAlchemyError as e:
            raise CacheUnavailableError(f"tally cache read failed: {e!s}") from e

        out: Dict[str, TallyValue] = {}
        to_sync: List[str] = []
        for item_id in ids:
            row = rows.get(item_id)
            if row is not None and int(row.total_votes) > 0:
                out[item_id] = _row_value(row)
            elif self._row_is_stale(row):
                to_sync.append(item_id)
            else:
                out[item_id] = _row_value(row)

        if to_sync:
            outcomes = await self._ledger.read_votes_bulk(season, to_sync)
            for item_id in to_sync:
                outcome = outcomes.get(item_id)
                if outcome is None or isinstance(outcome, LedgerError):
                    log_tally_fallback(item_id, season, 0, str(outcome))
                    existing = rows.get(item_id)
                    out[item_id] = _row_value(existing) if existing is not None else ZERO_TALLY
                    continue
                try:
                    out[item_id] = await self._write_back(item_id, season, outcome, rows.get(item_id))
                except SQLAlchemyError as e:
                    # the ledger value is still good; only the write-back was lost
                    logger.warning("Tally write-back failed item=%s season=%s: %s", item_id, season, e)
                    out[item_id] = fallback_value(outcome)
        return out

    async def is_stale(self, item_id: str, season: int) -> bool:
        """True when there is no entry or it is older than the freshness window."""
        row = await self._repo.get(item_id, season)
        return self._row_is_stale(row)

    async def sync(self, item_id: str, season: int) -> TallyValue:
        """Force a ledger read and write it through. Raises LedgerError on read failure."""
        votes = await self._ledger.read_votes(season, item_id)
        existing = await self._repo.get(item_id, season)
        return await self._write_back(item_id, season, votes, existing)

    async def sync_many(self, item_ids: Iterable[str], season: int) -> Dict[str, Any]:
        """Resync several items (concurrent ledger reads, sequential writes)."""
        ids = list(dict.fromkeys(item_ids))
        outcomes = await self._ledger.read_votes_bulk(season, ids)
        existing = await self._repo.get_many(ids, season)
        synced: Dict[str, str] = {}
        failed: Dict[str, str] = {}
        for item_id in ids:
            outcome = outcomes.get(item_id)
            if isinstance(outcome, LedgerError) or outcome is None:
                failed[item_id] = str(outcome)
                continue
            value = await self._write_back(item_id, season, outcome, existing.get(item_id))
            synced[item_id] = str(value.votes)
        if failed:
            logger.warning("Tally sync season=%s: %d of %d items failed", season, len(failed), len(ids))
        return {"season": season, "synced": synced, "failed": failed}

    async def clear(self, item_id: Optional[str] = None, season: Optional[int] = None) -> int:
        """Invalidate one item, one season, one item in one season, or everything."""
        deleted = await self._repo.delete_scoped(item_id=item_id, season=season)
        logger.info("Tally cache cleared item=%s season=%s deleted=%d", item_id, season, deleted)
        return deleted

    async def stats(self) -> Dict[str, Any]:
        stats = await self._repo.stats()
        last = stats.get("last_updated")
        stats["last_updated"] = _utc(last) if isinstance(last, datetime) else None
        return stats
