"""Tally cache: hot-path reads, lazy staleness resync, fallbacks, bulk write-back, clear and stats."""

from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

import pytest
from sqlalchemy.exc import OperationalError

from core.database import get_database_manager
from ledger.errors import TransientNetworkError
from ledger.reader import FN_VOTES_IN_SEASON, LedgerReader
from repositories.vote_tally_repo import VoteTallyRepository
from services.tally_cache import CacheUnavailableError, TallyCache, TallyValue
from tests.fakes import NOW, TOKEN, FakeLedgerTransport


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def _cache(session, transport: FakeLedgerTransport, clock: Clock, freshness: int = 3600) -> TallyCache:
    return TallyCache(session, LedgerReader(transport), freshness_seconds=freshness, clock=clock)


@pytest.mark.asyncio
async def test_stale_zero_entry_triggers_exactly_one_sync(test_db, fake_transport) -> None:
    """Entry cached 2 hours ago with a 1 hour window: one sync, then the fresh value."""
    clock = Clock(NOW)
    async with get_database_manager().session() as session:
        await VoteTallyRepository(session).upsert("7", 1, 0, 0, NOW - timedelta(hours=2))
        fake_transport.set_votes(1, "7", 4 * TOKEN)
        cache = _cache(session, fake_transport, clock)

        value = await cache.get("7", 1)

    assert value == TallyValue(votes=4 * TOKEN, voter_count=0)
    assert fake_transport.count(FN_VOTES_IN_SEASON) == 1


@pytest.mark.asyncio
async def test_non_zero_value_returned_without_staleness_check(test_db, fake_transport) -> None:
    async with get_database_manager().session() as session:
        await VoteTallyRepository(session).upsert("7", 1, 5, 2, NOW - timedelta(days=3))
        fake_transport.set_votes(1, "7", 99)
        value = await _cache(session, fake_transport, Clock(NOW)).get("7", 1)

    assert value == TallyValue(votes=5, voter_count=2)
    assert fake_transport.calls == []


@pytest.mark.asyncio
async def test_fresh_zero_is_a_legitimate_unvoted_item(test_db, fake_transport) -> None:
    async with get_database_manager().session() as session:
        await VoteTallyRepository(session).upsert("7", 1, 0, 0, NOW - timedelta(minutes=10))
        fake_transport.set_votes(1, "7", 99)
        value = await _cache(session, fake_transport, Clock(NOW)).get("7", 1)

    assert value.votes == 0
    assert fake_transport.calls == []


@pytest.mark.asyncio
async def test_missing_entry_is_synced_and_written_back(test_db, fake_transport) -> None:
    fake_transport.set_votes(2, "9", 3)
    async with get_database_manager().session() as session:
        cache = _cache(session, fake_transport, Clock(NOW))
        assert await cache.is_stale("9", 2) is True
        value = await cache.get("9", 2)
        assert value == TallyValue(votes=3, voter_count=1)
        assert await cache.is_stale("9", 2) is False

    async with get_database_manager().session() as session:
        row = await VoteTallyRepository(session).get("9", 2)
        assert row is not None
        assert int(row.total_votes) == 3


@pytest.mark.asyncio
async def test_sync_failure_falls_back_to_caller_default(test_db, fake_transport) -> None:
    fake_transport.down = True
    async with get_database_manager().session() as session:
        cache = _cache(session, fake_transport, Clock(NOW))
        assert await cache.get("9", 2, default_votes=50) == TallyValue(votes=50, voter_count=1)
        assert await cache.get("9", 2) == TallyValue(votes=0, voter_count=0)
        with pytest.raises(TransientNetworkError):
            await cache.sync("9", 2)


@pytest.mark.asyncio
async def test_sync_keeps_previous_voter_count(test_db, fake_transport) -> None:
    fake_transport.set_votes(1, "4", 10)
    async with get_database_manager().session() as session:
        await VoteTallyRepository(session).upsert("4", 1, 2, 17, NOW - timedelta(hours=5))
        value = await _cache(session, fake_transport, Clock(NOW)).sync("4", 1)
    assert value == TallyValue(votes=10, voter_count=17)


@pytest.mark.asyncio
async def test_get_bulk_reads_only_what_needs_resync(test_db, fake_transport) -> None:
    fake_transport.set_votes(1, "1", 111)
    fake_transport.set_votes(1, "2", 222)
    fake_transport.set_votes(1, "3", 333)
    fake_transport.failing_items.add(4)
    async with get_database_manager().session() as session:
        repo = VoteTallyRepository(session)
        await repo.upsert("1", 1, 100, 3, NOW - timedelta(days=1))  # non-zero: served as is
        await repo.upsert("2", 1, 0, 0, NOW - timedelta(minutes=5))  # fresh zero
        cache = _cache(session, fake_transport, Clock(NOW))

        out = await cache.get_bulk(["1", "2", "3", "4"], 1)

    assert out["1"] == TallyValue(votes=100, voter_count=3)
    assert out["2"] == TallyValue(votes=0, voter_count=0)
    assert out["3"] == TallyValue(votes=333, voter_count=1)
    assert out["4"] == TallyValue(votes=0, voter_count=0)
    read_ids = sorted(args[1] for name, args in fake_transport.calls if name == FN_VOTES_IN_SEASON)
    assert read_ids == [3, 4]

    async with get_database_manager().session() as session:
        repo = VoteTallyRepository(session)
        assert await repo.get("3", 1) is not None
        # failed reads are not cached as zero
        assert await repo.get("4", 1) is None


@pytest.mark.asyncio
async def test_get_bulk_raises_cache_unavailable_when_store_fails(test_db, fake_transport, monkeypatch) -> None:
    async def broken_get_many(self, item_ids, season):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(VoteTallyRepository, "get_many", broken_get_many)
    async with get_database_manager().session() as session:
        cache = _cache(session, fake_transport, Clock(NOW))
        with pytest.raises(CacheUnavailableError):
            await cache.get_bulk(["1"], 1)


@pytest.mark.asyncio
async def test_tallies_are_scoped_by_season(test_db, fake_transport) -> None:
    async with get_database_manager().session() as session:
        repo = VoteTallyRepository(session)
        await repo.upsert("1", 1, 10, 1, NOW)
        await repo.upsert("1", 2, 20, 1, NOW)
        cache = _cache(session, fake_transport, Clock(NOW))
        assert (await cache.get("1", 1)).votes == 10
        assert (await cache.get("1", 2)).votes == 20


@pytest.mark.asyncio
async def test_sync_many_reports_failures(test_db, fake_transport) -> None:
    fake_transport.set_votes(3, "1", 5)
    fake_transport.failing_items.add(2)
    async with get_database_manager().session() as session:
        summary = await _cache(session, fake_transport, Clock(NOW)).sync_many(["1", "2"], 3)
    assert summary["season"] == 3
    assert summary["synced"] == {"1": "5"}
    assert list(summary["failed"]) == ["2"]


@pytest.mark.asyncio
async def test_clear_and_stats(test_db, fake_transport) -> None:
    async with get_database_manager().session() as session:
        repo = VoteTallyRepository(session)
        await repo.upsert("1", 1, 10, 1, NOW - timedelta(hours=1))
        await repo.upsert("2", 1, 10, 1, NOW)
        await repo.upsert("1", 2, 10, 1, NOW)
        cache = _cache(session, fake_transport, Clock(NOW))

        stats = await cache.stats()
        assert stats["total_entries"] == 3
        assert stats["seasons"] == 2
        assert stats["last_updated"] == NOW

        assert await cache.clear(item_id="1", season=1) == 1
        assert await cache.clear(season=2) == 1
        assert await cache.clear() == 1
        assert (await cache.stats())["total_entries"] == 0


@pytest.mark.asyncio
async def test_upsert_from_second_session_overwrites_without_unique_violation(test_db, monkeypatch) -> None:
    """Two writers that both missed on a new key: the later one wins, one row remains."""
    manager = get_database_manager()
    async with manager.session() as first:
        await VoteTallyRepository(first).upsert("7", 1, 3, 1, NOW)

    async with manager.session() as second:
        repo = VoteTallyRepository(second)

        async def stale_miss(item_id, season):
            return None

        monkeypatch.setattr(repo, "get", stale_miss)
        row = await repo.upsert("7", 1, 5, 2, NOW + timedelta(seconds=1))
        assert int(row.total_votes) == 5

    async with manager.session() as check:
        stats = await VoteTallyRepository(check).stats()
        stored = await VoteTallyRepository(check).get("7", 1)
    assert stats["total_entries"] == 1
    assert (int(stored.total_votes), stored.voter_count) == (5, 2)

