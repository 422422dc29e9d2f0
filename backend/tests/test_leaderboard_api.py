"""API: leaderboard page/stats/export, season snapshot lifecycle, tally endpoints."""

from __future__ import annotations

import sys
from pathlib import Path

_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from catalog.sources import StaticItemCatalog
from core.database import get_database_manager
from core.dependencies import get_db_session
from ledger.reader import LedgerReader
from main import app
from tests.fakes import TOKEN, FakeLedgerTransport, make_item


@pytest_asyncio.fixture
async def client(test_db, fake_transport: FakeLedgerTransport):
    async def override_session():
        async with get_database_manager().session() as s:
            yield s

    fake_transport.current_season = 3
    app.state.ledger_reader = LedgerReader(fake_transport)
    app.state.item_catalog = StaticItemCatalog([make_item(str(i), title=f"Item {i}") for i in range(1, 6)])
    app.dependency_overrides[get_db_session] = override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.pop(get_db_session, None)
    app.state.ledger_reader = None
    app.state.item_catalog = None


@pytest.mark.asyncio
async def test_health(client) -> None:
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_get_leaderboard_page(client, fake_transport) -> None:
    for i in range(1, 6):
        fake_transport.set_votes(3, str(i), i * TOKEN)

    r = await client.get("/api/v1/leaderboard", params={"period": "current", "page_size": 2})
    assert r.status_code == 200
    data = r.json()
    assert data["total_count"] == 5
    assert data["total_pages"] == 3
    assert data["has_next_page"] is True
    assert data["season"] == 3
    assert data["source"] == "cache"
    assert [e["item_id"] for e in data["entries"]] == ["5", "4"]
    assert data["entries"][0]["total_votes"] == str(5 * TOKEN)
    assert data["entries"][0]["rank"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [{"period": "yesterday"}, {"min_votes": "many"}, {"page": 0}, {"page_size": 500}, {"sort_by": "score"}],
)
async def test_get_leaderboard_rejects_bad_params(client, params) -> None:
    r = await client.get("/api/v1/leaderboard", params=params)
    assert r.status_code in (400, 422)


@pytest.mark.asyncio
async def test_leaderboard_stats_and_export(client, fake_transport) -> None:
    fake_transport.set_votes(3, "1", 3 * TOKEN)
    fake_transport.set_votes(3, "2", TOKEN)

    r = await client.get("/api/v1/leaderboard/stats", params={"period": "all"})
    assert r.status_code == 200
    stats = r.json()
    assert stats["total_items"] == 5
    assert stats["total_votes"] == str(4 * TOKEN)
    assert stats["top_item_votes"] == str(3 * TOKEN)

    r = await client.get("/api/v1/leaderboard/export", params={"period": "all"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    lines = r.text.strip().splitlines()
    assert lines[0].startswith("rank,item_id,title")
    assert lines[1].startswith("1,1,Item 1,")
    assert len(lines) == 6


@pytest.mark.asyncio
async def test_season_lifecycle(client, fake_transport) -> None:
    fake_transport.set_votes(2, "1", 200)
    fake_transport.set_votes(2, "2", 100)
    fake_transport.set_votes(2, "3", 100)

    r = await client.post("/api/v1/seasons/2/finalize")
    assert r.status_code == 409

    fake_transport.closed.add(2)
    r = await client.get("/api/v1/seasons/2/status")
    assert r.json() == {"season": 2, "ledger_finalized": True, "snapshotted": False}

    r = await client.post("/api/v1/seasons/2/finalize")
    assert r.status_code == 200
    body = r.json()
    assert body["finalized"] is True
    assert body["rows"] == 5

    r = await client.post("/api/v1/seasons/2/finalize")
    assert r.json()["finalized"] is False

    r = await client.get("/api/v1/seasons/2/snapshot")
    assert r.status_code == 200
    snap = r.json()
    assert snap["metadata"]["snapshot_hash"] == body["snapshot_hash"]
    assert [e["percentage_of_total"] for e in snap["entries"][:3]] == [50.0, 25.0, 25.0]

    r = await client.get("/api/v1/seasons/2/verify")
    assert r.json() == {"season": 2, "valid": True}

    r = await client.get("/api/v1/seasons/2/stats")
    assert r.json()["total_votes"] == "400"

    r = await client.get("/api/v1/seasons/finalized")
    assert [s["season_number"] for s in r.json()["seasons"]] == [2]

    # closed season leaderboard is served from the snapshot
    r = await client.get("/api/v1/leaderboard", params={"period": "season-2"})
    assert r.json()["source"] == "snapshot"

    r = await client.get("/api/v1/seasons/8/snapshot")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_finalize_ledger_down_is_502(client, fake_transport) -> None:
    fake_transport.down = True
    r = await client.post("/api/v1/seasons/2/finalize")
    assert r.status_code == 502


@pytest.mark.asyncio
async def test_detect_and_cleanup(client, fake_transport) -> None:
    fake_transport.closed.update({1, 2})
    fake_transport.set_votes(1, "1", 1)
    fake_transport.set_votes(2, "1", 1)

    r = await client.post("/api/v1/seasons/detect", params={"lookback": 5})
    assert r.status_code == 200
    assert r.json() == {"finalized_seasons": [1, 2]}

    r = await client.post("/api/v1/seasons/cleanup", params={"keep_seasons": 1})
    assert r.status_code == 200
    assert r.json() == {"rows_deleted": 5, "seasons_deleted": 1, "cutoff_season": 2}


@pytest.mark.asyncio
async def test_tally_endpoints(client, fake_transport) -> None:
    fake_transport.set_votes(3, "1", 7)
    fake_transport.failing_items.add(2)

    r = await client.post("/api/v1/tallies/sync", json={"season": 3, "item_ids": ["1", "2"]})
    assert r.status_code == 200
    assert r.json()["synced"] == {"1": "7"}
    assert "2" in r.json()["failed"]

    r = await client.get("/api/v1/tallies/stats")
    assert r.json()["total_entries"] == 1

    r = await client.delete("/api/v1/tallies", params={"season": 3})
    assert r.json() == {"deleted": 1}
