"""
Unit tests for period selectors and creation-window filtering.
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

_backend = Path(__file__).resolve().parent.parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

import pytest

from catalog.schema import Item
from leaderboard.periods import (
    ALL,
    CURRENT,
    SEASON,
    WINDOW,
    filter_items_by_period,
    parse_period,
)

NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def test_parse_period_default_is_7d() -> None:
    sel = parse_period(None)
    assert sel.raw == "7d"
    assert sel.kind == WINDOW
    assert sel.window == timedelta(days=7)


@pytest.mark.parametrize(
    "raw,kind",
    [("24h", WINDOW), ("30d", WINDOW), ("all", ALL), ("current", CURRENT), ("SEASON-4", SEASON)],
)
def test_parse_period_kinds(raw: str, kind: str) -> None:
    assert parse_period(raw).kind == kind


def test_parse_period_season_number() -> None:
    sel = parse_period("season-12")
    assert sel.season == 12
    assert sel.is_closed_season


@pytest.mark.parametrize("raw", ["1y", "season-", "season-0", "season-x", "weekly"])
def test_parse_period_rejects_unknown(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_period(raw)


def test_filter_by_window_keeps_items_created_inside_it() -> None:
    fresh = Item(id="1", created_at=NOW - timedelta(hours=3))
    week_old = Item(id="2", created_at=NOW - timedelta(days=6))
    old = Item(id="3", created_at=NOW - timedelta(days=40))
    items = [fresh, week_old, old]

    assert [i.id for i in filter_items_by_period(items, parse_period("24h"), NOW)] == ["1"]
    assert [i.id for i in filter_items_by_period(items, parse_period("7d"), NOW)] == ["1", "2"]
    assert [i.id for i in filter_items_by_period(items, parse_period("all"), NOW)] == ["1", "2", "3"]
    assert len(filter_items_by_period(items, parse_period("current"), NOW)) == 3
