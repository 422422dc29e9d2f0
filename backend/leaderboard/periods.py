"""Period selectors: rolling creation windows, all-time, current season, closed season."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from catalog.schema import Item

DEFAULT_PERIOD = "7d"

ROLLING_WINDOWS = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}

_SEASON_RE = re.compile(r"^season-(\d+)$")

WINDOW = "window"
ALL = "all"
CURRENT = "current"
SEASON = "season"


@dataclass(frozen=True)
class PeriodSelector:
    raw: str
    kind: str
    window: Optional[timedelta] = None
    season: Optional[int] = None

    @property
    def is_closed_season(self) -> bool:
        return self.kind == SEASON


def parse_period(value: Optional[str]) -> PeriodSelector:
    """Parse '24h' | '7d' | '30d' | 'all' | 'current' | 'season-N'. Raises ValueError."""
    s = (value or DEFAULT_PERIOD).strip().lower()
    if s in ROLLING_WINDOWS:
        return PeriodSelector(raw=s, kind=WINDOW, window=ROLLING_WINDOWS[s])
    if s == ALL:
        return PeriodSelector(raw=s, kind=ALL)
    if s == CURRENT:
        return PeriodSelector(raw=s, kind=CURRENT)
    m = _SEASON_RE.match(s)
    if m:
        season = int(m.group(1))
        if season < 1:
            raise ValueError("season number must be >= 1")
        return PeriodSelector(raw=s, kind=SEASON, season=season)
    raise ValueError(
        f"unknown period {value!r}; expected one of 24h, 7d, 30d, all, current, season-N"
    )


def filter_items_by_period(
    items: Iterable[Item], selector: PeriodSelector, now: datetime
) -> List[Item]:
    """Rolling windows keep items created inside the window; every other selector keeps all."""
    items = list(items)
    if selector.kind != WINDOW or selector.window is None:
        return items
    cutoff = now - selector.window
    return [i for i in items if i.created_at >= cutoff]
