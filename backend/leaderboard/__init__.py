"""Leaderboard ranking: period selectors, scoring, engine, export."""

from leaderboard.periods import DEFAULT_PERIOD, PeriodSelector, parse_period
from leaderboard.schema import (
    LeaderboardEntry,
    LeaderboardFilters,
    LeaderboardPage,
    LeaderboardQuery,
    LeaderboardStats,
    SortBy,
    SortOrder,
)
from leaderboard.scoring import MAX_RANKED_ENTRIES, basis_points, percentages

__all__ = [
    "DEFAULT_PERIOD",
    "LeaderboardEntry",
    "LeaderboardFilters",
    "LeaderboardPage",
    "LeaderboardQuery",
    "LeaderboardStats",
    "MAX_RANKED_ENTRIES",
    "PeriodSelector",
    "SortBy",
    "SortOrder",
    "basis_points",
    "parse_period",
    "percentages",
]
