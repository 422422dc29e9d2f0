"""
Ranking arithmetic: auxiliary score, integer-safe percentages, change heuristic.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence

from catalog.schema import Item
from ledger.schema import VOTE_SCALE
from leaderboard.schema import ChangeDirection, RankingChange

MAX_RANKED_ENTRIES = 100

VERIFICATION_BONUS = 100.0
FRESHNESS_WINDOW_DAYS = 30
TOP_MOVER_COUNT = 3
BASIS_POINTS_TOTAL = 10_000


def vote_value(votes: int) -> float:
    """Raw 18-decimal vote weight as whole tokens."""
    return votes / VOTE_SCALE


def freshness_bonus(created_at: datetime, now: datetime) -> float:
    """30 on the day of creation, one less per whole day, 0 from day 30 on."""
    age_days = (now - created_at).days
    return float(max(0, FRESHNESS_WINDOW_DAYS - max(0, age_days)))


def auxiliary_score(item: Item, votes: int, now: datetime) -> float:
    # NOTE: exposed on entries only; ordering is by raw votes.
    bonus = VERIFICATION_BONUS if item.verified else 0.0
    return round(vote_value(votes) + bonus + freshness_bonus(item.created_at, now), 6)


def basis_points(votes: Sequence[int]) -> List[int]:
    """
    Share of each vote weight in hundredths of a percent, integer arithmetic only.

    Each share is floor(v * 10000 / total); the basis points lost to flooring
    go one each to the largest remainders (earlier position wins ties), so a
    non-zero set always sums to exactly 10000. All zeros when the total is 0.

    Finalized snapshot rows store these corrected shares as well, not the bare
    floor: an even three-way split is stored as 33.34, 33.33, 33.33.
    """
    total = sum(votes)
    if total <= 0:
        return [0] * len(votes)
    floors: List[int] = []
    remainders: List[int] = []
    for v in votes:
        q, r = divmod(v * BASIS_POINTS_TOTAL, total)
        floors.append(q)
        remainders.append(r)
    leftover = BASIS_POINTS_TOTAL - sum(floors)
    order = sorted(range(len(votes)), key=lambda i: (-remainders[i], i))
    for i in order[:leftover]:
        floors[i] += 1
    return floors


def percentages(votes: Sequence[int]) -> List[float]:
    """Two-decimal percentages derived from basis_points()."""
    return [bp / 100 for bp in basis_points(votes)]


def change_indicator(index: int, verified: bool) -> RankingChange:
    """
    Display heuristic, not a real rank delta: the top three move 'up' by 3, 2, 1
    and verified items elsewhere by 1; everyone else is 'same'.
    """
    if index < TOP_MOVER_COUNT:
        return RankingChange(direction=ChangeDirection.UP, positions=min(10, TOP_MOVER_COUNT - index))
    if verified:
        return RankingChange(direction=ChangeDirection.UP, positions=1)
    return RankingChange(direction=ChangeDirection.SAME, positions=0)


def parse_min_votes(value: Optional[str]) -> Optional[int]:
    """Whole-token threshold ('0.01') to raw units. Raises ValueError on junk."""
    if value is None or not str(value).strip():
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"min_votes must be a decimal number, got {value!r}") from e
    if not amount.is_finite() or amount < 0:
        raise ValueError("min_votes must be a non-negative number")
    return int(amount * VOTE_SCALE)
