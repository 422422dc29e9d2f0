"""Test doubles shared across the test suite: in-memory voting contract, item factory."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from catalog.schema import Item
from ledger.errors import LedgerCallError, TransientNetworkError
from ledger.reader import FN_CURRENT_SEASON, FN_PERIOD_INFO, FN_VOTES_IN_SEASON
from ledger.transport import LedgerTransport

TOKEN = 10 ** 18
NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeLedgerTransport(LedgerTransport):
    """In-memory voting contract. Records every call."""

    def __init__(self, current_season: int = 1) -> None:
        self.votes: Dict[Tuple[int, int], int] = {}
        self.closed: Set[int] = set()
        self.current_season = current_season
        self.failing_items: Set[int] = set()
        self.down = False
        self.calls: List[Tuple[str, Tuple[int, ...]]] = []

    def set_votes(self, season: int, item_id: str, votes: int) -> None:
        self.votes[(season, int(item_id))] = votes

    async def read(self, function_name: str, args: Sequence[int]) -> Any:
        self.calls.append((function_name, tuple(args)))
        if self.down:
            raise TransientNetworkError("ledger down")
        if function_name == FN_VOTES_IN_SEASON:
            season, token_id = args
            if token_id in self.failing_items:
                raise LedgerCallError("execution reverted")
            return str(self.votes.get((season, token_id), 0))
        if function_name == FN_PERIOD_INFO:
            (season,) = args
            start = int(datetime(2025, 1, 1, tzinfo=timezone.utc).timestamp()) + season * 604800
            total = sum(v for (s, _), v in self.votes.items() if s == season)
            return [start, start + 604800, str(total), 0, season in self.closed, 3]
        if function_name == FN_CURRENT_SEASON:
            return self.current_season
        raise LedgerCallError(f"unknown function {function_name}")

    def count(self, function_name: str) -> int:
        return sum(1 for name, _ in self.calls if name == function_name)


def make_item(
    item_id: str,
    title: Optional[str] = None,
    created_at: Optional[datetime] = None,
    verified: bool = False,
    **extra: Any,
) -> Item:
    return Item(
        id=item_id,
        title=title or f"Item {item_id}",
        created_at=created_at or NOW - timedelta(days=1),
        verified=verified,
        **extra,
    )


