"""
Typed ledger read results, decoded once at the transport boundary.

Contract reads come back as positional tuples (or, from some gateways, as
objects keyed by output name); uint256 values may be JSON numbers or decimal
strings. Everything past this module works with named fields only.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Sequence

from pydantic import BaseModel, Field

from ledger.errors import LedgerCallError

# 18 implied decimals on every vote weight
VOTE_DECIMALS = 18
VOTE_SCALE = 10 ** VOTE_DECIMALS

_PERIOD_INFO_FIELDS = (
    "start_time",
    "end_time",
    "total_votes",
    "total_delegations",
    "finalized",
    "active_item_count",
)
_PERIOD_INFO_ALIASES = {
    "startTime": "start_time",
    "endTime": "end_time",
    "totalVotes": "total_votes",
    "totalDelegations": "total_delegations",
    "activeItemCount": "active_item_count",
}


def decode_uint(value: Any, field: str = "value") -> int:
    """Decode a uint256 from int, decimal string, or 0x-prefixed hex string."""
    if isinstance(value, bool):
        raise LedgerCallError(f"{field}: expected unsigned integer, got bool")
    if isinstance(value, int):
        out = value
    elif isinstance(value, str):
        s = value.strip()
        try:
            out = int(s, 16) if s.lower().startswith("0x") else int(s)
        except ValueError as e:
            raise LedgerCallError(f"{field}: not an unsigned integer: {value!r}") from e
    else:
        raise LedgerCallError(f"{field}: expected unsigned integer, got {type(value).__name__}")
    if out < 0:
        raise LedgerCallError(f"{field}: negative value {out}")
    return out


def decode_bool(value: Any, field: str = "value") -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, str)):
        s = str(value).strip().lower()
        if s in ("true", "1"):
            return True
        if s in ("false", "0"):
            return False
    raise LedgerCallError(f"{field}: expected bool, got {value!r}")


class VoteReading(BaseModel):
    """Vote weight of one item in one season (raw 18-decimal units)."""

    season: int = Field(..., ge=0)
    item_id: str
    votes: int = Field(..., ge=0)

    @classmethod
    def from_result(cls, season: int, item_id: str, result: Any) -> "VoteReading":
        if isinstance(result, (list, tuple)):
            if len(result) != 1:
                raise LedgerCallError(f"getVotesInSeason: expected 1 output, got {len(result)}")
            result = result[0]
        return cls(season=season, item_id=item_id, votes=decode_uint(result, "votes"))


class PeriodInfo(BaseModel):
    """Season window and closure flag as reported by the voting contract."""

    season: int = Field(..., ge=0)
    start_time: datetime
    end_time: datetime
    total_votes: int = Field(..., ge=0)
    total_delegations: int = Field(..., ge=0)
    finalized: bool
    active_item_count: int = Field(..., ge=0)

    @classmethod
    def from_result(cls, season: int, result: Any) -> "PeriodInfo":
        if isinstance(result, dict):
            values = {_PERIOD_INFO_ALIASES.get(k, k): v for k, v in result.items()}
            missing = [f for f in _PERIOD_INFO_FIELDS if f not in values]
            if missing:
                raise LedgerCallError(f"getPeriodInfo: missing outputs {missing}")
            ordered: Sequence[Any] = [values[f] for f in _PERIOD_INFO_FIELDS]
        elif isinstance(result, (list, tuple)):
            if len(result) != len(_PERIOD_INFO_FIELDS):
                raise LedgerCallError(
                    f"getPeriodInfo: expected {len(_PERIOD_INFO_FIELDS)} outputs, got {len(result)}"
                )
            ordered = result
        else:
            raise LedgerCallError(f"getPeriodInfo: unexpected result type {type(result).__name__}")

        start_s, end_s, total, delegations, finalized, active = ordered
        return cls(
            season=season,
            start_time=_from_unix(decode_uint(start_s, "startTime"), "startTime"),
            end_time=_from_unix(decode_uint(end_s, "endTime"), "endTime"),
            total_votes=decode_uint(total, "totalVotes"),
            total_delegations=decode_uint(delegations, "totalDelegations"),
            finalized=decode_bool(finalized, "finalized"),
            active_item_count=decode_uint(active, "activeItemCount"),
        )


def _from_unix(seconds: int, field: str) -> datetime:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, ValueError, OSError) as e:
        raise LedgerCallError(f"{field}: timestamp out of range: {seconds}") from e
