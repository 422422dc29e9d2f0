"""
Unit tests for ledger result decoding (uint256 values, period info tuples and mappings).
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

_backend = Path(__file__).resolve().parent.parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

import pytest

from ledger.errors import LedgerCallError
from ledger.schema import PeriodInfo, VoteReading, decode_bool, decode_uint


def test_decode_uint_accepts_int_decimal_and_hex() -> None:
    assert decode_uint(5) == 5
    assert decode_uint("1000000000000000000") == 10 ** 18
    assert decode_uint("0x10") == 16
    big = str(2 ** 256 - 1)
    assert decode_uint(big) == 2 ** 256 - 1


@pytest.mark.parametrize("value", [-1, "-5", True, None, "abc", 1.5])
def test_decode_uint_rejects_non_uints(value) -> None:
    with pytest.raises(LedgerCallError):
        decode_uint(value)


def test_decode_bool() -> None:
    assert decode_bool(True) is True
    assert decode_bool("false") is False
    assert decode_bool(1) is True
    with pytest.raises(LedgerCallError):
        decode_bool("maybe")


def test_vote_reading_unwraps_single_output() -> None:
    assert VoteReading.from_result(3, "7", ["42"]).votes == 42
    assert VoteReading.from_result(3, "7", 42).votes == 42
    with pytest.raises(LedgerCallError):
        VoteReading.from_result(3, "7", [1, 2])


def test_period_info_from_tuple() -> None:
    info = PeriodInfo.from_result(2, [1735689600, 1736294400, "500", 0, True, 4])
    assert info.season == 2
    assert info.start_time == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert info.total_votes == 500
    assert info.finalized is True
    assert info.active_item_count == 4


def test_period_info_from_mapping_with_contract_names() -> None:
    info = PeriodInfo.from_result(
        2,
        {
            "startTime": 1735689600,
            "endTime": 1736294400,
            "totalVotes": "9",
            "totalDelegations": "1",
            "finalized": False,
            "activeItemCount": 0,
        },
    )
    assert info.finalized is False
    assert info.total_delegations == 1


def test_period_info_rejects_wrong_shape() -> None:
    with pytest.raises(LedgerCallError):
        PeriodInfo.from_result(2, [1, 2, 3])
    with pytest.raises(LedgerCallError):
        PeriodInfo.from_result(2, {"startTime": 1})
    with pytest.raises(LedgerCallError):
        PeriodInfo.from_result(2, "nope")


def test_period_info_rejects_out_of_range_timestamps() -> None:
    with pytest.raises(LedgerCallError):
        PeriodInfo.from_result(2, [2**255, 1736294400, "1", 0, True, 1])
    with pytest.raises(LedgerCallError):
        PeriodInfo.from_result(2, [1735689600, 10**20, "1", 0, True, 1])
