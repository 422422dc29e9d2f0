"""
Unit tests for the canonical snapshot hash.
"""

from __future__ import annotations

import hashlib
import sys
from pathlib import Path

_backend = Path(__file__).resolve().parent.parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

from services.snapshot_hash import canonical_snapshot_text, snapshot_hash


def test_canonical_text_is_rank_ordered_item_rank_votes() -> None:
    rows = [("b", 2, 100), ("a", 1, "200"), ("c", 3, 0)]
    assert canonical_snapshot_text(rows) == "a:1:200|b:2:100|c:3:0"


def test_hash_is_sha256_of_canonical_text() -> None:
    rows = [("a", 1, 200), ("b", 2, 100)]
    expected = hashlib.sha256(b"a:1:200|b:2:100").hexdigest()
    assert snapshot_hash(rows) == expected
    assert snapshot_hash(reversed(rows)) == expected


def test_hash_changes_when_votes_or_rank_change() -> None:
    base = snapshot_hash([("a", 1, 200), ("b", 2, 100)])
    assert snapshot_hash([("a", 1, 201), ("b", 2, 100)]) != base
    assert snapshot_hash([("a", 2, 200), ("b", 1, 100)]) != base
