"""
Deterministic content hash of a finalized season snapshot.

Rows are taken in rank order and rendered as "item_id:rank:votes", joined
with "|"; the hash is the SHA-256 hex digest of that text. The same function
is used when writing a snapshot and when verifying it.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Tuple, Union


def sha256_hex(text: str) -> str:
    """Return SHA-256 hash of text as hex string."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


SnapshotLine = Tuple[str, int, Union[int, str]]


def canonical_snapshot_text(rows: Iterable[SnapshotLine]) -> str:
    ordered = sorted(rows, key=lambda r: int(r[1]))
    return "|".join(f"{item_id}:{int(rank)}:{int(votes)}" for item_id, rank, votes in ordered)


def snapshot_hash(rows: Iterable[SnapshotLine]) -> str:
    """rows: (item_id, rank, votes) triples in any order."""
    return sha256_hex(canonical_snapshot_text(rows))
