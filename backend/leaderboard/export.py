"""
CSV export of a ranked leaderboard.
"""

from __future__ import annotations

import csv
import io
from typing import Iterable

from leaderboard.schema import LeaderboardEntry

CSV_COLUMNS = [
    "rank",
    "item_id",
    "title",
    "creator",
    "content_type",
    "verified",
    "total_votes",
    "voter_count",
    "percentage_of_total",
    "created_at",
]


def export_csv(entries: Iterable[LeaderboardEntry]) -> str:
    """Header row plus one row per entry; vote weights stay raw integers."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for e in entries:
        writer.writerow(
            [
                e.rank,
                e.item_id,
                e.title,
                e.creator,
                e.content_type.value,
                "true" if e.verified else "false",
                str(e.total_votes),
                e.voter_count,
                f"{e.percentage_of_total:.2f}",
                e.created_at.isoformat(),
            ]
        )
    return buf.getvalue()
