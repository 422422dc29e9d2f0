"""
Detect SQLite schema mismatch (e.g. stale table missing columns).
Used by create_schema to warn and exit non-zero instead of failing later at runtime.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Tuple

from sqlalchemy import inspect

from models.base import Base

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection


def check_sqlite_schema_mismatch(connection: "Connection") -> Tuple[bool, str]:
    """
    Check every existing model table for columns the model expects but the DB lacks.
    Returns (has_mismatch, message). Run through AsyncConnection.run_sync.
    """
    inspector = inspect(connection)
    problems: List[str] = []
    for table_name, table in sorted(Base.metadata.tables.items()):
        if not inspector.has_table(table_name):
            continue
        current_columns = {c["name"] for c in inspector.get_columns(table_name)}
        missing = set(table.columns.keys()) - current_columns
        if missing:
            problems.append(f"{table_name!r} is missing column(s): {sorted(missing)}")
    if problems:
        return True, (
            "; ".join(problems)
            + ". Drop vote_tally_cache (rebuilt from the ledger on read) or migrate the snapshot tables by hand."
        )
    return False, ""
