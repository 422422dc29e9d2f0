"""Operational logging: structured ops events."""

from .ops_events import (
    log_finalization_end,
    log_finalization_skipped,
    log_finalization_start,
    log_leaderboard_computed,
    log_ledger_read_failed,
    log_retention_cleanup,
    log_snapshot_integrity_failed,
    log_tally_fallback,
    log_tally_sync,
)

__all__ = [
    "log_finalization_end",
    "log_finalization_skipped",
    "log_finalization_start",
    "log_leaderboard_computed",
    "log_ledger_read_failed",
    "log_retention_cleanup",
    "log_snapshot_integrity_failed",
    "log_tally_fallback",
    "log_tally_sync",
]
