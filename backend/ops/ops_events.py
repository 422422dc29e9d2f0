"""
Structured ops events for ledger reads, tally cache activity, and finalization.
Log-level + structured event dict; deterministic keys (no random ids).
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict

OPS_LOGGER_NAME = "ops_events"


def _logger() -> logging.Logger:
    return logging.getLogger(OPS_LOGGER_NAME)


def _event(event_type: str, level: int = logging.INFO, **kwargs: Any) -> None:
    """Emit a structured ops event (deterministic keys; no random ids)."""
    msg = f"ops_event={event_type} " + " ".join(f"{k}={v!r}" for k, v in sorted(kwargs.items()))
    _logger().log(level, msg, extra={"ops_event_type": event_type, "ops_event": {**kwargs}})


def log_ledger_read_failed(function_name: str, season: int, item_id: str | None, error: str) -> None:
    """A soft ledger read failure that was turned into zero votes."""
    _event(
        "ledger_read_failed",
        logging.WARNING,
        function_name=function_name,
        season=season,
        item_id=item_id,
        error=error,
    )


def log_tally_sync(item_id: str, season: int, votes: int) -> None:
    _event("tally_sync", logging.DEBUG, item_id=item_id, season=season, votes=str(votes))


def log_tally_fallback(item_id: str, season: int, default_votes: int, error: str) -> None:
    """Cache lookup or resync failed; the caller's default was returned instead."""
    _event(
        "tally_fallback",
        logging.WARNING,
        item_id=item_id,
        season=season,
        default_votes=str(default_votes),
        error=error,
    )


def log_leaderboard_computed(
    period: str,
    season: int | None,
    source: str,
    ranked: int,
    duration_seconds: float,
) -> None:
    """source is 'cache', 'ledger', 'snapshot' or 'degraded'."""
    _event(
        "leaderboard_computed",
        period=period,
        season=season,
        source=source,
        ranked=ranked,
        duration_seconds=round(duration_seconds, 4),
    )


def log_finalization_start(season: int, item_count: int) -> float:
    """Log finalization start; return start time for duration calculation."""
    _event("finalization_start", season=season, item_count=item_count)
    return time.perf_counter()


def log_finalization_skipped(season: int, reason: str) -> None:
    _event("finalization_skipped", logging.WARNING, season=season, reason=reason)


def log_finalization_end(
    season: int,
    duration_seconds: float,
    rows: int = 0,
    snapshot_hash: str | None = None,
    error: str | None = None,
) -> None:
    """Log finalization end with duration (deterministic)."""
    payload: Dict[str, Any] = {
        "season": season,
        "rows": rows,
        "duration_seconds": round(duration_seconds, 4),
    }
    if snapshot_hash:
        payload["snapshot_hash"] = snapshot_hash
    if error:
        payload["error"] = error
    _event("finalization_end", logging.ERROR if error else logging.INFO, **payload)


def log_snapshot_integrity_failed(season: int, stored: str | None, calculated: str) -> None:
    _event(
        "snapshot_integrity_failed",
        logging.WARNING,
        season=season,
        stored=stored,
        calculated=calculated,
    )


def log_retention_cleanup(cutoff_season: int, rows_deleted: int, seasons_deleted: int) -> None:
    _event(
        "retention_cleanup",
        cutoff_season=cutoff_season,
        rows_deleted=rows_deleted,
        seasons_deleted=seasons_deleted,
    )
