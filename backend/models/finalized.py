"""Immutable per-season leaderboard snapshots and their season metadata."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class FinalizedSnapshotRow(Base):
    """
    One ranked item in a finalized season.

    At most one row per (season, item) and per (season, rank); the constraints
    are what stop two concurrent finalizations from both landing.
    """

    __tablename__ = "finalized_leaderboards"
    __table_args__ = (
        UniqueConstraint("season_number", "item_id", name="uq_finalized_season_item"),
        UniqueConstraint("season_number", "final_rank", name="uq_finalized_season_rank"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    season_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False)
    final_rank: Mapped[int] = mapped_column(Integer, nullable=False)
    total_votes: Mapped[str] = mapped_column(String(80), nullable=False)
    percentage_of_total: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    finalized_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    snapshot_hash: Mapped[str] = mapped_column(String(64), nullable=False)


class FinalizedPeriodMetadata(Base):
    """Aggregate metadata for a finalized season; written once, never updated."""

    __tablename__ = "finalized_seasons"

    season_number: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_votes: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    total_items_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    top_item_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    top_item_votes: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    finalized_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    snapshot_hash: Mapped[str] = mapped_column(String(64), nullable=False)
