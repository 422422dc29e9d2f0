from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class VoteTallyCache(Base):
    """Cached vote tally for one item within one season (latest sync wins)."""

    __tablename__ = "vote_tally_cache"
    __table_args__ = (
        UniqueConstraint("item_id", "season_number", name="uq_tally_item_season"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    season_number: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # uint256 in 18-decimal fixed point; decimal string because it overflows BIGINT
    total_votes: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    voter_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cached_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
