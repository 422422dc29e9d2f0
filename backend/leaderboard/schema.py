"""
Leaderboard query and result models (API boundary).

Vote weights are raw 18-decimal integers and serialize as decimal strings;
they do not fit a JSON double.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from catalog.schema import ContentType

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class ChangeDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    SAME = "same"
    NEW = "new"


class SortBy(str, Enum):
    RANK = "rank"
    VOTES = "votes"
    TITLE = "title"
    CREATOR = "creator"
    CREATED_AT = "created_at"
    CHANGE = "change"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class RankingChange(BaseModel):
    direction: ChangeDirection = ChangeDirection.SAME
    positions: int = Field(0, ge=0)


class LeaderboardEntry(BaseModel):
    """One ranked item. Recomputed on every request for open periods."""

    rank: int = Field(..., ge=1)
    item_id: str
    total_votes: int = Field(..., ge=0, description="Raw vote weight (18 decimals)")
    voter_count: int = Field(0, ge=0, description="Best-effort voter count")
    percentage_of_total: float = Field(0.0, ge=0, le=100)
    title: str
    description: str = ""
    creator: str
    created_at: datetime
    content_type: ContentType = ContentType.CUSTOM
    tags: List[str] = Field(default_factory=list)
    verified: bool = False
    change: RankingChange = Field(default_factory=RankingChange)
    score: float = Field(
        0.0,
        description="Votes in whole tokens + verification bonus + freshness bonus. Informational; not a sort key.",
    )

    @field_serializer("total_votes")
    def _votes_as_str(self, v: int) -> str:
        return str(v)


class LeaderboardFilters(BaseModel):
    search_query: Optional[str] = None
    content_type: Optional[ContentType] = None
    min_votes: Optional[str] = Field(
        None, description="Minimum vote weight in whole tokens, e.g. '0.01'"
    )


class LeaderboardQuery(BaseModel):
    model_config = ConfigDict(use_enum_values=False)

    period: str = "7d"
    page: int = Field(1, ge=1)
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    sort_by: SortBy = SortBy.RANK
    sort_order: SortOrder = SortOrder.ASC
    filters: LeaderboardFilters = Field(default_factory=LeaderboardFilters)


class LeaderboardPage(BaseModel):
    entries: List[LeaderboardEntry]
    total_count: int
    total_pages: int
    current_page: int
    page_size: int
    has_next_page: bool
    has_previous_page: bool
    last_updated: datetime
    period: str
    season: Optional[int] = None
    source: str = Field(..., description="cache | ledger | snapshot | degraded")


class LeaderboardStats(BaseModel):
    period: str
    total_items: int
    total_votes: int
    active_voters: int
    average_votes_per_item: int
    top_item_votes: int

    @field_serializer("total_votes", "average_votes_per_item", "top_item_votes")
    def _big_as_str(self, v: int) -> str:
        return str(v)
