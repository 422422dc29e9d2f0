"""
Item catalog schema. Items are owned by an external catalog; this backend only reads them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator


class ContentType(str, Enum):
    CAST = "Cast"
    DOI = "DOI"
    ISBN = "ISBN"
    URL = "URL"
    CUSTOM = "Custom"


class Item(BaseModel):
    """A community-submitted item that can be voted on."""

    id: str = Field(..., min_length=1, description="Item id (ledger token id)")
    title: str = Field("Untitled", description="Display title")
    description: str = Field("", description="Free-text description")
    creator: str = Field("Unknown", description="Creator name or address")
    created_at: datetime = Field(..., description="Creation time (UTC)")
    verified: bool = Field(False, description="Verified by the catalog")
    tags: List[str] = Field(default_factory=list, description="Ordered, de-duplicated tags")
    content_type: ContentType = Field(ContentType.CUSTOM, description="Content type")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return str(v).strip() if v is not None else v

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @field_validator("tags")
    @classmethod
    def _ordered_set(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(t.strip() for t in v if t and t.strip()))

    @field_validator("content_type", mode="before")
    @classmethod
    def _unknown_content_type(cls, v):
        if isinstance(v, ContentType):
            return v
        try:
            return ContentType(v)
        except ValueError:
            return ContentType.CUSTOM
