"""
Item catalog sources.

The catalog itself is an external collaborator; these adapters only hand the
ranking code a list of Items. JsonFileItemCatalog reads a JSON export
(a list of item objects, or {"items": [...]}) from disk.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from catalog.schema import Item

logger = logging.getLogger(__name__)


class ItemCatalog(ABC):
    """Abstract read-only item catalog."""

    @abstractmethod
    def list_items(self) -> List[Item]:
        raise NotImplementedError


class StaticItemCatalog(ItemCatalog):
    """In-memory catalog."""

    def __init__(self, items: Iterable[Item] = ()) -> None:
        self._items = list(items)

    def list_items(self) -> List[Item]:
        return list(self._items)


def _raw_records(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise ValueError("catalog export must be a list of items or an object with 'items'")
    return [r for r in data if isinstance(r, dict)]


def parse_item(raw: Dict[str, Any]) -> Item:
    """Map one exported record to an Item; accepts camelCase export keys."""
    return Item.model_validate(
        {
            "id": raw.get("id", raw.get("token_id")),
            "title": raw.get("title") or "Untitled",
            "description": raw.get("description") or "",
            "creator": raw.get("creator") or raw.get("author") or "Unknown",
            "created_at": raw.get("created_at", raw.get("createdAt")),
            "verified": bool(raw.get("verified", False)),
            "tags": raw.get("tags") or [],
            "content_type": raw.get("content_type", raw.get("contentType", "Custom")),
        }
    )


class JsonFileItemCatalog(ItemCatalog):
    """Catalog loaded from a JSON export file; invalid records are skipped and logged."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def list_items(self) -> List[Item]:
        if not self._path.is_file():
            logger.warning("Item catalog file missing: %s", self._path)
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Item catalog file unreadable: %s (%s)", self._path, e)
            return []
        try:
            records = _raw_records(data)
        except ValueError as e:
            logger.warning("Item catalog file malformed: %s (%s)", self._path, e)
            return []
        items: List[Item] = []
        for raw in records:
            try:
                items.append(parse_item(raw))
            except ValidationError as e:
                logger.warning("Skipping invalid catalog record %r: %s", raw.get("id"), e.error_count())
        return items
