"""Read-only item catalog adapters."""

from .schema import ContentType, Item
from .sources import ItemCatalog, JsonFileItemCatalog, StaticItemCatalog, parse_item

__all__ = [
    "ContentType",
    "Item",
    "ItemCatalog",
    "JsonFileItemCatalog",
    "StaticItemCatalog",
    "parse_item",
]
