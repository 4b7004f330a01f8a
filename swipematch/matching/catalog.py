"""Catalog collaborator.

The catalog is read-only reference data owned outside this library. Items
are plain dicts with at least an ``id``; every other attribute is
category-specific. Items only enrich what is shown to users, they never
take part in matching decisions.
"""
from typing import Iterable, Protocol


class Catalog(Protocol):
    async def get_item(self, category: str, item_id: str) -> dict | None:
        ...

    async def list_items(self, category: str) -> list[dict]:
        ...


class StaticCatalog:
    """In-memory catalog, used by scripts and tests."""

    def __init__(self, items: dict[str, Iterable[dict]] | None = None):
        self._items: dict[str, dict[str, dict]] = {}
        for category, category_items in (items or {}).items():
            for item in category_items:
                self.add_item(category, item)

    def add_item(self, category: str, item: dict):
        self._items.setdefault(category, {})[item["id"]] = item

    async def get_item(self, category: str, item_id: str) -> dict | None:
        return self._items.get(category, {}).get(item_id)

    async def list_items(self, category: str) -> list[dict]:
        return list(self._items.get(category, {}).values())
