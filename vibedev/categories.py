"""Project categories.

Categories are reference data read on almost every listing, so the active
list is cached for ``settings.category_cache_ttl_seconds``. Writers call
:meth:`CategoryService.invalidate` after changing categories.
"""

from typing import Optional

from vibedev.cache import ReferenceCache
from vibedev.errors import StoreError
from vibedev.interfaces import Cache, DataGateway
from vibedev.logging import logger
from vibedev.models import CategoryRow
from vibedev.repository import Filters
from vibedev.types import CategoryOption

CACHE_KEY = "active"


class CategoryService:
    """Cached access to active categories.

    Args:
        gateway: Data gateway
        cache: Cache for the active list (defaults to a new ReferenceCache)
    """

    def __init__(self, gateway: DataGateway, cache: Optional[Cache] = None):
        self.gateway = gateway
        self.cache = cache if cache is not None else ReferenceCache("categories")

    async def get_categories(self) -> list[CategoryRow]:
        """Active categories ordered by sort_order.

        Returns an empty list when the store fails; failures are not cached.
        """
        cached = self.cache.get(CACHE_KEY)
        if cached is not None:
            return cached

        try:
            rows = list(
                await self.gateway.select(
                    CategoryRow, Filters.where(is_active=True), order_by="sort_order"
                )
            )
        except StoreError as exc:
            logger.error(f"Error fetching categories: {exc}")
            return []

        self.cache.set(CACHE_KEY, rows)
        return rows

    async def get_category_options(self) -> list[CategoryOption]:
        """Filter options with "All Categories" first."""
        options: list[CategoryOption] = [{"value": "all", "label": "All Categories"}]
        for category in await self.get_categories():
            options.append({"value": category.name, "label": category.display_name})
        return options

    async def get_display_name(self, name: str) -> str:
        """Display name for a category key, or the key itself when unknown."""
        for category in await self.get_categories():
            if category.name == name:
                return category.display_name
        return name

    async def is_valid_category(self, name: str) -> bool:
        return any(category.name == name for category in await self.get_categories())

    def invalidate(self) -> None:
        self.cache.invalidate(CACHE_KEY)


__all__ = ["CategoryService"]
