"""Category and department directory.

Thin cached view over the ``categories`` and ``departments`` tables,
plus the lexical matching used to map a free-text category name (from
a user, the AI, or the analyze webhook) onto a real category row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from src.models.complaint import Category, Department

if TYPE_CHECKING:
    from src.services.cache import CacheManager
    from src.services.store import RecordStore

logger = structlog.get_logger(__name__)


def match_category(name: str, categories: list[Category]) -> Category | None:
    """Find the category whose name lexically matches *name*.

    Case-insensitive; an exact match wins, otherwise the first category
    where either name contains the other (``"Pothole"`` matches
    ``"Potholes"``).  Blank input never matches.
    """
    needle = name.strip().lower()
    if not needle:
        return None

    for category in categories:
        if category.name.strip().lower() == needle:
            return category

    for category in categories:
        hay = category.name.strip().lower()
        if hay and (needle in hay or hay in needle):
            return category
    return None


class CategoryDirectory:
    """Cached access to categories and departments.

    Parameters
    ----------
    store:
        Record store holding the directory tables.
    cache:
        Optional cache; when ``None`` every call hits the store.
    ttl_seconds:
        Cache lifetime for directory rows.
    """

    __slots__ = ("_cache", "_store", "_ttl")

    def __init__(
        self,
        store: RecordStore,
        cache: CacheManager | None = None,
        *,
        ttl_seconds: int = 900,
    ) -> None:
        self._store = store
        self._cache = cache
        self._ttl = ttl_seconds

    async def categories(self) -> list[Category]:
        if self._cache is None:
            return await self._store.list_categories()

        async def _load() -> list[dict]:
            rows = await self._store.list_categories()
            return [c.model_dump(mode="json") for c in rows]

        rows = await self._cache.get_or_set("directory:categories", _load, ttl_seconds=self._ttl)
        return [Category.model_validate(r) for r in rows]

    async def departments(self) -> list[Department]:
        if self._cache is None:
            return await self._store.list_departments()

        async def _load() -> list[dict]:
            rows = await self._store.list_departments()
            return [d.model_dump(mode="json") for d in rows]

        rows = await self._cache.get_or_set("directory:departments", _load, ttl_seconds=self._ttl)
        return [Department.model_validate(r) for r in rows]

    async def get_category(self, category_id: str) -> Category | None:
        for category in await self.categories():
            if category.id == category_id:
                return category
        return None

    async def find_category(self, name: str) -> Category | None:
        return match_category(name, await self.categories())

    async def names(self) -> tuple[dict[str, str], dict[str, str]]:
        """Return ``(category_id -> name, department_id -> name)`` maps."""
        categories = {c.id: c.name for c in await self.categories()}
        departments = {d.id: d.name for d in await self.departments()}
        return categories, departments

    async def invalidate(self) -> None:
        if self._cache is not None:
            await self._cache.delete("directory:categories")
            await self._cache.delete("directory:departments")
            logger.info("directory.cache_invalidated")
