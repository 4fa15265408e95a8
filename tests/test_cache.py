"""Tests for the caching layer (in-memory LRU + CacheManager) and the
cached category directory."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

from src.models.complaint import Category
from src.services.cache import CacheManager, InMemoryCacheBackend
from src.services.directory import CategoryDirectory, match_category

# -----------------------------------------------------------------------
# InMemoryCacheBackend tests
# -----------------------------------------------------------------------


class TestInMemoryCacheBackend:
    """Test the in-memory LRU cache backend."""

    async def test_get_set_basic(self) -> None:
        cache = InMemoryCacheBackend(max_size=100)
        await cache.set("key1", b"value1")
        assert await cache.get("key1") == b"value1", "get should return the value that was set"

    async def test_get_missing_key_returns_none(self) -> None:
        cache = InMemoryCacheBackend(max_size=100)
        assert await cache.get("nonexistent") is None, "get should return None for a missing key"

    async def test_delete_removes_key(self) -> None:
        cache = InMemoryCacheBackend(max_size=100)
        await cache.set("key1", b"value1")
        await cache.delete("key1")
        assert await cache.get("key1") is None, "get should return None after delete"

    async def test_lru_eviction(self) -> None:
        """When max_size is reached, the least-recently-used entry should be evicted."""
        cache = InMemoryCacheBackend(max_size=3)
        await cache.set("a", b"1")
        await cache.set("b", b"2")
        await cache.set("c", b"3")
        await cache.get("a")

        await cache.set("d", b"4")
        assert len(cache) == 3, "size should remain at max_size after eviction"
        assert await cache.get("b") is None, "'b' should be evicted as LRU after 'a' was accessed"
        assert await cache.get("a") == b"1", "'a' should still be present (was recently accessed)"

    async def test_ttl_expiration(self) -> None:
        cache = InMemoryCacheBackend(max_size=100)
        await cache.set("key1", b"value1", ttl_seconds=0)
        await asyncio.sleep(0.01)
        assert await cache.get("key1") is None, "entry with TTL=0 should expire almost immediately"

    async def test_ttl_not_expired_within_window(self) -> None:
        cache = InMemoryCacheBackend(max_size=100)
        await cache.set("key1", b"value1", ttl_seconds=60)
        assert await cache.get("key1") == b"value1", "entry with TTL=60 should not be expired yet"


# -----------------------------------------------------------------------
# CacheManager tests
# -----------------------------------------------------------------------


class TestCacheManager:
    """Test the CacheManager facade with Redis disabled (falls back to in-memory)."""

    async def test_fallback_to_inmemory_when_no_redis(self) -> None:
        mgr = CacheManager(redis_url=None, namespace="test:")
        await mgr.set("key1", {"data": "value"})
        assert await mgr.get("key1") == {"data": "value"}, "should store and retrieve via in-memory fallback"

    async def test_get_returns_default_for_missing_key(self) -> None:
        mgr = CacheManager(redis_url=None)
        assert await mgr.get("missing", default="fallback") == "fallback"

    async def test_get_or_set_calls_factory_once(self) -> None:
        mgr = CacheManager(redis_url=None)
        factory = AsyncMock(return_value=[{"id": "c1"}])

        first = await mgr.get_or_set("k", factory, ttl_seconds=60)
        second = await mgr.get_or_set("k", factory, ttl_seconds=60)

        assert first == second == [{"id": "c1"}]
        factory.assert_awaited_once()

    async def test_redis_failure_falls_back(self) -> None:
        """A Redis error mid-operation should switch to the in-memory backend."""
        redis_backend = AsyncMock()
        redis_backend.ping.return_value = True
        redis_backend.set.side_effect = ConnectionError("redis gone")

        with patch("src.services.cache.RedisCacheBackend", return_value=redis_backend):
            mgr = CacheManager(redis_url="redis://localhost:6379/0")
            await mgr.set("key1", {"a": 1})
            assert await mgr.get("key1") == {"a": 1}, "value should be served from the fallback"

        redis_backend.get.assert_not_awaited()

    async def test_unreachable_redis_uses_inmemory(self) -> None:
        redis_backend = AsyncMock()
        redis_backend.ping.return_value = False

        with patch("src.services.cache.RedisCacheBackend", return_value=redis_backend):
            mgr = CacheManager(redis_url="redis://localhost:6379/0")
            await mgr.set("key1", "v")
            assert await mgr.get("key1") == "v"

        redis_backend.set.assert_not_awaited()


# -----------------------------------------------------------------------
# Category directory
# -----------------------------------------------------------------------


class CountingStore:
    def __init__(self, inner) -> None:
        self._inner = inner
        self.category_loads = 0

    async def list_categories(self):
        self.category_loads += 1
        return await self._inner.list_categories()

    async def list_departments(self):
        return await self._inner.list_departments()


class TestCategoryDirectory:
    async def test_categories_are_cached(self, store) -> None:
        counting = CountingStore(store)
        directory = CategoryDirectory(counting, CacheManager(redis_url=None))

        first = await directory.categories()
        second = await directory.categories()

        assert [c.name for c in first] == [c.name for c in second]
        assert counting.category_loads == 1, "second read should come from the cache"

    async def test_invalidate_forces_reload(self, store) -> None:
        counting = CountingStore(store)
        directory = CategoryDirectory(counting, CacheManager(redis_url=None))
        await directory.categories()
        await directory.invalidate()
        await directory.categories()
        assert counting.category_loads == 2

    async def test_without_cache_reads_store(self, store) -> None:
        counting = CountingStore(store)
        directory = CategoryDirectory(counting)
        await directory.categories()
        await directory.categories()
        assert counting.category_loads == 2

    async def test_get_and_find(self, directory) -> None:
        assert (await directory.get_category("cat-potholes")).name == "Potholes"
        assert await directory.get_category("missing") is None
        assert (await directory.find_category("street lighting")).id == "cat-streetlight"

    async def test_names(self, directory) -> None:
        categories, departments = await directory.names()
        assert categories["cat-potholes"] == "Potholes"
        assert departments["dept-roads"] == "Roads & Infrastructure"


class TestMatchCategory:
    CATEGORIES = [Category(id="1", name="Potholes"), Category(id="2", name="Other")]

    def test_exact_case_insensitive(self) -> None:
        assert match_category("POTHOLES", self.CATEGORIES).id == "1"

    def test_substring_either_way(self) -> None:
        assert match_category("Pothole", self.CATEGORIES).id == "1"
        assert match_category("Other issues", self.CATEGORIES).id == "2"

    def test_blank_never_matches(self) -> None:
        assert match_category("   ", self.CATEGORIES) is None
        assert match_category("Flooding", self.CATEGORIES) is None
