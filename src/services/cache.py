"""Read-through cache with Redis primary and in-process LRU fallback.

EchoCity caches slow-changing directory rows (categories, departments)
so every complaint form and every submission does not re-query the data
service.  If Redis is not configured or stops answering, operations fall
through to a process-local LRU without raising.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import orjson
import structlog

logger = structlog.get_logger(__name__)


class CacheBackend(Protocol):
    async def get(self, key: str) -> bytes | None: ...

    async def set(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...


class RedisCacheBackend:
    """``redis.asyncio`` backend sharing one connection pool."""

    __slots__ = ("_redis",)

    def __init__(self, url: str) -> None:
        import redis.asyncio as aioredis

        self._redis = aioredis.Redis.from_url(url, decode_responses=False)

    async def get(self, key: str) -> bytes | None:
        return await self._redis.get(key)

    async def set(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None:
        await self._redis.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._redis.delete(key)

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except Exception:
            return False

    async def close(self) -> None:
        await self._redis.aclose()


class InMemoryCacheBackend:
    """Bounded LRU keyed by string, with per-entry expiry.

    Expired entries are dropped lazily when read.
    """

    __slots__ = ("_data", "_lock", "_max_size")

    def __init__(self, *, max_size: int = 1_000) -> None:
        self._max_size = max_size
        self._data: OrderedDict[str, tuple[bytes, float | None]] = OrderedDict()
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> bytes | None:
        async with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and time.monotonic() > expires_at:
                del self._data[key]
                return None
            self._data.move_to_end(key)
            return value

    async def set(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None:
        expires_at = time.monotonic() + ttl_seconds if ttl_seconds is not None else None
        async with self._lock:
            self._data.pop(key, None)
            while len(self._data) >= self._max_size:
                self._data.popitem(last=False)
            self._data[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


class CacheManager:
    """JSON-valued cache facade.

    Parameters
    ----------
    redis_url:
        Redis connection string, or ``None`` / ``""`` for in-memory only.
    namespace:
        Prefix prepended to every key (e.g. ``"echocity:"``).
    """

    __slots__ = ("_fallback", "_namespace", "_redis", "_redis_ok")

    def __init__(self, *, redis_url: str | None = None, namespace: str = "echocity:") -> None:
        self._namespace = namespace
        self._fallback = InMemoryCacheBackend()
        self._redis: RedisCacheBackend | None = None
        self._redis_ok: bool | None = None
        if redis_url:
            try:
                self._redis = RedisCacheBackend(redis_url)
            except Exception:
                logger.warning("cache.redis_init_failed", exc_info=True)

    async def _backend(self) -> CacheBackend:
        if self._redis is None:
            return self._fallback
        if self._redis_ok is None:
            self._redis_ok = await self._redis.ping()
            if self._redis_ok:
                logger.info("cache.redis_connected")
            else:
                logger.warning("cache.redis_unavailable_using_inmemory")
        return self._redis if self._redis_ok else self._fallback

    async def _call(self, method: str, key: str, *args: Any, **kwargs: Any) -> Any:
        backend = await self._backend()
        try:
            return await getattr(backend, method)(self._namespace + key, *args, **kwargs)
        except Exception:
            if backend is self._fallback:
                raise
            logger.warning("cache.redis_op_failed", method=method, key=key)
            self._redis_ok = False
            return await getattr(self._fallback, method)(self._namespace + key, *args, **kwargs)

    async def get(self, key: str, default: Any = None) -> Any:
        raw = await self._call("get", key)
        if raw is None:
            return default
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError:
            return default

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        await self._call("set", key, orjson.dumps(value), ttl_seconds=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._call("delete", key)

    async def get_or_set(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl_seconds: int | None = None,
    ) -> Any:
        """Return the cached value, or await *factory* and cache its result."""
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await factory()
        await self.set(key, value, ttl_seconds=ttl_seconds)
        return value

    async def close(self) -> None:
        if self._redis is not None:
            with contextlib.suppress(Exception):
                await self._redis.close()
