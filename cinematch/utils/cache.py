"""
Caching Utilities
=================
TTL key-value cache sitting in front of every expensive retrieval
(semantic search, recommendations, popularity listing).

Features:
- Two interchangeable stores: in-process (TTL + LRU) and Redis (native TTL)
- JSON serialization; undecodable payloads are treated as a cache miss
- Pattern invalidation (e.g. every cached recommendation list of a user)
- Store failures degrade to always-compute, never fail the request

Usage:
    cache = SimilarityCache(CacheStore(max_size=1000))

    results = await cache.get_or_compute(
        SimilarityCache.search_key(query, limit),
        ttl=3600,
        compute=lambda: retrieval.search_by_text(query, limit),
    )

    # After a profile update
    await cache.invalidate_pattern(SimilarityCache.recommendations_pattern(user_id))

Known limitation: concurrent misses for the same key are not coalesced,
N simultaneous misses cause N upstream computations.
"""
from typing import Any, Awaitable, Callable, List, Optional
from collections import OrderedDict
from datetime import datetime, timedelta
from fnmatch import fnmatchcase
import json
import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from cinematch.exceptions import CacheDeserializationError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

# Glob metacharacters as single-character classes. Redis also treats a
# backslash inside a class as an escape, so it is doubled there.
GLOB_ESCAPES = {"*": "[*]", "?": "[?]", "[": "[[]", "\\": "[\\\\]"}


class CacheStore:
    """
    Simple in-memory cache with TTL and LRU eviction.
    For production with multiple workers, use RedisCacheStore instead.
    """

    def __init__(self, max_size: int = 1000, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize cache store.

        Args:
            max_size: Maximum number of items in cache (LRU eviction)
            clock: Time source, swappable in tests
        """
        self._cache: OrderedDict = OrderedDict()
        self._max_size = max_size
        self._clock = clock
        self._hits = 0
        self._misses = 0

    def _expired(self, expiry: Optional[datetime]) -> bool:
        return expiry is not None and self._clock() >= expiry

    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache if exists and not expired.

        Returns:
            Cached value or None if not found/expired
        """
        if key not in self._cache:
            self._misses += 1
            return None

        value, expiry = self._cache[key]

        # Check if expired
        if self._expired(expiry):
            del self._cache[key]
            self._misses += 1
            return None

        # Move to end (LRU)
        self._cache.move_to_end(key)
        self._hits += 1
        return value

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """
        Set value in cache with optional TTL.

        Args:
            key: Cache key
            value: Serialized value
            ttl: Time to live in seconds (None = no expiration)
        """
        expiry = self._clock() + timedelta(seconds=ttl) if ttl else None

        # Replace wholesale, never merge
        self._cache[key] = (value, expiry)
        self._cache.move_to_end(key)

        # Evict oldest if over max_size (LRU)
        if len(self._cache) > self._max_size:
            oldest_key = next(iter(self._cache))
            del self._cache[oldest_key]
            logger.debug(f"Evicted cache key: {oldest_key}")

    async def delete(self, key: str) -> int:
        """Delete a specific cache key. Returns number of keys removed."""
        if key in self._cache:
            del self._cache[key]
            return 1
        return 0

    async def keys(self, pattern: str) -> List[str]:
        """Live keys matching a glob-style pattern (same syntax as Redis KEYS)."""
        matched = []
        for key, (_, expiry) in list(self._cache.items()):
            if self._expired(expiry):
                del self._cache[key]
                continue
            if fnmatchcase(key, pattern):
                matched.append(key)
        return matched

    async def close(self) -> None:
        self._cache.clear()

    def clear(self) -> None:
        """Clear all cache."""
        self._cache.clear()
        self._hits = 0
        self._misses = 0
        logger.info("Cache cleared")

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        total_requests = self._hits + self._misses
        hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0

        return {
            'backend': 'memory',
            'size': len(self._cache),
            'max_size': self._max_size,
            'hits': self._hits,
            'misses': self._misses,
            'hit_rate': f"{hit_rate:.2f}%"
        }


class RedisCacheStore:
    """
    Redis-backed store. Expiry is enforced by Redis itself (SETEX).
    Every Redis failure surfaces as UpstreamUnavailableError.
    """

    def __init__(self, client: aioredis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheStore":
        return cls(aioredis.from_url(url, encoding="utf-8", decode_responses=True))

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._client.get(key)
        except RedisError as e:
            raise UpstreamUnavailableError("cache store", str(e)) from e

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        try:
            if ttl:
                await self._client.setex(key, ttl, value)
            else:
                await self._client.set(key, value)
        except RedisError as e:
            raise UpstreamUnavailableError("cache store", str(e)) from e

    async def delete(self, key: str) -> int:
        try:
            return await self._client.delete(key)
        except RedisError as e:
            raise UpstreamUnavailableError("cache store", str(e)) from e

    async def keys(self, pattern: str) -> List[str]:
        # SCAN instead of KEYS so a large keyspace does not block the server
        try:
            return [key async for key in self._client.scan_iter(match=pattern)]
        except RedisError as e:
            raise UpstreamUnavailableError("cache store", str(e)) from e

    async def close(self) -> None:
        await self._client.aclose()

    def get_stats(self) -> dict:
        return {'backend': 'redis'}


class SimilarityCache:
    """
    JSON cache for ranked result lists.

    Key scheme:
        search:{lowercased query}:{limit}
        recommendations:{user_id}:{limit}
        recommendations:{user_id}:hybrid:{limit}
        popular:{limit}
    """

    def __init__(self, store):
        self.store = store

    # ==================== KEYS ====================

    @staticmethod
    def search_key(query: str, limit: int) -> str:
        return f"search:{query.lower()}:{limit}"

    @staticmethod
    def recommendations_key(user_id: str, limit: int) -> str:
        return f"recommendations:{user_id}:{limit}"

    @staticmethod
    def hybrid_recommendations_key(user_id: str, limit: int) -> str:
        return f"recommendations:{user_id}:hybrid:{limit}"

    @staticmethod
    def escape_glob(value: str) -> str:
        """
        Make value match only itself in a KEYS / SCAN pattern.

        Bracket classes work for both fnmatch and Redis; a closing bracket
        outside a class is already literal in both.
        """
        return "".join(GLOB_ESCAPES.get(char, char) for char in value)

    @classmethod
    def recommendations_pattern(cls, user_id: str) -> str:
        return f"recommendations:{cls.escape_glob(user_id)}:*"

    @staticmethod
    def popular_key(limit: int) -> str:
        return f"popular:{limit}"

    # ==================== SERIALIZATION ====================

    @staticmethod
    def _decode(raw: str) -> Any:
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CacheDeserializationError(str(e)) from e

    # ==================== OPERATIONS ====================

    async def get(self, key: str) -> Optional[Any]:
        """Cached value, or None on miss / undecodable payload / store failure."""
        try:
            raw = await self.store.get(key)
        except UpstreamUnavailableError as e:
            logger.warning(f"Cache read failed for {key}, computing instead: {str(e)}")
            return None

        if raw is None:
            return None

        try:
            return self._decode(raw)
        except CacheDeserializationError as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {str(e)}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store a value. A store failure is logged and otherwise ignored."""
        try:
            await self.store.set(key, json.dumps(value, default=str), ttl)
        except UpstreamUnavailableError as e:
            logger.warning(f"Cache write failed for {key}: {str(e)}")

    async def delete(self, key: str) -> None:
        await self.store.delete(key)

    async def keys_matching(self, pattern: str) -> List[str]:
        return await self.store.keys(pattern)

    async def invalidate_pattern(self, pattern: str) -> int:
        """
        Delete every key matching pattern.

        Unlike get/set this propagates store failures: callers that need
        coherence (profile updates) must know invalidation did not happen.
        """
        deleted = 0
        for key in await self.store.keys(pattern):
            deleted += await self.store.delete(key)
        logger.info(f"Invalidated {deleted} cache entries matching {pattern}")
        return deleted

    async def get_or_compute(
        self,
        key: str,
        ttl: int,
        compute: Callable[[], Awaitable[List[Any]]],
    ) -> List[Any]:
        """
        Serve key from cache, otherwise compute and cache the result.
        Empty results are not cached so the next call retries upstream.
        """
        cached = await self.get(key)
        if cached is not None:
            logger.info(f"Cache HIT for {key}")
            return cached

        logger.info(f"Cache MISS for {key}")
        results = await compute()
        if results:
            await self.set(key, results, ttl)
        return results

    def get_stats(self) -> dict:
        return self.store.get_stats()
