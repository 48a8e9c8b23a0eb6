"""
Cache Test Suite
================
In-process store (TTL, LRU, patterns), the Redis store against fakeredis,
and SimilarityCache degradation rules.
"""
import asyncio
from datetime import datetime, timedelta

import fakeredis
import pytest

from cinematch.exceptions import UpstreamUnavailableError
from cinematch.utils.cache import CacheStore, RedisCacheStore, SimilarityCache


class FakeClock:

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class BrokenStore:
    """Every operation fails like an unreachable Redis"""

    async def get(self, key):
        raise UpstreamUnavailableError("cache store", "connection refused")

    async def set(self, key, value, ttl=None):
        raise UpstreamUnavailableError("cache store", "connection refused")

    async def delete(self, key):
        raise UpstreamUnavailableError("cache store", "connection refused")

    async def keys(self, pattern):
        raise UpstreamUnavailableError("cache store", "connection refused")

    def get_stats(self):
        return {"backend": "broken"}


# ============================================
# In-process store
# ============================================

class TestCacheStore:

    def test_value_expires_after_ttl(self):
        clock = FakeClock()
        store = CacheStore(clock=clock)

        async def scenario():
            await store.set("popular:10", "[1, 2]", ttl=600)
            clock.advance(599)
            assert await store.get("popular:10") == "[1, 2]"
            clock.advance(2)
            assert await store.get("popular:10") is None

        asyncio.run(scenario())

    def test_no_ttl_never_expires(self):
        clock = FakeClock()
        store = CacheStore(clock=clock)

        async def scenario():
            await store.set("k", "v")
            clock.advance(10 ** 6)
            assert await store.get("k") == "v"

        asyncio.run(scenario())

    def test_lru_eviction(self):
        store = CacheStore(max_size=2)

        async def scenario():
            await store.set("a", "1")
            await store.set("b", "2")
            await store.get("a")  # a is now most recently used
            await store.set("c", "3")
            assert await store.get("b") is None
            assert await store.get("a") == "1"
            assert await store.get("c") == "3"

        asyncio.run(scenario())

    def test_keys_match_glob_and_skip_expired(self):
        clock = FakeClock()
        store = CacheStore(clock=clock)

        async def scenario():
            await store.set("recommendations:u1:10", "[]", ttl=600)
            await store.set("recommendations:u1:hybrid:10", "[]", ttl=600)
            await store.set("recommendations:u10:10", "[]", ttl=600)
            await store.set("recommendations:u1:5", "[]", ttl=10)
            clock.advance(11)
            keys = await store.keys("recommendations:u1:*")
            assert sorted(keys) == ["recommendations:u1:10", "recommendations:u1:hybrid:10"]

        asyncio.run(scenario())

    def test_stats_count_hits_and_misses(self):
        store = CacheStore()

        async def scenario():
            await store.set("k", "v")
            await store.get("k")
            await store.get("missing")

        asyncio.run(scenario())
        stats = store.get_stats()
        assert stats["backend"] == "memory"
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == "50.00%"


# ============================================
# Redis store
# ============================================

class TestRedisCacheStore:

    def test_set_get_with_ttl(self):
        async def scenario():
            client = fakeredis.FakeAsyncRedis(decode_responses=True)
            store = RedisCacheStore(client)
            await store.set("search:space:10", "[3]", ttl=3600)
            assert await store.get("search:space:10") == "[3]"
            assert 0 < await client.ttl("search:space:10") <= 3600
            await store.close()

        asyncio.run(scenario())

    def test_pattern_delete(self):
        async def scenario():
            client = fakeredis.FakeAsyncRedis(decode_responses=True)
            cache = SimilarityCache(RedisCacheStore(client))
            await cache.set("recommendations:u1:10", [1])
            await cache.set("recommendations:u1:hybrid:10", [2])
            await cache.set("recommendations:u2:10", [3])

            deleted = await cache.invalidate_pattern(SimilarityCache.recommendations_pattern("u1"))

            assert deleted == 2
            assert await cache.get("recommendations:u1:10") is None
            assert await cache.get("recommendations:u2:10") == [3]
            await client.aclose()

        asyncio.run(scenario())


# ============================================
# SimilarityCache
# ============================================

class TestSimilarityCache:

    def test_keys(self):
        assert SimilarityCache.search_key("Feel Good Movies", 10) == "search:feel good movies:10"
        assert SimilarityCache.recommendations_key("u1", 5) == "recommendations:u1:5"
        assert SimilarityCache.hybrid_recommendations_key("u1", 5) == "recommendations:u1:hybrid:5"
        assert SimilarityCache.popular_key(20) == "popular:20"

    def test_round_trip(self):
        cache = SimilarityCache(CacheStore())
        results = [{"id": 1, "title": "Sunny Days", "similarity": 0.93}]

        async def scenario():
            await cache.set("search:sunny:10", results, ttl=600)
            return await cache.get("search:sunny:10")

        assert asyncio.run(scenario()) == results

    def test_undecodable_entry_is_a_miss(self):
        store = CacheStore()
        cache = SimilarityCache(store)

        async def scenario():
            await store.set("search:broken:10", "{not json")
            return await cache.get("search:broken:10")

        assert asyncio.run(scenario()) is None

    def test_get_or_compute_caches_non_empty_results(self):
        cache = SimilarityCache(CacheStore())
        calls = []

        async def compute():
            calls.append(1)
            return [{"id": 1}]

        async def scenario():
            first = await cache.get_or_compute("popular:1", 60, compute)
            second = await cache.get_or_compute("popular:1", 60, compute)
            return first, second

        first, second = asyncio.run(scenario())
        assert first == second == [{"id": 1}]
        assert len(calls) == 1

    def test_empty_results_are_not_cached(self):
        cache = SimilarityCache(CacheStore())
        calls = []

        async def compute():
            calls.append(1)
            return []

        async def scenario():
            await cache.get_or_compute("search:nothing:10", 60, compute)
            await cache.get_or_compute("search:nothing:10", 60, compute)

        asyncio.run(scenario())
        assert len(calls) == 2

    def test_store_failure_degrades_to_compute(self):
        cache = SimilarityCache(BrokenStore())

        async def compute():
            return [{"id": 7}]

        async def scenario():
            assert await cache.get("popular:1") is None
            await cache.set("popular:1", [1])
            return await cache.get_or_compute("popular:1", 60, compute)

        assert asyncio.run(scenario()) == [{"id": 7}]

    def test_invalidate_pattern_propagates_store_failure(self):
        cache = SimilarityCache(BrokenStore())
        with pytest.raises(UpstreamUnavailableError):
            asyncio.run(cache.invalidate_pattern("recommendations:u1:*"))


# ============================================
# User ids with glob characters
# ============================================

class TestRecommendationPatternEscaping:

    @pytest.mark.parametrize("user_id", ["[team]", "a*b", "who?", "back\\slash", "x]y"])
    def test_pattern_matches_only_that_user(self, user_id):
        cache = SimilarityCache(CacheStore())

        async def scenario():
            await cache.set(SimilarityCache.recommendations_key(user_id, 10), [1])
            await cache.set(SimilarityCache.hybrid_recommendations_key(user_id, 5), [2])
            await cache.set(SimilarityCache.recommendations_key("bob", 10), [3])

            deleted = await cache.invalidate_pattern(SimilarityCache.recommendations_pattern(user_id))

            assert deleted == 2
            assert await cache.get(SimilarityCache.recommendations_key(user_id, 10)) is None
            assert await cache.get(SimilarityCache.recommendations_key("bob", 10)) == [3]

        asyncio.run(scenario())

    def test_star_user_does_not_clear_other_users(self):
        cache = SimilarityCache(CacheStore())

        async def scenario():
            await cache.set(SimilarityCache.recommendations_key("bob", 10), [3])
            await cache.set(SimilarityCache.recommendations_key("*", 10), [4])

            deleted = await cache.invalidate_pattern(SimilarityCache.recommendations_pattern("*"))

            assert deleted == 1
            assert await cache.get(SimilarityCache.recommendations_key("bob", 10)) == [3]

        asyncio.run(scenario())

    @pytest.mark.parametrize("user_id", ["[team]", "*", "back\\slash"])
    def test_redis_pattern_matches_only_that_user(self, user_id):
        async def scenario():
            client = fakeredis.FakeAsyncRedis(decode_responses=True)
            cache = SimilarityCache(RedisCacheStore(client))
            await cache.set(SimilarityCache.recommendations_key(user_id, 10), [1])
            await cache.set(SimilarityCache.recommendations_key("bob", 10), [3])

            deleted = await cache.invalidate_pattern(SimilarityCache.recommendations_pattern(user_id))

            assert deleted == 1
            assert await cache.get(SimilarityCache.recommendations_key(user_id, 10)) is None
            assert await cache.get(SimilarityCache.recommendations_key("bob", 10)) == [3]
            await client.aclose()

        asyncio.run(scenario())
