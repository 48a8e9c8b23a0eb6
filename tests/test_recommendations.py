"""
Recommendation Test Suite
=========================
Popular listing, profile-based and hybrid recommendations, fallbacks,
caching and cache invalidation on profile updates.
"""
import asyncio

import pytest

from cinematch.exceptions import CacheInvalidationError, UpstreamUnavailableError
from cinematch.services.profile_service import ProfileService
from cinematch.utils.cache import CacheStore, SimilarityCache


def ids(results):
    return [movie["id"] for movie in results]


class FlakyStore(CacheStore):
    """In-memory store whose pattern lookups fail a given number of times"""

    def __init__(self, failures):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    async def keys(self, pattern):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise UpstreamUnavailableError("cache store", "timeout")
        return await super().keys(pattern)


def rate(container, user_id, movie_id, rating):
    return asyncio.run(container.watchlist.mark_as_watched(user_id, movie_id, rating))


# ============================================
# POPULAR
# ============================================

class TestPopular:

    def test_most_popular_embedded_movies(self, container, seeded):
        results = asyncio.run(container.recommendations.recommend_popular(3))

        # Unprocessed is the most popular but has no embedding
        assert ids(results) == [1, 3, 2]
        assert all(movie["similarity"] == 0.0 for movie in results)

    def test_cached_for_a_day(self, container, seeded):
        asyncio.run(container.recommendations.recommend_popular(3))
        cached = asyncio.run(container.cache.get(SimilarityCache.popular_key(3)))
        assert ids(cached) == [1, 3, 2]


# ============================================
# PERSONALIZED
# ============================================

class TestPersonalized:

    def test_no_profile_falls_back_to_popular(self, container, seeded):
        results = asyncio.run(container.recommendations.recommend_personalized("newcomer", 3))

        assert ids(results) == [1, 3, 2]
        keys = asyncio.run(container.cache.keys_matching("recommendations:*"))
        assert keys == []

    def test_profile_neighbours_exclude_watched(self, container, seeded):
        rate(container, "u1", 1, 9)

        results = asyncio.run(container.recommendations.recommend_personalized("u1", 3))

        assert ids(results) == [4, 2, 3]
        assert results[0]["similarity"] == pytest.approx(0.9939, abs=1e-4)

    def test_low_ratings_do_not_build_a_profile(self, container, seeded):
        rate(container, "u1", 2, 4)
        results = asyncio.run(container.recommendations.recommend_personalized("u1", 3))
        assert ids(results) == [1, 3, 2]

    def test_cached_per_user_and_limit(self, container, seeded):
        rate(container, "u1", 1, 9)
        asyncio.run(container.recommendations.recommend_personalized("u1", 3))
        keys = asyncio.run(container.cache.keys_matching("recommendations:u1:*"))
        assert keys == ["recommendations:u1:3"]

    def test_new_rating_invalidates_cached_list(self, container, seeded):
        rate(container, "u1", 1, 9)
        first = asyncio.run(container.recommendations.recommend_personalized("u1", 2))
        assert ids(first) == [4, 2]

        rate(container, "u1", 2, 10)

        assert asyncio.run(container.cache.keys_matching("recommendations:u1:*")) == []
        second = asyncio.run(container.recommendations.recommend_personalized("u1", 2))
        assert ids(second) == [4, 3]


# ============================================
# HYBRID
# ============================================

class TestHybrid:

    def test_no_profile_equals_popular(self, container, seeded):
        hybrid = asyncio.run(container.recommendations.recommend_hybrid("newcomer", 3))
        popular = asyncio.run(container.recommendations.recommend_popular(3))
        assert hybrid == popular

    def test_popularity_reorders_candidates(self, container, seeded):
        rate(container, "u1", 1, 9)

        results = asyncio.run(container.recommendations.recommend_hybrid("u1", 2))

        # candidates 4 (sim .994, pop 2), 2 (sim 0, pop 5), 3 (sim 0, pop 8)
        assert ids(results) == [4, 3]
        assert results[0]["score"] == pytest.approx(0.7 * 0.99388 + 0.3 * 0.25, abs=1e-4)
        assert results[1]["score"] == pytest.approx(0.3)

    def test_hybrid_cache_cleared_with_profile(self, container, seeded):
        rate(container, "u1", 1, 9)
        asyncio.run(container.recommendations.recommend_hybrid("u1", 2))
        assert asyncio.run(container.cache.keys_matching("recommendations:u1:*")) == [
            "recommendations:u1:hybrid:2"
        ]

        asyncio.run(container.profiles.update_profile("u1"))

        assert asyncio.run(container.cache.keys_matching("recommendations:u1:*")) == []


# ============================================
# PROFILE UPDATE / INVALIDATION RETRIES
# ============================================

class TestProfileUpdate:

    def test_invalidation_retries_then_succeeds(self, container, seeded):
        cache = SimilarityCache(FlakyStore(failures=2))
        service = ProfileService(container.profile_store, cache, invalidation_retries=3, retry_delay=0)

        result = asyncio.run(service.update_profile("u1"))

        assert result == {"user_id": "u1", "source_count": 0, "invalidated": 0}
        assert cache.store.attempts == 3

    def test_invalidation_gives_up(self, container, seeded):
        cache = SimilarityCache(FlakyStore(failures=10))
        service = ProfileService(container.profile_store, cache, invalidation_retries=3, retry_delay=0)

        with pytest.raises(CacheInvalidationError) as exc_info:
            asyncio.run(service.update_profile("u1"))

        assert exc_info.value.attempts == 3
        assert cache.store.attempts == 3

    def test_update_clears_cache_for_user_id_with_brackets(self, container, seeded):
        rate(container, "[team]", 1, 9)
        rate(container, "bob", 3, 9)
        asyncio.run(container.recommendations.recommend_personalized("[team]", 2))
        asyncio.run(container.recommendations.recommend_personalized("bob", 2))

        result = asyncio.run(container.profiles.update_profile("[team]"))

        assert result["invalidated"] == 1
        assert asyncio.run(container.cache.get(SimilarityCache.recommendations_key("[team]", 2))) is None
        assert asyncio.run(container.cache.get(SimilarityCache.recommendations_key("bob", 2))) is not None
