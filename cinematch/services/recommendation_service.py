"""
Recommendation Service - personalized, hybrid and popular recommendations

- Personalized: nearest neighbours of the user's preference embedding
- Hybrid: personalized candidates re-ranked with popularity (70/30)
- Popular: most popular movies, the fallback whenever personalization
  is unavailable (no profile yet, or nothing similar found)
"""
from typing import Dict, List
import logging

from cinematch import config
from cinematch.services.catalog_store import CatalogRepository
from cinematch.services.ranking_service import RankingEngine
from cinematch.services.retrieval_service import RetrievalEngine
from cinematch.utils.cache import SimilarityCache

logger = logging.getLogger(__name__)


class RecommendationService:

    DEFAULT_LIMIT = 10
    # Hybrid fetches extra profile candidates so re-ranking has room to reorder
    HYBRID_CANDIDATE_MULTIPLIER = 2

    def __init__(
        self,
        retrieval: RetrievalEngine,
        catalog: CatalogRepository,
        ranking: RankingEngine,
        cache: SimilarityCache,
        recommendations_ttl: int = config.RECOMMENDATIONS_CACHE_TTL,
        popular_ttl: int = config.POPULAR_CACHE_TTL,
    ):
        self.retrieval = retrieval
        self.catalog = catalog
        self.ranking = ranking
        self.cache = cache
        self.recommendations_ttl = recommendations_ttl
        self.popular_ttl = popular_ttl

    async def _profile_candidates(self, user_id: str, limit: int) -> List[Dict]:
        candidates = await self.retrieval.by_profile(user_id, limit)
        if not candidates:
            logger.warning(
                f"User {user_id} has no profile embedding yet (or no similar movies). "
                f"Need to watch and rate movies first."
            )
        return candidates

    async def recommend_personalized(self, user_id: str, limit: int = DEFAULT_LIMIT) -> List[Dict]:
        """
        Recommendations from the user's profile embedding.
        Falls back to the popular listing when personalization is unavailable.
        """
        logger.info(f"Getting personalized recommendations for user {user_id}")

        key = SimilarityCache.recommendations_key(user_id, limit)
        cached = await self.cache.get(key)
        if cached is not None:
            logger.info(f"Cache HIT for {key}")
            return cached

        results = await self._profile_candidates(user_id, limit)
        if not results:
            return await self.recommend_popular(limit)

        await self.cache.set(key, results, self.recommendations_ttl)
        logger.info(f"Found {len(results)} personalized recommendations")
        return results

    async def recommend_hybrid(self, user_id: str, limit: int = DEFAULT_LIMIT) -> List[Dict]:
        """
        Profile similarity combined with popularity.
        Falls back entirely to the popular listing when there are no profile candidates.
        """
        logger.info(f"Getting hybrid recommendations for user {user_id}")

        key = SimilarityCache.hybrid_recommendations_key(user_id, limit)
        cached = await self.cache.get(key)
        if cached is not None:
            logger.info(f"Cache HIT for {key}")
            return cached

        candidates = await self._profile_candidates(user_id, limit * self.HYBRID_CANDIDATE_MULTIPLIER)
        if not candidates:
            return await self.recommend_popular(limit)

        reranked = self.ranking.fuse_hybrid(candidates, limit)
        await self.cache.set(key, reranked, self.recommendations_ttl)
        logger.info(f"Reranked to {len(reranked)} hybrid recommendations")
        return reranked

    async def recommend_popular(self, limit: int = DEFAULT_LIMIT) -> List[Dict]:
        """Most popular movies with embeddings; similarity is 0 for all of them"""
        async def _compute() -> List[Dict]:
            movies = await self.catalog.list_by_popularity(limit, 0)
            logger.info(f"Found {len(movies)} popular movies")
            return [{**movie, "similarity": 0.0} for movie in movies]

        return await self.cache.get_or_compute(SimilarityCache.popular_key(limit), self.popular_ttl, _compute)
