"""
Profile Service - keeps user preference embeddings and cached
recommendations coherent

update_profile is called on every rating event. After the profile is
recomputed, all cached recommendation lists of the user are deleted
(pattern delete, the limit is part of the key). If that keeps failing
the update is reported as failed rather than leaving stale entries to
be served until their TTL runs out.
"""
from typing import Dict, Optional
import asyncio
import logging

from cinematch import config
from cinematch.exceptions import CacheInvalidationError, UpstreamUnavailableError
from cinematch.services.profile_store import ProfileStore
from cinematch.utils.cache import SimilarityCache

logger = logging.getLogger(__name__)


class ProfileService:

    PREFERENCES_LIMIT = 5

    def __init__(
        self,
        profile_store: ProfileStore,
        cache: SimilarityCache,
        invalidation_retries: int = config.CACHE_INVALIDATION_RETRIES,
        retry_delay: float = config.CACHE_INVALIDATION_RETRY_DELAY_SECONDS,
    ):
        self.profile_store = profile_store
        self.cache = cache
        self.invalidation_retries = max(1, invalidation_retries)
        self.retry_delay = retry_delay

    async def update_profile(self, user_id: str, min_rating: int = config.PROFILE_MIN_RATING) -> Dict:
        """
        Recompute the user's preference embedding, then invalidate their
        cached recommendations.

        Raises:
            UpstreamUnavailableError: profile could not be recomputed
            CacheInvalidationError: cache could not be invalidated after retries
        """
        logger.info(f"Updating user profile for {user_id} (min rating: {min_rating})")

        source_count = await self.profile_store.recompute(user_id, min_rating)
        if source_count:
            logger.info(f"User profile updated from {source_count} rated movies")
        else:
            logger.info(f"User {user_id} has no movies rated >= {min_rating}, profile removed")

        invalidated = await self._invalidate_recommendations(user_id)
        return {"user_id": user_id, "source_count": source_count, "invalidated": invalidated}

    async def _invalidate_recommendations(self, user_id: str) -> int:
        pattern = SimilarityCache.recommendations_pattern(user_id)

        for attempt in range(1, self.invalidation_retries + 1):
            try:
                return await self.cache.invalidate_pattern(pattern)
            except UpstreamUnavailableError as e:
                logger.error(
                    f"Cache invalidation for user {user_id} failed "
                    f"(attempt {attempt}/{self.invalidation_retries}): {str(e)}"
                )
                if attempt < self.invalidation_retries:
                    await asyncio.sleep(self.retry_delay * (2 ** (attempt - 1)))

        logger.critical(f"Stale recommendations may be served for user {user_id}: cache invalidation gave up")
        raise CacheInvalidationError(user_id, self.invalidation_retries)

    async def get_preferences(self, user_id: str) -> Optional[Dict]:
        """
        User's top rated movies (rating >= 7, at most 5) for prompt context.
        None for users without such ratings or when they cannot be loaded.
        """
        try:
            top_rated = await self.profile_store.top_rated(
                user_id, config.PROFILE_MIN_RATING, self.PREFERENCES_LIMIT
            )
        except UpstreamUnavailableError as e:
            logger.warning(f"Failed to fetch user preferences: {str(e)}")
            return None

        if not top_rated:
            logger.info(f"No top-rated movies found for user {user_id}")
            return None

        logger.info(f"Found {len(top_rated)} top-rated movies for user {user_id}")
        return {"top_rated_movies": top_rated}
