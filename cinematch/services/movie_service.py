"""
Movie Service - semantic search and "more like this" lookups
Search results are cached; similar-movie lookups go straight to retrieval.
"""
from typing import Dict, List, Optional, Sequence
import logging

from cinematch import config
from cinematch.exceptions import ItemNotFoundError
from cinematch.services.catalog_store import CatalogRepository
from cinematch.services.retrieval_service import RetrievalEngine
from cinematch.utils.cache import SimilarityCache

logger = logging.getLogger(__name__)


class MovieService:

    def __init__(
        self,
        retrieval: RetrievalEngine,
        catalog: CatalogRepository,
        cache: SimilarityCache,
        search_ttl: int = config.SEARCH_CACHE_TTL,
    ):
        self.retrieval = retrieval
        self.catalog = catalog
        self.cache = cache
        self.search_ttl = search_ttl

    async def search_by_text(self, query: str, limit: int = 10) -> List[Dict]:
        """
        Semantic search - find movies by query text

        Cached for 1 hour under search:{lowercased query}:{limit}.
        """
        logger.info(f"Searching for: \"{query}\"")
        return await self.cache.get_or_compute(
            SimilarityCache.search_key(query, limit),
            self.search_ttl,
            lambda: self.retrieval.search_by_text(query, limit),
        )

    async def similar_to(self, movie_id: int, limit: int = 10) -> List[Dict]:
        return await self.retrieval.similar_to(movie_id, limit)

    async def similar_to_multiple(self, movie_ids: Sequence[int], limit: int = 10) -> List[Dict]:
        return await self.retrieval.similar_to_multiple(movie_ids, limit)

    async def get_movie(self, movie_id: int) -> Dict:
        movie = await self.catalog.get_by_id(movie_id)
        if movie is None:
            raise ItemNotFoundError(movie_id)
        return movie

    async def list_movies(self, page: int = 1, page_size: int = 20) -> Dict:
        return await self.catalog.list_movies(page, page_size)

    async def autocomplete(self, query: str, limit: int = 10) -> List[Dict]:
        logger.info(f"Autocomplete for: \"{query}\"")
        return await self.catalog.autocomplete(query, limit)
