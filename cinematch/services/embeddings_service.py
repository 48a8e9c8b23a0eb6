"""
Embeddings Service - attaches embeddings to catalog movies

Movies are imported without embeddings; this service fills them in
(one at a time, or every missing one in batches) and can force a
regeneration after the movie's text changed.
"""
from typing import Dict
import logging

from cinematch.exceptions import ItemNotFoundError, UpstreamUnavailableError
from cinematch.services.catalog_store import CatalogRepository
from cinematch.services.embedding_client import EmbeddingClient, build_movie_embedding_text
from cinematch.utils.cache import SimilarityCache

logger = logging.getLogger(__name__)


class EmbeddingsService:

    BATCH_SIZE = 50

    def __init__(self, catalog: CatalogRepository, embedding_client: EmbeddingClient, cache: SimilarityCache):
        self.catalog = catalog
        self.embedding_client = embedding_client
        self.cache = cache

    async def generate_movie_embedding(self, movie_id: int) -> None:
        """Generate embedding for a single movie and store it"""
        movie = await self.catalog.get_by_id(movie_id)
        if movie is None:
            raise ItemNotFoundError(movie_id)

        logger.info(f"Generating embedding for: {movie['title']}")
        text = build_movie_embedding_text(movie["title"], movie.get("description"), movie.get("genres"))
        embedding = await self.embedding_client.embed(text)

        if not await self.catalog.set_embedding(movie_id, embedding):
            raise ItemNotFoundError(movie_id)
        logger.info(f"Embedding generated for: {movie['title']}")

    async def regenerate_movie_embedding(self, movie_id: int) -> None:
        """Regenerate embedding for a specific movie (force update)"""
        logger.info(f"Regenerating embedding for movie {movie_id}...")
        await self.generate_movie_embedding(movie_id)

    async def generate_all_missing_embeddings(self) -> Dict[str, int]:
        """
        Generate embeddings for all movies without one.

        A failed store update for one movie is counted and logged, the rest
        continue. A provider failure aborts the run.

        Returns:
            {"processed": n, "failed": m}
        """
        movies = await self.catalog.list_missing_embeddings()
        if not movies:
            logger.info("No movies without embeddings found")
            return {"processed": 0, "failed": 0}

        logger.info(f"Found {len(movies)} movies without embeddings")
        texts = [
            build_movie_embedding_text(movie["title"], movie.get("description"), movie.get("genres"))
            for movie in movies
        ]
        embeddings = await self.embedding_client.embed_batch(texts, self.BATCH_SIZE)

        processed = 0
        failed = 0
        for index, (movie, embedding) in enumerate(zip(movies, embeddings), start=1):
            try:
                if not await self.catalog.set_embedding(movie["id"], embedding):
                    raise ItemNotFoundError(movie["id"])
                processed += 1
                logger.debug(f"[{index}/{len(movies)}] {movie['title']}")
            except (ItemNotFoundError, UpstreamUnavailableError) as e:
                failed += 1
                logger.error(f"Failed to update {movie['title']}: {str(e)}")

        logger.info(f"Batch complete: {processed} processed, {failed} failed")

        if processed:
            await self._invalidate_catalog_listings()
        return {"processed": processed, "failed": failed}

    async def _invalidate_catalog_listings(self) -> None:
        """New embeddings change search and popular results; drop the cached ones"""
        for pattern in ("search:*", "popular:*"):
            try:
                await self.cache.invalidate_pattern(pattern)
            except UpstreamUnavailableError as e:
                logger.error(f"Could not invalidate {pattern} after embedding update: {str(e)}")
