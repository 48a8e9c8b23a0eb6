"""
Retrieval Engine - nearest-neighbour candidate generation
Three query modes: free text, a single movie, several movies combined.
Results keep the vector store's ordering (descending similarity).
"""
from typing import Dict, List, Sequence
import logging

from cinematch.exceptions import ItemNotFoundError, NoEmbeddingDataError
from cinematch.services.catalog_store import CatalogRepository, VectorStore
from cinematch.services.embedding_client import EmbeddingClient
from cinematch.utils.vectors import average_embeddings

logger = logging.getLogger(__name__)


class RetrievalEngine:

    def __init__(self, embedding_client: EmbeddingClient, vector_store: VectorStore, catalog: CatalogRepository):
        self.embedding_client = embedding_client
        self.vector_store = vector_store
        self.catalog = catalog

    async def search_by_text(self, query: str, limit: int = 10) -> List[Dict]:
        """
        Semantic search - embed the query and return the closest movies

        Raises:
            EmptyInputError: blank query
            UpstreamUnavailableError: embedding provider / datastore down
        """
        query_embedding = await self.embedding_client.embed(query)
        results = await self.vector_store.nearest_neighbors(query_embedding, limit)
        logger.info(f"Found {len(results)} results for \"{query}\"")
        return results

    async def similar_to(self, movie_id: int, limit: int = 10) -> List[Dict]:
        """
        Movies closest to an existing movie's stored embedding

        Raises:
            ItemNotFoundError: unknown movie
            NoEmbeddingDataError: movie has no embedding yet
        """
        movie = await self.catalog.get_by_id(movie_id, include_embedding=True)
        if movie is None:
            raise ItemNotFoundError(movie_id)
        if not movie.get("embedding"):
            raise NoEmbeddingDataError(f"No similarity data for movie {movie_id}")

        results = await self.vector_store.nearest_neighbors(movie["embedding"], limit, exclude_ids=[movie_id])
        logger.info(f"Found {len(results)} similar movies to {movie_id}")
        return results

    async def similar_to_multiple(self, movie_ids: Sequence[int], limit: int = 10) -> List[Dict]:
        """
        Movies closest to the mean embedding of several seed movies

        Seeds without an embedding are skipped. The store is asked for
        limit + len(movie_ids) results so removing the seeds still leaves
        enough to fill limit.

        Raises:
            ValueError: no seed ids
            NoEmbeddingDataError: none of the seeds has an embedding
            DimensionMismatchError: seed embeddings differ in length
        """
        if not movie_ids:
            raise ValueError("At least one movie ID is required")

        seed_ids = list(dict.fromkeys(movie_ids))
        logger.info(f"Finding movies similar to combination of: {seed_ids}")

        seeds = await self.catalog.get_by_ids(seed_ids, include_embedding=True, fields=("id", "title"))
        embeddings = [seed["embedding"] for seed in seeds if seed.get("embedding")]
        if not embeddings:
            raise NoEmbeddingDataError("No embeddings available for any seed movie")

        query_embedding = average_embeddings(embeddings)
        logger.info(f"Computed average embedding from {len(embeddings)} of {len(seed_ids)} movies")

        results = await self.vector_store.nearest_neighbors(query_embedding, limit + len(seed_ids))

        excluded = set(seed_ids)
        filtered = [movie for movie in results if movie["id"] not in excluded]
        return filtered[:limit]

    async def by_profile(self, user_id: str, limit: int) -> List[Dict]:
        """Movies closest to the user's preference embedding ([] without a profile)"""
        return await self.vector_store.nearest_neighbors_by_profile(user_id, limit)
