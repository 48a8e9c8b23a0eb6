"""
Embedding Client - text -> 1536-dim vector
Pure function of its input; embeddings are stored on catalog items, not cached here.
"""
from typing import List, Optional
import asyncio
import logging

from cinematch import config
from cinematch.exceptions import DimensionMismatchError, EmptyInputError, UpstreamUnavailableError

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """
    Wraps an embedding provider (anything with async embed / embed_batch)

    Batches are sent sequentially with a short pause between chunks to stay
    under the provider's rate limits, never fanned out in parallel.
    """

    # Provider limit on inputs per request
    MAX_BATCH_SIZE = 100

    def __init__(
        self,
        provider,
        dimensions: int = config.EMBEDDING_DIMENSIONS,
        batch_size: int = config.EMBEDDING_BATCH_SIZE,
        batch_delay: float = config.EMBEDDING_BATCH_DELAY_SECONDS,
    ):
        self.provider = provider
        self.dimensions = dimensions
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.batch_size = min(batch_size, self.MAX_BATCH_SIZE)
        self.batch_delay = batch_delay

    def _check(self, vector: List[float]) -> List[float]:
        if not vector:
            raise UpstreamUnavailableError("embedding provider", "Failed to generate embedding")
        if len(vector) != self.dimensions:
            raise DimensionMismatchError(self.dimensions, len(vector))
        return vector

    async def embed(self, text: str) -> List[float]:
        """
        Generate embedding vector for a single text

        Raises:
            EmptyInputError: text is empty or whitespace only
            UpstreamUnavailableError: provider failed or returned nothing
        """
        if not text or not text.strip():
            raise EmptyInputError("Text cannot be empty")

        vector = await self.provider.embed(text, self.dimensions)
        return self._check(vector)

    async def embed_batch(self, texts: List[str], batch_size: Optional[int] = None) -> List[List[float]]:
        """
        Generate embeddings for many texts, preserving input order

        Args:
            texts: Texts to embed
            batch_size: Texts per provider call (default from config, capped at 100)

        Raises:
            ValueError: batch_size below 1
        """
        batch_size = self.batch_size if batch_size is None else batch_size
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        batch_size = min(batch_size, self.MAX_BATCH_SIZE)

        if not texts:
            return []

        embeddings: List[List[float]] = []

        for start in range(0, len(texts), batch_size):
            batch = texts[start:start + batch_size]
            vectors = await self.provider.embed_batch(batch, self.dimensions)
            if len(vectors) != len(batch):
                raise UpstreamUnavailableError(
                    "embedding provider",
                    f"expected {len(batch)} embeddings, got {len(vectors)}",
                )
            embeddings.extend(self._check(vector) for vector in vectors)
            logger.debug(f"Embedded batch {start // batch_size + 1} ({len(batch)} texts)")

            # Small delay to avoid rate limiting
            if start + batch_size < len(texts):
                await asyncio.sleep(self.batch_delay)

        return embeddings


def build_movie_embedding_text(title: str, description: Optional[str] = None, genres: Optional[List[str]] = None) -> str:
    """Combine title, overview and genres into the text that gets embedded"""
    parts = [title]
    if description:
        parts.append(description)
    if genres:
        parts.append(f"Genres: {', '.join(genres)}")
    return "\n\n".join(parts)
