"""
Service graph

All clients (database session factory, cache store, OpenAI providers) are
built once per application and passed into the services explicitly, so
tests can swap any of them for doubles.
"""
from dataclasses import dataclass, field
from typing import Any, Optional
import logging

from sqlalchemy.orm import sessionmaker

from cinematch import config
from cinematch.database import Base, create_db_engine, create_session_factory
from cinematch.services.catalog_store import CatalogRepository, VectorStore
from cinematch.services.chat_service import ChatService
from cinematch.services.embedding_client import EmbeddingClient
from cinematch.services.embeddings_service import EmbeddingsService
from cinematch.services.mood_detector import MoodDetector
from cinematch.services.movie_service import MovieService
from cinematch.services.profile_service import ProfileService
from cinematch.services.profile_store import ProfileStore
from cinematch.services.ranking_service import RankingEngine
from cinematch.services.recommendation_service import RecommendationService
from cinematch.services.retrieval_service import RetrievalEngine
from cinematch.services.watchlist_service import WatchlistService
from cinematch.utils.cache import CacheStore, RedisCacheStore, SimilarityCache

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    session_factory: sessionmaker
    cache: SimilarityCache
    embedding_client: EmbeddingClient
    catalog: CatalogRepository
    vector_store: VectorStore
    profile_store: ProfileStore
    mood_detector: MoodDetector
    ranking: RankingEngine
    retrieval: RetrievalEngine
    movies: MovieService
    recommendations: RecommendationService
    profiles: ProfileService
    watchlist: WatchlistService
    embeddings: EmbeddingsService
    chat: ChatService
    # Clients owned by the container, closed on shutdown
    resources: list = field(default_factory=list)

    async def close(self) -> None:
        await self.cache.store.close()
        for resource in self.resources:
            await resource.close()


def build_container(
    session_factory: sessionmaker,
    cache_store: Any,
    embedding_provider: Any,
    text_generator: Any,
    dimensions: int = config.EMBEDDING_DIMENSIONS,
    batch_delay: float = config.EMBEDDING_BATCH_DELAY_SECONDS,
    invalidation_retry_delay: float = config.CACHE_INVALIDATION_RETRY_DELAY_SECONDS,
) -> ServiceContainer:
    """Wire every service from the given clients"""
    cache = SimilarityCache(cache_store)
    embedding_client = EmbeddingClient(embedding_provider, dimensions=dimensions, batch_delay=batch_delay)
    catalog = CatalogRepository(session_factory)
    vector_store = VectorStore(session_factory, dimensions=dimensions)
    profile_store = ProfileStore(session_factory)
    mood_detector = MoodDetector()
    ranking = RankingEngine(mood_detector)
    retrieval = RetrievalEngine(embedding_client, vector_store, catalog)
    profiles = ProfileService(profile_store, cache, retry_delay=invalidation_retry_delay)

    return ServiceContainer(
        session_factory=session_factory,
        cache=cache,
        embedding_client=embedding_client,
        catalog=catalog,
        vector_store=vector_store,
        profile_store=profile_store,
        mood_detector=mood_detector,
        ranking=ranking,
        retrieval=retrieval,
        movies=MovieService(retrieval, catalog, cache),
        recommendations=RecommendationService(retrieval, catalog, ranking, cache),
        profiles=profiles,
        watchlist=WatchlistService(session_factory, profiles),
        embeddings=EmbeddingsService(catalog, embedding_client, cache),
        chat=ChatService(
            session_factory, embedding_client, vector_store, catalog,
            mood_detector, ranking, profiles, text_generator,
        ),
    )


def build_container_from_env(database_url: Optional[str] = None, redis_url: Optional[str] = None) -> ServiceContainer:
    """Production wiring: SQLAlchemy + Redis (or in-process cache) + OpenAI"""
    from cinematch.services.openai_client import (
        OpenAIEmbeddingProvider,
        OpenAITextGenerator,
        create_openai_client,
    )
    # Register models before create_all
    import cinematch.models  # noqa: F401

    engine = create_db_engine(database_url or config.DATABASE_URL)
    Base.metadata.create_all(bind=engine)

    redis_url = config.REDIS_URL if redis_url is None else redis_url
    if redis_url:
        cache_store = RedisCacheStore.from_url(redis_url)
        logger.info("Using Redis cache store")
    else:
        cache_store = CacheStore(max_size=config.CACHE_MAX_SIZE)
        logger.info("Using in-process cache store")

    openai_client = create_openai_client()
    container = build_container(
        session_factory=create_session_factory(engine),
        cache_store=cache_store,
        embedding_provider=OpenAIEmbeddingProvider(openai_client),
        text_generator=OpenAITextGenerator(openai_client),
    )
    container.resources.append(openai_client)
    return container
