import pytest
from fastapi.testclient import TestClient

from cinematch.container import build_container
from cinematch.database import Base, create_db_engine, create_session_factory, session_scope
from cinematch.exceptions import UpstreamUnavailableError
from cinematch.main import create_app
from cinematch.models import Movie
from cinematch.utils.cache import CacheStore

# Small vectors keep the expected similarities easy to compute by hand
DIMENSIONS = 4

SQLALCHEMY_DATABASE_URL = "sqlite://"


class FakeEmbeddingProvider:
    """Returns fixed vectors per text and records every call"""

    def __init__(self, vectors=None, default=None):
        self.vectors = dict(vectors or {})
        self.default = default or [1.0, 0.0, 0.0, 0.0]
        self.calls = []
        self.fail = False

    def _vector(self, text):
        return list(self.vectors.get(text, self.default))

    async def embed(self, text, dimensions):
        self.calls.append([text])
        if self.fail:
            raise UpstreamUnavailableError("embedding provider", "connection refused")
        return self._vector(text)

    async def embed_batch(self, texts, dimensions):
        self.calls.append(list(texts))
        if self.fail:
            raise UpstreamUnavailableError("embedding provider", "connection refused")
        return [self._vector(text) for text in texts]


class FakeTextGenerator:

    def __init__(self, reply="Try **Sunny Days** tonight."):
        self.reply = reply
        self.calls = []

    async def complete(self, messages):
        self.calls.append(messages)
        return self.reply


SEED_MOVIES = [
    {
        "id": 1, "title": "Sunny Days", "description": "A family road trip.",
        "genres": ["Family", "Comedy"], "keywords": ["feel-good", "heartwarming"],
        "popularity": 10.0, "vote_average": 7.5, "release_date": "2019-06-01",
        "embedding": [1.0, 0.0, 0.0, 0.0],
    },
    {
        "id": 2, "title": "Night Terror", "description": "Something lives in the attic.",
        "genres": ["Horror", "Thriller"], "keywords": ["creepy", "haunted house"],
        "popularity": 5.0, "vote_average": 6.8, "release_date": "2021-10-31",
        "embedding": [0.0, 1.0, 0.0, 0.0],
    },
    {
        "id": 3, "title": "Space Odyssey", "description": "A voyage past Jupiter.",
        "genres": ["Science Fiction"], "keywords": ["space", "artificial intelligence"],
        "popularity": 8.0, "vote_average": 8.3, "release_date": "1968-04-02",
        "embedding": [0.0, 0.0, 1.0, 0.0],
    },
    {
        "id": 4, "title": "Happy Trails", "description": "Two kids and a lost dog.",
        "genres": ["Family", "Adventure"], "keywords": ["dog", "friendship"],
        "popularity": 2.0, "vote_average": 6.1, "release_date": "2015-03-14",
        "embedding": [0.9, 0.1, 0.0, 0.0],
    },
    {
        "id": 5, "title": "Unprocessed", "description": "Imported, not embedded yet.",
        "genres": ["Drama"], "keywords": [],
        "popularity": 50.0, "vote_average": 5.0, "release_date": "2024-01-01",
        "embedding": None,
    },
]


@pytest.fixture
def session_factory():
    """Fresh in-memory database per test"""
    engine = create_db_engine(SQLALCHEMY_DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    yield create_session_factory(engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def embedding_provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def text_generator():
    return FakeTextGenerator()


@pytest.fixture
def container(session_factory, embedding_provider, text_generator):
    return build_container(
        session_factory=session_factory,
        cache_store=CacheStore(max_size=100),
        embedding_provider=embedding_provider,
        text_generator=text_generator,
        dimensions=DIMENSIONS,
        batch_delay=0,
        invalidation_retry_delay=0,
    )


@pytest.fixture
def seeded(session_factory):
    """Catalog with four embedded movies and one without an embedding"""
    with session_scope(session_factory) as db:
        for movie in SEED_MOVIES:
            db.add(Movie(**movie))
    return SEED_MOVIES


@pytest.fixture
def client(container, seeded):
    """FastAPI test client wired to the test container"""
    with TestClient(create_app(container)) as test_client:
        yield test_client
