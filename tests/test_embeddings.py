import asyncio

import pytest

from cinematch.exceptions import ItemNotFoundError
from cinematch.utils.cache import SimilarityCache


def run(coro):
    return asyncio.run(coro)


def test_generate_missing(container, seeded, embedding_provider):
    embedding_provider.vectors["Unprocessed\n\nImported, not embedded yet.\n\nGenres: Drama"] = [0.0, 0.0, 0.0, 1.0]

    result = run(container.embeddings.generate_all_missing_embeddings())

    assert result == {"processed": 1, "failed": 0}
    movie = run(container.catalog.get_by_id(5, include_embedding=True))
    assert movie["embedding"] == [0.0, 0.0, 0.0, 1.0]
    assert run(container.catalog.list_missing_embeddings()) == []


def test_nothing_missing(container, seeded, embedding_provider):
    run(container.embeddings.generate_all_missing_embeddings())
    embedding_provider.calls.clear()

    assert run(container.embeddings.generate_all_missing_embeddings()) == {"processed": 0, "failed": 0}
    assert embedding_provider.calls == []


def test_new_embeddings_clear_cached_listings(container, seeded):
    run(container.recommendations.recommend_popular(3))
    assert run(container.cache.get(SimilarityCache.popular_key(3))) is not None

    run(container.embeddings.generate_all_missing_embeddings())

    assert run(container.cache.get(SimilarityCache.popular_key(3))) is None
    # Unprocessed is now the most popular embedded movie
    assert run(container.recommendations.recommend_popular(1))[0]["id"] == 5


def test_regenerate(container, seeded, embedding_provider):
    embedding_provider.default = [0.0, 0.0, 0.5, 0.5]
    run(container.embeddings.regenerate_movie_embedding(1))
    assert run(container.catalog.get_by_id(1, include_embedding=True))["embedding"] == [0.0, 0.0, 0.5, 0.5]


def test_unknown_movie(container, seeded):
    with pytest.raises(ItemNotFoundError):
        run(container.embeddings.generate_movie_embedding(999))


def test_catalog_update_clears_stale_embedding(container, seeded):
    result = run(container.catalog.upsert([
        {"id": 1, "title": "Sunny Days", "description": "A rewritten overview."},
        {"id": 2, "title": "Night Terror", "popularity": 99.0},
        {"id": 6, "title": "Brand New"},
    ]))

    assert result == {"created": 1, "updated": 2}
    assert run(container.catalog.get_by_id(1, include_embedding=True))["embedding"] is None
    assert run(container.catalog.get_by_id(2, include_embedding=True))["embedding"] == [0.0, 1.0, 0.0, 0.0]
    assert [m["id"] for m in run(container.catalog.list_missing_embeddings())] == [1, 5, 6]
