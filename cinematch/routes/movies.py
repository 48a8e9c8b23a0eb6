"""
Movie Routes - semantic search and similarity lookups
"""
from fastapi import APIRouter, Depends, Query
from typing import Dict, List

from cinematch.schemas.recommendation import SearchResponse, SimilarResponse, SimilarToMultipleRequest
from cinematch.schemas.validation import SearchQuerySchema
from cinematch.services.movie_service import MovieService
from cinematch.utils.dependencies import get_movie_service

router = APIRouter(prefix="/api/movies", tags=["Movies"])


@router.get("/search", response_model=SearchResponse)
async def search_movies(
    query: str = Query(..., min_length=1, max_length=500, description="Free-text description of what to watch"),
    limit: int = Query(10, ge=1, le=50),
    service: MovieService = Depends(get_movie_service)
):
    """
    Semantic search - movies whose embedding is closest to the query text

    **Example:**
    ```
    GET /api/movies/search?query=something%20uplifting&limit=10
    ```

    Results are cached for 1 hour per (query, limit).
    """
    params = SearchQuerySchema(query=query, limit=limit)
    results = await service.search_by_text(params.query, params.limit)
    return {"query": params.query, "count": len(results), "results": results}


@router.get("/autocomplete", response_model=List[Dict])
async def autocomplete(
    query: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(10, ge=1, le=20),
    service: MovieService = Depends(get_movie_service)
):
    """Title autocomplete (case-insensitive substring, most popular first)"""
    return await service.autocomplete(query, limit)


@router.get("/", response_model=Dict)
async def list_movies(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    service: MovieService = Depends(get_movie_service)
):
    """All movies by popularity, paginated"""
    result = await service.list_movies(page, page_size)
    return {"page": page, "page_size": page_size, **result}


@router.post("/similar-multiple", response_model=SimilarResponse)
async def similar_to_multiple(
    body: SimilarToMultipleRequest,
    service: MovieService = Depends(get_movie_service)
):
    """
    Movies similar to a combination of movies

    The seeds' embeddings are averaged into one query vector; the seeds
    themselves never appear in the results.
    """
    results = await service.similar_to_multiple(body.movie_ids, body.limit)
    return {"movie_ids": body.movie_ids, "count": len(results), "results": results}


@router.get("/{movie_id}/similar", response_model=SimilarResponse)
async def similar_movies(
    movie_id: int,
    limit: int = Query(10, ge=1, le=50, description="Number of similar movies to return"),
    service: MovieService = Depends(get_movie_service)
):
    """
    Movies similar to one movie, by its stored embedding

    **Use case:** Movie detail pages showing "You might also like"
    """
    results = await service.similar_to(movie_id, limit)
    return {"movie_ids": [movie_id], "count": len(results), "results": results}


@router.get("/{movie_id}", response_model=Dict)
async def get_movie(movie_id: int, service: MovieService = Depends(get_movie_service)):
    return await service.get_movie(movie_id)
