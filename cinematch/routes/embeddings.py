"""
Embedding Routes - maintenance endpoints for catalog embeddings
"""
from fastapi import APIRouter, Depends

from cinematch.services.embeddings_service import EmbeddingsService
from cinematch.utils.dependencies import get_embeddings_service

router = APIRouter(prefix="/api/embeddings", tags=["Embeddings"])


@router.post("/generate-missing")
async def generate_missing_embeddings(service: EmbeddingsService = Depends(get_embeddings_service)):
    """
    Generate embeddings for every movie that has none yet

    **Response:**
    ```json
    {"message": "Embedding generation complete", "processed": 180, "failed": 2}
    ```
    """
    result = await service.generate_all_missing_embeddings()
    return {"message": "Embedding generation complete", **result}


@router.post("/{movie_id}")
async def generate_movie_embedding(movie_id: int, service: EmbeddingsService = Depends(get_embeddings_service)):
    await service.generate_movie_embedding(movie_id)
    return {"message": f"Embedding generated for movie {movie_id}"}


@router.post("/{movie_id}/regenerate")
async def regenerate_movie_embedding(movie_id: int, service: EmbeddingsService = Depends(get_embeddings_service)):
    await service.regenerate_movie_embedding(movie_id)
    return {"message": f"Embedding regenerated for movie {movie_id}"}
