"""
Recommendation Routes
Personalized (profile embedding), hybrid (profile + popularity) and popular listings
"""
from fastapi import APIRouter, Depends, Query, Request

from cinematch.schemas.recommendation import (
    ProfileUpdateRequest,
    ProfileUpdateResponse,
    RecommendationResponse,
)
from cinematch.services.profile_service import ProfileService
from cinematch.services.ranking_service import RankingEngine
from cinematch.services.recommendation_service import RecommendationService
from cinematch.utils.dependencies import get_container, get_profile_service, get_recommendation_service

router = APIRouter(prefix="/api/recommendations", tags=["Recommendations"])


@router.get("", response_model=RecommendationResponse)
async def get_recommendations(
    user_id: str = Query(..., min_length=1, max_length=64),
    limit: int = Query(10, ge=1, le=50, description="Number of recommendations (1-50)"),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """
    Personalized recommendations from the user's preference embedding

    Users without a profile yet (nothing watched and rated >= 7) get the
    popular listing instead of an error.
    """
    results = await service.recommend_personalized(user_id, limit)
    return {"user_id": user_id, "algorithm": "profile_similarity", "count": len(results), "recommendations": results}


@router.get("/hybrid", response_model=RecommendationResponse)
async def get_hybrid_recommendations(
    user_id: str = Query(..., min_length=1, max_length=64),
    limit: int = Query(10, ge=1, le=50, description="Number of recommendations (1-50)"),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """
    Hybrid recommendations

    **Algorithm:**
    - score = 0.7 x profile similarity + 0.3 x normalized popularity
    - Falls back to popular movies when the user has no profile
    """
    results = await service.recommend_hybrid(user_id, limit)
    algorithm = (
        f"hybrid_{round(RankingEngine.HYBRID_SIMILARITY_WEIGHT * 100)}_"
        f"{round(RankingEngine.HYBRID_POPULARITY_WEIGHT * 100)}"
    )
    return {"user_id": user_id, "algorithm": algorithm, "count": len(results), "recommendations": results}


@router.get("/popular", response_model=RecommendationResponse)
async def get_popular_recommendations(
    limit: int = Query(10, ge=1, le=50),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Most popular movies (cached for 24 hours)"""
    results = await service.recommend_popular(limit)
    return {"algorithm": "popularity", "count": len(results), "recommendations": results}


@router.post("/profile", response_model=ProfileUpdateResponse)
async def update_user_profile(
    body: ProfileUpdateRequest,
    service: ProfileService = Depends(get_profile_service)
):
    """
    Manually trigger a user profile embedding update
    Normally this happens automatically when a movie is marked as watched.
    """
    return await service.update_profile(body.user_id, body.min_rating)


@router.get("/cache-stats")
async def get_cache_stats(request: Request):
    """Statistics of the recommendation cache store"""
    return get_container(request).cache.get_stats()
