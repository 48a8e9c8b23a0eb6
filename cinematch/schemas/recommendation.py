"""
Recommendation schemas - response shapes for ranked movie lists
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class RankedCandidate(BaseModel):
    """A retrieved movie plus the scores attached during ranking"""
    id: int
    title: str
    description: Optional[str] = None
    poster_url: Optional[str] = None
    backdrop_url: Optional[str] = None
    genres: Optional[List[str]] = None
    vote_average: Optional[float] = None
    popularity: Optional[float] = None
    similarity: float = Field(0.0, description="Cosine similarity to the query (0 for popular fallbacks)")
    mood_score: Optional[float] = None
    normalized_popularity: Optional[float] = None
    score: Optional[float] = Field(None, description="Fused hybrid score")

    model_config = ConfigDict(extra="ignore")


class SearchResponse(BaseModel):
    query: str
    count: int
    results: List[RankedCandidate]


class SimilarResponse(BaseModel):
    movie_ids: List[int]
    count: int
    results: List[RankedCandidate]


class RecommendationResponse(BaseModel):
    success: bool = True
    user_id: Optional[str] = None
    algorithm: str
    count: int
    recommendations: List[RankedCandidate]


class SimilarToMultipleRequest(BaseModel):
    movie_ids: List[int] = Field(..., min_length=1, max_length=20, description="Seed movie IDs")
    limit: int = Field(10, ge=1, le=50)


class ProfileUpdateRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    min_rating: int = Field(7, ge=1, le=10, description="Only movies rated at least this count")


class ProfileUpdateResponse(BaseModel):
    user_id: str
    source_count: int
    invalidated: int
