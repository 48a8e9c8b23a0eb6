"""
Watchlist schemas - request validation for watchlist / rating endpoints
"""
from pydantic import BaseModel, Field
from typing import Literal, Optional


class WatchlistAdd(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    movie_id: int = Field(..., gt=0)
    status: Literal['planned', 'watched'] = 'planned'


class MarkAsWatched(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    movie_id: int = Field(..., gt=0)
    rating: Optional[float] = Field(None, description="Rating value (1-10)")
