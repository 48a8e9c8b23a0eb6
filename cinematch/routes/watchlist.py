"""
Watchlist Routes - planned / watched movies and ratings
Marking a movie as watched rebuilds the user's recommendation profile.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Dict, List, Optional

from cinematch.schemas.watchlist import MarkAsWatched, WatchlistAdd
from cinematch.services.watchlist_service import WatchlistService
from cinematch.utils.dependencies import get_watchlist_service

router = APIRouter(prefix="/api/watchlist", tags=["Watchlist"])


@router.post("", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def add_to_watchlist(body: WatchlistAdd, service: WatchlistService = Depends(get_watchlist_service)):
    return await service.add_to_watchlist(body.user_id, body.movie_id, body.status)


@router.post("/watched", response_model=Dict)
async def mark_as_watched(body: MarkAsWatched, service: WatchlistService = Depends(get_watchlist_service)):
    """
    Mark a movie as watched

    - **rating**: optional, 1 to 10. Ratings >= 7 shape future recommendations.
    """
    return await service.mark_as_watched(body.user_id, body.movie_id, body.rating)


@router.get("/{user_id}", response_model=List[Dict])
async def get_watchlist(
    user_id: str,
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(planned|watched)$"),
    service: WatchlistService = Depends(get_watchlist_service)
):
    return await service.get_user_watchlist(user_id, status_filter)


@router.delete("/{user_id}/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_from_watchlist(
    user_id: str,
    movie_id: int,
    service: WatchlistService = Depends(get_watchlist_service)
):
    if not await service.remove_from_watchlist(user_id, movie_id):
        raise HTTPException(status_code=404, detail="Movie not in watchlist")
