"""
Profile datastore - user preference embeddings

A profile is the mean embedding of the movies a user watched and rated at
or above a threshold. Users without such ratings have no profile row at all.
"""
from typing import Dict, List, Optional
import logging

from sqlalchemy.orm import Session, sessionmaker

from cinematch.database import run_in_session
from cinematch.models.movie import Movie
from cinematch.models.user_profile import UserProfile
from cinematch.models.watchlist import WatchlistEntry
from cinematch.utils.vectors import average_embeddings

logger = logging.getLogger(__name__)


class ProfileStore:

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def get(self, user_id: str) -> Optional[List[float]]:
        def _query(db: Session) -> Optional[List[float]]:
            profile = db.get(UserProfile, user_id)
            return profile.prefs_embedding if profile is not None else None

        return await run_in_session(self.session_factory, _query)

    async def recompute(self, user_id: str, min_rating: float) -> int:
        """
        Rebuild the user's preference embedding from watched movies rated
        >= min_rating that have an embedding.

        Returns:
            Number of movies averaged in (0 means the profile was removed)
        """
        def _recompute(db: Session) -> int:
            embeddings = [
                embedding for (embedding,) in db.query(Movie.embedding)
                .join(WatchlistEntry, WatchlistEntry.movie_id == Movie.id)
                .filter(
                    WatchlistEntry.user_id == user_id,
                    WatchlistEntry.status == WatchlistEntry.STATUS_WATCHED,
                    WatchlistEntry.rating >= min_rating,
                    Movie.embedding.isnot(None),
                )
                .order_by(Movie.id.asc())
            ]

            profile = db.get(UserProfile, user_id)
            if not embeddings:
                if profile is not None:
                    db.delete(profile)
                return 0

            averaged = average_embeddings(embeddings)
            if profile is None:
                db.add(UserProfile(
                    user_id=user_id,
                    prefs_embedding=averaged,
                    source_count=len(embeddings),
                    min_rating=min_rating,
                ))
            else:
                profile.prefs_embedding = averaged
                profile.source_count = len(embeddings)
                profile.min_rating = min_rating
            return len(embeddings)

        return await run_in_session(self.session_factory, _recompute)

    async def top_rated(self, user_id: str, min_rating: float = 7, limit: int = 5) -> List[Dict]:
        """User's highest rated watched movies, for prompt personalization"""
        def _query(db: Session) -> List[Dict]:
            rows = (
                db.query(WatchlistEntry.rating, Movie.title, Movie.genres)
                .join(Movie, WatchlistEntry.movie_id == Movie.id)
                .filter(
                    WatchlistEntry.user_id == user_id,
                    WatchlistEntry.status == WatchlistEntry.STATUS_WATCHED,
                    WatchlistEntry.rating >= min_rating,
                )
                .order_by(WatchlistEntry.rating.desc(), WatchlistEntry.id.asc())
                .limit(limit)
                .all()
            )
            return [
                {"title": title, "rating": rating, "genres": genres or []}
                for rating, title, genres in rows
            ]

        return await run_in_session(self.session_factory, _query)
