"""
Watchlist Service - planned / watched movies and their ratings

Marking a movie as watched is the rating event that rebuilds the user's
preference profile (and with it invalidates cached recommendations).
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from sqlalchemy.orm import Session, joinedload, sessionmaker

from cinematch import config
from cinematch.database import run_in_session
from cinematch.exceptions import ItemNotFoundError
from cinematch.models.movie import Movie
from cinematch.models.watchlist import WatchlistEntry
from cinematch.services.profile_service import ProfileService

logger = logging.getLogger(__name__)


class WatchlistService:

    MIN_RATING = 1
    MAX_RATING = 10

    def __init__(self, session_factory: sessionmaker, profile_service: ProfileService):
        self.session_factory = session_factory
        self.profile_service = profile_service

    @staticmethod
    def _get_entry(db: Session, user_id: str, movie_id: int) -> Optional[WatchlistEntry]:
        return db.query(WatchlistEntry).filter(
            WatchlistEntry.user_id == user_id,
            WatchlistEntry.movie_id == movie_id
        ).first()

    @staticmethod
    def _ensure_movie_exists(db: Session, movie_id: int) -> None:
        if db.get(Movie, movie_id) is None:
            raise ItemNotFoundError(movie_id)

    async def add_to_watchlist(
        self,
        user_id: str,
        movie_id: int,
        status: str = WatchlistEntry.STATUS_PLANNED
    ) -> Dict:
        """Add a movie to the user's watchlist, or update the status of an existing entry"""
        logger.info(f"Adding movie {movie_id} to watchlist for user {user_id}")

        def _add(db: Session) -> Dict:
            self._ensure_movie_exists(db, movie_id)
            entry = self._get_entry(db, user_id, movie_id)
            if entry is None:
                entry = WatchlistEntry(user_id=user_id, movie_id=movie_id, status=status)
                db.add(entry)
            else:
                entry.status = status
            db.flush()
            return entry.to_dict()

        return await run_in_session(self.session_factory, _add)

    async def mark_as_watched(self, user_id: str, movie_id: int, rating: Optional[float] = None) -> Dict:
        """
        Mark a movie as watched with an optional 1-10 rating,
        then rebuild the user's profile.

        Raises:
            ValueError: rating outside 1-10
            ItemNotFoundError: unknown movie
            CacheInvalidationError: stale recommendations could not be dropped
        """
        if rating is not None and (rating < self.MIN_RATING or rating > self.MAX_RATING):
            raise ValueError("Rating must be between 1 and 10")

        logger.info(f"Marking movie {movie_id} as watched for user {user_id}")

        def _mark(db: Session) -> Dict:
            self._ensure_movie_exists(db, movie_id)
            entry = self._get_entry(db, user_id, movie_id)
            if entry is None:
                entry = WatchlistEntry(user_id=user_id, movie_id=movie_id)
                db.add(entry)
            entry.status = WatchlistEntry.STATUS_WATCHED
            entry.rating = rating
            entry.watched_at = datetime.now(timezone.utc)
            db.flush()
            return entry.to_dict()

        entry = await run_in_session(self.session_factory, _mark)

        await self.profile_service.update_profile(user_id, config.PROFILE_MIN_RATING)
        return entry

    async def get_user_watchlist(self, user_id: str, status: Optional[str] = None) -> List[Dict]:
        def _query(db: Session) -> List[Dict]:
            query = db.query(WatchlistEntry).options(joinedload(WatchlistEntry.movie)).filter(
                WatchlistEntry.user_id == user_id
            )
            if status:
                query = query.filter(WatchlistEntry.status == status)
            entries = query.order_by(WatchlistEntry.id.desc()).all()
            return [entry.to_dict() for entry in entries]

        return await run_in_session(self.session_factory, _query)

    async def remove_from_watchlist(self, user_id: str, movie_id: int) -> bool:
        """
        Remove a movie from the watchlist.
        Removing a watched movie changes the profile, so it is rebuilt too.
        """
        def _remove(db: Session) -> Optional[str]:
            entry = self._get_entry(db, user_id, movie_id)
            if entry is None:
                return None
            status = entry.status
            db.delete(entry)
            return status

        removed_status = await run_in_session(self.session_factory, _remove)
        if removed_status is None:
            return False

        logger.info(f"Removed movie {movie_id} from watchlist for user {user_id}")
        if removed_status == WatchlistEntry.STATUS_WATCHED:
            await self.profile_service.update_profile(user_id, config.PROFILE_MIN_RATING)
        return True
