"""
Catalog datastore - movie lookups and nearest-neighbour search

VectorStore does an in-process brute-force cosine scan over every movie
that has an embedding. The contract (ranked id + similarity list, sorted
descending) is what the rest of the pipeline relies on, so it can be
swapped for a real vector index without touching callers.
"""
from typing import Dict, List, Optional, Sequence
import logging

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity
from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from cinematch import config
from cinematch.database import run_in_session
from cinematch.exceptions import DimensionMismatchError
from cinematch.models.movie import Movie
from cinematch.models.user_profile import UserProfile
from cinematch.models.watchlist import WatchlistEntry

logger = logging.getLogger(__name__)


class CatalogRepository:
    """Read / upsert access to the movies table"""

    # Changing any of these makes the stored embedding stale
    EMBEDDING_SOURCE_FIELDS = ("title", "description", "genres")

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _serialize(movie: Movie, include_embedding: bool, fields=Movie.PUBLIC_FIELDS) -> Dict:
        data = movie.to_dict(fields)
        if include_embedding:
            data["embedding"] = movie.embedding
        return data

    async def get_by_id(self, movie_id: int, include_embedding: bool = False) -> Optional[Dict]:
        def _query(db: Session) -> Optional[Dict]:
            movie = db.get(Movie, movie_id)
            if movie is None:
                return None
            return self._serialize(movie, include_embedding, Movie.CONTEXT_FIELDS)

        return await run_in_session(self.session_factory, _query)

    async def get_by_ids(
        self,
        movie_ids: Sequence[int],
        include_embedding: bool = False,
        fields=Movie.PUBLIC_FIELDS,
    ) -> List[Dict]:
        """Movies for the given ids, in the order the ids were given. Unknown ids are skipped."""
        if not movie_ids:
            return []

        def _query(db: Session) -> List[Dict]:
            movies = db.query(Movie).filter(Movie.id.in_(list(movie_ids))).all()
            by_id = {movie.id: movie for movie in movies}
            return [
                self._serialize(by_id[movie_id], include_embedding, fields)
                for movie_id in dict.fromkeys(movie_ids)
                if movie_id in by_id
            ]

        return await run_in_session(self.session_factory, _query)

    async def list_by_popularity(self, limit: int, offset: int = 0) -> List[Dict]:
        """Most popular movies that can take part in similarity retrieval"""
        def _query(db: Session) -> List[Dict]:
            movies = (
                db.query(Movie)
                .filter(Movie.embedding.isnot(None))
                .order_by(Movie.popularity.desc(), Movie.id.asc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return [movie.to_dict() for movie in movies]

        return await run_in_session(self.session_factory, _query)

    async def list_movies(self, page: int = 1, page_size: int = 20) -> Dict:
        def _query(db: Session) -> Dict:
            total = db.query(func.count(Movie.id)).scalar() or 0
            movies = (
                db.query(Movie)
                .order_by(Movie.popularity.desc(), Movie.id.asc())
                .offset((page - 1) * page_size)
                .limit(page_size)
                .all()
            )
            return {"movies": [movie.to_dict() for movie in movies], "total": total}

        return await run_in_session(self.session_factory, _query)

    async def autocomplete(self, query: str, limit: int = 10) -> List[Dict]:
        """Case-insensitive substring search on titles, most popular first"""
        # Escape LIKE wildcards so user input is matched literally
        sanitized = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_").strip()
        if not sanitized:
            return []

        def _query(db: Session) -> List[Dict]:
            movies = (
                db.query(Movie)
                .filter(Movie.title.ilike(f"%{sanitized}%", escape="\\"))
                .order_by(Movie.popularity.desc(), Movie.id.asc())
                .limit(limit)
                .all()
            )
            return [
                {
                    "id": movie.id,
                    "title": movie.title,
                    "poster_url": movie.poster_url,
                    "release_date": movie.release_date,
                    "vote_average": movie.vote_average,
                }
                for movie in movies
            ]

        return await run_in_session(self.session_factory, _query)

    async def list_missing_embeddings(self) -> List[Dict]:
        def _query(db: Session) -> List[Dict]:
            movies = db.query(Movie).filter(Movie.embedding.is_(None)).order_by(Movie.id.asc()).all()
            return [movie.to_dict(("id", "title", "description", "genres")) for movie in movies]

        return await run_in_session(self.session_factory, _query)

    async def set_embedding(self, movie_id: int, embedding: List[float]) -> bool:
        """Attach (or overwrite) a movie's embedding. Returns False if the movie is gone."""
        def _update(db: Session) -> bool:
            movie = db.get(Movie, movie_id)
            if movie is None:
                return False
            movie.embedding = embedding
            return True

        return await run_in_session(self.session_factory, _update)

    async def upsert(self, items: List[Dict]) -> Dict[str, int]:
        """
        Insert or update movies by id (catalog re-import).

        An update that changes title, description or genres clears the
        embedding so it gets regenerated from the new text.
        """
        columns = {column.name for column in Movie.__table__.columns} - {"created_at", "updated_at"}

        def _upsert(db: Session) -> Dict[str, int]:
            created = updated = 0
            for item in items:
                values = {key: value for key, value in item.items() if key in columns}
                movie = db.get(Movie, values["id"])
                if movie is None:
                    db.add(Movie(**values))
                    created += 1
                    continue

                stale = any(
                    field in values and values[field] != getattr(movie, field)
                    for field in self.EMBEDDING_SOURCE_FIELDS
                )
                for key, value in values.items():
                    setattr(movie, key, value)
                if stale and "embedding" not in values:
                    movie.embedding = None
                updated += 1
            return {"created": created, "updated": updated}

        return await run_in_session(self.session_factory, _upsert)


class VectorStore:
    """Nearest-neighbour search over stored movie embeddings (cosine similarity)"""

    def __init__(self, session_factory: sessionmaker, dimensions: int = config.EMBEDDING_DIMENSIONS):
        self.session_factory = session_factory
        self.dimensions = dimensions

    def _rank(self, db: Session, query_vector: Sequence[float], k: int, exclude_ids: Sequence[int]) -> List[Dict]:
        if len(query_vector) != self.dimensions:
            raise DimensionMismatchError(self.dimensions, len(query_vector))
        if k <= 0:
            return []

        query = db.query(Movie).filter(Movie.embedding.isnot(None)).order_by(Movie.id.asc())
        if exclude_ids:
            query = query.filter(~Movie.id.in_(list(exclude_ids)))

        movies = []
        for movie in query.all():
            if len(movie.embedding) != self.dimensions:
                logger.warning(
                    f"Skipping movie {movie.id}: embedding has {len(movie.embedding)} dimensions, "
                    f"expected {self.dimensions}"
                )
                continue
            movies.append(movie)

        if not movies:
            return []

        matrix = np.asarray([movie.embedding for movie in movies], dtype=float)
        scores = cosine_similarity(np.asarray([query_vector], dtype=float), matrix)[0]

        # Stable sort keeps id order for equal scores
        order = np.argsort(-scores, kind="stable")[:k]
        return [{**movies[i].to_dict(), "similarity": float(scores[i])} for i in order]

    async def nearest_neighbors(
        self,
        query_vector: Sequence[float],
        k: int,
        exclude_ids: Optional[Sequence[int]] = None,
    ) -> List[Dict]:
        """
        Top-k movies by cosine similarity to query_vector

        Returns:
            Movie dicts with a `similarity` score, sorted descending
        """
        return await run_in_session(self.session_factory, self._rank, list(query_vector), k, list(exclude_ids or []))

    async def nearest_neighbors_by_profile(self, user_id: str, k: int) -> List[Dict]:
        """
        Top-k movies for a user's preference embedding, excluding movies the
        user already watched. No profile -> empty list.
        """
        def _query(db: Session) -> List[Dict]:
            profile = db.get(UserProfile, user_id)
            if profile is None or not profile.prefs_embedding:
                return []

            watched_ids = [
                movie_id for (movie_id,) in db.query(WatchlistEntry.movie_id).filter(
                    WatchlistEntry.user_id == user_id,
                    WatchlistEntry.status == WatchlistEntry.STATUS_WATCHED,
                )
            ]
            return self._rank(db, profile.prefs_embedding, k, watched_ids)

        return await run_in_session(self.session_factory, _query)
