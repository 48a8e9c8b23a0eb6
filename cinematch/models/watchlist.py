from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from cinematch.database import Base


class WatchlistEntry(Base):
    """
    A movie on a user's watchlist, planned or watched.
    Watched entries rated at or above the profile threshold feed the user's
    preference embedding.
    """
    __tablename__ = "user_watchlist"

    STATUS_PLANNED = "planned"
    STATUS_WATCHED = "watched"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=STATUS_PLANNED)
    rating = Column(Float, nullable=True)  # 1-10, only for watched entries
    watched_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    movie = relationship("Movie")

    # One entry per user per movie
    __table_args__ = (
        UniqueConstraint("user_id", "movie_id", name="unique_user_movie_watchlist"),
    )

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "movie_id": self.movie_id,
            "status": self.status,
            "rating": self.rating,
            "watched_at": self.watched_at.isoformat() if self.watched_at else None,
        }
        if self.movie is not None:
            data["movie"] = {
                "id": self.movie.id,
                "title": self.movie.title,
                "poster_url": self.movie.poster_url,
                "vote_average": self.movie.vote_average,
                "release_date": self.movie.release_date,
            }
        return data

    def __repr__(self):
        return f"<WatchlistEntry(user_id={self.user_id}, movie_id={self.movie_id}, status={self.status})>"
