"""
Catalog item model - movies with their semantic embedding
An item is valid without an embedding; it is just left out of similarity retrieval.
"""
from sqlalchemy import Column, Integer, String, Float, JSON, DateTime, Text
from sqlalchemy.sql import func
from cinematch.database import Base


class Movie(Base):
    """
    Catalog entry imported from the source movie database

    Attributes:
        id: Catalog id (the source database id, upserted on re-import)
        title / description / tagline: Text used to build the embedding
        genres: Genre names ["Drama", "Family"]
        keywords: Keyword names ["feel-good", "friendship"]
        movie_cast: [{"name": ..., "character": ...}] (top billed)
        crew: [{"name": ..., "job": "Director"}]
        vote_average: Source rating (0-10)
        popularity: Source popularity scalar
        embedding: 1536-dim vector or NULL until generated
    """
    __tablename__ = "movies"

    id = Column(Integer, primary_key=True, index=True, autoincrement=False)
    title = Column(String(500), nullable=False, index=True)
    description = Column(Text)
    tagline = Column(String(500))
    release_date = Column(String(20))
    poster_url = Column(String(500))
    backdrop_url = Column(String(500))

    # Metrics
    vote_average = Column(Float, default=0.0)
    popularity = Column(Float, default=0.0, index=True)

    genres = Column(JSON)
    keywords = Column(JSON)
    movie_cast = Column(JSON)
    crew = Column(JSON)

    embedding = Column(JSON(none_as_null=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Fields returned with every retrieval result
    PUBLIC_FIELDS = (
        "id", "title", "description", "poster_url", "backdrop_url",
        "genres", "vote_average", "popularity",
    )
    # Extra fields used as chat context
    CONTEXT_FIELDS = PUBLIC_FIELDS + ("keywords", "tagline", "movie_cast", "crew", "release_date")

    def to_dict(self, fields=PUBLIC_FIELDS) -> dict:
        return {field: getattr(self, field) for field in fields}

    def __repr__(self):
        return f"<Movie(id={self.id}, title='{self.title}')>"
