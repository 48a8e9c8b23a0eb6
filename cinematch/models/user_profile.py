from sqlalchemy import Column, Integer, String, JSON, DateTime
from sqlalchemy.sql import func
from cinematch.database import Base


class UserProfile(Base):
    """
    Aggregate preference embedding for one user.
    Only exists while the user has at least one qualifying rating.
    """
    __tablename__ = "user_profiles"

    user_id = Column(String(64), primary_key=True)
    prefs_embedding = Column(JSON, nullable=False)
    source_count = Column(Integer, nullable=False, default=0)  # Rated movies averaged in
    min_rating = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
