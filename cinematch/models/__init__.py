"""
Import all models to ensure they are registered with SQLAlchemy
"""
from cinematch.models.movie import Movie
from cinematch.models.watchlist import WatchlistEntry
from cinematch.models.user_profile import UserProfile
from cinematch.models.chat_message import ChatMessage

__all__ = [
    "Movie",
    "WatchlistEntry",
    "UserProfile",
    "ChatMessage"
]
