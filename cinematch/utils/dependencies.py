from fastapi import Request

from cinematch.container import ServiceContainer
from cinematch.services.chat_service import ChatService
from cinematch.services.embeddings_service import EmbeddingsService
from cinematch.services.movie_service import MovieService
from cinematch.services.profile_service import ProfileService
from cinematch.services.recommendation_service import RecommendationService
from cinematch.services.watchlist_service import WatchlistService


# Services live on app.state, built by the lifespan handler (or by tests)
def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_movie_service(request: Request) -> MovieService:
    return get_container(request).movies


def get_recommendation_service(request: Request) -> RecommendationService:
    return get_container(request).recommendations


def get_profile_service(request: Request) -> ProfileService:
    return get_container(request).profiles


def get_watchlist_service(request: Request) -> WatchlistService:
    return get_container(request).watchlist


def get_embeddings_service(request: Request) -> EmbeddingsService:
    return get_container(request).embeddings


def get_chat_service(request: Request) -> ChatService:
    return get_container(request).chat
