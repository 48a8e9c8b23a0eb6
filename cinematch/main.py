from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import os
import logging

from cinematch import config
from cinematch.container import ServiceContainer, build_container_from_env
from cinematch.exceptions import (
    CacheInvalidationError,
    DimensionMismatchError,
    ItemNotFoundError,
    NoEmbeddingDataError,
    UpstreamUnavailableError,
)
from cinematch.routes import chat, embeddings, movies, recommendations, watchlist

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


# ============================================
# Application Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    - Build the service container from the environment unless one was injected

    Shutdown:
    - Close the clients the container owns (cache store, OpenAI client)
    """
    logger.info("=" * 60)
    logger.info("CineMatch API Starting...")
    logger.info(f"   Environment: {config.ENVIRONMENT}")

    owned = app.state.container is None
    if owned:
        app.state.container = build_container_from_env()
    logger.info("=" * 60)

    yield

    logger.info("=" * 60)
    logger.info("CineMatch API Shutting Down...")
    if owned:
        try:
            await app.state.container.close()
            logger.info("   Clients closed")
        except Exception as e:
            logger.error(f"Error closing clients: {str(e)}")
    logger.info("=" * 60)


def _error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


def register_exception_handlers(app: FastAPI) -> None:
    """Map service errors to HTTP responses"""

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        # EmptyInputError is a ValueError too
        return _error(400, str(exc))

    @app.exception_handler(ItemNotFoundError)
    async def not_found_handler(request: Request, exc: ItemNotFoundError):
        return _error(404, str(exc))

    @app.exception_handler(NoEmbeddingDataError)
    async def no_embedding_handler(request: Request, exc: NoEmbeddingDataError):
        return _error(404, str(exc))

    @app.exception_handler(DimensionMismatchError)
    async def dimension_mismatch_handler(request: Request, exc: DimensionMismatchError):
        logger.error(f"Embedding dimension mismatch: {str(exc)}")
        return _error(500, "Internal server error")

    @app.exception_handler(UpstreamUnavailableError)
    async def upstream_handler(request: Request, exc: UpstreamUnavailableError):
        logger.error(f"Upstream failure: {str(exc)}")
        return _error(503, f"{exc.service} temporarily unavailable")

    @app.exception_handler(CacheInvalidationError)
    async def invalidation_handler(request: Request, exc: CacheInvalidationError):
        return _error(503, str(exc))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return _error(500, "Internal server error")


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        container: Pre-built services (tests). None builds them from the
            environment at startup.
    """
    app = FastAPI(
        title="CineMatch API",
        description="Semantic movie search and recommendations (embeddings + RAG)",
        version=config.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.container = container

    # CORS - Whitelist allowed origins
    allowed_origins = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    if config.FRONTEND_URL:
        allowed_origins.append(config.FRONTEND_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        return response

    # Trusted Hosts - Production only
    if config.ENVIRONMENT == "production":
        if trusted_hosts := [host for host in os.getenv("TRUSTED_HOSTS", "").split(",") if host]:
            app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)

    register_exception_handlers(app)

    @app.get("/", tags=["Health"])
    async def root():
        """Basic health check"""
        return {
            "message": "CineMatch API",
            "version": config.API_VERSION,
            "status": "healthy",
            "docs": "/docs"
        }

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Detailed health check for monitoring"""
        container = request.app.state.container
        return {
            "status": "healthy",
            "api_version": config.API_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "cache": container.cache.get_stats() if container else None,
        }

    app.include_router(movies.router)
    app.include_router(recommendations.router)
    app.include_router(watchlist.router)
    app.include_router(chat.router)
    app.include_router(embeddings.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
