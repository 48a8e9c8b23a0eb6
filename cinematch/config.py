"""
Application configuration
Everything is read from the environment (optionally via a .env file)
"""
from dotenv import load_dotenv
import os

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


API_VERSION = "1.0.0"
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
FRONTEND_URL = os.getenv("FRONTEND_URL")

# Datastore
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cinematch.db")

# Cache store - empty REDIS_URL means the in-process store is used
REDIS_URL = os.getenv("REDIS_URL", "")
CACHE_MAX_SIZE = _env_int("CACHE_MAX_SIZE", 1000)

# OpenAI
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_EMBEDDING_MODEL = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")
OPENAI_CHAT_MODEL_SMALL = os.getenv("OPENAI_CHAT_MODEL_SMALL", "gpt-4o-mini")
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o")
EMBEDDING_DIMENSIONS = 1536

# Batch embedding
# The embeddings endpoint takes at most 100 inputs per request
EMBEDDING_BATCH_SIZE = min(_env_int("EMBEDDING_BATCH_SIZE", 100), 100)
EMBEDDING_BATCH_DELAY_SECONDS = _env_float("EMBEDDING_BATCH_DELAY_SECONDS", 0.1)

# Cache TTLs (seconds)
SEARCH_CACHE_TTL = _env_int("SEARCH_CACHE_TTL", 3600)
RECOMMENDATIONS_CACHE_TTL = _env_int("RECOMMENDATIONS_CACHE_TTL", 600)
POPULAR_CACHE_TTL = _env_int("POPULAR_CACHE_TTL", 86400)

# Profile builder
PROFILE_MIN_RATING = _env_int("PROFILE_MIN_RATING", 7)
CACHE_INVALIDATION_RETRIES = _env_int("CACHE_INVALIDATION_RETRIES", 3)
CACHE_INVALIDATION_RETRY_DELAY_SECONDS = _env_float("CACHE_INVALIDATION_RETRY_DELAY_SECONDS", 0.2)
