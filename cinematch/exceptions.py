"""
Error taxonomy for the retrieval and ranking pipeline

Propagation rules:
- Cache failures never fail a request (they degrade to always-compute)
- Embedding / datastore failures do fail it (UpstreamUnavailableError)
- A missing user profile is not an error anywhere
"""


class CineMatchError(Exception):
    """Base class for all service errors"""


class EmptyInputError(CineMatchError, ValueError):
    """Text embedding requested on blank input. Raised before any network call."""


class DimensionMismatchError(CineMatchError):
    """Embeddings of differing length were combined or compared."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Embedding dimension mismatch: expected {expected}, got {actual}")


class NoEmbeddingDataError(CineMatchError):
    """Similarity requested against an item or profile that has no embedding."""


class ItemNotFoundError(CineMatchError, LookupError):
    """Catalog item does not exist."""

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Movie {item_id} not found")


class UpstreamUnavailableError(CineMatchError):
    """Embedding provider, vector store or cache store could not be reached."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service} unavailable: {message}")


class CacheDeserializationError(CineMatchError):
    """Cached payload could not be decoded. Only ever treated as a cache miss."""


class CacheInvalidationError(CineMatchError):
    """Cached recommendations could not be invalidated after a profile update."""

    def __init__(self, user_id: str, attempts: int):
        self.user_id = user_id
        self.attempts = attempts
        super().__init__(
            f"Failed to invalidate cached recommendations for user {user_id} after {attempts} attempts"
        )
