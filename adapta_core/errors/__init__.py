# =============================================================================
# adapta_core/errors/__init__.py
# Centralized Error Handling
# =============================================================================

from .exceptions import (
    AdaptaError,
    RemoteError,
    NetworkError,
    RequestTimeoutError,
    HttpError,
    NotFoundError,
    EnvelopeShapeError,
    AuthenticationError,
    ValidationError,
    LocalStoreError,
    ConfigurationError,
)

__all__ = [
    "AdaptaError",
    "RemoteError",
    "NetworkError",
    "RequestTimeoutError",
    "HttpError",
    "NotFoundError",
    "EnvelopeShapeError",
    "AuthenticationError",
    "ValidationError",
    "LocalStoreError",
    "ConfigurationError",
]
