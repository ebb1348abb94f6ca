"""Core utilities and security modules."""

from marketplace.core.exceptions import (
    AlreadyDecided,
    AppException,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DatesNotAvailable,
    NotFoundError,
    RateLimitExceeded,
    ValidationError,
)
from marketplace.core.security import (
    create_access_token,
    create_refresh_token,
    create_tokens,
    get_password_hash,
    verify_password,
    verify_token,
)

__all__ = [
    "AlreadyDecided",
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "DatesNotAvailable",
    "NotFoundError",
    "RateLimitExceeded",
    "ValidationError",
    "create_access_token",
    "create_refresh_token",
    "create_tokens",
    "get_password_hash",
    "verify_password",
    "verify_token",
]
