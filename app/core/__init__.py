"""Core utilities and security modules."""

from app.core.exceptions import (
    AppException,
    AuthenticationError,
    ConcurrentModificationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PaymentError,
    RateLimitExceeded,
    UnauthorizedError,
    ValidationError,
)
from app.core.security import (
    create_access_token,
    create_user_token,
    verify_token,
)

__all__ = [
    "AppException",
    "AuthenticationError",
    "ConcurrentModificationError",
    "ConflictError",
    "InvalidStateError",
    "NotFoundError",
    "PaymentError",
    "RateLimitExceeded",
    "UnauthorizedError",
    "ValidationError",
    "create_access_token",
    "create_user_token",
    "verify_token",
]
