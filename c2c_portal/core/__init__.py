"""
Core module - shared infrastructure.

This module contains:
- errors: Error taxonomy (AppError and its HTTP-mapped subclasses)
- responses: Uniform response envelope
- logging: Process-wide logging setup
- utils: Shared utility functions
"""

from c2c_portal.core.errors import (
    AppError,
    ValidationFailedError,
    DuplicateIdentityError,
    InvalidCredentialsError,
    AccountDeactivatedError,
    UnauthenticatedError,
    ForbiddenError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    EmailDeliveryFailedError,
    RateLimitedError,
)
from c2c_portal.core.responses import (
    Pagination,
    envelope,
    send_success,
    send_created,
    send_error,
)
from c2c_portal.core.utils import (
    generate_id,
    utc_now,
    generate_token,
    hash_token,
    normalize_email,
)

__all__ = [
    # Errors
    "AppError",
    "ValidationFailedError",
    "DuplicateIdentityError",
    "InvalidCredentialsError",
    "AccountDeactivatedError",
    "UnauthenticatedError",
    "ForbiddenError",
    "InvalidOrExpiredTokenError",
    "NotFoundError",
    "EmailDeliveryFailedError",
    "RateLimitedError",
    # Responses
    "Pagination",
    "envelope",
    "send_success",
    "send_created",
    "send_error",
    # Utils
    "generate_id",
    "utc_now",
    "generate_token",
    "hash_token",
    "normalize_email",
]
