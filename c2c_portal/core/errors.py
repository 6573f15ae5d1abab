"""
Error taxonomy for the portal.

Every error that may reach a client is an AppError subclass carrying its
HTTP status. Lower layers (token decoding, storage) raise their own
exceptions, which the session manager and the authorization gate translate
into these before they reach the transport boundary.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base for operational errors that are safe to show to the caller."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationFailedError(AppError):
    """Malformed or missing input. Carries every field failure."""

    status_code = 400
    default_message = "Validation failed"


class DuplicateIdentityError(AppError):
    status_code = 400
    default_message = "User with this email already exists"


class InvalidCredentialsError(AppError):
    status_code = 401
    default_message = "Invalid email or password"


class AccountDeactivatedError(AppError):
    status_code = 401
    default_message = "Account is deactivated"


class UnauthenticatedError(AppError):
    status_code = 401
    default_message = "Access denied. No token provided."


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Access denied"


class InvalidOrExpiredTokenError(AppError):
    status_code = 400
    default_message = "Invalid or expired token"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class EmailDeliveryFailedError(AppError):
    status_code = 500
    default_message = "Failed to send email"


class RateLimitedError(AppError):
    status_code = 429
    default_message = "Too many requests, please try again later."
