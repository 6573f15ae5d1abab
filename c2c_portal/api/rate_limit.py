"""
Rate limiting for the auth endpoints.

Implements per-client limits using slowapi:
- login / register / google-login / refresh: 5 requests per 15 minutes
- forgot-password / reset-password: 3 requests per hour

Limits are keyed by client address and disabled entirely with
RATE_LIMIT_ENABLED=false (tests, local load testing).
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from c2c_portal.config import get_settings
from c2c_portal.core.errors import RateLimitedError
from c2c_portal.core.responses import send_error

logger = logging.getLogger(__name__)

settings = get_settings()

AUTH_LIMIT = settings.rate_limit_auth
PASSWORD_RESET_LIMIT = settings.rate_limit_password_reset


limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
    storage_uri=settings.rate_limit_storage_uri,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Rate limit breaches use the standard error envelope."""
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)} on {request.url.path}")
    return send_error(
        RateLimitedError.default_message,
        status_code=RateLimitedError.status_code,
    )
