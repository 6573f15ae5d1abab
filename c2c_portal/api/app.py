"""
FastAPI application for the Campus-to-Corporate portal.

This is the HTTP API the web frontend talks to. `create_app()` builds a
fully wired app; tests call it with their own Settings and AuthServices.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from c2c_portal.api import internships, users
from c2c_portal.api.rate_limit import limiter, rate_limit_exceeded_handler
from c2c_portal.auth.routes import router as auth_router
from c2c_portal.auth.services import AuthServices, build_auth_services
from c2c_portal.config import Settings, get_settings
from c2c_portal.core.errors import AppError, ValidationFailedError
from c2c_portal.core.logging import configure_logging
from c2c_portal.core.responses import send_error, send_success
from c2c_portal.integrations.sentry import capture_exception, init_sentry

logger = logging.getLogger(__name__)


# =============================================================================
# Exception Handlers
# =============================================================================


async def app_error_handler(request: Request, exc: AppError):
    return send_error(exc.message, status_code=exc.status_code, errors=exc.errors)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report every invalid field at once, as a 400."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err["loc"] if part != "body"]
        errors.append({"field": ".".join(loc), "message": err["msg"]})
    return send_error(
        ValidationFailedError.default_message,
        status_code=ValidationFailedError.status_code,
        errors=errors,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return send_error(str(exc.detail), status_code=exc.status_code, headers=getattr(exc, "headers", None))


def _unhandled_error_handler(settings: Settings):
    async def handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        capture_exception(exc, path=request.url.path, method=request.method)
        message = "Something went wrong" if settings.is_production else str(exc)
        return send_error(message, status_code=500)

    return handler


# =============================================================================
# App Factory
# =============================================================================


def create_app(
    settings: Settings | None = None,
    services: AuthServices | None = None,
) -> FastAPI:
    """Build the API. Services default to the configured providers."""
    settings = settings or get_settings()
    services = services or build_auth_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize and cleanup app resources."""
        configure_logging(settings.log_level)
        init_sentry(settings)
        await services.store.ensure_indexes()
        logger.info(f"C2C portal API starting in {settings.environment} mode")

        yield

        logger.info("C2C portal API shutting down")

    app = FastAPI(
        title="C2C Portal API",
        description="Campus-to-Corporate internship portal: accounts, sign-in and access control",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.auth = services
    app.state.limiter = limiter

    # CORS (credentials on, so the refresh cookie crosses origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler(settings))

    app.include_router(auth_router)
    app.include_router(users.router)
    app.include_router(internships.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return send_success({"status": "healthy", "service": "c2c-portal-api"}, "OK")

    return app


app = create_app()
