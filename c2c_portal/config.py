"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 5000
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    frontend_url: str = "http://localhost:5173"

    # ==========================================================================
    # Authentication
    # ==========================================================================

    # Separate secret per token class
    jwt_secret_key: str = "dev-access-secret-change-in-production"
    jwt_refresh_secret_key: str = "dev-refresh-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 7 * 24 * 60  # 7 days
    jwt_refresh_token_expire_days: int = 30

    # Weak by current standards; see DESIGN.md
    min_password_length: int = 6
    email_verification_expire_hours: int = 24
    password_reset_expire_minutes: int = 10

    refresh_cookie_name: str = "refresh_token"
    access_cookie_name: str = "access_token"

    # Google Sign-In (ID token verification)
    google_oauth_client_id: str = ""

    # ==========================================================================
    # AWS (email delivery via SES)
    # ==========================================================================

    aws_region: str = "us-east-1"
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_ses_from_email: str = ""

    # ==========================================================================
    # Rate limiting
    # ==========================================================================

    rate_limit_enabled: bool = True
    rate_limit_auth: str = "5/15 minutes"
    rate_limit_password_reset: str = "3/hour"
    rate_limit_storage_uri: str = "memory://"

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def use_aws(self) -> bool:
        """Whether AWS services should be used."""
        return bool(self.aws_access_key_id and self.aws_secret_access_key)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class AuthConfig(BaseModel):
    """
    Auth policy and secret material.

    Built once at startup and handed to the token issuer and session
    manager, so request-handling code never reads the environment.
    """

    model_config = {"frozen": True}

    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_token_ttl: timedelta = timedelta(days=7)
    refresh_token_ttl: timedelta = timedelta(days=30)

    min_password_length: int = 6
    email_verification_ttl: timedelta = timedelta(hours=24)
    password_reset_ttl: timedelta = timedelta(minutes=10)

    google_client_id: str = ""
    frontend_url: str = "http://localhost:5173"

    refresh_cookie_name: str = "refresh_token"
    access_cookie_name: str = "access_token"
    secure_cookies: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthConfig:
        return cls(
            access_secret=settings.jwt_secret_key,
            refresh_secret=settings.jwt_refresh_secret_key,
            algorithm=settings.jwt_algorithm,
            access_token_ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
            refresh_token_ttl=timedelta(days=settings.jwt_refresh_token_expire_days),
            min_password_length=settings.min_password_length,
            email_verification_ttl=timedelta(hours=settings.email_verification_expire_hours),
            password_reset_ttl=timedelta(minutes=settings.password_reset_expire_minutes),
            google_client_id=settings.google_oauth_client_id,
            frontend_url=settings.frontend_url,
            refresh_cookie_name=settings.refresh_cookie_name,
            access_cookie_name=settings.access_cookie_name,
            secure_cookies=settings.is_production,
        )
