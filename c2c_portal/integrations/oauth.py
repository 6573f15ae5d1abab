# =============================================================================
# Google Sign-In Integration
# =============================================================================
#
# The browser obtains a Google ID token (Google Identity Services button)
# and posts it to /auth/google-login. We verify its signature and audience
# here and hand back the identity claims.
#
# Setup:
#   1. Go to https://console.cloud.google.com/apis/credentials
#   2. Create OAuth 2.0 Client ID (Web application)
#   3. Set env var GOOGLE_OAUTH_CLIENT_ID=...
#
# =============================================================================

import asyncio
import logging
from typing import Protocol

from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from pydantic import BaseModel

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class OAuthUserInfo(BaseModel):
    """User info retrieved from the identity provider."""
    provider: str
    provider_user_id: str
    email: str
    name: str
    picture_url: str | None = None
    email_verified: bool = True


class OAuthError(Exception):
    """Identity provider rejected or could not check the token."""
    pass


class IdentityVerifier(Protocol):
    async def verify(self, provider_token: str) -> OAuthUserInfo: ...


# =============================================================================
# Google
# =============================================================================

class GoogleIdentityVerifier:
    """Verify Google ID tokens against our OAuth client id."""

    def __init__(self, client_id: str):
        self.client_id = client_id
        self._request = google_requests.Request()

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id)

    def _verify_sync(self, token: str) -> dict:
        return id_token.verify_oauth2_token(token, self._request, self.client_id)

    async def verify(self, provider_token: str) -> OAuthUserInfo:
        if not self.is_configured:
            raise OAuthError("Google OAuth not configured")

        try:
            # Fetches Google's signing certs over HTTP; keep it off the loop
            claims = await asyncio.to_thread(self._verify_sync, provider_token)
        except (ValueError, GoogleAuthError) as e:
            logger.info(f"Google ID token rejected: {e}")
            raise OAuthError(f"Invalid Google token: {e}")

        email = claims.get("email")
        if not email:
            raise OAuthError("Google token has no email claim")

        return OAuthUserInfo(
            provider="google",
            provider_user_id=claims["sub"],
            email=email,
            name=claims.get("name") or email.split("@")[0],
            picture_url=claims.get("picture"),
            email_verified=bool(claims.get("email_verified", True)),
        )
