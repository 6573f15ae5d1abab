# =============================================================================
# JWT Token Issuer
# =============================================================================
#
# Two token classes, each signed with its own secret:
#   - access  (Authorization header / access cookie, 7 days by default)
#   - refresh (HTTP-only cookie only, 30 days by default)
#
# Tokens are stateless. There is no revocation list, so logout and refresh
# rotation are advisory (see DESIGN.md).
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable
import logging

from pydantic import BaseModel
import jwt

from c2c_portal.config import AuthConfig
from c2c_portal.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


# =============================================================================
# Models
# =============================================================================

class TokenPayload(BaseModel):
    """JWT token payload."""
    sub: str  # principal id
    exp: datetime
    iat: datetime
    type: str  # "access" or "refresh"
    jti: str


class TokenPair(BaseModel):
    """Access and refresh token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until access token expires


# =============================================================================
# Errors
# =============================================================================

class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenExpiredError(TokenError):
    """Token has expired."""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid, malformed, or of the wrong class."""
    pass


# =============================================================================
# Issuer
# =============================================================================

class TokenIssuer:
    """
    Mints and validates access and refresh tokens.

    Pure over the secrets in `config` and the injected clock. Expiry is
    checked against the same clock, so a token is rejected as soon as the
    clock is strictly past its `exp` claim.
    """

    def __init__(self, config: AuthConfig, clock: Callable[[], datetime] = utc_now):
        self.config = config
        self.clock = clock

    def _secret(self, token_type: str) -> str:
        return self.config.access_secret if token_type == ACCESS else self.config.refresh_secret

    def _issue(self, principal_id: str, token_type: str) -> str:
        now = self.clock()
        ttl = self.config.access_token_ttl if token_type == ACCESS else self.config.refresh_token_ttl
        payload = {
            "sub": principal_id,
            "iat": now,
            "exp": now + ttl,
            "type": token_type,
            "jti": generate_id("tok" if token_type == ACCESS else "rtok"),
        }
        return jwt.encode(payload, self._secret(token_type), algorithm=self.config.algorithm)

    def issue_access_token(self, principal_id: str) -> str:
        return self._issue(principal_id, ACCESS)

    def issue_refresh_token(self, principal_id: str) -> str:
        return self._issue(principal_id, REFRESH)

    def issue_pair(self, principal_id: str) -> TokenPair:
        """Create both access and refresh tokens."""
        return TokenPair(
            access_token=self.issue_access_token(principal_id),
            refresh_token=self.issue_refresh_token(principal_id),
            expires_in=int(self.config.access_token_ttl.total_seconds()),
        )

    def decode(self, token: str, expected_type: str) -> TokenPayload:
        """
        Decode and validate a token of the given class.

        Raises:
            TokenExpiredError: Token has expired
            TokenInvalidError: Bad signature, malformed, or wrong class
        """
        try:
            # exp/iat are checked below against self.clock
            payload = jwt.decode(
                token,
                self._secret(expected_type),
                algorithms=[self.config.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["sub", "exp", "iat"],
                },
            )
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(f"Invalid token: {e}")

        # Secrets differ per class; the type claim is a second guard.
        if payload.get("type") != expected_type:
            raise TokenInvalidError(f"Expected {expected_type} token, got {payload.get('type')}")

        try:
            exp = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
            iat = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            raise TokenInvalidError("Invalid token: bad timestamp claims")

        if self.clock() > exp:
            raise TokenExpiredError("Token has expired")

        return TokenPayload(
            sub=str(payload["sub"]),
            exp=exp,
            iat=iat,
            type=payload["type"],
            jti=payload.get("jti", ""),
        )

    def verify_access_token(self, token: str) -> str:
        """Return the principal id bound to a valid access token."""
        return self.decode(token, ACCESS).sub

    def verify_refresh_token(self, token: str) -> str:
        """Return the principal id bound to a valid refresh token."""
        return self.decode(token, REFRESH).sub
