"""
Session manager.

Orchestrates the credential flows: registration, password and Google
sign-in, email verification, password reset, password change, token refresh
and logout. It owns no storage of its own; everything goes through the
CredentialStore, and tokens come from the TokenIssuer.

Raw verification and reset tokens leave this module only inside emails.
What is stored is their sha256 hash.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Protocol

from email_validator import EmailNotValidError, validate_email
from pydantic import ValidationError

from c2c_portal.auth.capabilities import CompanySize, Role, infer_role_from_email
from c2c_portal.auth.jwt import TokenError, TokenIssuer
from c2c_portal.auth.models import AuthResult, Principal, RegisterRequest
from c2c_portal.auth.passwords import hash_password, verify_password
from c2c_portal.auth.store import PROFILE_MODELS, CredentialStore, validation_errors
from c2c_portal.config import AuthConfig
from c2c_portal.core.errors import (
    AccountDeactivatedError,
    EmailDeliveryFailedError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationFailedError,
)
from c2c_portal.core.utils import generate_token, hash_token, utc_now
from c2c_portal.integrations.oauth import IdentityVerifier, OAuthError

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100

# Fields a role cannot register without
REQUIRED_ROLE_FIELDS: dict[Role, tuple[str, ...]] = {
    Role.STUDENT: ("student_id",),
    Role.FACULTY: ("employee_id", "department"),
    Role.INDUSTRY: ("company_name", "company_size"),
}


class Mailer(Protocol):
    async def send_welcome(
        self, email: str, name: str, role: str, verify_token: str | None = None
    ) -> bool: ...

    async def send_password_reset(
        self, email: str, name: str, reset_token: str, expires_minutes: int = 10
    ) -> bool: ...

    async def send_email_verified(self, email: str) -> bool: ...


class SessionManager:
    """Credential flows over a CredentialStore and a TokenIssuer."""

    def __init__(
        self,
        config: AuthConfig,
        store: CredentialStore,
        issuer: TokenIssuer,
        email_service: Mailer,
        identity_verifier: IdentityVerifier,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.store = store
        self.issuer = issuer
        self.email = email_service
        self.identity_verifier = identity_verifier
        self.clock = clock

    # =========================================================================
    # Helpers
    # =========================================================================

    def _sign_in(self, principal: Principal) -> AuthResult:
        pair = self.issuer.issue_pair(principal.id)
        return AuthResult(
            principal=principal.to_response(),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    def _check_password_length(self, password: str, field: str = "password") -> dict | None:
        if len(password or "") < self.config.min_password_length:
            return {
                "field": field,
                "message": f"Password must be at least {self.config.min_password_length} characters",
            }
        return None

    def _validate_registration(self, data: RegisterRequest) -> tuple[Role | None, dict[str, Any]]:
        """
        Check every registration field and raise once with all failures.

        Returns the parsed role and the role-specific fields.
        """
        errors: list[dict[str, str]] = []

        try:
            validate_email(data.email or "", check_deliverability=False)
        except EmailNotValidError:
            errors.append({"field": "email", "message": "Please provide a valid email"})

        password_error = self._check_password_length(data.password)
        if password_error:
            errors.append(password_error)

        name = (data.name or "").strip()
        if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
            errors.append({
                "field": "name",
                "message": f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters",
            })

        role: Role | None
        try:
            role = Role(data.role)
        except ValueError:
            role = None
            errors.append({"field": "role", "message": "Invalid role"})

        role_fields: dict[str, Any] = {}
        if role is not None:
            role_data = data.role_data()
            if role_data is not None:
                role_fields = role_data.model_dump(exclude_none=True)
            prefix = f"{role.value}_data"
            for field in REQUIRED_ROLE_FIELDS[role]:
                if not role_fields.get(field):
                    errors.append({
                        "field": f"{prefix}.{field}",
                        "message": f"{field.replace('_', ' ').capitalize()} is required for {role.value}s",
                    })
            size = role_fields.get("company_size")
            if role is Role.INDUSTRY and size and size not in CompanySize._value2member_map_:
                errors.append({"field": f"{prefix}.company_size", "message": "Invalid company size"})

            # Range and type constraints of the profile itself
            reported = {error["field"] for error in errors}
            try:
                PROFILE_MODELS[role](principal_id="", **role_fields)
            except ValidationError as e:
                errors.extend(
                    error for error in validation_errors(e, prefix=f"{prefix}.")
                    if error["field"] not in reported
                )

        if errors:
            raise ValidationFailedError(errors=errors)
        return role, role_fields

    # =========================================================================
    # Registration and sign-in
    # =========================================================================

    async def register(self, data: RegisterRequest) -> AuthResult:
        """
        Create a principal and its role profile, then sign it in.

        The welcome email is best effort: a delivery failure is logged and
        registration still succeeds.
        """
        role, role_fields = self._validate_registration(data)

        verify_token = generate_token()
        principal = await self.store.create(
            role,
            {
                "email": data.email,
                "name": data.name.strip(),
                "password_hash": await asyncio.to_thread(hash_password, data.password),
                "email_verification_token": hash_token(verify_token),
                "email_verification_expires": self.clock() + self.config.email_verification_ttl,
            },
            role_fields,
        )

        sent = await self.email.send_welcome(
            principal.email, principal.name, principal.role.value, verify_token
        )
        if not sent:
            logger.warning(f"Welcome email not delivered for {principal.id}")

        logger.info(f"Registered {principal.role.value} {principal.id}")
        return self._sign_in(principal)

    async def login(self, email: str, password: str) -> AuthResult:
        """
        Password sign-in.

        Unknown email, OAuth-only account and wrong password all raise the
        same InvalidCredentialsError.
        """
        principal = await self.store.find_by_email(email or "", with_secret=True)
        matches = principal is not None and await asyncio.to_thread(
            verify_password, password or "", principal.password_hash
        )
        if not matches:
            logger.info("Failed login attempt")
            raise InvalidCredentialsError()

        if not principal.is_active:
            logger.info(f"Login refused for deactivated principal {principal.id}")
            raise AccountDeactivatedError()

        principal.last_login_at = self.clock()
        await self.store.save(principal)
        return self._sign_in(principal)

    async def login_with_external_token(self, provider_token: str) -> AuthResult:
        """
        Google sign-in.

        Links to an existing principal by email or Google subject; otherwise
        creates one with a role guessed from the email domain and an empty
        role profile.
        """
        try:
            info = await self.identity_verifier.verify(provider_token)
        except OAuthError as e:
            logger.info(f"External sign-in rejected: {e}")
            raise InvalidCredentialsError("Google authentication failed")

        principal = await self.store.find_by_email(info.email)
        if principal is None:
            principal = await self.store.find_by_oauth_subject(info.provider_user_id)

        if principal is not None:
            if not principal.is_active:
                raise AccountDeactivatedError()
            if not principal.oauth_subject_id:
                principal.oauth_subject_id = info.provider_user_id
                principal.is_email_verified = True
                if not principal.profile_picture:
                    principal.profile_picture = info.picture_url
            principal.last_login_at = self.clock()
            await self.store.save(principal)
            return self._sign_in(principal)

        role = infer_role_from_email(info.email)
        principal = await self.store.create(
            role,
            {
                "email": info.email,
                "name": info.name,
                "oauth_subject_id": info.provider_user_id,
                "profile_picture": info.picture_url,
                "is_email_verified": True,
                "last_login_at": self.clock(),
            },
        )

        sent = await self.email.send_welcome(principal.email, principal.name, role.value)
        if not sent:
            logger.warning(f"Welcome email not delivered for {principal.id}")

        logger.info(f"Created {role.value} {principal.id} from Google sign-in")
        return self._sign_in(principal)

    # =========================================================================
    # Email verification and password reset
    # =========================================================================

    async def verify_email(self, token: str) -> Principal:
        principal = await self.store.find_by_token("email_verification_token", hash_token(token))
        if (
            principal is None
            or principal.email_verification_expires is None
            or principal.email_verification_expires <= self.clock()
        ):
            raise InvalidOrExpiredTokenError("Invalid or expired verification token")

        principal.is_email_verified = True
        principal.clear_email_verification()
        await self.store.save(principal)

        if not await self.email.send_email_verified(principal.email):
            logger.warning(f"Verification confirmation not delivered for {principal.id}")
        return principal

    async def forgot_password(self, email: str) -> None:
        """
        Issue a reset token and mail it.

        A later request supersedes an earlier one. If the email cannot be
        sent the token is withdrawn and EmailDeliveryFailedError is raised.
        """
        principal = await self.store.find_by_email(email or "")
        if principal is None:
            raise NotFoundError("No user found with that email address")

        token = generate_token()
        principal.set_password_reset(hash_token(token), self.clock() + self.config.password_reset_ttl)
        await self.store.save(principal)

        expires_minutes = int(self.config.password_reset_ttl.total_seconds() // 60)
        sent = await self.email.send_password_reset(
            principal.email, principal.name, token, expires_minutes=expires_minutes
        )
        if not sent:
            principal.clear_password_reset()
            await self.store.save(principal)
            logger.error(f"Password reset email failed for {principal.id}")
            raise EmailDeliveryFailedError("Failed to send reset email")

    async def reset_password(self, token: str, new_password: str) -> Principal:
        password_error = self._check_password_length(new_password)
        if password_error:
            raise ValidationFailedError(errors=[password_error])

        principal = await self.store.find_by_token("password_reset_token", hash_token(token))
        if (
            principal is None
            or principal.password_reset_expires is None
            or principal.password_reset_expires <= self.clock()
        ):
            raise InvalidOrExpiredTokenError("Invalid or expired reset token")

        principal.password_hash = await asyncio.to_thread(hash_password, new_password)
        principal.clear_password_reset()
        await self.store.save(principal)
        logger.info(f"Password reset for {principal.id}")
        return principal

    async def change_password(self, principal_id: str, current_password: str, new_password: str) -> None:
        password_error = self._check_password_length(new_password, field="new_password")
        if password_error:
            raise ValidationFailedError(errors=[password_error])

        principal = await self.store.get(principal_id, with_secret=True)
        if not principal.has_password:
            raise InvalidCredentialsError("Password sign-in is not enabled for this account")
        if not await asyncio.to_thread(verify_password, current_password or "", principal.password_hash):
            raise InvalidCredentialsError("Current password is incorrect")

        principal.password_hash = await asyncio.to_thread(hash_password, new_password)
        await self.store.save(principal)
        logger.info(f"Password changed for {principal.id}")

    # =========================================================================
    # Tokens
    # =========================================================================

    async def refresh(self, refresh_token: str) -> AuthResult:
        """
        Exchange a refresh token for a new pair.

        The old refresh token stays valid until it expires; there is no
        revocation list.
        """
        try:
            principal_id = self.issuer.verify_refresh_token(refresh_token or "")
        except TokenError as e:
            logger.info(f"Refresh rejected: {e}")
            raise UnauthenticatedError("Invalid refresh token")

        principal = await self.store.find_by_id(principal_id)
        if principal is None or not principal.is_active:
            raise UnauthenticatedError("Invalid refresh token")
        return self._sign_in(principal)

    async def logout(self, principal_id: str) -> None:
        logger.info(f"Logout {principal_id}")
