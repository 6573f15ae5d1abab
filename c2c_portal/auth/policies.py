"""
Policies - the authorization gate for route handlers.

Every gate is a FastAPI dependency that resolves to an AuthContext:

    @router.put("/internships/{internship_id}/approve")
    async def approve(
        internship_id: str,
        ctx: AuthContext = Depends(require_capability(FacultyCapability.APPROVE_INTERNSHIPS)),
    ):
        ...

A request is first authenticated (token -> active principal, else 401) and
then admitted or forbidden (role, ownership, capability, verification,
else 403). Gates build on `get_current_principal`, so FastAPI resolves the
principal once per request no matter how many gates a route declares.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from c2c_portal.auth.capabilities import FacultyCapability, Role
from c2c_portal.auth.context import AuthContext
from c2c_portal.auth.jwt import TokenError, TokenExpiredError
from c2c_portal.auth.models import FacultyProfile, IndustryProfile, Principal
from c2c_portal.auth.services import AuthServices
from c2c_portal.core.errors import ForbiddenError, UnauthenticatedError
from c2c_portal.integrations.sentry import set_user

logger = logging.getLogger(__name__)


# =============================================================================
# Token extraction and principal resolution
# =============================================================================


# Optional bearer (doesn't fail if no header)
optional_bearer = HTTPBearer(auto_error=False)


def get_auth_services(request: Request) -> AuthServices:
    return request.app.state.auth


def extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
    services: AuthServices = Depends(get_auth_services),
) -> str | None:
    """Bearer header first, then the access-token cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(services.config.access_cookie_name) or None


async def _resolve(services: AuthServices, token: str) -> Principal:
    try:
        principal_id = services.issuer.verify_access_token(token)
    except TokenExpiredError:
        raise UnauthenticatedError("Token has expired.")
    except TokenError:
        raise UnauthenticatedError("Invalid token.")

    principal = await services.store.find_by_id(principal_id)
    if principal is None:
        raise UnauthenticatedError("Token is invalid. User not found.")
    if not principal.is_active:
        logger.info(f"Rejected token for deactivated principal {principal.id}")
        raise UnauthenticatedError("User account is deactivated.")
    return principal


async def get_current_principal(
    request: Request,
    token: str | None = Depends(extract_token),
    services: AuthServices = Depends(get_auth_services),
) -> Principal:
    """Resolve the active principal behind the request, or raise 401."""
    if not token:
        raise UnauthenticatedError()
    principal = await _resolve(services, token)
    request.state.principal = principal
    set_user(principal.id, principal.role.value)
    return principal


# =============================================================================
# Gates
# =============================================================================


def require_auth() -> Callable:
    """Just require authentication, no specific role."""

    async def dependency(principal: Principal = Depends(get_current_principal)) -> AuthContext:
        return AuthContext(principal=principal)

    return dependency


def optional_auth() -> Callable:
    """
    Resolve the principal if a good token is present.

    Never fails: missing, bad or expired tokens and inactive principals all
    yield an anonymous context.
    """

    async def dependency(
        token: str | None = Depends(extract_token),
        services: AuthServices = Depends(get_auth_services),
    ) -> AuthContext:
        if not token:
            return AuthContext()
        try:
            return AuthContext(principal=await _resolve(services, token))
        except UnauthenticatedError as e:
            logger.debug(f"Optional auth ignored token: {e.message}")
            return AuthContext()

    return dependency


def require_role(*roles: Role | str) -> Callable:
    """Admit principals whose role is one of `roles`."""
    allowed = {Role(r) for r in roles}

    async def dependency(principal: Principal = Depends(get_current_principal)) -> AuthContext:
        if principal.role not in allowed:
            raise ForbiddenError(f"Access denied. Role '{principal.role.value}' is not authorized.")
        return AuthContext(principal=principal)

    return dependency


def require_owner_or_role(*privileged_roles: Role | str, owner_param: str = "user_id") -> Callable:
    """
    Admit the owner of the target resource, or any principal in `privileged_roles`.

    The owner id comes from `request.state.resource_owner_id` when a loader
    dependency has stored one, otherwise from the `owner_param` path
    parameter.
    """
    privileged = {Role(r) for r in privileged_roles}

    async def dependency(
        request: Request,
        principal: Principal = Depends(get_current_principal),
    ) -> AuthContext:
        ctx = AuthContext(principal=principal)
        if ctx.has_role(*privileged):
            return ctx

        owner_id = getattr(request.state, "resource_owner_id", None)
        if owner_id is None:
            owner_id = request.path_params.get(owner_param)
        if owner_id is None or str(owner_id) != principal.id:
            raise ForbiddenError("Access denied. You can only access your own resources.")
        return ctx

    return dependency


def require_capability(capability: FacultyCapability | str) -> Callable:
    """Admit faculty whose permission record grants `capability`."""
    capability = FacultyCapability(capability)

    async def dependency(
        principal: Principal = Depends(get_current_principal),
        services: AuthServices = Depends(get_auth_services),
    ) -> AuthContext:
        if principal.role is not Role.FACULTY:
            raise ForbiddenError("Faculty access required.")

        profile = await services.store.load_profile(principal)
        if not isinstance(profile, FacultyProfile):
            logger.warning(f"Faculty principal {principal.id} has no faculty profile")
            raise ForbiddenError("Faculty profile not found.")

        ctx = AuthContext(principal=principal, profile=profile)
        if not ctx.can(capability):
            raise ForbiddenError(f"Permission '{capability.value}' is required.")
        return ctx

    return dependency


def require_verified_industry() -> Callable:
    """Admit industry principals whose company has been verified."""

    async def dependency(
        principal: Principal = Depends(get_current_principal),
        services: AuthServices = Depends(get_auth_services),
    ) -> AuthContext:
        if principal.role is not Role.INDUSTRY:
            raise ForbiddenError("Industry access required.")

        profile = await services.store.load_profile(principal)
        if not isinstance(profile, IndustryProfile):
            logger.warning(f"Industry principal {principal.id} has no industry profile")
            raise ForbiddenError("Industry profile not found.")

        ctx = AuthContext(principal=principal, profile=profile)
        if not ctx.is_verified_industry:
            raise ForbiddenError("Company verification required to perform this action.")
        return ctx

    return dependency


def require_email_verified() -> Callable:
    """Admit principals who have confirmed their email address."""

    async def dependency(principal: Principal = Depends(get_current_principal)) -> AuthContext:
        if not principal.is_email_verified:
            raise ForbiddenError("Email verification required.")
        return AuthContext(principal=principal)

    return dependency
