# =============================================================================
# User Administration Routes
# =============================================================================
#
# Endpoints:
#   GET    /users/{user_id}                - Principal + role profile (owner or faculty)
#   PUT    /users/{user_id}/deactivate     - Block sign-in (faculty)
#   PUT    /users/{user_id}/activate       - Re-enable sign-in (faculty)
#   PUT    /users/{user_id}/role           - Role override (department managers)
#   PUT    /users/{user_id}/verify-company - Industry verification (department managers)
#   PUT    /users/{user_id}/permissions    - Faculty permissions (department managers)
#   DELETE /users/{user_id}                - Remove principal + profile (department managers)
#
# =============================================================================

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from c2c_portal.auth.capabilities import FacultyCapability, Role
from c2c_portal.auth.context import AuthContext
from c2c_portal.auth.models import FacultyProfile, IndustryProfile, IndustryVerification
from c2c_portal.auth.policies import (
    get_auth_services,
    require_capability,
    require_owner_or_role,
    require_role,
)
from c2c_portal.auth.services import AuthServices
from c2c_portal.core.errors import NotFoundError, ValidationFailedError
from c2c_portal.core.responses import send_success
from c2c_portal.core.utils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

manage_department = require_capability(FacultyCapability.MANAGE_DEPARTMENT)


# =============================================================================
# Request Models
# =============================================================================

class RoleChangeRequest(BaseModel):
    role: Role


class CompanyVerificationRequest(BaseModel):
    is_verified: bool = True


class PermissionsUpdate(BaseModel):
    can_approve_internships: bool | None = None
    can_view_all_students: bool | None = None
    can_generate_reports: bool | None = None
    can_manage_department: bool | None = None


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/{user_id}")
async def get_user(
    user_id: str,
    ctx: AuthContext = Depends(require_owner_or_role(Role.FACULTY)),
    services: AuthServices = Depends(get_auth_services),
):
    principal = await services.store.get(user_id)
    profile = await services.store.load_profile(principal)
    return send_success(
        {"user": principal.to_response(), "profile": profile},
        "User profile retrieved successfully",
    )


@router.put("/{user_id}/deactivate")
async def deactivate_user(
    user_id: str,
    ctx: AuthContext = Depends(require_role(Role.FACULTY)),
    services: AuthServices = Depends(get_auth_services),
):
    principal = await services.store.get(user_id)
    principal.is_active = False
    await services.store.save(principal)
    logger.info(f"{ctx.principal_id} deactivated {user_id}")
    return send_success(None, "User account deactivated successfully")


@router.put("/{user_id}/activate")
async def activate_user(
    user_id: str,
    ctx: AuthContext = Depends(require_role(Role.FACULTY)),
    services: AuthServices = Depends(get_auth_services),
):
    principal = await services.store.get(user_id)
    principal.is_active = True
    await services.store.save(principal)
    logger.info(f"{ctx.principal_id} activated {user_id}")
    return send_success(None, "User account activated successfully")


@router.put("/{user_id}/role")
async def change_user_role(
    user_id: str,
    data: RoleChangeRequest,
    ctx: AuthContext = Depends(manage_department),
    services: AuthServices = Depends(get_auth_services),
):
    """
    Administrative role override.

    The old role profile is discarded; the user starts the new role with
    default permissions and an unverified company.
    """
    principal = await services.store.get(user_id)
    if principal.role == data.role:
        raise ValidationFailedError("User already has this role")

    await services.store.change_role(principal, data.role)
    logger.info(f"{ctx.principal_id} changed role of {user_id} to {data.role.value}")
    return send_success({"user": principal.to_response()}, "User role updated successfully")


@router.put("/{user_id}/verify-company")
async def verify_company(
    user_id: str,
    data: CompanyVerificationRequest,
    ctx: AuthContext = Depends(manage_department),
    services: AuthServices = Depends(get_auth_services),
):
    principal = await services.store.get(user_id)
    profile = await services.store.load_profile(principal)
    if not isinstance(profile, IndustryProfile):
        raise ValidationFailedError("User is not an industry account")

    if data.is_verified:
        profile.verification = IndustryVerification(
            is_verified=True,
            verified_by=ctx.principal_id,
            verified_at=utc_now(),
        )
    else:
        profile.verification = IndustryVerification()
    await services.store.save_profile(profile)

    logger.info(f"{ctx.principal_id} set company verification of {user_id} to {data.is_verified}")
    return send_success({"verification": profile.verification}, "Company verification updated")


@router.put("/{user_id}/permissions")
async def update_permissions(
    user_id: str,
    data: PermissionsUpdate,
    ctx: AuthContext = Depends(manage_department),
    services: AuthServices = Depends(get_auth_services),
):
    principal = await services.store.get(user_id)
    profile = await services.store.load_profile(principal)
    if not isinstance(profile, FacultyProfile):
        raise ValidationFailedError("User is not a faculty account")

    changes = data.model_dump(exclude_none=True)
    profile.permissions = profile.permissions.model_copy(update=changes)
    await services.store.save_profile(profile)

    logger.info(f"{ctx.principal_id} updated permissions of {user_id}: {changes}")
    return send_success({"permissions": profile.permissions}, "Permissions updated successfully")


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    ctx: AuthContext = Depends(manage_department),
    services: AuthServices = Depends(get_auth_services),
):
    if not await services.store.delete(user_id):
        raise NotFoundError("User not found")
    logger.info(f"{ctx.principal_id} deleted {user_id}")
    return send_success(None, "User account deleted successfully")
