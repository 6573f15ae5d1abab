# =============================================================================
# Internship Routes
# =============================================================================
#
# A thin posting surface that puts the authorization gate to work:
#   POST   /internships                          - Verified industry accounts
#   GET    /internships                          - Any signed-in user, scoped by role
#   GET    /internships/{internship_id}          - Any signed-in user
#   PUT    /internships/{internship_id}/approve  - Faculty allowed to approve
#   DELETE /internships/{internship_id}          - Posting company or faculty
#
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from c2c_portal.auth.capabilities import FacultyCapability, Role
from c2c_portal.auth.context import AuthContext
from c2c_portal.auth.models import Principal
from c2c_portal.auth.policies import (
    get_auth_services,
    get_current_principal,
    require_auth,
    require_capability,
    require_owner_or_role,
    require_verified_industry,
)
from c2c_portal.auth.services import AuthServices
from c2c_portal.core.errors import NotFoundError
from c2c_portal.core.responses import Pagination, send_created, send_success
from c2c_portal.core.utils import generate_id, utc_now
from c2c_portal.storage import Collections

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internships", tags=["internships"])

# Upper bound on postings read per listing request
LIST_SCAN_LIMIT = 1000


# =============================================================================
# Models
# =============================================================================

class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Internship(BaseModel):
    id: str
    company_id: str
    title: str
    description: str = ""
    status: ApprovalStatus = ApprovalStatus.PENDING
    approved_by: str | None = None
    approved_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)


class InternshipCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: str = ""


class ApprovalRequest(BaseModel):
    action: ApprovalStatus = ApprovalStatus.APPROVED


# =============================================================================
# Loader
# =============================================================================

async def load_internship(
    internship_id: str,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    services: AuthServices = Depends(get_auth_services),
) -> Internship:
    """
    Load the posting and expose its owner to the ownership gate.

    Resolves the caller first, so an anonymous request is refused before
    anything is looked up.
    """
    doc = await services.storage.get(Collections.INTERNSHIPS, internship_id)
    if doc is None:
        raise NotFoundError("Internship not found")
    internship = Internship.model_validate(doc)
    request.state.resource_owner_id = internship.company_id
    return internship


# =============================================================================
# Endpoints
# =============================================================================

@router.post("", status_code=201)
async def create_internship(
    data: InternshipCreate,
    ctx: AuthContext = Depends(require_verified_industry()),
    services: AuthServices = Depends(get_auth_services),
):
    internship = Internship(
        id=generate_id("intern"),
        company_id=ctx.principal_id,
        title=data.title,
        description=data.description,
    )
    await services.storage.insert(Collections.INTERNSHIPS, internship.id, internship.model_dump())
    logger.info(f"{ctx.principal_id} posted internship {internship.id}")
    return send_created(internship, "Internship created successfully")


@router.get("")
async def list_internships(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    ctx: AuthContext = Depends(require_auth()),
    services: AuthServices = Depends(get_auth_services),
):
    """
    Page through postings visible to the caller.

    Faculty see every posting, companies see their own, students see
    approved ones only.
    """
    if ctx.has_role(Role.FACULTY):
        filters = None
    elif ctx.has_role(Role.INDUSTRY):
        filters = {"company_id": ctx.principal_id}
    else:
        filters = {"status": ApprovalStatus.APPROVED.value}

    docs = await services.storage.query(Collections.INTERNSHIPS, filters, limit=LIST_SCAN_LIMIT)
    docs.sort(key=lambda doc: doc["created_at"], reverse=True)
    start = (page - 1) * limit
    items = [Internship.model_validate(doc) for doc in docs[start:start + limit]]

    return send_success(
        items,
        "Internships retrieved successfully",
        pagination=Pagination(page=page, limit=limit, total=len(docs)),
    )


@router.get("/{internship_id}")
async def get_internship(
    ctx: AuthContext = Depends(require_auth()),
    internship: Internship = Depends(load_internship),
):
    return send_success(internship, "Internship retrieved successfully")


@router.put("/{internship_id}/approve")
async def approve_internship(
    data: ApprovalRequest | None = None,
    ctx: AuthContext = Depends(require_capability(FacultyCapability.APPROVE_INTERNSHIPS)),
    internship: Internship = Depends(load_internship),
    services: AuthServices = Depends(get_auth_services),
):
    action = data.action if data else ApprovalStatus.APPROVED
    internship.status = action
    internship.approved_by = ctx.principal_id
    internship.approved_at = utc_now()
    await services.storage.save(Collections.INTERNSHIPS, internship.id, internship.model_dump())
    logger.info(f"{ctx.principal_id} set internship {internship.id} to {action.value}")
    return send_success(internship, f"Internship {action.value} successfully")


@router.delete("/{internship_id}")
async def delete_internship(
    internship: Internship = Depends(load_internship),
    ctx: AuthContext = Depends(require_owner_or_role(Role.FACULTY)),
    services: AuthServices = Depends(get_auth_services),
):
    await services.storage.delete(Collections.INTERNSHIPS, internship.id)
    logger.info(f"{ctx.principal_id} deleted internship {internship.id}")
    return send_success(None, "Internship deleted successfully")
