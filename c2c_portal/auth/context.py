"""
Auth context - who is making the request, and what their role allows.

This is the lightweight object passed to route handlers by the gate
dependencies in `c2c_portal.auth.policies`.
"""

from __future__ import annotations

from dataclasses import dataclass

from c2c_portal.auth.capabilities import FacultyCapability, Role
from c2c_portal.auth.models import FacultyProfile, IndustryProfile, Principal, StudentProfile


@dataclass
class AuthContext:
    """
    Authorization context for a request.

    Usage in routes:
        async def approve(ctx: AuthContext = Depends(require_capability("can_approve_internships"))):
            print(f"{ctx.principal_id} approving as {ctx.role}")
    """

    # Who (None for anonymous requests through optional_auth)
    principal: Principal | None = None

    # Role profile, loaded only by gates that need it
    profile: StudentProfile | FacultyProfile | IndustryProfile | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None

    @property
    def is_anonymous(self) -> bool:
        return self.principal is None

    @property
    def principal_id(self) -> str | None:
        return self.principal.id if self.principal else None

    @property
    def role(self) -> Role | None:
        return self.principal.role if self.principal else None

    @property
    def faculty(self) -> FacultyProfile | None:
        return self.profile if isinstance(self.profile, FacultyProfile) else None

    @property
    def industry(self) -> IndustryProfile | None:
        return self.profile if isinstance(self.profile, IndustryProfile) else None

    def has_role(self, *roles: Role | str) -> bool:
        if self.principal is None:
            return False
        return self.principal.role.value in {Role(r).value for r in roles}

    def can(self, capability: FacultyCapability | str) -> bool:
        """Faculty capability check. False for every other role."""
        return self.faculty is not None and self.faculty.permissions.has(capability)

    @property
    def is_verified_industry(self) -> bool:
        return self.industry is not None and self.industry.verification.is_verified
