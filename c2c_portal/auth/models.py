"""
Principal and role profile models.

A principal is one record per user regardless of role. Role-specific data
lives in a separate profile document keyed 1:1 by the principal id and
selected by the principal's `role` tag:

    Principal(role="faculty")  ──1:1──  FacultyProfile(principal_id=...)

Profiles form a tagged union (`RoleProfile`), not a class hierarchy of
principals.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter, model_validator

from c2c_portal.auth.capabilities import CompanySize, FacultyCapability, Role
from c2c_portal.core.utils import utc_now
from c2c_portal.storage.base import Collections


# =============================================================================
# Principal
# =============================================================================


class Principal(BaseModel):
    """Principal as stored. Never returned to clients directly."""

    id: str
    email: str
    name: str
    role: Role

    password_hash: str | None = None
    oauth_subject_id: str | None = None
    profile_picture: str | None = None

    is_email_verified: bool = False
    email_verification_token: str | None = None
    email_verification_expires: datetime | None = None
    password_reset_token: str | None = None
    password_reset_expires: datetime | None = None

    is_active: bool = True
    last_login_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Whether password_hash was read from the store. A principal loaded
    # without its secret must not write password_hash back on save.
    _secret_loaded: bool = PrivateAttr(default=False)

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    def clear_email_verification(self) -> None:
        self.email_verification_token = None
        self.email_verification_expires = None

    def set_password_reset(self, token_hash: str, expires: datetime) -> None:
        self.password_reset_token = token_hash
        self.password_reset_expires = expires

    def clear_password_reset(self) -> None:
        self.password_reset_token = None
        self.password_reset_expires = None

    def to_response(self) -> PrincipalResponse:
        return PrincipalResponse(
            id=self.id,
            email=self.email,
            name=self.name,
            role=self.role,
            profile_picture=self.profile_picture,
            is_email_verified=self.is_email_verified,
            is_active=self.is_active,
            last_login_at=self.last_login_at,
            created_at=self.created_at,
        )


class PrincipalResponse(BaseModel):
    """Principal data returned to client (no secrets, no link tokens)."""

    id: str
    email: str
    name: str
    role: Role
    profile_picture: str | None = None
    is_email_verified: bool
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime


# =============================================================================
# Role Profiles
# =============================================================================


class StudentProfile(BaseModel):
    role: Literal[Role.STUDENT] = Role.STUDENT
    principal_id: str
    student_id: str | None = None
    department: str | None = None
    course: str | None = None
    semester: int | None = Field(default=None, ge=1, le=12)
    # Weak reference to a faculty principal; no ownership implied.
    mentor_id: str | None = None


class FacultyPermissions(BaseModel):
    """Fixed set of faculty capabilities."""

    can_approve_internships: bool = True
    can_view_all_students: bool = False
    can_generate_reports: bool = True
    can_manage_department: bool = False

    def has(self, capability: FacultyCapability | str) -> bool:
        if isinstance(capability, str):
            try:
                capability = FacultyCapability(capability)
            except ValueError:
                return False
        return bool(getattr(self, capability.value))


class FacultyProfile(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    role: Literal[Role.FACULTY] = Role.FACULTY
    principal_id: str
    employee_id: str | None = None
    department: str | None = None
    designation: str | None = None
    permissions: FacultyPermissions = Field(default_factory=FacultyPermissions)
    mentorship_capacity: int = Field(default=20, ge=0)
    current_mentees: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _mentees_within_capacity(self) -> FacultyProfile:
        if len(self.current_mentees) > self.mentorship_capacity:
            raise ValueError("Current mentees exceed mentorship capacity")
        return self

    @property
    def available_mentorship_slots(self) -> int:
        return max(self.mentorship_capacity - len(self.current_mentees), 0)

    def can_take_more_mentees(self) -> bool:
        return len(self.current_mentees) < self.mentorship_capacity

    def add_mentee(self, student_id: str) -> bool:
        """Add a mentee if there is room. Returns False when full or already present."""
        if student_id in self.current_mentees or not self.can_take_more_mentees():
            return False
        self.current_mentees.append(student_id)
        return True

    def remove_mentee(self, student_id: str) -> bool:
        if student_id not in self.current_mentees:
            return False
        self.current_mentees.remove(student_id)
        return True


class IndustryVerification(BaseModel):
    is_verified: bool = False
    verified_by: str | None = None
    verified_at: datetime | None = None


class IndustryProfile(BaseModel):
    role: Literal[Role.INDUSTRY] = Role.INDUSTRY
    principal_id: str
    company_name: str | None = None
    company_size: CompanySize | None = None
    industry_type: str | None = None
    designation: str | None = None
    verification: IndustryVerification = Field(default_factory=IndustryVerification)


RoleProfile = Annotated[
    Union[StudentProfile, FacultyProfile, IndustryProfile],
    Field(discriminator="role"),
]

_profile_adapter: TypeAdapter[RoleProfile] = TypeAdapter(RoleProfile)


def parse_profile(data: dict[str, Any]) -> StudentProfile | FacultyProfile | IndustryProfile:
    """Build the right profile model from a stored document."""
    return _profile_adapter.validate_python(data)


PROFILE_COLLECTIONS: dict[Role, str] = {
    Role.STUDENT: Collections.STUDENT_PROFILES,
    Role.FACULTY: Collections.FACULTY_PROFILES,
    Role.INDUSTRY: Collections.INDUSTRY_PROFILES,
}


# =============================================================================
# Registration input
# =============================================================================


class StudentData(BaseModel):
    student_id: str | None = None
    department: str | None = None
    course: str | None = None
    semester: int | None = None


class FacultyData(BaseModel):
    employee_id: str | None = None
    department: str | None = None
    designation: str | None = None


class IndustryData(BaseModel):
    company_name: str | None = None
    company_size: str | None = None
    industry_type: str | None = None
    designation: str | None = None


class RegisterRequest(BaseModel):
    """
    Registration payload.

    Types are deliberately loose here; SessionManager.register validates
    every field and reports all failures together.
    """

    email: str = ""
    password: str = ""
    name: str = ""
    role: str = ""
    student_data: StudentData | None = None
    faculty_data: FacultyData | None = None
    industry_data: IndustryData | None = None

    def role_data(self) -> BaseModel | None:
        return {
            Role.STUDENT.value: self.student_data,
            Role.FACULTY.value: self.faculty_data,
            Role.INDUSTRY.value: self.industry_data,
        }.get(self.role)


class AuthResult(BaseModel):
    """Outcome of any flow that signs a principal in."""

    principal: PrincipalResponse
    access_token: str
    refresh_token: str
