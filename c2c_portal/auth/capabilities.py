"""
Roles, faculty capabilities, and role inference.

This defines WHAT principals are and can do, not HOW we check it.
The actual checking happens in policies.py.
"""

from enum import Enum


class Role(str, Enum):
    """Platform role. Exactly one per principal, fixed at creation."""

    STUDENT = "student"
    FACULTY = "faculty"
    INDUSTRY = "industry"


class FacultyCapability(str, Enum):
    """
    Named boolean permissions carried by a faculty profile.

    Values match the field names on FacultyPermissions. Only faculty
    principals hold capabilities; every other role has none.
    """

    APPROVE_INTERNSHIPS = "can_approve_internships"
    VIEW_ALL_STUDENTS = "can_view_all_students"
    GENERATE_REPORTS = "can_generate_reports"
    MANAGE_DEPARTMENT = "can_manage_department"


class CompanySize(str, Enum):
    STARTUP = "startup"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    ENTERPRISE = "enterprise"


# =============================================================================
# Role inference for OAuth auto-provisioning
# =============================================================================

# Checked in order; first match wins.
ROLE_DOMAIN_RULES: list[tuple[Role, tuple[str, ...]]] = [
    (Role.STUDENT, ("edu", "ac.")),
    (Role.FACULTY, ("university", "college", "faculty")),
    (Role.INDUSTRY, ("inc", "llc", "corp", "company", "tech")),
]

DEFAULT_INFERRED_ROLE = Role.STUDENT


def infer_role_from_email(email: str) -> Role:
    """
    Guess a role for a first-time OAuth user from their email domain.

    This is a sign-up convenience only. The result carries no trust: an
    inferred faculty account gets the default permission set and nothing
    more, and an inferred industry account starts unverified.
    """
    _, _, domain = email.partition("@")
    domain = domain.lower()

    for role, markers in ROLE_DOMAIN_RULES:
        if any(marker in domain for marker in markers):
            return role

    return DEFAULT_INFERRED_ROLE
