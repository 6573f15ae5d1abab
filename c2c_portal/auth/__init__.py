"""
Authentication and authorization.

Design principles:
1. One principal record per user, role profile stored beside it
2. Stateless access + refresh tokens, each class with its own secret
3. Every gate is a FastAPI dependency resolving to an AuthContext
4. Zero boilerplate in route handlers
"""

from c2c_portal.auth.context import AuthContext
from c2c_portal.auth.policies import (
    extract_token,
    get_current_principal,
    require_auth,
    optional_auth,
    require_role,
    require_owner_or_role,
    require_capability,
    require_verified_industry,
    require_email_verified,
)
from c2c_portal.auth.capabilities import (
    Role,
    FacultyCapability,
    CompanySize,
    infer_role_from_email,
)
from c2c_portal.auth.jwt import (
    TokenIssuer,
    TokenPair,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
)
from c2c_portal.auth.models import (
    Principal,
    PrincipalResponse,
    StudentProfile,
    FacultyProfile,
    IndustryProfile,
    RegisterRequest,
    AuthResult,
)
from c2c_portal.auth.passwords import hash_password, verify_password
from c2c_portal.auth.services import AuthServices, build_auth_services
from c2c_portal.auth.session import SessionManager
from c2c_portal.auth.store import CredentialStore

__all__ = [
    # Gates
    "AuthContext",
    "extract_token",
    "get_current_principal",
    "require_auth",
    "optional_auth",
    "require_role",
    "require_owner_or_role",
    "require_capability",
    "require_verified_industry",
    "require_email_verified",
    # Types
    "Role",
    "FacultyCapability",
    "CompanySize",
    "infer_role_from_email",
    "Principal",
    "PrincipalResponse",
    "StudentProfile",
    "FacultyProfile",
    "IndustryProfile",
    "RegisterRequest",
    "AuthResult",
    # Tokens
    "TokenIssuer",
    "TokenPair",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    # Services
    "AuthServices",
    "build_auth_services",
    "SessionManager",
    "CredentialStore",
    "hash_password",
    "verify_password",
]
