# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /auth/register                - Create account (+ role profile)
#   POST /auth/login                   - Password sign-in
#   POST /auth/google-login            - Google ID-token sign-in
#   GET  /auth/verify-email/{token}    - Confirm email address
#   POST /auth/forgot-password         - Email a reset link
#   POST /auth/reset-password/{token}  - Set a new password from the link
#   POST /auth/refresh-token           - New access token from refresh token
#   POST /auth/change-password         - Change password (signed in)
#   POST /auth/logout                  - Clear refresh cookie
#   GET  /auth/me                      - Current principal
#   GET  /auth/check-auth              - Signed-in status (never fails)
#
# The refresh token travels only in an HTTP-only cookie; the access token is
# returned in the body and sent back as a Bearer header.
#
# =============================================================================

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field

from c2c_portal.api.rate_limit import AUTH_LIMIT, PASSWORD_RESET_LIMIT, limiter
from c2c_portal.auth.context import AuthContext
from c2c_portal.auth.models import AuthResult, RegisterRequest
from c2c_portal.auth.policies import get_auth_services, optional_auth, require_auth
from c2c_portal.auth.services import AuthServices
from c2c_portal.core.errors import UnauthenticatedError
from c2c_portal.core.responses import send_created, send_success

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================================================
# Request Models
# =============================================================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class GoogleLoginRequest(BaseModel):
    google_token: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str | None = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str


# =============================================================================
# Cookie helpers
# =============================================================================

def _set_refresh_cookie(response: JSONResponse, services: AuthServices, token: str) -> None:
    config = services.config
    response.set_cookie(
        key=config.refresh_cookie_name,
        value=token,
        max_age=int(config.refresh_token_ttl.total_seconds()),
        httponly=True,
        secure=config.secure_cookies,
        samesite="strict",
    )


def _signed_in(
    result: AuthResult,
    services: AuthServices,
    message: str,
    status_code: int = 200,
) -> JSONResponse:
    data = {"user": result.principal, "access_token": result.access_token}
    if status_code == 201:
        response = send_created(data, message)
    else:
        response = send_success(data, message, status_code=status_code)
    _set_refresh_cookie(response, services, result.refresh_token)
    return response


# =============================================================================
# Public Endpoints
# =============================================================================

@router.post("/register", status_code=201)
@limiter.limit(AUTH_LIMIT)
async def register(
    request: Request,
    data: RegisterRequest,
    services: AuthServices = Depends(get_auth_services),
):
    """
    Create a new account with its role profile.

    Returns the user and an access token; the refresh token is set as a cookie.
    """
    result = await services.sessions.register(data)
    return _signed_in(result, services, "User registered successfully", status_code=201)


@router.post("/login")
@limiter.limit(AUTH_LIMIT)
async def login(
    request: Request,
    data: LoginRequest,
    services: AuthServices = Depends(get_auth_services),
):
    result = await services.sessions.login(data.email, data.password)
    return _signed_in(result, services, "Login successful")


@router.post("/google-login")
@limiter.limit(AUTH_LIMIT)
async def google_login(
    request: Request,
    data: GoogleLoginRequest,
    services: AuthServices = Depends(get_auth_services),
):
    """
    Sign in with a Google ID token.

    First-time users get an account with a role guessed from their email domain.
    """
    result = await services.sessions.login_with_external_token(data.google_token)
    return _signed_in(result, services, "Google login successful")


@router.get("/verify-email/{token}")
async def verify_email(
    token: str,
    services: AuthServices = Depends(get_auth_services),
):
    await services.sessions.verify_email(token)
    return send_success(None, "Email verified successfully")


@router.post("/forgot-password")
@limiter.limit(PASSWORD_RESET_LIMIT)
async def forgot_password(
    request: Request,
    data: ForgotPasswordRequest,
    services: AuthServices = Depends(get_auth_services),
):
    await services.sessions.forgot_password(data.email)
    return send_success(None, "Password reset email sent")


@router.post("/reset-password/{token}")
@limiter.limit(PASSWORD_RESET_LIMIT)
async def reset_password(
    request: Request,
    token: str,
    data: ResetPasswordRequest,
    services: AuthServices = Depends(get_auth_services),
):
    await services.sessions.reset_password(token, data.password)
    return send_success(None, "Password reset successful")


@router.post("/refresh-token")
@limiter.limit(AUTH_LIMIT)
async def refresh_token(
    request: Request,
    data: RefreshRequest | None = None,
    services: AuthServices = Depends(get_auth_services),
):
    """
    Exchange a refresh token (cookie, or body as a fallback) for a new pair.
    """
    token = request.cookies.get(services.config.refresh_cookie_name)
    if not token and data is not None:
        token = data.refresh_token
    if not token:
        raise UnauthenticatedError("Refresh token is required")

    result = await services.sessions.refresh(token)
    response = send_success({"access_token": result.access_token}, "Token refreshed successfully")
    _set_refresh_cookie(response, services, result.refresh_token)
    return response


# =============================================================================
# Protected Endpoints
# =============================================================================

@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    ctx: AuthContext = Depends(require_auth()),
    services: AuthServices = Depends(get_auth_services),
):
    await services.sessions.change_password(ctx.principal_id, data.current_password, data.new_password)
    return send_success(None, "Password changed successfully")


@router.post("/logout")
async def logout(
    ctx: AuthContext = Depends(require_auth()),
    services: AuthServices = Depends(get_auth_services),
):
    """
    Logout. Clears the refresh cookie; the client discards its access token.

    Tokens are stateless, so already-issued tokens stay valid until expiry.
    """
    await services.sessions.logout(ctx.principal_id)
    response = send_success(None, "Logged out successfully")
    response.delete_cookie(
        services.config.refresh_cookie_name,
        httponly=True,
        secure=services.config.secure_cookies,
        samesite="strict",
    )
    return response


@router.get("/me")
async def get_current_user(
    ctx: AuthContext = Depends(require_auth()),
    services: AuthServices = Depends(get_auth_services),
):
    """Get the current principal and their role profile."""
    profile = await services.store.load_profile(ctx.principal)
    return send_success(
        {"user": ctx.principal.to_response(), "profile": profile},
        "Current user retrieved successfully",
    )


@router.get("/check-auth")
async def check_auth(ctx: AuthContext = Depends(optional_auth())):
    return send_success(
        {
            "is_authenticated": ctx.is_authenticated,
            "user": ctx.principal.to_response() if ctx.principal else None,
        },
        "Authentication status checked",
    )
