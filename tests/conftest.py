"""
Shared fixtures: in-memory storage, a recording mailer, a stub Google
verifier and a clock the tests can move.
"""

import os

# Set testing environment before anything reads Settings
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET_KEY"] = "test-refresh-secret"
os.environ["SENTRY_DSN"] = ""
os.environ["AWS_ACCESS_KEY_ID"] = ""
os.environ["AWS_SECRET_ACCESS_KEY"] = ""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from c2c_portal.api.app import create_app
from c2c_portal.auth.models import RegisterRequest
from c2c_portal.auth.services import build_auth_services
from c2c_portal.config import Settings
from c2c_portal.integrations.oauth import OAuthError, OAuthUserInfo
from c2c_portal.storage import InMemoryMetadataStorage


# =============================================================================
# Test doubles
# =============================================================================


class FakeClock:
    """Callable clock pinned to whole seconds (JWT timestamps are integral)."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingEmailService:
    """Mailer that keeps every message instead of sending it."""

    def __init__(self):
        self.sent: list[dict] = []
        self.failing: set[str] = set()

    def _record(self, template: str, to: str, **data) -> bool:
        if template in self.failing:
            return False
        self.sent.append({"template": template, "to": to, **data})
        return True

    async def send_welcome(self, email, name, role, verify_token=None) -> bool:
        return self._record("welcome", email, name=name, role=role, token=verify_token)

    async def send_password_reset(self, email, name, reset_token, expires_minutes=10) -> bool:
        return self._record("password_reset", email, token=reset_token, expires_minutes=expires_minutes)

    async def send_email_verified(self, email) -> bool:
        return self._record("email_verified", email)

    def last(self, template: str) -> dict:
        return [m for m in self.sent if m["template"] == template][-1]


class StubIdentityVerifier:
    """Accepts only the provider tokens it has been told about."""

    def __init__(self):
        self.identities: dict[str, OAuthUserInfo] = {}

    def add(self, token: str, email: str, subject: str, name: str = "Google User") -> None:
        self.identities[token] = OAuthUserInfo(
            provider="google",
            provider_user_id=subject,
            email=email,
            name=name,
            picture_url="https://example.com/avatar.png",
        )

    async def verify(self, provider_token: str) -> OAuthUserInfo:
        if provider_token not in self.identities:
            raise OAuthError("Token used too late")
        return self.identities[provider_token]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    return Settings(
        environment="test",
        rate_limit_enabled=False,
        jwt_secret_key="test-access-secret",
        jwt_refresh_secret_key="test-refresh-secret",
        sentry_dsn="",
        frontend_url="http://localhost:5173",
    )


@pytest.fixture
def storage():
    return InMemoryMetadataStorage()


@pytest.fixture
def mailer():
    return RecordingEmailService()


@pytest.fixture
def identity_verifier():
    return StubIdentityVerifier()


@pytest.fixture
def services(settings, storage, mailer, identity_verifier, clock):
    return build_auth_services(
        settings,
        storage=storage,
        email_service=mailer,
        identity_verifier=identity_verifier,
        clock=clock,
    )


@pytest.fixture
def sessions(services):
    return services.sessions


@pytest.fixture
def store(services):
    return services.store


@pytest.fixture
def app(settings, services):
    return create_app(settings, services)


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Registration helpers
# =============================================================================


def student_request(email="asha@campus.edu", student_id="S-1001", **overrides) -> RegisterRequest:
    data = {
        "email": email,
        "password": "secret123",
        "name": "Asha Rao",
        "role": "student",
        "student_data": {"student_id": student_id, "department": "CSE", "semester": 5},
    }
    data.update(overrides)
    return RegisterRequest.model_validate(data)


def faculty_request(email="prof.iyer@campus.edu", employee_id="F-200", **overrides) -> RegisterRequest:
    data = {
        "email": email,
        "password": "secret123",
        "name": "Dr. Iyer",
        "role": "faculty",
        "faculty_data": {"employee_id": employee_id, "department": "CSE", "designation": "Professor"},
    }
    data.update(overrides)
    return RegisterRequest.model_validate(data)


def industry_request(email="hr@acmecorp.com", **overrides) -> RegisterRequest:
    data = {
        "email": email,
        "password": "secret123",
        "name": "Acme Recruiting",
        "role": "industry",
        "industry_data": {"company_name": "Acme", "company_size": "medium"},
    }
    data.update(overrides)
    return RegisterRequest.model_validate(data)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
