"""
End-to-end tests over HTTP: the /auth API, user administration and the
internship scenarios.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from c2c_portal.api.app import create_app
from c2c_portal.api.rate_limit import limiter
from c2c_portal.auth.models import FacultyPermissions
from c2c_portal.storage import Collections

from conftest import bearer, faculty_request, student_request


STUDENT = {
    "email": "asha@campus.edu",
    "password": "secret123",
    "name": "Asha Rao",
    "role": "student",
    "student_data": {"student_id": "S-1001", "department": "CSE"},
}

INDUSTRY = {
    "email": "hr@acmecorp.com",
    "password": "secret123",
    "name": "Acme Recruiting",
    "role": "industry",
    "industry_data": {"company_name": "Acme", "company_size": "startup"},
}


async def register(client, payload) -> dict:
    response = await client.post("/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def make_manager(sessions, store, email="dean@campus.edu", employee_id="F-1"):
    """A faculty member allowed to manage the department."""
    result = await sessions.register(faculty_request(email=email, employee_id=employee_id))
    profile = await store.load_profile(await store.get(result.principal.id))
    profile.permissions = FacultyPermissions(can_manage_department=True)
    await store.save_profile(profile)
    return result


# =============================================================================
# /auth
# =============================================================================


class TestRegisterEndpoint:
    async def test_register(self, client, storage):
        response = await client.post("/auth/register", json=STUDENT)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["status_code"] == 201
        assert body["message"] == "User registered successfully"
        assert "timestamp" in body
        assert body["data"]["access_token"]
        assert body["data"]["user"]["role"] == "student"
        assert storage.count(Collections.PRINCIPALS) == 1

    async def test_refresh_cookie(self, client):
        response = await client.post("/auth/register", json=STUDENT)
        cookie = response.headers["set-cookie"]
        assert cookie.startswith("refresh_token=")
        assert "HttpOnly" in cookie
        assert "samesite=strict" in cookie.lower()
        assert "Max-Age=2592000" in cookie
        assert "refresh_token" not in response.json()["data"]

    async def test_response_never_leaks_secrets(self, client):
        response = await client.post("/auth/register", json=STUDENT)
        text = response.text
        for field in ("password_hash", "email_verification_token", "password_reset_token", "secret123"):
            assert field not in text

    async def test_validation_errors_are_collected(self, client):
        response = await client.post(
            "/auth/register",
            json={"email": "nope", "password": "1", "name": "", "role": "student"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        fields = {e["field"] for e in body["errors"]}
        assert fields == {"email", "password", "name", "student_data.student_id"}

    async def test_malformed_body_is_400(self, client):
        response = await client.post(
            "/auth/register",
            json={**STUDENT, "student_data": {"student_id": "S-1", "semester": "fifth"}},
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "student_data.semester"

    async def test_duplicate(self, client, storage):
        await register(client, STUDENT)
        response = await client.post("/auth/register", json={**STUDENT, "student_data": {"student_id": "S-2"}})
        assert response.status_code == 400
        assert response.json()["message"] == "User with this email already exists"
        assert storage.count(Collections.PRINCIPALS) == 1


class TestLoginEndpoint:
    async def test_login(self, client):
        await register(client, STUDENT)
        response = await client.post("/auth/login", json={"email": "asha@campus.edu", "password": "secret123"})
        assert response.status_code == 200
        assert response.json()["message"] == "Login successful"
        assert "refresh_token=" in response.headers["set-cookie"]

    async def test_bad_credentials_look_the_same(self, client):
        await register(client, STUDENT)
        unknown = await client.post("/auth/login", json={"email": "x@campus.edu", "password": "secret123"})
        wrong = await client.post("/auth/login", json={"email": "asha@campus.edu", "password": "wrong!"})

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json()["message"] == wrong.json()["message"] == "Invalid email or password"

    async def test_missing_password(self, client):
        response = await client.post("/auth/login", json={"email": "asha@campus.edu"})
        assert response.status_code == 400

    async def test_google_login(self, client, identity_verifier):
        identity_verifier.add("g-token", "iyer@stateuniversity.org", "google-sub-1")
        response = await client.post("/auth/google-login", json={"google_token": "g-token"})
        assert response.status_code == 200
        assert response.json()["data"]["user"]["role"] == "faculty"

    async def test_google_login_failure(self, client):
        response = await client.post("/auth/google-login", json={"google_token": "forged"})
        assert response.status_code == 401
        assert response.json()["message"] == "Google authentication failed"


class TestSessionEndpoints:
    async def test_me(self, client):
        data = await register(client, STUDENT)
        response = await client.get("/auth/me", headers=bearer(data["access_token"]))
        assert response.status_code == 200
        body = response.json()["data"]
        assert body["user"]["email"] == "asha@campus.edu"
        assert body["profile"]["student_id"] == "S-1001"
        assert "password_hash" not in response.text

    async def test_check_auth(self, client):
        anonymous = await client.get("/auth/check-auth")
        assert anonymous.status_code == 200
        assert anonymous.json()["data"] == {"is_authenticated": False, "user": None}

        data = await register(client, STUDENT)
        signed_in = await client.get("/auth/check-auth", headers=bearer(data["access_token"]))
        assert signed_in.json()["data"]["is_authenticated"] is True

    async def test_refresh_from_cookie(self, client):
        await register(client, STUDENT)
        # the client kept the refresh cookie from registration
        response = await client.post("/auth/refresh-token")
        assert response.status_code == 200
        assert response.json()["data"]["access_token"]
        assert "refresh_token=" in response.headers["set-cookie"]

    async def test_refresh_from_body(self, app, sessions):
        result = await sessions.register(faculty_request())
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as fresh:
            response = await fresh.post("/auth/refresh-token", json={"refresh_token": result.refresh_token})
        assert response.status_code == 200

    async def test_refresh_missing(self, client):
        response = await client.post("/auth/refresh-token")
        assert response.status_code == 401
        assert response.json()["message"] == "Refresh token is required"

    async def test_refresh_rejects_access_token(self, app, sessions):
        result = await sessions.register(faculty_request())
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as fresh:
            response = await fresh.post("/auth/refresh-token", json={"refresh_token": result.access_token})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid refresh token"

    async def test_logout_clears_cookie(self, client):
        data = await register(client, STUDENT)
        response = await client.post("/auth/logout", headers=bearer(data["access_token"]))
        assert response.status_code == 200
        cookie = response.headers["set-cookie"]
        assert cookie.startswith('refresh_token=""') or "Max-Age=0" in cookie

    async def test_logout_requires_auth(self, client):
        response = await client.post("/auth/logout")
        assert response.status_code == 401

    async def test_change_password(self, client):
        data = await register(client, STUDENT)
        response = await client.post(
            "/auth/change-password",
            json={"current_password": "secret123", "new_password": "brand-new"},
            headers=bearer(data["access_token"]),
        )
        assert response.status_code == 200
        login = await client.post("/auth/login", json={"email": "asha@campus.edu", "password": "brand-new"})
        assert login.status_code == 200


class TestPasswordResetEndpoints:
    async def test_reset_flow(self, client, mailer):
        await register(client, STUDENT)

        forgot = await client.post("/auth/forgot-password", json={"email": "asha@campus.edu"})
        assert forgot.status_code == 200
        token = mailer.last("password_reset")["token"]

        reset = await client.post(f"/auth/reset-password/{token}", json={"password": "brand-new"})
        assert reset.status_code == 200

        again = await client.post(f"/auth/reset-password/{token}", json={"password": "other-pass"})
        assert again.status_code == 400

    async def test_unknown_email(self, client):
        response = await client.post("/auth/forgot-password", json={"email": "nobody@campus.edu"})
        assert response.status_code == 404

    async def test_email_failure_is_500(self, client, mailer, store):
        await register(client, STUDENT)
        mailer.failing.add("password_reset")

        response = await client.post("/auth/forgot-password", json={"email": "asha@campus.edu"})

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to send reset email"
        principal = await store.find_by_email("asha@campus.edu")
        assert principal.password_reset_token is None


# =============================================================================
# Scenarios
# =============================================================================


class TestStudentVerificationScenario:
    async def test_register_verify_and_use(self, client, mailer, store):
        data = await register(client, STUDENT)
        assert data["user"]["is_email_verified"] is False

        token = mailer.last("welcome")["token"]
        response = await client.get(f"/auth/verify-email/{token}")
        assert response.status_code == 200
        assert response.json()["message"] == "Email verified successfully"

        me = await client.get("/auth/me", headers=bearer(data["access_token"]))
        assert me.json()["data"]["user"]["is_email_verified"] is True

        replay = await client.get(f"/auth/verify-email/{token}")
        assert replay.status_code == 400
        assert replay.json()["message"] == "Invalid or expired verification token"


class TestIndustryVerificationScenario:
    async def test_posting_requires_company_verification(self, client, sessions, store):
        industry = await register(client, INDUSTRY)
        headers = bearer(industry["access_token"])
        posting = {"title": "Backend Intern", "description": "Python, FastAPI"}

        blocked = await client.post("/internships", json=posting, headers=headers)
        assert blocked.status_code == 403
        assert blocked.json()["message"] == "Company verification required to perform this action."

        manager = await make_manager(sessions, store)
        verify = await client.put(
            f"/users/{industry['user']['id']}/verify-company",
            json={"is_verified": True},
            headers=bearer(manager.access_token),
        )
        assert verify.status_code == 200
        assert verify.json()["data"]["verification"]["verified_by"] == manager.principal.id

        allowed = await client.post("/internships", json=posting, headers=headers)
        assert allowed.status_code == 201
        assert allowed.json()["data"]["status"] == "pending"

    async def test_plain_faculty_cannot_verify_companies(self, client, sessions):
        industry = await register(client, INDUSTRY)
        faculty = await sessions.register(faculty_request())
        response = await client.put(
            f"/users/{industry['user']['id']}/verify-company",
            json={"is_verified": True},
            headers=bearer(faculty.access_token),
        )
        assert response.status_code == 403


class TestInternshipGates:
    @pytest.fixture
    async def posting(self, client, sessions, store):
        industry = await register(client, INDUSTRY)
        profile = await store.load_profile(await store.get(industry["user"]["id"]))
        profile.verification.is_verified = True
        await store.save_profile(profile)

        response = await client.post(
            "/internships",
            json={"title": "Data Intern"},
            headers=bearer(industry["access_token"]),
        )
        return {"industry": industry, "internship": response.json()["data"]}

    async def test_faculty_approves(self, client, sessions, posting):
        faculty = await sessions.register(faculty_request())
        response = await client.put(
            f"/internships/{posting['internship']['id']}/approve",
            headers=bearer(faculty.access_token),
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "approved"

    async def test_faculty_without_capability(self, client, sessions, store, posting):
        faculty = await sessions.register(faculty_request())
        profile = await store.load_profile(await store.get(faculty.principal.id))
        profile.permissions.can_approve_internships = False
        await store.save_profile(profile)

        response = await client.put(
            f"/internships/{posting['internship']['id']}/approve",
            headers=bearer(faculty.access_token),
        )
        assert response.status_code == 403

    async def test_industry_cannot_approve(self, client, posting):
        response = await client.put(
            f"/internships/{posting['internship']['id']}/approve",
            headers=bearer(posting["industry"]["access_token"]),
        )
        assert response.status_code == 403

    async def test_owner_deletes(self, client, posting):
        response = await client.delete(
            f"/internships/{posting['internship']['id']}",
            headers=bearer(posting["industry"]["access_token"]),
        )
        assert response.status_code == 200

    async def test_other_company_cannot_delete(self, client, posting):
        other = await register(client, {**INDUSTRY, "email": "hr@othertech.io"})
        response = await client.delete(
            f"/internships/{posting['internship']['id']}",
            headers=bearer(other["access_token"]),
        )
        assert response.status_code == 403

    async def test_missing_internship(self, client, posting):
        response = await client.get("/internships/intern_missing", headers=bearer(posting["industry"]["access_token"]))
        assert response.status_code == 404

    async def test_listing_is_scoped_by_role(self, client, sessions, posting):
        student = await sessions.register(student_request())
        faculty = await sessions.register(faculty_request())

        hidden = await client.get("/internships", headers=bearer(student.access_token))
        assert hidden.json()["data"] == []
        assert hidden.json()["pagination"]["total"] == 0

        await client.put(
            f"/internships/{posting['internship']['id']}/approve",
            headers=bearer(faculty.access_token),
        )
        shown = await client.get("/internships?page=1&limit=5", headers=bearer(student.access_token))
        body = shown.json()
        assert [item["id"] for item in body["data"]] == [posting["internship"]["id"]]
        assert body["pagination"] == {"page": 1, "limit": 5, "total": 1, "pages": 1}

        own = await client.get("/internships", headers=bearer(posting["industry"]["access_token"]))
        assert own.json()["pagination"]["total"] == 1

    async def test_listing_requires_auth(self, client):
        response = await client.get("/internships")
        assert response.status_code == 401

    @pytest.mark.parametrize("existing", [True, False])
    async def test_anonymous_delete_is_401_whether_or_not_posting_exists(self, client, posting, existing):
        internship_id = posting["internship"]["id"] if existing else "intern_missing"
        response = await client.delete(f"/internships/{internship_id}")
        assert response.status_code == 401
        assert response.json()["message"] == "Access denied. No token provided."


# =============================================================================
# User administration
# =============================================================================


class TestUserAdministration:
    async def test_deactivate_blocks_login_and_tokens(self, client, sessions):
        student = await register(client, STUDENT)
        faculty = await sessions.register(faculty_request())
        user_id = student["user"]["id"]

        response = await client.put(f"/users/{user_id}/deactivate", headers=bearer(faculty.access_token))
        assert response.status_code == 200

        login = await client.post("/auth/login", json={"email": "asha@campus.edu", "password": "secret123"})
        assert login.status_code == 401
        assert login.json()["message"] == "Account is deactivated"

        me = await client.get("/auth/me", headers=bearer(student["access_token"]))
        assert me.status_code == 401

        await client.put(f"/users/{user_id}/activate", headers=bearer(faculty.access_token))
        me = await client.get("/auth/me", headers=bearer(student["access_token"]))
        assert me.status_code == 200

    async def test_student_cannot_deactivate(self, client):
        student = await register(client, STUDENT)
        response = await client.put(
            f"/users/{student['user']['id']}/deactivate",
            headers=bearer(student["access_token"]),
        )
        assert response.status_code == 403

    async def test_role_change(self, client, sessions, store):
        student = await register(client, STUDENT)
        manager = await make_manager(sessions, store)

        response = await client.put(
            f"/users/{student['user']['id']}/role",
            json={"role": "industry"},
            headers=bearer(manager.access_token),
        )
        assert response.status_code == 200
        assert response.json()["data"]["user"]["role"] == "industry"

        same = await client.put(
            f"/users/{student['user']['id']}/role",
            json={"role": "industry"},
            headers=bearer(manager.access_token),
        )
        assert same.status_code == 400

    async def test_permissions_update(self, client, sessions, store):
        manager = await make_manager(sessions, store)
        faculty = await sessions.register(faculty_request(email="lee@campus.edu", employee_id="F-2"))

        response = await client.put(
            f"/users/{faculty.principal.id}/permissions",
            json={"can_view_all_students": True},
            headers=bearer(manager.access_token),
        )
        assert response.status_code == 200
        permissions = response.json()["data"]["permissions"]
        assert permissions["can_view_all_students"] is True
        assert permissions["can_approve_internships"] is True

    async def test_delete(self, client, sessions, store, storage):
        student = await register(client, STUDENT)
        manager = await make_manager(sessions, store)

        response = await client.delete(f"/users/{student['user']['id']}", headers=bearer(manager.access_token))
        assert response.status_code == 200
        assert await store.find_by_id(student["user"]["id"]) is None
        assert storage.count(Collections.STUDENT_PROFILES) == 0

        again = await client.delete(f"/users/{student['user']['id']}", headers=bearer(manager.access_token))
        assert again.status_code == 404


# =============================================================================
# Cross-cutting
# =============================================================================


class TestRateLimiting:
    async def test_login_limit(self, client):
        limiter.enabled = True
        limiter.reset()
        try:
            statuses = []
            for _ in range(6):
                response = await client.post("/auth/login", json={"email": "x@campus.edu", "password": "nope"})
                statuses.append(response.status_code)
        finally:
            limiter.enabled = False
            limiter.reset()

        assert statuses[:5] == [401] * 5
        assert statuses[5] == 429
        assert response.json()["success"] is False


class TestErrorHandling:
    @pytest.mark.parametrize("environment,expected", [
        ("development", "kaboom"),
        ("production", "Something went wrong"),
    ])
    async def test_unhandled_error(self, settings, services, environment, expected):
        app = create_app(settings.model_copy(update={"environment": environment}), services)

        @app.get("/_boom")
        async def boom():
            raise RuntimeError("kaboom")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/_boom")

        assert response.status_code == 500
        assert response.json()["message"] == expected
        assert "Traceback" not in response.text

    async def test_unknown_route_uses_envelope(self, client):
        response = await client.get("/nope")
        assert response.status_code == 404
        assert response.json()["success"] is False
