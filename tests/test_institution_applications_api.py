"""
API tests for institution applications.
"""
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient

from app.infrastructure.database.models import ActivityLog, Notification

SUBMIT_URL = "/api/institution-applications"


def token_from_link(link: str) -> str:
    return parse_qs(urlparse(link).query)["token"][0]


class TestSubmitApplication:

    @pytest.mark.asyncio
    async def test_submit(self, client: AsyncClient, email_service):
        response = await client.post(
            SUBMIT_URL,
            json={"name": "Acme Labs", "email": "founder@acme.org", "type": "accelerator"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["application"]["status"] == "pending"
        assert data["application"]["verified"] is False
        assert data["application"]["type"] == "accelerator"
        assert "verification_token" not in data["application"]
        assert data["magic_link"].startswith("http://localhost:3000/api/institution-applications/verify?token=")
        email_service.send_institution_magic_link.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_name(self, client: AsyncClient):
        response = await client.post(SUBMIT_URL, json={"email": "founder@acme.org"})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client: AsyncClient):
        await client.post(SUBMIT_URL, json={"name": "Acme Labs", "email": "founder@acme.org"})

        response = await client.post(SUBMIT_URL, json={"name": "Acme Two", "email": "Founder@Acme.org"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["field"] == "email"
        assert "already exists" in body["message"]

    @pytest.mark.asyncio
    async def test_malformed_body(self, client: AsyncClient):
        response = await client.post(SUBMIT_URL, json={"name": "Acme", "email": "a@acme.org", "city": "x" * 300})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["errors"]

    @pytest.mark.asyncio
    async def test_submit_is_rate_limited(self, client: AsyncClient):
        statuses = []
        for i in range(6):
            response = await client.post(SUBMIT_URL, json={"name": f"Hub {i}", "email": f"hub{i}@acme.org"})
            statuses.append(response.status_code)

        assert statuses == [201] * 5 + [429]
        assert 1 <= int(response.headers["Retry-After"]) <= 60


class TestVerifyApplication:

    @pytest_asyncio.fixture
    async def magic_link(self, client: AsyncClient) -> str:
        response = await client.post(SUBMIT_URL, json={"name": "Acme Labs", "email": "founder@acme.org"})
        return response.json()["data"]["magic_link"]

    @pytest.mark.asyncio
    async def test_get_returns_json_for_api_clients(self, client: AsyncClient, magic_link):
        response = await client.get(f"{SUBMIT_URL}/verify", params={"token": token_from_link(magic_link)})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["application"]["verified"] is True
        assert data["applicant_user_id"] == data["application"]["applicant_user_id"]

    @pytest.mark.asyncio
    async def test_get_redirects_browsers(self, client: AsyncClient, magic_link):
        response = await client.get(
            f"{SUBMIT_URL}/verify",
            params={"token": token_from_link(magic_link), "next": "/onboarding/step-2"},
            headers={"Accept": "text/html,application/xhtml+xml"},
        )

        assert response.status_code == 303
        assert response.headers["location"] == "http://localhost:3000/onboarding/step-2"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("next_path", ["//evil.example", "https://evil.example", "/\\evil", None])
    async def test_unsafe_next_falls_back_to_dashboard(self, client: AsyncClient, magic_link, next_path):
        params = {"token": token_from_link(magic_link)}
        if next_path is not None:
            params["next"] = next_path

        response = await client.get(f"{SUBMIT_URL}/verify", params=params, headers={"Accept": "text/html"})

        assert response.status_code == 303
        assert response.headers["location"] == "http://localhost:3000/institution-dashboard"

    @pytest.mark.asyncio
    async def test_post_verify_twice(self, client: AsyncClient, magic_link):
        token = token_from_link(magic_link)

        first = await client.post(f"{SUBMIT_URL}/verify", json={"token": token})
        second = await client.post(f"{SUBMIT_URL}/verify", json={"token": token})

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["data"]["applicant_user_id"] == second.json()["data"]["applicant_user_id"]

    @pytest.mark.asyncio
    async def test_unknown_token(self, client: AsyncClient):
        response = await client.post(f"{SUBMIT_URL}/verify", json={"token": "nope"})

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_missing_token(self, client: AsyncClient):
        response = await client.get(f"{SUBMIT_URL}/verify")

        assert response.status_code == 400


class TestAdminDecision:

    @pytest.mark.asyncio
    async def test_list_requires_admin(self, client: AsyncClient):
        response = await client.get(SUBMIT_URL)

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_institution_token_is_not_admin(self, client: AsyncClient, application_factory, institution_token):
        application = await application_factory()

        response = await client.get(SUBMIT_URL, headers={"Authorization": f"Bearer {institution_token(application)}"})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_list_oldest_first(self, client: AsyncClient, db, admin_headers, application_factory):
        second = await application_factory("b@acme.org", "Beta Hub", verify=False)
        first = await application_factory("a@acme.org", "Alpha Hub")
        first.created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        await db.commit()

        response = await client.get(SUBMIT_URL, headers=admin_headers)

        assert response.status_code == 200
        ids = [item["id"] for item in response.json()["data"]]
        assert ids == [str(first.id), str(second.id)]

    @pytest.mark.asyncio
    async def test_approve_then_decide_again(self, client: AsyncClient, admin_headers, application_factory):
        application = await application_factory()

        approved = await client.patch(
            f"{SUBMIT_URL}/{application.id}",
            json={"status": "approved", "remark": "Welcome aboard"},
            headers=admin_headers,
        )
        assert approved.status_code == 200
        data = approved.json()["data"]
        assert data["application"]["status"] == "approved"
        assert data["institution_id"] == data["application"]["institution_id"]
        assert data["institution_id"] is not None

        again = await client.patch(
            f"{SUBMIT_URL}/{application.id}",
            json={"status": "rejected"},
            headers=admin_headers,
        )
        assert again.status_code == 409
        assert again.json()["code"] == "INVALID_STATE_TRANSITION"
        assert again.json()["current_status"] == "approved"

    @pytest.mark.asyncio
    async def test_approve_unverified(self, client: AsyncClient, admin_headers, application_factory):
        application = await application_factory(verify=False)

        response = await client.patch(
            f"{SUBMIT_URL}/{application.id}", json={"status": "approved"}, headers=admin_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_pending_is_not_a_decision(self, client: AsyncClient, admin_headers, application_factory):
        application = await application_factory()

        response = await client.patch(
            f"{SUBMIT_URL}/{application.id}", json={"status": "pending"}, headers=admin_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_decision_requires_admin(self, client: AsyncClient, application_factory):
        application = await application_factory()

        response = await client.patch(f"{SUBMIT_URL}/{application.id}", json={"status": "approved"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_application(self, client: AsyncClient, admin_headers):
        response = await client.patch(f"{SUBMIT_URL}/{uuid4()}", json={"status": "approved"}, headers=admin_headers)

        assert response.status_code == 404


class TestSideChannelFailures:
    """Activity log and notification writes must never fail the request."""

    @staticmethod
    async def break_side_channels(engine):
        async with engine.begin() as conn:
            await conn.run_sync(ActivityLog.__table__.drop)
            await conn.run_sync(Notification.__table__.drop)

    @pytest.mark.asyncio
    async def test_submit_survives_activity_failure(self, client: AsyncClient, engine):
        await self.break_side_channels(engine)

        response = await client.post(SUBMIT_URL, json={"name": "Acme Labs", "email": "founder@acme.org"})

        assert response.status_code == 201
        application = response.json()["data"]["application"]
        assert application["id"]
        assert application["email"] == "founder@acme.org"

    @pytest.mark.asyncio
    async def test_decision_survives_notification_failure(
        self, client: AsyncClient, engine, admin_headers, application_factory
    ):
        application = await application_factory()
        await self.break_side_channels(engine)

        response = await client.patch(
            f"{SUBMIT_URL}/{application.id}", json={"status": "approved"}, headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["application"]["status"] == "approved"
        assert data["institution_id"] is not None


class TestApplicantEdits:

    @pytest.mark.asyncio
    async def test_update_own_application(self, client: AsyncClient, application_factory, institution_token):
        application = await application_factory()

        response = await client.put(
            f"{SUBMIT_URL}/{application.id}",
            json={"tagline": "Builders first", "sdg_focus": ["4", "9"]},
            headers={"Authorization": f"Bearer {institution_token(application)}"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["tagline"] == "Builders first"
        assert data["sdg_focus"] == ["4", "9"]

    @pytest.mark.asyncio
    async def test_cannot_edit_someone_elses_application(
        self, client: AsyncClient, application_factory, institution_token
    ):
        ours = await application_factory("founder@acme.org", "Acme Labs")
        theirs = await application_factory("dean@globex.edu", "Globex Hub")

        response = await client.put(
            f"{SUBMIT_URL}/{theirs.id}",
            json={"tagline": "Hijacked"},
            headers={"Authorization": f"Bearer {institution_token(ours)}"},
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_submit_for_approval_missing_fields(
        self, client: AsyncClient, application_factory, institution_token
    ):
        application = await application_factory()

        response = await client.post(
            f"{SUBMIT_URL}/{application.id}/submit",
            json={"tagline": "Builders first"},
            headers={"Authorization": f"Bearer {institution_token(application)}"},
        )

        assert response.status_code == 400
        assert "city" in response.json()["message"]


@pytest.mark.asyncio
async def test_full_onboarding_flow(client: AsyncClient, admin_headers, email_service):
    """Submit, verify, log in, get approved and come back as owner."""
    submitted = await client.post(SUBMIT_URL, json={"name": "Acme Labs", "email": "founder@acme.org"})
    link = submitted.json()["data"]["magic_link"]
    application_id = submitted.json()["data"]["application"]["id"]

    verified = await client.get(f"{SUBMIT_URL}/verify", params={"token": token_from_link(link)})
    assert verified.status_code == 200

    otp_request = await client.post("/api/institution-auth/request-otp", json={"email": "founder@acme.org"})
    assert otp_request.status_code == 200
    session_id = otp_request.json()["data"]["session_id"]
    otp = email_service.send_institution_otp.call_args.args[1]

    login = await client.post("/api/institution-auth/verify-otp", json={"session_id": session_id, "otp": otp})
    assert login.status_code == 200
    assert login.json()["data"]["kind"] == "application"
    token = login.json()["data"]["access_token"]
    auth = {"Authorization": f"Bearer {token}"}

    before = await client.get("/api/institution-auth/me", headers=auth)
    assert before.status_code == 200
    assert before.json()["data"]["context"]["institution_id"] is None
    assert before.json()["data"]["institution"] is None

    decided = await client.patch(f"{SUBMIT_URL}/{application_id}", json={"status": "approved"}, headers=admin_headers)
    institution_id = decided.json()["data"]["institution_id"]

    after = await client.get("/api/institution-auth/me", headers=auth)
    assert after.status_code == 200
    context = after.json()["data"]["context"]
    assert context["institution_id"] == institution_id
    assert context["role"] == "owner"
    assert after.json()["data"]["institution"]["status"] == "draft"

    own = await client.get("/api/institutions/me", headers=auth)
    assert own.status_code == 200
    assert own.json()["data"]["id"] == institution_id
