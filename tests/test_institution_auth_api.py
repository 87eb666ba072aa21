"""
API tests for institution OTP login and session endpoints.
"""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.core.config import get_settings
from app.infrastructure.database.models import InstitutionSession

settings = get_settings()

REQUEST_URL = "/api/institution-auth/request-otp"
VERIFY_URL = "/api/institution-auth/verify-otp"
ME_URL = "/api/institution-auth/me"


async def request_code(client: AsyncClient, email_service, email: str = "founder@acme.org"):
    response = await client.post(REQUEST_URL, json={"email": email})
    assert response.status_code == 200
    return response.json()["data"]["session_id"], email_service.send_institution_otp.call_args.args[1]


class TestRequestOTP:

    @pytest.mark.asyncio
    async def test_verified_applicant_gets_code(self, client: AsyncClient, application_factory, email_service):
        await application_factory()

        response = await client.post(REQUEST_URL, json={"email": "Founder@Acme.org"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["session_id"]
        assert data["expires_in"] == settings.OTP_EXPIRE_MINUTES * 60
        email, otp, minutes = email_service.send_institution_otp.call_args.args
        assert email == "founder@acme.org"
        assert len(otp) == 6 and otp.isdigit()
        assert minutes == settings.OTP_EXPIRE_MINUTES

    @pytest.mark.asyncio
    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post(REQUEST_URL, json={"email": "ghost@nowhere.org"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unverified_applicant(self, client: AsyncClient, application_factory):
        await application_factory(verify=False)

        response = await client.post(REQUEST_URL, json={"email": "founder@acme.org"})

        assert response.status_code == 400
        assert "verify" in response.json()["message"]


class TestVerifyOTP:

    @pytest.mark.asyncio
    async def test_login_sets_cookie(self, client: AsyncClient, application_factory, email_service):
        application = await application_factory()
        session_id, otp = await request_code(client, email_service)

        response = await client.post(VERIFY_URL, json={"session_id": session_id, "otp": otp})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["kind"] == "application"
        assert data["application_id"] == str(application.id)
        assert data["institution_id"] is None
        assert data["token_type"] == "bearer"
        cookie_header = response.headers["set-cookie"]
        assert cookie_header.startswith(f"{settings.INSTITUTION_COOKIE_NAME}={data['access_token']}")
        assert "HttpOnly" in cookie_header
        assert "samesite=lax" in cookie_header.lower()

    @pytest.mark.asyncio
    async def test_login_after_approval_is_institution_scoped(
        self, client: AsyncClient, application_factory, email_service
    ):
        application = await application_factory(approve=True)
        session_id, otp = await request_code(client, email_service)

        response = await client.post(VERIFY_URL, json={"session_id": session_id, "otp": otp})

        data = response.json()["data"]
        assert data["kind"] == "institution"
        assert data["institution_id"] == str(application.institution_id)

    @pytest.mark.asyncio
    async def test_wrong_code(self, client: AsyncClient, application_factory, email_service):
        await application_factory()
        session_id, otp = await request_code(client, email_service)
        wrong = "000000" if otp != "000000" else "111111"

        response = await client.post(VERIFY_URL, json={"session_id": session_id, "otp": wrong})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    @pytest.mark.asyncio
    async def test_code_is_single_use(self, client: AsyncClient, application_factory, email_service):
        await application_factory()
        session_id, otp = await request_code(client, email_service)

        first = await client.post(VERIFY_URL, json={"session_id": session_id, "otp": otp})
        second = await client.post(VERIFY_URL, json={"session_id": session_id, "otp": otp})

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json()["message"] == "OTP already used"

    @pytest.mark.asyncio
    async def test_expired_code(self, client: AsyncClient, db, application_factory, email_service):
        await application_factory()
        session_id, otp = await request_code(client, email_service)
        session = (await db.execute(select(InstitutionSession))).scalar_one()
        session.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        await db.commit()

        response = await client.post(VERIFY_URL, json={"session_id": session_id, "otp": otp})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired OTP"

    @pytest.mark.asyncio
    async def test_unknown_session(self, client: AsyncClient):
        response = await client.post(VERIFY_URL, json={"session_id": str(uuid4()), "otp": "123456"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_fields(self, client: AsyncClient):
        response = await client.post(VERIFY_URL, json={})

        assert response.status_code == 400


class TestSession:

    @pytest.mark.asyncio
    async def test_me_requires_token(self, client: AsyncClient):
        response = await client.get(ME_URL)

        assert response.status_code == 401
        assert response.json()["code"] == "AUTH_REQUIRED"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_me_with_cookie(self, client: AsyncClient, application_factory, institution_token):
        application = await application_factory(approve=True)
        token = institution_token(application)

        response = await client.get(ME_URL, headers={"Cookie": f"{settings.INSTITUTION_COOKIE_NAME}={token}"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["context"]["institution_id"] == str(application.institution_id)
        assert data["context"]["role"] == "owner"
        assert data["institution"]["name"] == "Acme Labs"

    @pytest.mark.asyncio
    async def test_bearer_takes_precedence_over_cookie(
        self, client: AsyncClient, application_factory, institution_token
    ):
        ours = await application_factory("founder@acme.org", "Acme Labs")
        theirs = await application_factory("dean@globex.edu", "Globex Hub")

        response = await client.get(
            ME_URL,
            headers={
                "Authorization": f"Bearer {institution_token(ours)}",
                "Cookie": f"{settings.INSTITUTION_COOKIE_NAME}={institution_token(theirs)}",
            },
        )

        assert response.json()["data"]["context"]["email"] == "founder@acme.org"

    @pytest.mark.asyncio
    async def test_expired_token(self, client: AsyncClient, application_factory, token_service):
        application = await application_factory()
        token = token_service.create_institution_token(
            application.email, application.id, "application", expires_delta=timedelta(seconds=-5)
        )

        response = await client.get(ME_URL, headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_EXPIRED"

    @pytest.mark.asyncio
    async def test_token_for_deleted_application(self, client: AsyncClient, token_service):
        token = token_service.create_institution_token("ghost@nowhere.org", uuid4(), "application")

        response = await client.get(ME_URL, headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 403
        assert response.json()["code"] == "INVALID_SESSION"

    @pytest.mark.asyncio
    async def test_logout_forgets_session(
        self, client: AsyncClient, application_factory, institution_token, session_cache
    ):
        application = await application_factory()
        token = institution_token(application)
        auth = {"Authorization": f"Bearer {token}"}
        await client.get(ME_URL, headers=auth)
        assert await session_cache.get(token) is not None

        response = await client.post("/api/institution-auth/logout", headers=auth)

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out"}
        assert await session_cache.get(token) is None
        assert f'{settings.INSTITUTION_COOKIE_NAME}=""' in response.headers["set-cookie"]
