"""
API tests for institution profiles.
"""
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import select

from app.infrastructure.database.models import InstitutionMember

INSTITUTIONS_URL = "/api/institutions"


class TestOwnInstitution:

    @pytest_asyncio.fixture
    async def application(self, application_factory):
        return await application_factory(approve=True)

    @pytest.fixture
    def auth(self, application, institution_token):
        return {"Authorization": f"Bearer {institution_token(application)}"}

    @pytest.mark.asyncio
    async def test_get_own(self, client: AsyncClient, auth, application):
        response = await client.get(f"{INSTITUTIONS_URL}/me", headers=auth)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == str(application.institution_id)
        assert data["status"] == "draft"
        assert data["slug"] == "acme-labs"

    @pytest.mark.asyncio
    async def test_publish_and_view_publicly(self, client: AsyncClient, auth, application):
        hidden = await client.get(f"{INSTITUTIONS_URL}/{application.institution_id}")
        assert hidden.status_code == 404

        published = await client.patch(
            f"{INSTITUTIONS_URL}/me",
            json={"status": "published", "tagline": "Builders first", "startups_supported": 12},
            headers=auth,
        )
        assert published.status_code == 200
        assert published.json()["data"]["status"] == "published"
        assert published.json()["data"]["startups_supported"] == 12

        first = await client.get(f"{INSTITUTIONS_URL}/{application.institution_id}")
        second = await client.get(f"{INSTITUTIONS_URL}/{application.institution_id}")
        assert first.status_code == 200
        assert first.json()["data"]["profile_views"] == 1
        assert second.json()["data"]["profile_views"] == 2

    @pytest.mark.asyncio
    async def test_archive_is_owner_only_and_final(self, client: AsyncClient, auth):
        archived = await client.post(f"{INSTITUTIONS_URL}/me/archive", headers=auth)
        assert archived.status_code == 200
        assert archived.json()["data"]["status"] == "archived"

        response = await client.patch(f"{INSTITUTIONS_URL}/me", json={"tagline": "Back"}, headers=auth)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_archived_status_cannot_be_set_by_patch(self, client: AsyncClient, auth):
        response = await client.patch(f"{INSTITUTIONS_URL}/me", json={"status": "archived"}, headers=auth)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_viewer_cannot_edit(self, client: AsyncClient, db, auth, application):
        member = (
            await db.execute(
                select(InstitutionMember).where(InstitutionMember.user_id == application.applicant_user_id)
            )
        ).scalar_one()
        member.role = "viewer"
        await db.commit()

        response = await client.patch(f"{INSTITUTIONS_URL}/me", json={"tagline": "Nope"}, headers=auth)

        assert response.status_code == 403


@pytest.mark.asyncio
async def test_own_institution_before_approval(client: AsyncClient, application_factory, institution_token):
    application = await application_factory()

    response = await client.get(
        f"{INSTITUTIONS_URL}/me", headers={"Authorization": f"Bearer {institution_token(application)}"}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unknown_public_institution(client: AsyncClient):
    response = await client.get(f"{INSTITUTIONS_URL}/{uuid4()}")

    assert response.status_code == 404


class TestAdminCreate:

    @pytest.mark.asyncio
    async def test_create(self, client: AsyncClient, admin_headers):
        response = await client.post(
            INSTITUTIONS_URL,
            json={"name": "Globex Hub", "email": "Dean@Globex.edu", "status": "published"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["email"] == "dean@globex.edu"
        assert data["slug"] == "globex-hub"
        assert data["status"] == "published"

    @pytest.mark.asyncio
    async def test_duplicate_email_and_slug(self, client: AsyncClient, admin_headers):
        await client.post(
            INSTITUTIONS_URL, json={"name": "Globex Hub", "email": "dean@globex.edu"}, headers=admin_headers
        )

        same_email = await client.post(
            INSTITUTIONS_URL, json={"name": "Other", "email": "dean@globex.edu"}, headers=admin_headers
        )
        same_slug = await client.post(
            INSTITUTIONS_URL,
            json={"name": "Other", "email": "ops@globex.edu", "slug": "globex-hub"},
            headers=admin_headers,
        )

        assert same_email.status_code == 400
        assert same_slug.status_code == 400

    @pytest.mark.asyncio
    async def test_requires_admin(self, client: AsyncClient):
        response = await client.post(INSTITUTIONS_URL, json={"name": "Globex Hub", "email": "dean@globex.edu"})

        assert response.status_code == 401
