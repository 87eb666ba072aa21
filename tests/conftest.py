"""
Shared fixtures: in-memory database, API client and fake collaborators.
"""
import os

from app.core.security import get_password_hash

ADMIN_EMAIL = "admin@xentro.io"
ADMIN_PASSWORD = "Adm1n-Pass!"

os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SESSION_CACHE_BACKEND"] = "memory"
os.environ["ADMIN_EMAIL"] = ADMIN_EMAIL
os.environ["ADMIN_PASSWORD_HASH"] = get_password_hash(ADMIN_PASSWORD)

from typing import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.dependencies import get_email_service, get_session_cache, get_token_service  # noqa: E402
from app.domain.schemas.auth import SubjectKind  # noqa: E402
from app.domain.schemas.institution import InstitutionApplicationCreate  # noqa: E402
from app.infrastructure.database import models  # noqa: E402,F401
from app.infrastructure.database.base import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.services.auth.session_cache import SessionCache  # noqa: E402
from app.services.auth.token_service import TokenService  # noqa: E402
from app.services.institution_application import InstitutionApplicationService  # noqa: E402
from app.services.security.rate_limiter import rate_limiter  # noqa: E402


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def token_service() -> TokenService:
    return TokenService()


@pytest.fixture
def session_cache() -> SessionCache:
    return SessionCache()


@pytest.fixture
def email_service() -> MagicMock:
    """Records outgoing mail instead of talking to SMTP."""
    service = MagicMock()
    service.send_institution_magic_link = AsyncMock(return_value=True)
    service.send_institution_otp = AsyncMock(return_value=True)
    return service


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.clear()
    yield
    rate_limiter.clear()


@pytest_asyncio.fixture
async def client(session_factory, token_service, session_cache, email_service) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_session_cache] = lambda: session_cache
    app.dependency_overrides[get_email_service] = lambda: email_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_headers(client) -> dict:
    response = await client.post(
        "/api/admin/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    token = response.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def application_factory(db, email_service):
    """
    Build applications through the real workflow.

    Usage:
        application = await application_factory("founder@acme.org", approve=True)
    """

    async def make(
        email: str = "founder@acme.org",
        name: str = "Acme Labs",
        verify: bool = True,
        approve: bool = False,
    ):
        service = InstitutionApplicationService(db, email_service=email_service)
        application, _ = await service.submit(InstitutionApplicationCreate(name=name, email=email))
        if verify or approve:
            application, _ = await service.verify(application.verification_token)
        if approve:
            application, _ = await service.update_status(application.id, "approved", admin_email=ADMIN_EMAIL)
        return application

    return make


@pytest.fixture
def institution_token(token_service):
    """Token for an application, or for its institution once approved."""

    def make(application) -> str:
        if application.institution_id is not None:
            return token_service.create_institution_token(
                application.email,
                application.institution_id,
                SubjectKind.INSTITUTION,
                user_id=application.applicant_user_id,
            )
        return token_service.create_institution_token(
            application.email,
            application.id,
            SubjectKind.APPLICATION,
            user_id=application.applicant_user_id,
        )

    return make
