"""
Dependency injection for FastAPI.
"""
from functools import lru_cache
from typing import Callable, Optional, Union

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import AuthRequiredError
from app.domain.schemas.auth import AdminContext, InstitutionContext
from app.infrastructure.database.base import get_db
from app.services.auth.authorization.roles import require_role
from app.services.auth.email_service import EmailService
from app.services.auth.institution_auth import InstitutionAuthService
from app.services.auth.session_cache import RedisSessionCache, SessionCache
from app.services.auth.token_service import TokenService

# auto_error=False so a missing header falls through to the cookie
bearer_scheme = HTTPBearer(auto_error=False)


@lru_cache
def get_token_service() -> TokenService:
    return TokenService()


@lru_cache
def get_session_cache() -> Union[SessionCache, RedisSessionCache]:
    """Process-wide session cache for the configured backend."""
    if settings.SESSION_CACHE_BACKEND == "redis":
        return RedisSessionCache()
    return SessionCache()


@lru_cache
def get_email_service() -> EmailService:
    return EmailService()


def extract_institution_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Bearer header first, then the institution cookie."""
    if credentials is not None and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.INSTITUTION_COOKIE_NAME) or None


async def get_institution_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    return extract_institution_token(request, credentials)


async def get_institution_context(
    token: Optional[str] = Depends(get_institution_token),
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
    session_cache=Depends(get_session_cache),
) -> InstitutionContext:
    """
    Resolve the caller's institution context.

    Raises:
        AuthRequiredError: No token presented
        InvalidTokenError / TokenExpiredError: Token rejected
        InvalidSessionError / ForbiddenError: Token not backed by records
    """
    if not token:
        raise AuthRequiredError()

    service = InstitutionAuthService(db, token_service, session_cache)
    return await service.resolve(token)


def require_institution_roles(*roles: str) -> Callable:
    """
    Dependency factory gating a route on the resolved role.

    Usage:
        context = Depends(require_institution_roles("owner", "admin"))
    """
    async def role_checker(
        context: InstitutionContext = Depends(get_institution_context),
    ) -> InstitutionContext:
        return require_role(context, roles)

    return role_checker


async def get_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    token_service: TokenService = Depends(get_token_service),
) -> AdminContext:
    """Require an admin-typed bearer token."""
    if credentials is None or not credentials.credentials:
        raise AuthRequiredError()

    payload = token_service.verify_admin_token(credentials.credentials)
    return AdminContext(email=payload.email, subject=payload.sub or payload.email)
