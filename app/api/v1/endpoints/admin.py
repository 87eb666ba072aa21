"""
Platform admin endpoints.
"""
from typing import Any

from fastapi import APIRouter, Depends, Request

from app.core.dependencies import get_token_service
from app.domain.schemas.auth import AdminLogin, TokenResponse
from app.domain.schemas.common import DataResponse
from app.services.auth.auth_service import AdminAuthService
from app.services.auth.token_service import TokenService
from app.services.security.rate_limiter import RateLimit, get_client_ip

router = APIRouter()


@router.post(
    "/login",
    response_model=DataResponse[TokenResponse],
    dependencies=[Depends(RateLimit("admin:login"))],
)
async def admin_login(
    credentials: AdminLogin,
    request: Request,
    token_service: TokenService = Depends(get_token_service),
) -> Any:
    """
    Exchange the configured admin credential for an admin token.

    The token is required to list and decide institution applications.
    """
    service = AdminAuthService(token_service)
    token = await service.login(credentials, request_ip=get_client_ip(request))
    return {"data": token}
