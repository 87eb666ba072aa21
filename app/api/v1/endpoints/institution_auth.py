"""
Institution login endpoints (emailed one-time code).
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import (
    get_email_service,
    get_institution_context,
    get_institution_token,
    get_session_cache,
    get_token_service,
)
from app.domain.schemas.auth import (
    InstitutionContext,
    InstitutionLoginResponse,
    OTPRequest,
    OTPRequestResponse,
    OTPVerify,
)
from app.domain.schemas.common import DataResponse, MessageResponse
from app.domain.schemas.institution import InstitutionRead
from app.infrastructure.database.base import get_db
from app.services.auth.email_service import EmailService
from app.services.auth.institution_otp import InstitutionOTPService
from app.services.auth.token_service import TokenService
from app.services.institution import InstitutionService
from app.services.security.rate_limiter import RateLimit

router = APIRouter()


@router.post(
    "/request-otp",
    response_model=DataResponse[OTPRequestResponse],
    dependencies=[Depends(RateLimit("institution-auth:request-otp"))],
)
async def request_otp(
    payload: OTPRequest,
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
    email_service: EmailService = Depends(get_email_service),
) -> Any:
    """Email a 6-digit login code to a verified applicant."""
    service = InstitutionOTPService(db, token_service, email_service=email_service)
    session = await service.request_otp(payload.email)
    return {"data": {"session_id": session.id, "expires_in": settings.OTP_EXPIRE_MINUTES * 60}}


@router.post(
    "/verify-otp",
    response_model=DataResponse[InstitutionLoginResponse],
    dependencies=[Depends(RateLimit("institution-auth:verify-otp"))],
)
async def verify_otp(
    payload: OTPVerify,
    response: Response,
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
) -> Any:
    """
    Redeem a login code.

    Returns the institution token and also sets it as an HTTP-only cookie.
    """
    service = InstitutionOTPService(db, token_service)
    token, application, kind = await service.verify_otp(payload.session_id, payload.otp)

    max_age = settings.INSTITUTION_TOKEN_EXPIRE_DAYS * 24 * 60 * 60
    response.set_cookie(
        key=settings.INSTITUTION_COOKIE_NAME,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )
    return {
        "data": {
            "access_token": token,
            "expires_in": max_age,
            "kind": kind,
            "institution_id": application.institution_id,
            "application_id": application.id,
            "email": application.email,
        }
    }


@router.get("/me")
async def me(
    context: InstitutionContext = Depends(get_institution_context),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Resolved context of the caller and their institution, if approved."""
    institution = await InstitutionService(db).get_for_context(context)
    return {
        "data": {
            "context": context.model_dump(mode="json"),
            "institution": (
                InstitutionRead.model_validate(institution).model_dump(mode="json") if institution else None
            ),
        }
    }


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_institution_token),
    session_cache=Depends(get_session_cache),
) -> Any:
    """Forget the cached session and clear the cookie."""
    if token:
        await session_cache.delete(token)
    response.delete_cookie(settings.INSTITUTION_COOKIE_NAME, path="/")
    return {"message": "Logged out"}
