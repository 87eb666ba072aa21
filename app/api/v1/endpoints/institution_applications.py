"""
Institution application endpoints.
"""
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import get_admin, get_email_service, get_institution_context, get_session_cache
from app.core.exceptions import ForbiddenError
from app.domain.schemas.auth import AdminContext, InstitutionContext
from app.domain.schemas.common import DataResponse
from app.domain.schemas.institution import (
    ApplicationDecision,
    DecidedApplication,
    InstitutionApplicationCreate,
    InstitutionApplicationRead,
    InstitutionApplicationUpdate,
    SubmittedApplication,
    VerifiedApplication,
    VerifyRequest,
)
from app.infrastructure.database.base import get_db
from app.services.auth.email_service import EmailService
from app.services.institution_application import InstitutionApplicationService
from app.services.security.rate_limiter import RateLimit

router = APIRouter()


def safe_next_path(next_path: Optional[str]) -> str:
    """Only same-site relative paths are honoured as redirect targets."""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//") or "\\" in next_path:
        return settings.INSTITUTION_DASHBOARD_PATH
    return next_path


def _ensure_own_application(context: InstitutionContext, application_id: UUID) -> None:
    if context.application_id != application_id:
        raise ForbiddenError("Access denied to this application")


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=DataResponse[SubmittedApplication],
    dependencies=[Depends(RateLimit("institution-applications:submit"))],
)
async def submit_application(
    payload: InstitutionApplicationCreate,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> Any:
    """
    Submit a new institution application.

    - Requires name and email
    - Emails a magic link to confirm the address
    """
    service = InstitutionApplicationService(db, email_service=email_service)
    application, magic_link = await service.submit(payload)
    return {"data": {"application": application, "magic_link": magic_link}}


@router.get("", response_model=DataResponse[List[InstitutionApplicationRead]])
async def list_applications(
    admin: AdminContext = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """List every application, oldest first."""
    service = InstitutionApplicationService(db)
    return {"data": await service.list_all()}


@router.get(
    "/verify",
    response_model=DataResponse[VerifiedApplication],
    dependencies=[Depends(RateLimit("institution-applications:verify"))],
)
async def verify_application_link(
    request: Request,
    token: Optional[str] = Query(None),
    next_path: Optional[str] = Query(None, alias="next"),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Magic-link target.

    Browsers (Accept: text/html) are redirected to `next`; API clients get JSON.
    """
    service = InstitutionApplicationService(db)
    application, user_id = await service.verify(token)

    if "text/html" in request.headers.get("accept", ""):
        target = f"{settings.APP_BASE_URL}{safe_next_path(next_path)}"
        return RedirectResponse(url=target, status_code=status.HTTP_303_SEE_OTHER)

    return {"data": {"application": application, "applicant_user_id": user_id}}


@router.post(
    "/verify",
    response_model=DataResponse[VerifiedApplication],
    dependencies=[Depends(RateLimit("institution-applications:verify"))],
)
async def verify_application(
    payload: VerifyRequest,
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Verify an application from a token posted by the client."""
    service = InstitutionApplicationService(db)
    application, user_id = await service.verify(payload.token)
    return {"data": {"application": application, "applicant_user_id": user_id}}


@router.put("/{application_id}", response_model=DataResponse[InstitutionApplicationRead])
async def update_application(
    application_id: UUID,
    payload: InstitutionApplicationUpdate,
    context: InstitutionContext = Depends(get_institution_context),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Save onboarding edits to the caller's own application."""
    _ensure_own_application(context, application_id)
    service = InstitutionApplicationService(db)
    application = await service.update_details(application_id, payload.model_dump(exclude_unset=True))
    return {"data": application}


@router.post("/{application_id}/submit", response_model=DataResponse[InstitutionApplicationRead])
async def submit_for_approval(
    application_id: UUID,
    payload: InstitutionApplicationUpdate,
    context: InstitutionContext = Depends(get_institution_context),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Send a completed, verified application to the admins."""
    _ensure_own_application(context, application_id)
    service = InstitutionApplicationService(db)
    application = await service.submit_for_approval(application_id, payload.model_dump(exclude_unset=True))
    return {"data": application}


@router.patch("/{application_id}", response_model=DataResponse[DecidedApplication])
async def decide_application(
    application_id: UUID,
    decision: ApplicationDecision,
    admin: AdminContext = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
    session_cache=Depends(get_session_cache),
) -> Any:
    """
    Approve or reject a pending application.

    - Approval requires a verified email and creates a draft institution
    - Decided applications cannot be decided again (409)
    """
    service = InstitutionApplicationService(db, session_cache=session_cache)
    application, institution_id = await service.update_status(
        application_id,
        decision.status,
        remark=decision.remark,
        admin_email=admin.email,
    )
    return {"data": {"application": application, "institution_id": institution_id}}
