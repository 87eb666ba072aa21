"""
Institution profile endpoints.
"""
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_admin, get_institution_context, require_institution_roles
from app.domain.schemas.auth import PROFILE_EDITORS, AdminContext, InstitutionContext, InstitutionRole
from app.domain.schemas.common import DataResponse
from app.domain.schemas.institution import InstitutionCreate, InstitutionRead, InstitutionUpdate
from app.infrastructure.database.base import get_db
from app.services.institution import InstitutionService

router = APIRouter()


@router.get("/me", response_model=DataResponse[InstitutionRead])
async def get_my_institution(
    context: InstitutionContext = Depends(get_institution_context),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """The caller's institution; 404 before approval."""
    return {"data": await InstitutionService(db).get_own(context)}


@router.patch("/me", response_model=DataResponse[InstitutionRead])
async def update_my_institution(
    payload: InstitutionUpdate,
    context: InstitutionContext = Depends(require_institution_roles(*PROFILE_EDITORS)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Edit the profile; publishing is done by setting status to published."""
    return {"data": await InstitutionService(db).update_own(context, payload)}


@router.post("/me/archive", response_model=DataResponse[InstitutionRead])
async def archive_my_institution(
    context: InstitutionContext = Depends(require_institution_roles(InstitutionRole.OWNER.value)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Hide the institution from public listings."""
    return {"data": await InstitutionService(db).archive_own(context)}


@router.get("/{institution_id}", response_model=DataResponse[InstitutionRead])
async def get_institution(
    institution_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Public profile of a published institution."""
    return {"data": await InstitutionService(db).get_public(institution_id)}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=DataResponse[InstitutionRead])
async def create_institution(
    payload: InstitutionCreate,
    admin: AdminContext = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Create an institution directly, without an application."""
    return {"data": await InstitutionService(db).create(payload, admin.email)}
