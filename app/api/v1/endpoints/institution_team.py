"""
Institution team endpoints.
"""
from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_institution_context, get_session_cache, require_institution_roles
from app.domain.schemas.auth import TEAM_MANAGERS, InstitutionContext
from app.domain.schemas.common import DataResponse
from app.domain.schemas.institution import TeamMemberCreate, TeamMemberRead, TeamMemberUpdate
from app.infrastructure.database.base import get_db
from app.services.institution_team import InstitutionTeamService

router = APIRouter()


@router.get("", response_model=DataResponse[List[TeamMemberRead]])
async def list_members(
    context: InstitutionContext = Depends(get_institution_context),
    db: AsyncSession = Depends(get_db),
    session_cache=Depends(get_session_cache),
) -> Any:
    members = await InstitutionTeamService(db, session_cache).list_members(context)
    return {"data": [TeamMemberRead.from_member(m) for m in members]}


@router.post("", status_code=status.HTTP_201_CREATED, response_model=DataResponse[TeamMemberRead])
async def add_member(
    payload: TeamMemberCreate,
    context: InstitutionContext = Depends(require_institution_roles(*TEAM_MANAGERS)),
    db: AsyncSession = Depends(get_db),
    session_cache=Depends(get_session_cache),
) -> Any:
    """Invite a user to the team; they need approval before full access."""
    member = await InstitutionTeamService(db, session_cache).add_member(context, payload)
    return {"data": TeamMemberRead.from_member(member)}


@router.get("/{member_id}", response_model=DataResponse[TeamMemberRead])
async def get_member(
    member_id: UUID,
    context: InstitutionContext = Depends(get_institution_context),
    db: AsyncSession = Depends(get_db),
    session_cache=Depends(get_session_cache),
) -> Any:
    member = await InstitutionTeamService(db, session_cache).get_member(context, member_id)
    return {"data": TeamMemberRead.from_member(member)}


@router.put("/{member_id}", response_model=DataResponse[TeamMemberRead])
async def update_member(
    member_id: UUID,
    payload: TeamMemberUpdate,
    context: InstitutionContext = Depends(require_institution_roles(*TEAM_MANAGERS)),
    db: AsyncSession = Depends(get_db),
    session_cache=Depends(get_session_cache),
) -> Any:
    member = await InstitutionTeamService(db, session_cache).update_member(context, member_id, payload)
    return {"data": TeamMemberRead.from_member(member)}


@router.post("/{member_id}/approve", response_model=DataResponse[TeamMemberRead])
async def approve_member(
    member_id: UUID,
    context: InstitutionContext = Depends(get_institution_context),
    db: AsyncSession = Depends(get_db),
    session_cache=Depends(get_session_cache),
) -> Any:
    member = await InstitutionTeamService(db, session_cache).approve_member(context, member_id)
    return {"data": TeamMemberRead.from_member(member)}


@router.delete("/{member_id}", response_model=DataResponse[TeamMemberRead])
async def remove_member(
    member_id: UUID,
    context: InstitutionContext = Depends(require_institution_roles(*TEAM_MANAGERS)),
    db: AsyncSession = Depends(get_db),
    session_cache=Depends(get_session_cache),
) -> Any:
    """Soft-remove a member. The owner cannot be removed."""
    member = await InstitutionTeamService(db, session_cache).deactivate_member(context, member_id)
    return {"data": TeamMemberRead.from_member(member)}
