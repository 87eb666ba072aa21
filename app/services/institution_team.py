"""
Institution team management.

Every membership change drops cached token resolutions for the institution so
a revoked or changed role takes effect on the next request.
"""
from datetime import datetime, timezone
from typing import List
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.domain.schemas.auth import TEAM_MANAGERS, InstitutionContext, InstitutionRole
from app.domain.schemas.institution import TeamMemberCreate, TeamMemberUpdate
from app.infrastructure.database.models import InstitutionMember
from app.repositories.institution_member import InstitutionMemberRepository
from app.repositories.user import UserRepository
from app.services.activity import ActivityService
from app.services.auth.authorization.roles import require_role, verify_institution_access

logger = structlog.get_logger(__name__)


class InstitutionTeamService:
    """Membership operations scoped to the caller's institution."""

    def __init__(self, db: AsyncSession, session_cache):
        self.db = db
        self.session_cache = session_cache
        self.member_repo = InstitutionMemberRepository(db)
        self.user_repo = UserRepository(db)
        self.activity = ActivityService(db)

    def _institution_id(self, context: InstitutionContext) -> UUID:
        if context.institution_id is None:
            raise ValidationError("Institution is not approved yet")
        return context.institution_id

    async def list_members(self, context: InstitutionContext) -> List[InstitutionMember]:
        return await self.member_repo.list_for_institution(self._institution_id(context))

    async def get_member(self, context: InstitutionContext, member_id: UUID) -> InstitutionMember:
        member = await self.member_repo.get_with_user(member_id)
        if member is None:
            raise NotFoundError("Team member not found")
        verify_institution_access(context, member.institution_id)
        return member

    async def add_member(self, context: InstitutionContext, data: TeamMemberCreate) -> InstitutionMember:
        """
        Invite a user, creating their account when needed.

        A previously removed member is reactivated with the new role.
        """
        require_role(context, TEAM_MANAGERS)
        institution_id = self._institution_id(context)

        user = await self.user_repo.ensure_institution_user(data.email, data.name, commit=False)
        existing = await self.member_repo.get_membership(institution_id, user.id)
        if existing is not None and existing.is_active:
            await self.db.rollback()
            raise ValidationError("This user is already a team member", field="email")

        if existing is not None:
            existing.role = data.role
            existing.title = data.title
            existing.is_active = True
            existing.admin_approved = False
            existing.manager_approved = False
            existing.invited_by = context.user_id
            existing.invited_at = datetime.now(timezone.utc)
            member_id = existing.id
        else:
            member = await self.member_repo.create(
                {
                    "institution_id": institution_id,
                    "user_id": user.id,
                    "role": data.role,
                    "title": data.title,
                    "invited_by": context.user_id,
                },
                commit=False,
            )
            member_id = member.id

        await self.db.commit()
        await self.session_cache.invalidate_institution(institution_id)

        logger.info(
            "team_member_added",
            institution_id=str(institution_id),
            member_id=str(member_id),
            role=data.role,
        )
        await self.activity.send_notification(
            user.id,
            "team_invite",
            "You were added to an institution team",
            f"You have been invited as {data.role}.",
            link=settings.INSTITUTION_DASHBOARD_PATH,
        )
        await self.activity.log_activity(
            "team_member_added",
            "institution_member",
            member_id,
            user_id=context.user_id,
            actor_email=context.email,
            details={"email": user.email, "role": data.role},
        )
        return await self._reload(member_id)

    async def update_member(
        self,
        context: InstitutionContext,
        member_id: UUID,
        data: TeamMemberUpdate,
    ) -> InstitutionMember:
        require_role(context, TEAM_MANAGERS)
        member = await self.get_member(context, member_id)
        if member.role == InstitutionRole.OWNER.value and data.role is not None:
            raise ValidationError("The owner's role cannot be changed", field="role")

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(member, field, value)
        await self.db.commit()
        await self.session_cache.invalidate_institution(member.institution_id)

        logger.info("team_member_updated", member_id=str(member_id), fields=sorted(changes))
        await self.activity.log_activity(
            "team_member_updated",
            "institution_member",
            member_id,
            user_id=context.user_id,
            actor_email=context.email,
            details=changes,
        )
        return await self._reload(member_id)

    async def approve_member(self, context: InstitutionContext, member_id: UUID) -> InstitutionMember:
        """Owners and admins grant admin approval; managers grant manager approval."""
        require_role(
            context,
            (InstitutionRole.OWNER.value, InstitutionRole.ADMIN.value, InstitutionRole.MANAGER.value),
        )
        member = await self.get_member(context, member_id)
        if context.role == InstitutionRole.MANAGER.value:
            member.manager_approved = True
        else:
            member.admin_approved = True
        if member.accepted_at is None:
            member.accepted_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.session_cache.invalidate_institution(member.institution_id)

        logger.info("team_member_approved", member_id=str(member_id), approver_role=context.role)
        await self.activity.log_activity(
            "team_member_approved",
            "institution_member",
            member_id,
            user_id=context.user_id,
            actor_email=context.email,
            details={"approver_role": context.role},
        )
        return await self._reload(member_id)

    async def deactivate_member(self, context: InstitutionContext, member_id: UUID) -> InstitutionMember:
        """Soft-remove a member; the owner cannot be removed."""
        require_role(context, TEAM_MANAGERS)
        member = await self.get_member(context, member_id)
        if member.role == InstitutionRole.OWNER.value:
            raise ValidationError("The owner cannot be removed")

        member.is_active = False
        await self.db.commit()
        await self.session_cache.invalidate_institution(member.institution_id)

        logger.info("team_member_removed", member_id=str(member_id))
        await self.activity.log_activity(
            "team_member_removed",
            "institution_member",
            member_id,
            user_id=context.user_id,
            actor_email=context.email,
        )
        return await self._reload(member_id)

    async def _reload(self, member_id: UUID) -> InstitutionMember:
        return await self.member_repo.get_with_user(member_id)
