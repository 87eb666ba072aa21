"""
Institution member repository.
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.infrastructure.database.models import InstitutionMember
from app.repositories.base import BaseRepository


class InstitutionMemberRepository(BaseRepository[InstitutionMember]):
    """Institution member repository."""

    def __init__(self, db: AsyncSession):
        super().__init__(InstitutionMember, db)

    async def get_with_user(self, id: UUID) -> Optional[InstitutionMember]:
        stmt = (
            select(InstitutionMember)
            .options(selectinload(InstitutionMember.user))
            .where(InstitutionMember.id == id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_membership(
        self,
        institution_id: UUID,
        user_id: UUID,
    ) -> Optional[InstitutionMember]:
        """Membership row for a user in an institution, active or not."""
        stmt = (
            select(InstitutionMember)
            .options(selectinload(InstitutionMember.user))
            .where(
                InstitutionMember.institution_id == institution_id,
                InstitutionMember.user_id == user_id,
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_membership(
        self,
        institution_id: UUID,
        user_id: UUID,
    ) -> Optional[InstitutionMember]:
        """Active membership row for a user, if any."""
        stmt = select(InstitutionMember).where(
            InstitutionMember.institution_id == institution_id,
            InstitutionMember.user_id == user_id,
            InstitutionMember.is_active.is_(True),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_institution(
        self,
        institution_id: UUID,
        *,
        include_inactive: bool = False,
    ) -> List[InstitutionMember]:
        stmt = (
            select(InstitutionMember)
            .options(selectinload(InstitutionMember.user))
            .where(InstitutionMember.institution_id == institution_id)
            .order_by(InstitutionMember.created_at.asc())
        )
        if not include_inactive:
            stmt = stmt.where(InstitutionMember.is_active.is_(True))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
