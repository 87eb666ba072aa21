"""
Institution repository.
"""
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import Institution
from app.repositories.base import BaseRepository


class InstitutionRepository(BaseRepository[Institution]):
    """Institution repository."""

    def __init__(self, db: AsyncSession):
        super().__init__(Institution, db)

    async def get_by_email(self, email: str) -> Optional[Institution]:
        stmt = select(Institution).where(func.lower(Institution.email) == email.lower())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def slug_exists(self, slug: str) -> bool:
        stmt = select(func.count()).select_from(Institution).where(Institution.slug == slug)
        result = await self.db.execute(stmt)
        return result.scalar_one() > 0

    async def increment_views(self, institution: Institution) -> Institution:
        """Bump the public profile view counter."""
        stmt = (
            update(Institution)
            .where(Institution.id == institution.id)
            .values(profile_views=Institution.profile_views + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(stmt)
        await self.db.commit()
        await self.db.refresh(institution)
        return institution
