"""
Institution application repository.
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import InstitutionApplication
from app.repositories.base import BaseRepository


class InstitutionApplicationRepository(BaseRepository[InstitutionApplication]):
    """Institution application repository."""

    def __init__(self, db: AsyncSession):
        super().__init__(InstitutionApplication, db)

    async def get_by_email(self, email: str) -> Optional[InstitutionApplication]:
        """Most recent application for an email."""
        stmt = (
            select(InstitutionApplication)
            .where(func.lower(InstitutionApplication.email) == email.lower())
            .order_by(InstitutionApplication.created_at.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_token(self, token: str) -> Optional[InstitutionApplication]:
        """
        Get application by magic-link verification token.

        Args:
            token: Verification token

        Returns:
            Application if found
        """
        stmt = select(InstitutionApplication).where(InstitutionApplication.verification_token == token)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self) -> List[InstitutionApplication]:
        """All applications, oldest first."""
        stmt = select(InstitutionApplication).order_by(
            InstitutionApplication.created_at.asc(),
            InstitutionApplication.id.asc(),
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def decide(
        self,
        id: UUID,
        status: str,
        *,
        remark: Optional[str] = None,
        institution_id: Optional[UUID] = None,
    ) -> bool:
        """
        Move a pending application to a terminal status.

        The update only matches while the row is still pending, so two
        concurrent decisions cannot both succeed. Nothing is committed here.

        Returns:
            True if this call performed the transition
        """
        values = {"status": status, "remark": remark, "updated_at": func.now()}
        if institution_id is not None:
            values["institution_id"] = institution_id

        stmt = (
            update(InstitutionApplication)
            .where(
                InstitutionApplication.id == id,
                InstitutionApplication.status == "pending",
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1
