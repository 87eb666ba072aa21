"""
Institution OTP session repository.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import InstitutionSession
from app.repositories.base import BaseRepository


class InstitutionSessionRepository(BaseRepository[InstitutionSession]):
    """Institution OTP session repository."""

    def __init__(self, db: AsyncSession):
        super().__init__(InstitutionSession, db)

    async def mark_verified(self, session: InstitutionSession) -> InstitutionSession:
        session.verified = True
        return await self._save(session, commit=True)
