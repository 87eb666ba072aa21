"""
User repository.
"""
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import User
from app.repositories.base import BaseRepository

INSTITUTION_CONTEXT = "institution"


class UserRepository(BaseRepository[User]):
    """User repository."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_by_email(
        self,
        email: str,
    ) -> Optional[User]:
        """
        Get user by email, case-insensitively.

        Args:
            email: User email

        Returns:
            User if found
        """
        stmt = select(User).where(func.lower(User.email) == email.lower())
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def ensure_institution_user(
        self,
        email: str,
        name: str,
        *,
        email_verified: bool = False,
        commit: bool = True,
    ) -> User:
        """
        Return the user for `email`, creating it when absent, with the
        institution context unlocked.
        """
        email = email.lower()
        user = await self.get_by_email(email)
        if user is None:
            return await self.create(
                {
                    "email": email,
                    "name": name,
                    "account_type": INSTITUTION_CONTEXT,
                    "active_context": INSTITUTION_CONTEXT,
                    "unlocked_contexts": ["explorer", INSTITUTION_CONTEXT],
                    "email_verified": email_verified,
                },
                commit=commit,
            )

        contexts = list(user.unlocked_contexts or [])
        if INSTITUTION_CONTEXT not in contexts:
            user.unlocked_contexts = contexts + [INSTITUTION_CONTEXT]
        if email_verified and not user.email_verified:
            user.email_verified = True
        return await self._save(user, commit)
