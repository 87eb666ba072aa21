"""
Base repository implementation.
"""
from typing import Any, Dict, Generic, Optional, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Common persistence operations for one model.

    Writes take a keyword-only `commit` flag. With commit=False the change is
    only flushed, so a service can group several writes into one transaction
    and commit or roll back itself.
    """

    def __init__(
        self,
        model: Type[ModelType],
        db: AsyncSession,
    ):
        self.model = model
        self.db = db

    async def _save(self, db_obj: ModelType, commit: bool) -> ModelType:
        if commit:
            await self.db.commit()
            await self.db.refresh(db_obj)
        else:
            await self.db.flush()
        return db_obj

    async def create(
        self,
        data: Dict[str, Any],
        *,
        commit: bool = True,
    ) -> ModelType:
        db_obj = self.model(**data)
        self.db.add(db_obj)
        return await self._save(db_obj, commit)

    async def get(self, id: UUID) -> Optional[ModelType]:
        stmt = select(self.model).where(self.model.id == id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def update(
        self,
        id: UUID,
        data: Dict[str, Any],
        *,
        commit: bool = True,
    ) -> Optional[ModelType]:
        """
        Apply `data` to the record with `id`.

        Returns:
            The updated record, or None when it does not exist
        """
        db_obj = await self.get(id)
        if db_obj is None:
            return None

        for field, value in data.items():
            setattr(db_obj, field, value)
        return await self._save(db_obj, commit)
