"""
Database configuration and base models.
"""
import re
from typing import Any, AsyncIterator, Dict

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, declared_attr

from app.core.config import settings


def _engine_options() -> Dict[str, Any]:
    """Pool options; SQLite drivers manage their own pool."""
    options: Dict[str, Any] = {"echo": settings.DEBUG}
    if not settings.uses_sqlite:
        options.update(
            pool_pre_ping=True,
            pool_size=20,
            max_overflow=40,
            pool_recycle=3600,
        )
    return options


# Create async engine
engine = create_async_engine(str(settings.DATABASE_URL), **_engine_options())

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Custom naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class Base(DeclarativeBase):
    """
    Base class for all database models.
    """
    metadata = metadata

    # Server-generated timestamps are fetched on flush instead of lazily
    __mapper_args__ = {"eager_defaults": True}

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Generate snake_case __tablename__ from the class name."""
        return _CAMEL_BOUNDARY.sub("_", cls.__name__).lower()


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency to get database session.

    Yields:
        AsyncSession: Database session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
