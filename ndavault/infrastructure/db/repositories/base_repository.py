"""
Base Repository for NDAVault

Generic async repository implementing CRUD operations over one SQLModel
table. Concrete repositories add their own queries and domain mapping.
"""

from typing import TypeVar, Generic, Optional, Type
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from ndavault.infrastructure.exceptions import ValidationError


ModelType = TypeVar("ModelType", bound=SQLModel)


def as_uuid(value) -> UUID:
    """Coerce an id from the API layer to a UUID, rejecting malformed ones."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as e:
        raise ValidationError(
            f"Invalid id: {value}", details={"id": str(value)}, original_error=e
        )


class BaseRepository(Generic[ModelType]):
    """
    Generic async repository with CRUD operations.

    Args:
        model: The SQLModel class to operate on
        session: Async database session
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the current session."""
        return self._session

    async def get_by_id(self, id: UUID) -> Optional[ModelType]:
        """Get a single record by its primary key."""
        return await self._session.get(self._model, id)

    async def add(self, db_obj: ModelType) -> ModelType:
        """Insert a new record and return it refreshed."""
        self._session.add(db_obj)
        await self._session.flush()
        await self._session.refresh(db_obj)
        return db_obj

    async def save(self, db_obj: ModelType) -> ModelType:
        """Flush changes made to an attached record."""
        self._session.add(db_obj)
        await self._session.flush()
        await self._session.refresh(db_obj)
        return db_obj

    async def remove(self, db_obj: ModelType) -> None:
        await self._session.delete(db_obj)
        await self._session.flush()

    async def count(self, *criteria) -> int:
        """Count records, optionally filtered by where-clause criteria."""
        stmt = select(func.count()).select_from(self._model)
        if criteria:
            stmt = stmt.where(*criteria)
        result = await self._session.execute(stmt)
        return result.scalar_one()
