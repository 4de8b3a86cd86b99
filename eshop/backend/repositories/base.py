"""
Base Repository.

Common CRUD operations shared by every repository.
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from eshop.backend.core.exceptions import NotFoundError
from eshop.backend.core.logging import get_logger
from eshop.backend.models.base import Base

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with common CRUD operations.

    Subclasses set the model class and, optionally, the not-found message:

        class UserRepository(BaseRepository[User]):
            model = User
            not_found_message = "Používateľ nenájdený"
    """

    model: type[ModelType]
    not_found_message: str | None = None

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _not_found(self) -> NotFoundError:
        return NotFoundError(self.not_found_message or f"{self.model.__name__} not found")

    async def get_by_id(self, id: str | UUID) -> ModelType:
        """
        Get a single record by ID.

        Raises:
            NotFoundError: If record not found
        """
        instance = await self.get_by_id_or_none(id)
        if instance is None:
            raise self._not_found()
        return instance

    async def get_by_id_or_none(self, id: str | UUID) -> ModelType | None:
        """Get a single record by ID, returning None if not found."""
        result = await self.session.execute(
            select(self.model).where(self.model.id == str(id))
        )
        return result.scalar_one_or_none()

    async def get_all(self, limit: int = 50, offset: int = 0) -> list[ModelType]:
        """Get all records with pagination."""
        result = await self.session.execute(
            select(self.model).limit(limit).offset(offset)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        """Total number of records."""
        result = await self.session.execute(select(func.count()).select_from(self.model))
        return result.scalar_one()

    async def create(self, **kwargs: Any) -> ModelType:
        """Create a new record."""
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, id: str | UUID, **kwargs: Any) -> ModelType:
        """
        Update an existing record.

        Raises:
            NotFoundError: If record not found
        """
        instance = await self.get_by_id(id)
        return await self.update_instance(instance, **kwargs)

    async def update_instance(self, instance: ModelType, **kwargs: Any) -> ModelType:
        """Apply attribute changes to an already loaded record."""
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)

        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, id: str | UUID) -> None:
        """
        Delete a record by ID.

        Raises:
            NotFoundError: If record not found
        """
        instance = await self.get_by_id(id)
        await self.session.delete(instance)
        await self.session.flush()

    async def exists(self, id: str | UUID) -> bool:
        """Check if a record exists by ID."""
        result = await self.session.execute(
            select(self.model.id).where(self.model.id == str(id))
        )
        return result.scalar_one_or_none() is not None
