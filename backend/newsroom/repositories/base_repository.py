"""Base repository with common CRUD operations."""
import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.core.exceptions import PersistenceError
from newsroom.db.base import Base

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic base repository for common database operations."""

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """Get model by primary key ID.

        Args:
            id: Primary key value

        Returns:
            Model instance or None if not found
        """
        result = await self.session.execute(
            select(self.model).filter(self.model.id == id)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> List[ModelType]:
        """Get all models.

        Returns:
            List of all model instances
        """
        result = await self.session.execute(select(self.model))
        return list(result.scalars().all())

    async def create(self, obj: ModelType) -> ModelType:
        """Create new model instance.

        Args:
            obj: Model instance to create

        Returns:
            Created model instance with ID populated
        """
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    def _persistence_error(self, operation: str, exc: Exception, **context: Any) -> PersistenceError:
        """Log a store failure with its inputs and wrap it for the caller."""
        details = ", ".join(f"{key}={value}" for key, value in context.items())
        logger.error(
            f"{self.model.__name__} store operation '{operation}' failed ({details}): {exc}",
            exc_info=True,
        )
        return PersistenceError(f"Failed to {operation.replace('_', ' ')}", operation)
