"""Profile repository for role lookups."""
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.db.models.profile import Profile
from newsroom.repositories.base_repository import BaseRepository


class ProfileRepository(BaseRepository[Profile]):
    """Repository for Profile model operations."""

    def __init__(self, session: AsyncSession):
        """Initialize profile repository.

        Args:
            session: Async database session
        """
        super().__init__(Profile, session)

    async def get_role(self, profile_id: UUID) -> Optional[str]:
        """Get the role stored on a profile.

        Args:
            profile_id: Profile UUID (token subject)

        Returns:
            Role name or None if the profile does not exist
        """
        try:
            result = await self.session.execute(select(Profile.role).filter(Profile.id == profile_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise self._persistence_error("get_role", e, profile_id=profile_id)
