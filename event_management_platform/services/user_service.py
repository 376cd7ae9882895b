"""
User service for handling user-related operations.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User


class UserService:
    """Service class for user lookups."""

    def __init__(self, db: AsyncSession):
        """
        Initialize the user service.

        Args:
            db: Database session
        """
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """
        Get a user by ID, reloading the row if it is already in the session.

        Args:
            user_id: The user's ID

        Returns:
            The user if found, None otherwise
        """
        result = await self.db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()
