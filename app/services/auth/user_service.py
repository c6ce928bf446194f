import logging
from typing import Optional, List, Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.core.exceptions import NotFoundError
from app.models.auth.user import User

logger = logging.getLogger(__name__)

class UserService:
    """User directory used for permission checks and notification addressing"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user(self, user_id: int) -> Optional[User]:
        """Get user by ID"""
        result = await self.session.execute(
            select(User).where(
                User.id == user_id,
                User.is_deleted == False
            )
        )
        return result.scalar_one_or_none()

    async def get_user_or_404(self, user_id: int) -> User:
        user = await self.get_user(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        result = await self.session.execute(
            select(User).where(
                User.email == email,
                User.is_deleted == False
            )
        )
        return result.scalar_one_or_none()

    async def get_users_by_ids(self, user_ids: Iterable[int], active_only: bool = False) -> List[User]:
        """Get users for the given IDs, in the order the IDs were given"""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []

        query = select(User).where(User.id.in_(ids), User.is_deleted == False)
        if active_only:
            query = query.where(User.is_active == True)

        result = await self.session.execute(query)
        by_id = {user.id: user for user in result.scalars().all()}
        return [by_id[user_id] for user_id in ids if user_id in by_id]
