from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assetgate.models.user import User
from assetgate.repos.base import BaseRepository
from assetgate.schemas import UserCreate, UserUpdate


class UserRepo(BaseRepository[User, UserCreate, UserUpdate]):
    def __init__(self, session: AsyncSession):
        """User repository for database operations"""
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> User | None:
        """
        Get a user by email

        Args:
            email (str): The normalized email of the user.

        Returns:
            User | None: The user object if found, else None.
        """
        query = select(self.model).where(self.model.email == email)
        result = await self.session.execute(query)

        return result.scalar_one_or_none()

    async def set_password(
        self,
        user_id: int,
        hashed_password: str,
        verified_at: datetime | None = None,
        auto_commit: bool = True,
    ) -> bool:
        """Store a new password hash; ``verified_at`` also marks the email as verified."""
        values: dict[str, object] = {"hashed_password": hashed_password}
        if verified_at is not None:
            values["email_verified_at"] = verified_at

        stmt = update(self.model).where(self.model.id == user_id).values(**values)
        result = await self.session.execute(stmt)
        if auto_commit:
            await self.session.commit()

        return result.rowcount > 0

    async def mark_email_verified(
        self, user_id: int, verified_at: datetime, auto_commit: bool = True
    ) -> bool:
        stmt = (
            update(self.model)
            .where(self.model.id == user_id, self.model.email_verified_at.is_(None))
            .values(email_verified_at=verified_at)
        )
        result = await self.session.execute(stmt)
        if auto_commit:
            await self.session.commit()

        return result.rowcount > 0
