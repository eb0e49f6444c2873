"""Repository for User entity."""

from sqlmodel import select

from src.cars.models import User
from src.cars.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    async def get_by_identity_key(self, identity_key: str) -> User | None:
        result = await self.session.execute(select(User).where(User.identity_key == identity_key))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get the earliest registered user with this email."""
        result = await self.session.execute(
            select(User).where(User.email == email).order_by(User.created_at).limit(1)
        )
        return result.scalar_one_or_none()
