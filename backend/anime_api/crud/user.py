from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.user import User


class UserRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_username(self, username: str) -> User | None:
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.username == username))
            return result.scalar_one_or_none()

    async def create(self, username: str, password_hash: str, authorities: str) -> User:
        async with self._session_factory() as session:
            user = User(
                username=username,
                password_hash=password_hash,
                authorities=authorities,
            )
            session.add(user)
            await session.commit()
            return user
