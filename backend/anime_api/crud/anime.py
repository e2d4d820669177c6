"""
SQL store adapter for anime records.

Each call opens its own session and commits before returning, so every
operation is atomic from the caller's point of view. Rows never leave this
module: callers receive immutable ``Anime`` values.
"""
from collections.abc import Sequence

from sqlalchemy import delete, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..domain.anime import Anime
from ..models.anime import AnimeRow


def _to_domain(row: AnimeRow) -> Anime:
    return Anime(id=row.id, name=row.name)


class AnimeRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_all(self) -> list[Anime]:
        async with self._session_factory() as session:
            result = await session.execute(select(AnimeRow).order_by(AnimeRow.id))
            return [_to_domain(row) for row in result.scalars().all()]

    async def find_by_id(self, anime_id: int) -> Anime | None:
        async with self._session_factory() as session:
            row = await session.get(AnimeRow, anime_id)
            return _to_domain(row) if row is not None else None

    async def save(self, anime: Anime) -> Anime:
        async with self._session_factory() as session:
            row = await self._upsert(session, anime)
            await session.commit()
            return _to_domain(row)

    async def save_many(self, animes: Sequence[Anime]) -> list[Anime]:
        async with self._session_factory() as session:
            rows = [await self._upsert(session, anime) for anime in animes]
            await session.commit()
            return [_to_domain(row) for row in rows]

    async def delete(self, anime_id: int) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(AnimeRow).where(AnimeRow.id == anime_id))
            await session.commit()

    async def ping(self) -> None:
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))

    @staticmethod
    async def _upsert(session: AsyncSession, anime: Anime) -> AnimeRow:
        if anime.id is None:
            row = AnimeRow(name=anime.name)
            session.add(row)
        else:
            row = await session.merge(AnimeRow(id=anime.id, name=anime.name))
        await session.flush()
        return row
