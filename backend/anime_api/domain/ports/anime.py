from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from ..anime import Anime


class AnimeStore(Protocol):
    """Asynchronous keyed store of anime records.

    Every call may suspend and may fail with a store-specific exception.
    ``save`` and ``save_many`` return the records as stored, with ids assigned.
    """

    async def find_all(self) -> list[Anime]:
        ...

    async def find_by_id(self, anime_id: int) -> Anime | None:
        ...

    async def save(self, anime: Anime) -> Anime:
        ...

    async def save_many(self, animes: Sequence[Anime]) -> list[Anime]:
        ...

    async def delete(self, anime_id: int) -> None:
        ...

    async def ping(self) -> None:
        ...
