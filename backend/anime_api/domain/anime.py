from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Anime:
    """Anime record as exchanged with the store.

    ``id`` is ``None`` until the store assigns one.
    """

    name: str
    id: int | None = None

    def with_id(self, anime_id: int) -> Anime:
        return replace(self, id=anime_id)


def has_valid_name(anime: Anime) -> bool:
    return bool(anime.name)
