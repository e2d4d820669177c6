"""
Redis store adapter for anime records.

Records live in a single hash (``anime:records``) keyed by id, with the
record name as value. Ids come from ``INCR`` on a sequence key, so they are
positive, increasing and never reused.
"""
import logging
from collections.abc import Sequence

from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from ..domain.anime import Anime

logger = logging.getLogger("anime_api.redis")

RECORDS_KEY = "anime:records"
SEQUENCE_KEY = "anime:id_seq"


def get_async_redis_client(redis_url: str) -> AsyncRedis:
    """Create an async Redis client for the given URL."""
    if not redis_url:
        raise ValueError("REDIS_URL must be set for the redis store backend")
    return AsyncRedis.from_url(redis_url, decode_responses=True)


class RedisAnimeStore:
    def __init__(self, redis_client: AsyncRedis, *, namespace: str = "") -> None:
        self._redis = redis_client
        self._records_key = f"{namespace}{RECORDS_KEY}"
        self._sequence_key = f"{namespace}{SEQUENCE_KEY}"

    async def find_all(self) -> list[Anime]:
        records = await self._call("HGETALL", self._redis.hgetall(self._records_key))
        return [
            Anime(id=int(anime_id), name=name)
            for anime_id, name in sorted(records.items(), key=lambda item: int(item[0]))
        ]

    async def find_by_id(self, anime_id: int) -> Anime | None:
        name = await self._call("HGET", self._redis.hget(self._records_key, str(anime_id)))
        if name is None:
            return None
        return Anime(id=anime_id, name=name)

    async def save(self, anime: Anime) -> Anime:
        stored = await self._assign_id(anime)
        await self._call(
            "HSET", self._redis.hset(self._records_key, str(stored.id), stored.name)
        )
        return stored

    async def save_many(self, animes: Sequence[Anime]) -> list[Anime]:
        stored = [await self._assign_id(anime) for anime in animes]
        if stored:
            # One HSET for the whole batch: either every record lands or none does.
            mapping = {str(anime.id): anime.name for anime in stored}
            await self._call("HSET", self._redis.hset(self._records_key, mapping=mapping))
        return stored

    async def delete(self, anime_id: int) -> None:
        await self._call("HDEL", self._redis.hdel(self._records_key, str(anime_id)))

    async def ping(self) -> None:
        await self._call("PING", self._redis.ping())

    async def close(self) -> None:
        await self._redis.aclose()

    async def _assign_id(self, anime: Anime) -> Anime:
        if anime.id is not None:
            return anime
        new_id = await self._call("INCR", self._redis.incr(self._sequence_key))
        return anime.with_id(int(new_id))

    async def _call(self, operation: str, awaitable):
        try:
            return await awaitable
        except RedisError as exc:
            logger.error(
                "Redis operation failed operation=%s key=%s error=%s",
                operation,
                self._records_key,
                exc,
            )
            raise
