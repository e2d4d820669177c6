"""
Service layer for the anime resource.

This service owns the resource semantics on top of a plain keyed store:
- A missing record is an error (NotFoundError), never an empty result
- Update and delete look the record up first so absence is reported
- Batch saves are all-or-nothing, with compensating deletes when the
  store hands back a record that fails validation
"""
import logging
import uuid
from collections.abc import Sequence

from ..background import Job, JobRunner
from ..domain.anime import Anime, has_valid_name
from ..domain.ports.anime import AnimeStore
from ..errors import NotFoundError, ValidationError

logger = logging.getLogger("anime_api.service")

EMPTY_NAME_MESSAGE = "The name of this anime cannot be empty"
INVALID_BATCH_MESSAGE = "Invalid name: every anime in the batch must have a name"


class AnimeService:
    """Service for anime CRUD operations."""

    def __init__(self, store: AnimeStore, job_runner: JobRunner):
        self.store = store
        self.job_runner = job_runner

    async def find_all(self) -> list[Anime]:
        return await self.store.find_all()

    async def find_by_id(self, anime_id: int) -> Anime:
        """
        Get a single anime.

        Raises:
            NotFoundError: If the store has no record with this id
        """
        anime = await self.store.find_by_id(anime_id)
        if anime is None:
            raise NotFoundError(f"Anime {anime_id} not found")
        return anime

    async def save(self, candidate: Anime) -> Anime:
        if not has_valid_name(candidate):
            raise ValidationError(EMPTY_NAME_MESSAGE)
        return await self.store.save(candidate)

    async def save_all(self, candidates: Sequence[Anime]) -> list[Anime]:
        """
        Save a batch of anime as one unit.

        Every candidate is validated before the store is called. The records
        returned by the store are validated again; if any of them fails, every
        record saved by this call is deleted in the background and the whole
        call fails.

        Raises:
            ValidationError: If any candidate or stored record has an empty name
        """
        if not all(has_valid_name(candidate) for candidate in candidates):
            raise ValidationError(INVALID_BATCH_MESSAGE)

        saved = await self.store.save_many(list(candidates))

        if not all(has_valid_name(anime) for anime in saved):
            await self._compensate(saved)
            raise ValidationError(INVALID_BATCH_MESSAGE)
        return saved

    async def update(self, anime_id: int, candidate: Anime) -> None:
        await self.find_by_id(anime_id)
        if not has_valid_name(candidate):
            raise ValidationError(EMPTY_NAME_MESSAGE)
        await self.store.save(candidate.with_id(anime_id))

    async def delete(self, anime_id: int) -> None:
        await self.find_by_id(anime_id)
        await self.store.delete(anime_id)

    async def _compensate(self, saved: Sequence[Anime]) -> None:
        saved_ids = [anime.id for anime in saved if anime.id is not None]
        if not saved_ids:
            return

        store = self.store

        async def handler() -> None:
            for anime_id in saved_ids:
                try:
                    await store.delete(anime_id)
                except Exception:  # noqa: BLE001
                    # Compensation is best effort; the batch already failed.
                    logger.error(
                        "[COMPENSATION] delete_failed anime_id=%s",
                        anime_id,
                        exc_info=True,
                    )

        job_key = f"anime:batch-compensation:{uuid.uuid4()}"
        logger.warning(
            "[COMPENSATION] scheduled job_key=%s anime_ids=%s",
            job_key,
            saved_ids,
        )
        await self.job_runner.enqueue(Job(key=job_key, handler=handler, max_attempts=1))
