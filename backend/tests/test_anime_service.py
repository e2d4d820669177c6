import asyncio

import pytest

from anime_api.background import JobRunner, JobStatus
from anime_api.domain.anime import Anime
from anime_api.errors import NotFoundError, ValidationError
from anime_api.services.anime_service import (
    EMPTY_NAME_MESSAGE,
    INVALID_BATCH_MESSAGE,
    AnimeService,
)

from tests.anime_helpers import (
    FakeAnimeStore,
    StoreFailure,
    create_anime_to_be_saved,
    create_valid_anime,
    create_valid_updated_anime,
)


@pytest.fixture
def service(store: FakeAnimeStore, job_runner) -> AnimeService:
    return AnimeService(store, job_runner)


@pytest.mark.anyio
async def test_find_all_returns_every_record(store: FakeAnimeStore, service: AnimeService) -> None:
    await store.save(create_anime_to_be_saved())

    animes = await service.find_all()

    assert animes == [create_valid_anime()]


@pytest.mark.anyio
async def test_find_all_returns_empty_list_for_empty_store(service: AnimeService) -> None:
    assert await service.find_all() == []


@pytest.mark.anyio
async def test_find_by_id_returns_record(store: FakeAnimeStore, service: AnimeService) -> None:
    await store.save(create_anime_to_be_saved())

    assert await service.find_by_id(1) == create_valid_anime()


@pytest.mark.anyio
@pytest.mark.parametrize("operation", ["find_by_id", "update", "delete"])
async def test_missing_id_raises_not_found(
    store: FakeAnimeStore, service: AnimeService, operation: str
) -> None:
    with pytest.raises(NotFoundError):
        if operation == "update":
            await service.update(99, create_valid_updated_anime())
        else:
            await getattr(service, operation)(99)

    assert "save" not in store.calls
    assert "delete" not in store.calls


@pytest.mark.anyio
async def test_save_returns_record_with_assigned_id(service: AnimeService) -> None:
    saved = await service.save(create_anime_to_be_saved())

    assert saved == create_valid_anime()


@pytest.mark.anyio
async def test_save_rejects_empty_name_without_calling_store(
    store: FakeAnimeStore, service: AnimeService
) -> None:
    with pytest.raises(ValidationError) as exc:
        await service.save(Anime(name=""))

    assert exc.value.message == EMPTY_NAME_MESSAGE
    assert store.calls == []


@pytest.mark.anyio
async def test_save_all_returns_every_saved_record(service: AnimeService) -> None:
    saved = await service.save_all([Anime(name="Dragon"), Anime(name="Naruto")])

    assert saved == [Anime(id=1, name="Dragon"), Anime(id=2, name="Naruto")]


@pytest.mark.anyio
async def test_save_all_rejects_invalid_candidate_before_store(
    store: FakeAnimeStore, service: AnimeService
) -> None:
    with pytest.raises(ValidationError) as exc:
        await service.save_all([Anime(name="Dragon"), Anime(name="")])

    assert exc.value.message == INVALID_BATCH_MESSAGE
    assert store.calls == []


@pytest.mark.anyio
async def test_save_all_compensates_when_stored_record_is_invalid(
    store: FakeAnimeStore, service: AnimeService, job_runner
) -> None:
    store.coerced_names[1] = ""

    with pytest.raises(ValidationError):
        await service.save_all([Anime(name="Dragon"), Anime(name="Naruto")])
    await asyncio.wait_for(job_runner.drain(), timeout=1)

    assert store.records == {}
    assert store.calls.count("delete") == 2
    assert await store.find_all() == []


@pytest.mark.anyio
async def test_compensation_delete_failure_is_logged_and_swallowed(
    store: FakeAnimeStore,
    service: AnimeService,
    job_runner,
    caplog: pytest.LogCaptureFixture,
) -> None:
    store.coerced_names[0] = ""
    store.failing_delete_ids.add(1)

    with caplog.at_level("ERROR", logger="anime_api.service"):
        with pytest.raises(ValidationError):
            await service.save_all([Anime(name="Dragon"), Anime(name="Naruto")])
        await asyncio.wait_for(job_runner.drain(), timeout=1)

    # The failing delete does not stop the rest of the cleanup.
    assert list(store.records) == [1]
    assert any("delete_failed anime_id=1" in record.getMessage() for record in caplog.records)
    job_statuses = {job_runner.status_for(key) for key in job_runner._statuses}
    assert job_statuses == {JobStatus.SUCCEEDED}


@pytest.mark.anyio
async def test_update_saves_record_under_path_id(
    store: FakeAnimeStore, service: AnimeService
) -> None:
    await store.save(create_anime_to_be_saved())

    await service.update(1, Anime(id=42, name="Dragon 2"))

    assert store.records == {1: create_valid_updated_anime()}


@pytest.mark.anyio
async def test_update_rejects_empty_name_for_existing_record(
    store: FakeAnimeStore, service: AnimeService
) -> None:
    await store.save(create_anime_to_be_saved())

    with pytest.raises(ValidationError):
        await service.update(1, Anime(name=""))

    assert store.records == {1: create_valid_anime()}


@pytest.mark.anyio
async def test_delete_removes_record(store: FakeAnimeStore, service: AnimeService) -> None:
    await store.save(create_anime_to_be_saved())

    await service.delete(1)

    assert store.records == {}


@pytest.mark.anyio
async def test_store_failures_propagate_unchanged(
    store: FakeAnimeStore, service: AnimeService
) -> None:
    store.fail_on.add("find_all")

    with pytest.raises(StoreFailure):
        await service.find_all()


@pytest.mark.anyio
async def test_repeated_failed_batches_keep_job_statuses_bounded(store: FakeAnimeStore) -> None:
    runner = JobRunner(max_finished_statuses=10)
    service = AnimeService(store, runner)
    store.coerced_names[0] = ""

    for _ in range(50):
        with pytest.raises(ValidationError):
            await service.save_all([Anime(name="Dragon")])
    await asyncio.wait_for(runner.drain(), timeout=2)

    assert len(runner._statuses) <= 10
    assert store.records == {}
    await runner.stop()
