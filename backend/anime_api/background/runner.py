import asyncio
import logging
import uuid
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

JobHandler = Callable[[], Awaitable[None]]

DRAIN_POLL_SECONDS = 0.01
# Statuses of finished jobs kept for status_for(); oldest are evicted first.
MAX_FINISHED_STATUSES = 1000


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class Job:
    key: str
    handler: JobHandler
    max_attempts: int = 1
    backoff_seconds: float = 0.0
    attempts: int = 0


class JobRunner:
    """
    In-process job runner backed by a single asyncio worker task.

    Jobs run in enqueue order. A job whose handler raises is retried up to
    ``max_attempts`` times and then marked failed; handler errors are logged
    and never propagate to the code that enqueued the job.

    Only the most recent ``max_finished_statuses`` succeeded or failed
    statuses are remembered; queued and running jobs are always tracked.
    """

    def __init__(self, max_finished_statuses: int = MAX_FINISHED_STATUSES) -> None:
        self._task: asyncio.Task[None] | None = None
        self._jobs: dict[str, Job] = {}
        self._statuses: dict[str, JobStatus] = {}
        self._running_key: str | None = None
        self._finished: dict[str, None] = {}
        self._max_finished = max_finished_statuses
        self._wakeup = asyncio.Event()
        self._logger = logging.getLogger("anime_api.jobs")
        self._worker_id = str(uuid.uuid4())[:8]

    def status_for(self, key: str) -> JobStatus | None:
        return self._statuses.get(key)

    async def enqueue(self, job: Job) -> Job:
        """Enqueue a job unless one with the same key is queued or running."""
        current = self._statuses.get(job.key)
        if current in {JobStatus.QUEUED, JobStatus.RUNNING}:
            self._logger.info(
                "[JOB] enqueue_skipped job_key=%s reason=duplicate status=%s worker_id=%s",
                job.key,
                current.value,
                self._worker_id,
            )
            return job

        self._jobs[job.key] = job
        self._statuses[job.key] = JobStatus.QUEUED
        self._finished.pop(job.key, None)
        self._wakeup.set()
        self._ensure_worker()
        self._logger.info(
            "[JOB] enqueued job_key=%s worker_id=%s",
            job.key,
            self._worker_id,
        )
        return job

    async def drain(self) -> None:
        """Wait until every enqueued job has finished."""
        while (self._jobs or self._running_key) and self._task and not self._task.done():
            await asyncio.sleep(DRAIN_POLL_SECONDS)

    async def stop(self) -> None:
        """Stop the worker task."""
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    def _mark_finished(self, key: str, status: JobStatus) -> None:
        self._statuses[key] = status
        self._finished.pop(key, None)
        self._finished[key] = None
        while len(self._finished) > self._max_finished:
            oldest = next(iter(self._finished))
            del self._finished[oldest]
            self._statuses.pop(oldest, None)

    def _ensure_worker(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._worker())

    async def _worker(self) -> None:
        try:
            while True:
                if not self._jobs:
                    self._wakeup.clear()
                    await self._wakeup.wait()
                    continue

                # Insertion order
                job_key = next(iter(self._jobs.keys()))
                job = self._jobs.pop(job_key)
                self._running_key = job_key
                try:
                    await self._run_job(job)
                finally:
                    self._running_key = None
        except asyncio.CancelledError:
            return

    async def _run_job(self, job: Job) -> None:
        self._statuses[job.key] = JobStatus.RUNNING
        self._logger.info(
            "[JOB] started job_key=%s worker_id=%s",
            job.key,
            self._worker_id,
        )

        while job.attempts < job.max_attempts:
            try:
                await job.handler()
            except Exception as exc:  # noqa: BLE001
                job.attempts += 1
                self._logger.error(
                    "[JOB] failed job_key=%s attempt=%s/%s worker_id=%s",
                    job.key,
                    job.attempts,
                    job.max_attempts,
                    self._worker_id,
                    exc_info=exc,
                )
                if job.attempts >= job.max_attempts:
                    self._mark_finished(job.key, JobStatus.FAILED)
                    self._logger.error(
                        "[JOB] failed_permanently job_key=%s worker_id=%s",
                        job.key,
                        self._worker_id,
                    )
                    return
                await asyncio.sleep(job.backoff_seconds * job.attempts)
            else:
                self._mark_finished(job.key, JobStatus.SUCCEEDED)
                self._logger.info(
                    "[JOB] succeeded job_key=%s worker_id=%s",
                    job.key,
                    self._worker_id,
                )
                return
