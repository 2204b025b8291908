"""Job orchestrator.

``start_job`` registers a job synchronously and returns its number; the rest
of the attempt runs as a background task:

1. run the workflow under the whole-attempt time budget
2. classify the outcome (Success, or Failed with an error code)
3. write the job row once and reconcile the project row
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

from readme_sync.config import Settings
from readme_sync.database.models import Job, utcnow
from readme_sync.database.store import JobStore
from readme_sync.errors import JobTimeoutError, PersistenceError, ReadmeSyncError, describe
from readme_sync.generator.base import DocumentGenerator
from readme_sync.jobs.workflow import HostFactory, JobRun
from readme_sync.schemas import JobStatus, Trigger
from readme_sync.tools.content import short_sha


logger = logging.getLogger(__name__)


@dataclass
class StartedJob:
    """Handle on a registered job whose attempt runs in the background."""

    owner: str
    repo: str
    num: int
    task: asyncio.Task[Job] = field(repr=False)

    async def wait(self) -> Job:
        """Wait for the attempt to finish and return the final job."""
        return await self.task


class JobOrchestrator:
    """Starts job attempts and records their outcome."""

    def __init__(
        self,
        store: JobStore,
        host_factory: HostFactory,
        generator: DocumentGenerator,
        settings: Settings,
    ):
        self.store = store
        self.settings = settings
        self._host_factory = host_factory
        self._generator = generator
        self._tasks: set[asyncio.Task[Job]] = set()

    @property
    def running(self) -> int:
        return len(self._tasks)

    async def start_job(self, trigger: Trigger) -> StartedJob:
        """Register a new job and start its attempt in the background.

        Only the job registration happens before returning; every remote
        call belongs to the background attempt.

        Raises:
            PersistenceError: If the job could not be registered
        """
        started_at = time.monotonic()
        snapshot = {
            "install": trigger.installation_id,
            "owner": trigger.owner,
            "repo": trigger.repo,
            "head_sha": trigger.head_sha or "",
            "default_branch": trigger.default_branch or "",
        }
        job = await self.store.create_job(snapshot, trigger=trigger.reason)
        logger.info(
            f"[{job.tag}] Starting PR process (trigger={trigger.reason}, "
            f"sha={short_sha(job.head_sha) or 'unknown'})"
        )

        task = asyncio.create_task(self._run(job, started_at), name=f"readme-sync {job.tag}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return StartedJob(owner=job.owner, repo=job.repo, num=job.num, task=task)

    async def drain(self) -> None:
        """Wait for all running attempts to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(self, job: Job, started_at: float) -> Job:
        run = JobRun(job, self._host_factory, self._generator, self.settings)
        budget = self.settings.job_timeout_seconds
        remaining = max(budget - (time.monotonic() - started_at), 0.0)

        try:
            message = await asyncio.wait_for(run.execute(), timeout=remaining)
        except asyncio.TimeoutError as e:
            error = JobTimeoutError(f"timed out after {budget:g}s while {run.state.value}")
            error.__cause__ = e
            await self._done(job, started_at, f"{run.failure_message}: timed out", error)
        except ReadmeSyncError as e:
            await self._done(job, started_at, run.failure_message, e)
        except Exception as e:
            logger.exception(f"[{job.tag}] Unexpected error in {run.step}")
            await self._done(job, started_at, run.failure_message, e)
        else:
            await self._done(job, started_at, message)
        return job

    async def _done(
        self,
        job: Job,
        started_at: float,
        message: str,
        error: BaseException | None = None,
    ) -> None:
        """Record the terminal state of a job. Never raises."""
        job.message = message
        job.duration = time.monotonic() - started_at
        job.updated_at = utcnow()

        if error is None:
            job.status = JobStatus.SUCCESS.value
            logger.info(f"[{job.tag}] {message} (took {job.duration:.2f}s)")
        else:
            job.status = JobStatus.FAILED.value
            job.error_code = getattr(error, "error_code", ReadmeSyncError.error_code)
            job.debug = describe(error)
            logger.error(f"[{job.tag}] {message} [{job.error_code}]: {job.debug}")

        try:
            if not await self.store.finish_job(job):
                logger.warning(f"[{job.tag}] Job was already finished, not overwriting")
        except PersistenceError as e:
            logger.error(f"[{job.tag}] Failed saving job: {describe(e)}")

        try:
            await self.store.save_project(job)
        except PersistenceError as e:
            logger.error(f"[{job.tag}] Failed saving project: {describe(e)}")
