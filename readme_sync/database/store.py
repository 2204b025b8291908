"""Job and project persistence.

Job numbers are allocated as ``max(num) + 1`` per owner/repo inside the
transaction that inserts the job. The project row is a converging view: a
finished job only writes it when no job with a higher number has written it
already.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from readme_sync.database.models import Job, Project, utcnow
from readme_sync.errors import PersistenceError
from readme_sync.schemas import JobStatus


logger = logging.getLogger(__name__)

# Attempts at allocating a job number when a concurrent insert took it first
MAX_ALLOCATION_ATTEMPTS = 5

# Repository metadata only learned by reading the repository
INHERITED_FIELDS = ("default_branch", "private", "stars")

# Columns never overwritten with an empty value
STICKY_FIELDS = ("default_branch", "head_sha")


class JobStore:
    """Reads and writes the ``jobs`` and ``projects`` tables."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_job(self, snapshot: dict[str, Any], trigger: str = "") -> Job:
        """Insert a Started job with the next number and upsert its project.

        Args:
            snapshot: Project columns known at trigger time; must contain
                ``owner`` and ``repo``
            trigger: Human readable trigger description

        Returns:
            The persisted job, detached from its session

        Raises:
            PersistenceError: If the transaction could not be committed
        """
        last_error: Exception | None = None
        for attempt in range(1, MAX_ALLOCATION_ATTEMPTS + 1):
            try:
                return await self._create_job(snapshot, trigger)
            except IntegrityError as e:
                last_error = e
                logger.warning(
                    f"Job number collision for {snapshot['owner']}/{snapshot['repo']} "
                    f"(attempt {attempt}/{MAX_ALLOCATION_ATTEMPTS})"
                )
            except SQLAlchemyError as e:
                raise PersistenceError("failed creating job") from e
        raise PersistenceError("failed allocating job number") from last_error

    async def _create_job(self, snapshot: dict[str, Any], trigger: str) -> Job:
        owner, repo = snapshot["owner"], snapshot["repo"]
        async with self._session_maker() as session:
            async with session.begin():
                result = await session.execute(
                    select(func.max(Job.num)).where(Job.owner == owner, Job.repo == repo)
                )
                num = (result.scalar() or 0) + 1
                now = utcnow()

                project = await session.get(Project, {"owner": owner, "repo": repo})
                fields = _inherited_fields(project)
                fields.update({name: value for name, value in snapshot.items() if value not in (None, "")})
                fields.update(
                    last_job=num,
                    status=JobStatus.STARTED.value,
                    created_at=now,
                    updated_at=now,
                )
                job = Job(num=num, trigger=trigger, **fields)
                session.add(job)

                if project is None:
                    session.add(Project(**fields))
                else:
                    _update_project(project, fields)
        return job

    async def finish_job(self, job: Job) -> bool:
        """Persist the terminal state of a job.

        The update only applies to a job that is still Started, so a job row
        is written at most once after creation.

        Returns:
            True if the row was updated
        """
        values = job.project_fields()
        for key in ("owner", "repo", "created_at"):
            values.pop(key)
        values.update(
            trigger=job.trigger,
            duration=job.duration,
            error_code=job.error_code,
            debug=job.debug,
        )
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    result = await session.execute(
                        update(Job)
                        .where(
                            Job.owner == job.owner,
                            Job.repo == job.repo,
                            Job.num == job.num,
                            Job.status == JobStatus.STARTED.value,
                        )
                        .values(**values)
                    )
        except SQLAlchemyError as e:
            raise PersistenceError(f"failed saving job {job.tag}") from e
        return result.rowcount == 1

    async def save_project(self, job: Job) -> bool:
        """Write the job's project snapshot unless a newer job already did.

        Returns:
            True if the project row was written, False if it was skipped
        """
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    result = await session.execute(
                        select(Project)
                        .where(Project.owner == job.owner, Project.repo == job.repo)
                        .with_for_update()
                    )
                    current = result.scalars().first()
                    if current is not None and current.last_job > job.num:
                        logger.info(
                            f"[{job.tag}] Skipping update project due to newer version "
                            f"(job #{current.last_job})"
                        )
                        return False

                    fields = job.project_fields()
                    if current is None:
                        session.add(Project(**fields))
                    else:
                        _update_project(current, fields)
        except SQLAlchemyError as e:
            raise PersistenceError(f"failed saving project for job {job.tag}") from e
        return True

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_project(self, owner: str, repo: str) -> Project | None:
        async with self._session_maker() as session:
            return await session.get(Project, {"owner": owner, "repo": repo})

    async def list_projects(
        self,
        owner: str | None = None,
        repo: str | None = None,
        install: int | None = None,
        limit: int = 100,
    ) -> list[Project]:
        statement = select(Project)
        if owner:
            statement = statement.where(Project.owner == owner)
        if repo:
            statement = statement.where(Project.repo == repo)
        if install is not None:
            statement = statement.where(Project.install == install)
        statement = statement.order_by(Project.updated_at.desc()).limit(limit)

        async with self._session_maker() as session:
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def list_public_projects(self, limit: int = 50) -> list[Project]:
        """Most recently updated projects of public repositories."""
        statement = (
            select(Project)
            .where(Project.private == False)  # noqa: E712
            .order_by(Project.updated_at.desc())
            .limit(limit)
        )
        async with self._session_maker() as session:
            result = await session.execute(statement)
            return list(result.scalars().all())

    async def get_job(self, owner: str, repo: str, num: int) -> Job | None:
        async with self._session_maker() as session:
            return await session.get(Job, {"owner": owner, "repo": repo, "num": num})

    async def list_jobs(
        self,
        owner: str | None = None,
        repo: str | None = None,
        install: int | None = None,
        num: int | None = None,
        limit: int = 100,
    ) -> list[Job]:
        statement = select(Job)
        if owner:
            statement = statement.where(Job.owner == owner)
        if repo:
            statement = statement.where(Job.repo == repo)
        if install is not None:
            statement = statement.where(Job.install == install)
        if num is not None:
            statement = statement.where(Job.num == num)
        statement = statement.order_by(Job.updated_at.desc(), Job.num.desc()).limit(limit)

        async with self._session_maker() as session:
            result = await session.execute(statement)
            return list(result.scalars().all())


def _inherited_fields(project: Project | None) -> dict[str, Any]:
    """Metadata a new job starts from until its attempt reads the repository.

    A project never seen before counts as private, so it stays off the public
    listing until a job learns its visibility.
    """
    if project is None:
        return {"private": True}
    return {name: getattr(project, name) for name in INHERITED_FIELDS}


def _update_project(project: Project, fields: dict[str, Any]) -> None:
    for name, value in fields.items():
        if name == "created_at":
            continue
        if name in STICKY_FIELDS and not value:
            continue
        setattr(project, name, value)
