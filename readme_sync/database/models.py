"""SQLModel database tables.

Tables:
- projects: the converged "current status" of one repository (owner + repo)
- jobs: one row per attempt, carrying a copy of the project at that time
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, DateTime, Index, Text
from sqlmodel import Field, SQLModel

from readme_sync.schemas import JobStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Shared project columns
# =============================================================================

class ProjectBase(SQLModel):
    """Columns shared by a project and every job that ran for it."""

    install: int = Field(default=0, index=True, description="GitHub App installation ID")
    owner: str = Field(primary_key=True)
    repo: str = Field(primary_key=True)
    last_job: int = Field(default=0, description="Number of the job that wrote this row")
    head_sha: str = Field(default="")
    pr: int = Field(default=0, description="Pull request number, 0 when none")
    message: str = Field(default="")
    status: str = Field(default=JobStatus.STARTED.value, index=True)
    default_branch: str = Field(default="")
    private: bool = Field(default=False)
    stars: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


# =============================================================================
# Project Model
# =============================================================================

class Project(ProjectBase, table=True):
    """Most recent known state of a repository integration."""

    __tablename__ = "projects"


# =============================================================================
# Job Model
# =============================================================================

class Job(ProjectBase, table=True):
    """A single attempt to bring a repository README up to date."""

    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_updated", "updated_at"),
    )

    num: int = Field(primary_key=True, description="Job number, increasing per owner/repo")
    trigger: str = Field(default="")
    duration: float = Field(default=0.0, description="Seconds from creation to finish")
    error_code: str | None = Field(default=None)
    debug: str | None = Field(default=None, sa_column=Column(Text))

    @property
    def tag(self) -> str:
        return f"{self.owner}/{self.repo}#{self.num}"

    def project_fields(self) -> dict[str, Any]:
        """Return the embedded project columns of this job."""
        return {name: getattr(self, name) for name in ProjectBase.model_fields}
