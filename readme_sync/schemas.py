"""Pydantic schemas shared across readme-sync.

These schemas define the contracts between:
- the webhook/API layer and the job orchestrator (triggers)
- the orchestrator and the repository host (files, refs, pull requests)
- repositories and the generator (per-repository configuration)
- API endpoints and clients
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class JobStatus(str, Enum):
    """Persisted status of a job and of its project."""
    STARTED = "Started"
    SUCCESS = "Success"
    FAILED = "Failed"


class JobState(str, Enum):
    """Workflow states an attempt moves through."""
    CREATED = "created"
    STARTED = "started"
    GENERATING = "generating_content"
    COMPARING = "comparing_content"
    SKIP = "skip"
    PUBLISHING = "publishing"
    RESOLVING_PR = "resolving_pr"
    FINISHED = "finished"


# =============================================================================
# Triggers
# =============================================================================

class Trigger(BaseModel):
    """A normalized external event that starts one job attempt."""
    installation_id: int = Field(..., description="GitHub App installation ID")
    owner: str = Field(..., description="Repository owner login")
    repo: str = Field(..., description="Repository name")
    head_sha: str | None = Field(default=None, description="Default branch head, if known")
    default_branch: str | None = Field(default=None, description="Default branch, if known")
    reason: str = Field(default="manual", description="Human readable trigger description")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class RepoReference(BaseModel):
    """Points the generator at one commit of a repository."""
    owner: str
    repo: str
    ref: str = Field(..., description="Commit SHA or branch the document is generated from")

    @property
    def url(self) -> str:
        return f"github.com/{self.owner}/{self.repo}"


# =============================================================================
# Repository configuration
# =============================================================================

class RepoConfig(BaseModel):
    """Per-repository configuration read from the repository itself.

    Unknown keys are rejected so a typo fails loudly instead of being ignored.
    """
    model_config = ConfigDict(extra="forbid")

    module: str | None = Field(default=None, description="Path of the module holding the package docstring")
    title: str | None = Field(default=None, description="README title, defaults to the repository name")
    package: str | None = Field(default=None, description="Distribution name used for badges and install section")
    badge_pypi: bool = Field(default=False, description="Add a PyPI version badge")
    badge_license: bool = Field(default=False, description="Add a license badge")
    install: bool = Field(default=True, description="Render an installation section")
    api: bool = Field(default=False, description="Render a summary of public functions and classes")
    credit: bool = Field(default=True, description="Append the readme-sync credits line")


# =============================================================================
# Repository host objects
# =============================================================================

class RepositoryInfo(BaseModel):
    """Repository metadata needed by a job."""
    full_name: str
    default_branch: str
    private: bool = False
    stars: int = 0


class FileContent(BaseModel):
    """A decoded file read from the repository host."""
    path: str
    sha: str = Field(..., description="Blob SHA reported by the host")
    content: bytes


class RemoteDocument(BaseModel):
    """The README currently published on a branch."""
    sha: str = Field(default="", description="Digest of the decoded content, empty when absent")
    path: str
    present: bool


class PullRequest(BaseModel):
    """An open pull request on the repository host."""
    number: int
    head_ref: str
    base_ref: str
    html_url: str | None = None


# =============================================================================
# API Request/Response Schemas
# =============================================================================

class JobCreateRequest(BaseModel):
    """API request to start a job manually."""
    installation_id: int
    owner: str
    repo: str
    head_sha: str | None = None


class JobStartedResponse(BaseModel):
    """API response after a job was registered."""
    owner: str
    repo: str
    num: int


class HookResponse(BaseModel):
    """API response for a webhook delivery."""
    jobs: list[JobStartedResponse] = Field(default_factory=list)


class ProjectResponse(BaseModel):
    """API response for a project."""
    model_config = ConfigDict(from_attributes=True)

    install: int
    owner: str
    repo: str
    last_job: int
    head_sha: str
    pr: int
    message: str
    status: JobStatus
    default_branch: str
    private: bool
    stars: int
    created_at: datetime
    updated_at: datetime


class JobResponse(ProjectResponse):
    """API response for a job."""
    num: int
    trigger: str
    duration: float
    error_code: str | None = None
    debug: str | None = None
