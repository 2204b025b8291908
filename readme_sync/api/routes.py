"""FastAPI routes for the readme-sync API.

Endpoints:
- GET  /api/health                     - Health check
- POST /api/jobs                       - Start a job manually
- GET  /api/jobs                       - List jobs
- GET  /api/jobs/{owner}/{repo}/{num}  - Get one job
- GET  /api/projects                   - List projects
- GET  /api/projects/public            - Latest public projects
- GET  /api/projects/{owner}/{repo}    - Get one project

Webhooks:
- POST /github/hook                    - GitHub App webhook deliveries
"""

from __future__ import annotations

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from readme_sync.config import Settings
from readme_sync.database.store import JobStore
from readme_sync.errors import PersistenceError
from readme_sync.hooks import parse_event, verify_signature
from readme_sync.jobs.orchestrator import JobOrchestrator
from readme_sync.schemas import (
    HookResponse,
    JobCreateRequest,
    JobResponse,
    JobStartedResponse,
    ProjectResponse,
    Trigger,
)


logger = logging.getLogger(__name__)
router = APIRouter()
hook_router = APIRouter()


def get_orchestrator(request: Request) -> JobOrchestrator:
    return request.app.state.orchestrator


def get_store(request: Request) -> JobStore:
    return request.app.state.store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


Orchestrator = Annotated[JobOrchestrator, Depends(get_orchestrator)]
Store = Annotated[JobStore, Depends(get_store)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]


# =============================================================================
# Health Check
# =============================================================================

@router.get("/health")
async def health(settings: AppSettings) -> dict:
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "environment": settings.environment,
    }


# =============================================================================
# Jobs Endpoints
# =============================================================================

async def _start(orchestrator: JobOrchestrator, trigger: Trigger) -> JobStartedResponse:
    try:
        started = await orchestrator.start_job(trigger)
    except PersistenceError as e:
        logger.error(f"Failed starting job for {trigger.full_name}: {e}")
        raise HTTPException(status_code=503, detail="Failed registering job") from e
    return JobStartedResponse(owner=started.owner, repo=started.repo, num=started.num)


@router.post("/jobs", response_model=JobStartedResponse, status_code=status.HTTP_202_ACCEPTED)
async def create_job(request: JobCreateRequest, orchestrator: Orchestrator) -> JobStartedResponse:
    """Start a job for a repository.

    The job runs in the background; poll GET /jobs/{owner}/{repo}/{num}
    for its outcome.
    """
    trigger = Trigger(
        installation_id=request.installation_id,
        owner=request.owner,
        repo=request.repo,
        head_sha=request.head_sha,
        reason="Manual",
    )
    return await _start(orchestrator, trigger)


@router.get("/jobs", response_model=list[JobResponse])
async def list_jobs(
    store: Store,
    owner: str | None = None,
    repo: str | None = None,
    install: int | None = None,
    num: int | None = None,
    limit: int = Query(default=100, ge=1, le=500),
) -> list[JobResponse]:
    """List jobs, most recently updated first."""
    jobs = await store.list_jobs(owner=owner, repo=repo, install=install, num=num, limit=limit)
    return [JobResponse.model_validate(job) for job in jobs]


@router.get("/jobs/{owner}/{repo}/{num}", response_model=JobResponse)
async def get_job(owner: str, repo: str, num: int, store: Store) -> JobResponse:
    job = await store.get_job(owner, repo, num)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobResponse.model_validate(job)


# =============================================================================
# Projects Endpoints
# =============================================================================

@router.get("/projects", response_model=list[ProjectResponse])
async def list_projects(
    store: Store,
    owner: str | None = None,
    repo: str | None = None,
    install: int | None = None,
    limit: int = Query(default=100, ge=1, le=500),
) -> list[ProjectResponse]:
    projects = await store.list_projects(owner=owner, repo=repo, install=install, limit=limit)
    return [ProjectResponse.model_validate(project) for project in projects]


@router.get("/projects/public", response_model=list[ProjectResponse])
async def list_public_projects(store: Store) -> list[ProjectResponse]:
    """Latest projects of public repositories."""
    projects = await store.list_public_projects()
    return [ProjectResponse.model_validate(project) for project in projects]


@router.get("/projects/{owner}/{repo}", response_model=ProjectResponse)
async def get_project(owner: str, repo: str, store: Store) -> ProjectResponse:
    project = await store.get_project(owner, repo)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return ProjectResponse.model_validate(project)


# =============================================================================
# GitHub Webhook
# =============================================================================

@hook_router.post("/hook", response_model=HookResponse, status_code=status.HTTP_202_ACCEPTED)
async def github_hook(
    request: Request,
    orchestrator: Orchestrator,
    settings: AppSettings,
    x_github_event: Annotated[str, Header()] = "",
    x_hub_signature_256: Annotated[str | None, Header()] = None,
) -> HookResponse:
    """Receive a GitHub App webhook delivery and start the jobs it triggers."""
    body = await request.body()
    if not verify_signature(body, x_hub_signature_256, settings.github_hook_secret):
        logger.warning("Unauthorized hook delivery")
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail="Invalid payload") from e
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid payload")

    triggers = parse_event(x_github_event, payload, app_id=settings.github_app_id)
    jobs = [await _start(orchestrator, trigger) for trigger in triggers]
    return HookResponse(jobs=jobs)
