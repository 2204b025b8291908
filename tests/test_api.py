"""HTTP API tests."""

import hashlib
import hmac
import json

import pytest
from httpx import ASGITransport, AsyncClient

from readme_sync.api.main import create_app
from readme_sync.jobs import JobOrchestrator

from tests.conftest import OWNER, REPO


@pytest.fixture
def orchestrator(store, host, generator, settings):
    async def host_factory(installation_id):
        return host

    settings.github_hook_secret = "s3cret"
    return JobOrchestrator(store, host_factory, generator, settings)


@pytest.fixture
async def client(orchestrator, settings):
    """Create async test client."""
    app = create_app(settings=settings, orchestrator=orchestrator)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    await orchestrator.drain()


async def test_health(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_start_job_and_poll(client, orchestrator):
    response = await client.post(
        "/api/jobs",
        json={"installation_id": 1, "owner": OWNER, "repo": REPO},
    )

    assert response.status_code == 202
    assert response.json() == {"owner": OWNER, "repo": REPO, "num": 1}

    await orchestrator.drain()
    response = await client.get(f"/api/jobs/{OWNER}/{REPO}/1")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "Success"
    assert data["message"] == "Created PR"
    assert data["trigger"] == "Manual"
    assert data["pr"] == 1


async def test_missing_job_is_404(client):
    response = await client.get(f"/api/jobs/{OWNER}/{REPO}/42")

    assert response.status_code == 404


async def test_list_jobs_and_projects(client, orchestrator):
    for _ in range(2):
        await client.post("/api/jobs", json={"installation_id": 1, "owner": OWNER, "repo": REPO})
    await orchestrator.drain()

    jobs = (await client.get("/api/jobs", params={"owner": OWNER, "repo": REPO})).json()
    assert sorted(job["num"] for job in jobs) == [1, 2]

    [job] = (await client.get("/api/jobs", params={"num": 2})).json()
    assert job["num"] == 2

    projects = (await client.get("/api/projects")).json()
    assert [p["repo"] for p in projects] == [REPO]
    assert projects[0]["last_job"] == 2

    public = (await client.get("/api/projects/public")).json()
    assert [p["repo"] for p in public] == [REPO]

    project = (await client.get(f"/api/projects/{OWNER}/{REPO}")).json()
    assert project["status"] == "Success"
    assert project["default_branch"] == "main"

    assert (await client.get(f"/api/projects/{OWNER}/nothing")).status_code == 404


def push_payload():
    return json.dumps({
        "ref": "refs/heads/main",
        "head_commit": {"id": None},
        "repository": {
            "name": REPO,
            "default_branch": "main",
            "owner": {"login": OWNER},
        },
        "installation": {"id": 1},
    }).encode()


async def test_signed_hook_starts_job(client, orchestrator):
    body = push_payload()
    signature = "sha256=" + hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()

    response = await client.post(
        "/github/hook",
        content=body,
        headers={"X-GitHub-Event": "push", "X-Hub-Signature-256": signature},
    )

    assert response.status_code == 202
    assert response.json() == {"jobs": [{"owner": OWNER, "repo": REPO, "num": 1}]}

    await orchestrator.drain()
    job = (await client.get(f"/api/jobs/{OWNER}/{REPO}/1")).json()
    assert job["trigger"] == "Push to main"


async def test_unsigned_hook_is_rejected(client):
    response = await client.post(
        "/github/hook",
        content=push_payload(),
        headers={"X-GitHub-Event": "push", "X-Hub-Signature-256": "sha256=bad"},
    )

    assert response.status_code == 401


async def test_ignored_event_starts_nothing(client):
    body = b'{"action": "created", "installation": {"id": 1}}'
    signature = "sha256=" + hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()

    response = await client.post(
        "/github/hook",
        content=body,
        headers={"X-GitHub-Event": "star", "X-Hub-Signature-256": signature},
    )

    assert response.status_code == 202
    assert response.json() == {"jobs": []}
