"""Repository tools tests: README reads, config, branches, commits and PRs."""

import asyncio
import logging

import pytest

from readme_sync.errors import (
    ConfigurationError,
    RemoteReadError,
    RemoteWriteConflict,
    RemoteWriteError,
)
from readme_sync.github.base import GitHubAPIError
from readme_sync.schemas import PullRequest, RepoConfig
from readme_sync.tools.content import compute_sha
from readme_sync.tools.git_ops import commit_readme, ensure_branch
from readme_sync.tools.pulls import find_pull_request, resolve_pull_request
from readme_sync.tools.repo import read_config, read_readme, resolve_head

from tests.conftest import OWNER, REPO, FakeHost


# =============================================================================
# read_readme
# =============================================================================

async def test_read_readme_returns_digest_and_path(host):
    doc = await read_readme(host, OWNER, REPO, "main")

    assert doc.present
    assert doc.path == "README.md"
    assert doc.sha == compute_sha(b"# widget\n\nOld docs.\n")


async def test_read_readme_absent():
    host = FakeHost(files={})

    doc = await read_readme(host, OWNER, REPO, "main", "docs/README.md")

    assert not doc.present
    assert doc.sha == ""
    assert doc.path == "docs/README.md"


async def test_read_readme_failure_is_an_error(host):
    host.errors["get_readme"] = GitHubAPIError("Bad credentials", status_code=401)

    with pytest.raises(RemoteReadError):
        await read_readme(host, OWNER, REPO, "main")


# =============================================================================
# read_config
# =============================================================================

async def test_missing_config_gives_defaults(host):
    config = await read_config(host, OWNER, REPO, ".readme-sync.json")

    assert config == RepoConfig()
    assert config.credit is True


async def test_config_values_are_loaded(host):
    host.push("main", {".readme-sync.json": b'{"title": "Widget", "badge_pypi": true, "api": true}'})

    config = await read_config(host, OWNER, REPO, ".readme-sync.json", ref="main")

    assert config.title == "Widget"
    assert config.badge_pypi is True
    assert config.api is True


@pytest.mark.parametrize("content", [b"{oops", b"[1, 2]", b'{"credit": "sometimes"}', b'{"colour": 1}'])
async def test_invalid_config_is_rejected(host, content):
    host.push("main", {".readme-sync.json": content})

    with pytest.raises(ConfigurationError):
        await read_config(host, OWNER, REPO, ".readme-sync.json")


# =============================================================================
# resolve_head / ensure_branch
# =============================================================================

async def test_resolve_head(host):
    assert await resolve_head(host, OWNER, REPO, "main") == host.branches["main"]

    with pytest.raises(RemoteReadError):
        await resolve_head(host, OWNER, REPO, "gone")


async def test_ensure_branch_creates_missing_branch(host):
    head = host.branches["main"]

    assert await ensure_branch(host, OWNER, REPO, "readme-sync", head) is True
    assert host.branches["readme-sync"] == head


async def test_ensure_branch_leaves_existing_branch(host):
    tip = host.push("readme-sync", {"README.md": b"mine"})

    assert await ensure_branch(host, OWNER, REPO, "readme-sync", host.branches["main"]) is False
    assert host.branches["readme-sync"] == tip
    assert "create_ref" not in host.calls


async def test_ensure_branch_race_is_a_conflict(host):
    host.errors["create_ref"] = GitHubAPIError("Reference already exists", status_code=422)

    with pytest.raises(RemoteWriteConflict):
        await ensure_branch(host, OWNER, REPO, "readme-sync", host.branches["main"])


async def test_ensure_branch_other_failure(host):
    host.errors["create_ref"] = GitHubAPIError("Resource not accessible by integration", status_code=403)

    with pytest.raises(RemoteWriteError) as exc_info:
        await ensure_branch(host, OWNER, REPO, "readme-sync", host.branches["main"])
    assert not isinstance(exc_info.value, RemoteWriteConflict)


# =============================================================================
# commit_readme
# =============================================================================

async def test_commit_readme_with_matching_base(host, settings):
    host.push("readme-sync", {"README.md": b"old"})

    await commit_readme(
        host, OWNER, REPO,
        branch="readme-sync",
        path="README.md",
        content=b"new",
        base_sha=compute_sha(b"old"),
        settings=settings,
    )

    assert host.files_on("readme-sync")["README.md"] == b"new"


async def test_commit_readme_stale_base_is_a_conflict(host, settings):
    host.push("readme-sync", {"README.md": b"changed meanwhile"})

    with pytest.raises(RemoteWriteConflict):
        await commit_readme(
            host, OWNER, REPO,
            branch="readme-sync",
            path="README.md",
            content=b"new",
            base_sha=compute_sha(b"old"),
            settings=settings,
        )
    assert host.files_on("readme-sync")["README.md"] == b"changed meanwhile"


# =============================================================================
# Pull requests
# =============================================================================

async def test_resolve_creates_pull_request(host, settings):
    host.push("readme-sync", {})

    number, created = await resolve_pull_request(host, OWNER, REPO, "readme-sync", "main", settings)

    assert (number, created) == (1, True)
    assert host.pulls[0].head_ref == "readme-sync"


async def test_resolve_reuses_open_pull_request(host, settings):
    host.push("readme-sync", {})
    host.pulls.append(PullRequest(number=12, head_ref="readme-sync", base_ref="main"))

    assert await resolve_pull_request(host, OWNER, REPO, "readme-sync", "main", settings) == (12, False)
    assert "create_pull_request" not in host.calls


async def test_several_open_pull_requests_pick_lowest(host, caplog):
    host.pulls.extend([
        PullRequest(number=9, head_ref="readme-sync", base_ref="main"),
        PullRequest(number=4, head_ref="readme-sync", base_ref="main"),
    ])

    with caplog.at_level(logging.WARNING):
        pr = await find_pull_request(host, OWNER, REPO, "readme-sync", "main")

    assert pr.number == 4
    assert "Found 2 open PRs" in caplog.text


async def test_concurrent_resolution_creates_one_pull_request(host, settings):
    host.push("readme-sync", {})

    results = await asyncio.gather(*(
        resolve_pull_request(host, OWNER, REPO, "readme-sync", "main", settings)
        for _ in range(5)
    ))

    assert len(host.pulls) == 1
    assert {number for number, _ in results} == {host.pulls[0].number}
    assert sum(created for _, created in results) == 1


async def test_resolve_fails_on_other_errors(host, settings):
    host.push("readme-sync", {})
    host.errors["create_pull_request"] = GitHubAPIError("Server Error", status_code=502)

    with pytest.raises(RemoteWriteError):
        await resolve_pull_request(host, OWNER, REPO, "readme-sync", "main", settings)
