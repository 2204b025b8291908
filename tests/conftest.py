"""Shared pytest fixtures.

FakeHost is an in-memory repository host that rejects stale writes the way
GitHub does: updates must name the current blob SHA, refs and pull requests
cannot be created twice.
"""

from __future__ import annotations

import asyncio
import hashlib
import itertools

import pytest

from readme_sync.config import Settings
from readme_sync.database.session import create_engine, create_session_maker, init_db
from readme_sync.database.store import JobStore
from readme_sync.generator.base import DocumentGenerator
from readme_sync.github.base import GitHubAPIError, RepositoryHost
from readme_sync.schemas import FileContent, PullRequest, RepositoryInfo
from readme_sync.tools.content import compute_sha


OWNER = "acme"
REPO = "widget"


class FakeHost(RepositoryHost):
    """In-memory GitHub with a single repository."""

    def __init__(self, default_branch: str = "main", files: dict[str, bytes] | None = None):
        self.default_branch = default_branch
        self.private = False
        self.stars = 7
        self._counter = itertools.count(1)
        self._pr_numbers = itertools.count(1)
        self.commits: dict[str, dict[str, bytes]] = {}
        self.branches: dict[str, str] = {}
        self.pulls: list[PullRequest] = []
        self.updates: list[dict] = []
        self.calls: list[str] = []
        self.errors: dict[str, GitHubAPIError] = {}
        self.delay = 0.0

        head = self._commit(dict(files or {}))
        self.branches[default_branch] = head

    def _commit(self, files: dict[str, bytes]) -> str:
        sha = hashlib.sha1(f"commit-{next(self._counter)}".encode()).hexdigest()
        self.commits[sha] = files
        return sha

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        await asyncio.sleep(self.delay)
        if name in self.errors:
            raise self.errors[name]

    def _files(self, ref: str | None) -> dict[str, bytes] | None:
        ref = ref or self.default_branch
        if ref in self.branches:
            return self.commits[self.branches[ref]]
        return self.commits.get(ref)

    def files_on(self, branch: str) -> dict[str, bytes]:
        return self.commits[self.branches[branch]]

    def push(self, branch: str, files: dict[str, bytes]) -> str:
        """Commit files on a branch outside of any job."""
        current = dict(self.files_on(branch)) if branch in self.branches else {}
        current.update(files)
        self.branches[branch] = self._commit(current)
        return self.branches[branch]

    @property
    def open_pulls(self) -> list[PullRequest]:
        return list(self.pulls)

    # RepositoryHost

    async def get_repository(self, owner, repo):
        await self._enter("get_repository")
        return RepositoryInfo(
            full_name=f"{owner}/{repo}",
            default_branch=self.default_branch,
            private=self.private,
            stars=self.stars,
        )

    async def get_branch_sha(self, owner, repo, branch):
        await self._enter("get_branch_sha")
        return self.branches.get(branch)

    async def get_readme(self, owner, repo, ref):
        await self._enter("get_readme")
        files = self._files(ref)
        if files is None:
            return None
        for path in sorted(files):
            if "/" not in path and path.lower().startswith("readme"):
                return FileContent(path=path, sha=compute_sha(files[path]), content=files[path])
        return None

    async def get_contents(self, owner, repo, path, ref=None):
        await self._enter("get_contents")
        files = self._files(ref)
        if files is None or path not in files:
            return None
        return FileContent(path=path, sha=compute_sha(files[path]), content=files[path])

    async def create_ref(self, owner, repo, ref, sha):
        await self._enter("create_ref")
        branch = ref.removeprefix("refs/heads/")
        if branch in self.branches:
            raise GitHubAPIError("Reference already exists", status_code=422)
        self.branches[branch] = sha

    async def update_file(self, owner, repo, path, *, content, message, branch, sha, author_name, author_email):
        await self._enter("update_file")
        if branch not in self.branches:
            raise GitHubAPIError("Branch not found", status_code=404)
        files = dict(self.files_on(branch))
        current = files.get(path)
        if current is not None and sha != compute_sha(current):
            raise GitHubAPIError(f"{path} does not match {sha}", status_code=409)
        if current is None and sha:
            raise GitHubAPIError(f"{path} does not exist", status_code=422)

        files[path] = content
        self.branches[branch] = self._commit(files)
        self.updates.append({
            "path": path,
            "branch": branch,
            "sha": sha,
            "message": message,
            "author": (author_name, author_email),
        })
        return self.branches[branch]

    async def list_pull_requests(self, owner, repo, *, head, base):
        await self._enter("list_pull_requests")
        return [pr for pr in self.pulls if pr.head_ref == head and pr.base_ref == base]

    async def create_pull_request(self, owner, repo, *, title, head, base, body=""):
        await self._enter("create_pull_request")
        if head not in self.branches:
            raise GitHubAPIError("Validation Failed: head", status_code=422)
        if any(pr.head_ref == head and pr.base_ref == base for pr in self.pulls):
            raise GitHubAPIError("A pull request already exists", status_code=422)
        pr = PullRequest(number=next(self._pr_numbers), head_ref=head, base_ref=base)
        self.pulls.append(pr)
        return pr


class FakeGenerator(DocumentGenerator):
    """Returns fixed content, or raises ``error``."""

    def __init__(self, content: bytes = b"# widget\n\nGenerated docs.\n"):
        self.content = content
        self.error: Exception | None = None
        self.calls = 0

    async def generate(self, host, ref, config):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.content


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        job_timeout_seconds=5,
    )


@pytest.fixture
async def store(settings):
    engine = create_engine(settings.database_url)
    await init_db(engine)
    yield JobStore(create_session_maker(engine))
    await engine.dispose()


@pytest.fixture
def host():
    return FakeHost(files={
        "README.md": b"# widget\n\nOld docs.\n",
        "widget/__init__.py": b'"""Widget does things."""\n',
    })


@pytest.fixture
def generator():
    return FakeGenerator()
