"""Abstract base class for repository host clients."""

from __future__ import annotations

from abc import ABC, abstractmethod

from readme_sync.schemas import FileContent, PullRequest, RepositoryInfo


class GitHubAPIError(Exception):
    """A repository host request failed.

    ``status_code`` is None when the request never got a response
    (connection errors, timeouts).
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_conflict(self) -> bool:
        """The host rejected a write because of the current remote state."""
        return self.status_code in (409, 422)


class RepositoryHost(ABC):
    """Interface to the repository host used by jobs.

    Lookups return None when the object does not exist; every other failure
    raises GitHubAPIError.
    """

    @abstractmethod
    async def get_repository(self, owner: str, repo: str) -> RepositoryInfo:
        """Return repository metadata (default branch, visibility, stars)."""
        ...

    @abstractmethod
    async def get_branch_sha(self, owner: str, repo: str, branch: str) -> str | None:
        """Return the commit SHA a branch points at, or None if it does not exist."""
        ...

    @abstractmethod
    async def get_readme(self, owner: str, repo: str, ref: str) -> FileContent | None:
        """Return the README the host detects on ``ref``, or None."""
        ...

    @abstractmethod
    async def get_contents(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: str | None = None,
    ) -> FileContent | None:
        """Return a file at ``path`` on ``ref`` (default branch if None), or None."""
        ...

    @abstractmethod
    async def create_ref(self, owner: str, repo: str, ref: str, sha: str) -> None:
        """Create a fully qualified reference (``refs/heads/...``) at ``sha``."""
        ...

    @abstractmethod
    async def update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        *,
        content: bytes,
        message: str,
        branch: str,
        sha: str,
        author_name: str,
        author_email: str,
    ) -> str:
        """Create or update a file on ``branch``.

        Args:
            content: New file content
            message: Commit message
            branch: Branch to commit on
            sha: Blob SHA of the file being replaced, empty to create it
            author_name: Author and committer name
            author_email: Author and committer email

        Returns:
            The SHA of the new commit
        """
        ...

    @abstractmethod
    async def list_pull_requests(
        self,
        owner: str,
        repo: str,
        *,
        head: str,
        base: str,
    ) -> list[PullRequest]:
        """List open pull requests from branch ``head`` into ``base``."""
        ...

    @abstractmethod
    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        *,
        title: str,
        head: str,
        base: str,
        body: str = "",
    ) -> PullRequest:
        """Open a pull request from branch ``head`` into ``base``."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        return None
