"""Git operations on the repository host.

Provides the write side of a job:
- ensure_branch: create the integration branch if it is missing
- commit_readme: write the README on the integration branch
"""

from __future__ import annotations

import logging

from readme_sync.config import Settings
from readme_sync.errors import RemoteReadError, RemoteWriteConflict, RemoteWriteError
from readme_sync.github.base import GitHubAPIError, RepositoryHost
from readme_sync.tools.content import short_sha


logger = logging.getLogger(__name__)


async def ensure_branch(
    host: RepositoryHost,
    owner: str,
    repo: str,
    branch: str,
    base_sha: str,
) -> bool:
    """Create ``branch`` at ``base_sha`` unless it already exists.

    An existing branch is left exactly as it is.

    Args:
        host: Repository host client
        owner: Repository owner
        repo: Repository name
        branch: Branch name, without ``refs/heads/``
        base_sha: Commit the new branch should point at

    Returns:
        True if the branch was created by this call
    """
    try:
        current = await host.get_branch_sha(owner, repo, branch)
    except GitHubAPIError as e:
        raise RemoteReadError(f"failed getting {branch!r} branch") from e

    if current is not None:
        logger.info(f"Found existing branch {branch} at {short_sha(current)}")
        return False

    ref = f"refs/heads/{branch}"
    logger.info(f"Creating new branch {branch} at {short_sha(base_sha)}")
    try:
        await host.create_ref(owner, repo, ref, base_sha)
    except GitHubAPIError as e:
        if e.is_conflict:
            raise RemoteWriteConflict(f"failed creating {ref!r} ref") from e
        raise RemoteWriteError(f"failed creating {ref!r} ref") from e
    return True


async def commit_readme(
    host: RepositoryHost,
    owner: str,
    repo: str,
    *,
    branch: str,
    path: str,
    content: bytes,
    base_sha: str,
    settings: Settings,
) -> str:
    """Commit new README content on ``branch``.

    ``base_sha`` must be the digest of the file the branch holds right now;
    the host rejects the write otherwise.

    Returns:
        The SHA of the new commit
    """
    try:
        commit_sha = await host.update_file(
            owner,
            repo,
            path,
            content=content,
            message=settings.commit_message,
            branch=branch,
            sha=base_sha,
            author_name=settings.bot_name,
            author_email=settings.bot_email,
        )
    except GitHubAPIError as e:
        if e.is_conflict:
            raise RemoteWriteConflict(f"failed pushing readme content to {branch}") from e
        raise RemoteWriteError(f"failed pushing readme content to {branch}") from e

    logger.info(f"Committed {path} on {branch} as {short_sha(commit_sha)}")
    return commit_sha
