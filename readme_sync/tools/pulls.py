"""Pull request resolution for the integration branch."""

from __future__ import annotations

import logging

from readme_sync.config import Settings
from readme_sync.errors import RemoteReadError, RemoteWriteError
from readme_sync.github.base import GitHubAPIError, RepositoryHost
from readme_sync.schemas import PullRequest


logger = logging.getLogger(__name__)


async def find_pull_request(
    host: RepositoryHost,
    owner: str,
    repo: str,
    head: str,
    base: str,
) -> PullRequest | None:
    """Return the open pull request from ``head`` into ``base``, if any.

    More than one match should not happen; the lowest number wins.
    """
    try:
        pulls = await host.list_pull_requests(owner, repo, head=head, base=base)
    except GitHubAPIError as e:
        raise RemoteReadError("failed listing PRs") from e

    if not pulls:
        return None
    pulls = sorted(pulls, key=lambda pr: pr.number)
    if len(pulls) > 1:
        numbers = ", ".join(f"#{pr.number}" for pr in pulls)
        logger.warning(
            f"Found {len(pulls)} open PRs from {head} in {owner}/{repo} ({numbers}), "
            f"using #{pulls[0].number}"
        )
    return pulls[0]


async def resolve_pull_request(
    host: RepositoryHost,
    owner: str,
    repo: str,
    head: str,
    base: str,
    settings: Settings,
) -> tuple[int, bool]:
    """Find the open pull request for the integration branch or create one.

    Args:
        host: Repository host client
        owner: Repository owner
        repo: Repository name
        head: Integration branch
        base: Default branch the PR targets
        settings: Supplies the PR title and body

    Returns:
        Tuple of (pr_number, created)
    """
    existing = await find_pull_request(host, owner, repo, head, base)
    if existing is not None:
        return existing.number, False

    logger.info(f"Creating a new PR {head} -> {base} in {owner}/{repo}")
    try:
        pr = await host.create_pull_request(
            owner,
            repo,
            title=settings.pr_title,
            head=head,
            base=base,
            body=settings.pr_body,
        )
    except GitHubAPIError as e:
        if not e.is_conflict:
            raise RemoteWriteError("failed creating PR") from e
        # Another attempt opened the PR between our listing and creation.
        existing = await find_pull_request(host, owner, repo, head, base)
        if existing is None:
            raise RemoteWriteError("failed creating PR") from e
        logger.info(f"PR #{existing.number} was opened concurrently, reusing it")
        return existing.number, False

    return pr.number, True
