"""Repository read tools.

These tools give a job structured access to repository content:
- read_readme: the README currently published on a branch, as a digest
- read_config: the per-repository configuration file
- resolve_head: the commit a branch currently points at
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from readme_sync.errors import ConfigurationError, RemoteReadError
from readme_sync.github.base import GitHubAPIError, RepositoryHost
from readme_sync.schemas import RemoteDocument, RepoConfig
from readme_sync.tools.content import compute_sha


logger = logging.getLogger(__name__)

DEFAULT_README_PATH = "README.md"


async def read_readme(
    host: RepositoryHost,
    owner: str,
    repo: str,
    branch: str,
    default_path: str = DEFAULT_README_PATH,
) -> RemoteDocument:
    """Read the README published on a branch.

    Args:
        host: Repository host client
        owner: Repository owner
        repo: Repository name
        branch: Branch to read from
        default_path: Path reported when the branch has no README

    Returns:
        RemoteDocument with the digest of the decoded content and its actual
        path, or ``present=False`` with the default path

    Raises:
        RemoteReadError: For any failure other than "not found"
    """
    try:
        readme = await host.get_readme(owner, repo, branch)
    except GitHubAPIError as e:
        raise RemoteReadError(f"failed reading current readme on {branch}") from e

    if readme is None:
        logger.info(f"No readme on {owner}/{repo}@{branch}")
        return RemoteDocument(sha="", path=default_path, present=False)

    return RemoteDocument(
        sha=compute_sha(readme.content),
        path=readme.path,
        present=True,
    )


async def read_config(
    host: RepositoryHost,
    owner: str,
    repo: str,
    path: str,
    ref: str | None = None,
) -> RepoConfig:
    """Load the repository configuration file.

    A missing file yields the default configuration.

    Raises:
        ConfigurationError: If the file is not a valid configuration object
        RemoteReadError: If the file could not be fetched
    """
    try:
        config_file = await host.get_contents(owner, repo, path, ref=ref)
    except GitHubAPIError as e:
        raise RemoteReadError(f"failed getting config file {path}") from e

    if config_file is None:
        return RepoConfig()

    try:
        data = json.loads(config_file.content)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"{path} is not valid JSON") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object")

    try:
        return RepoConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid {path}") from e


async def resolve_head(host: RepositoryHost, owner: str, repo: str, branch: str) -> str:
    """Return the commit SHA ``branch`` points at.

    Raises:
        RemoteReadError: If the branch is missing or the lookup failed
    """
    try:
        sha = await host.get_branch_sha(owner, repo, branch)
    except GitHubAPIError as e:
        raise RemoteReadError(f"failed getting head of {branch}") from e
    if sha is None:
        raise RemoteReadError(f"branch {branch} does not exist")
    return sha
