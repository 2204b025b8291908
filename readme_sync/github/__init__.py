"""Repository host access."""

from readme_sync.github.apps import GitHubApp
from readme_sync.github.base import GitHubAPIError, RepositoryHost
from readme_sync.github.client import GitHubClient

__all__ = ["GitHubAPIError", "GitHubApp", "GitHubClient", "RepositoryHost"]
