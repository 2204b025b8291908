"""Abstract base class for README generators."""

from __future__ import annotations

from abc import ABC, abstractmethod

from readme_sync.github.base import RepositoryHost
from readme_sync.schemas import RepoConfig, RepoReference


class DocumentGenerator(ABC):
    """Produces README content for one commit of a repository.

    Generators may read from the repository host. Any exception they raise
    fails the job as a generation error.
    """

    @abstractmethod
    async def generate(
        self,
        host: RepositoryHost,
        ref: RepoReference,
        config: RepoConfig,
    ) -> bytes:
        """Generate the README.

        Args:
            host: Client for the repository being documented
            ref: Repository and commit to generate from
            config: Per-repository configuration

        Returns:
            README content as UTF-8 bytes
        """
        ...
