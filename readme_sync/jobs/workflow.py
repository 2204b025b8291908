"""LangGraph workflow for a single job attempt.

Graph structure:
START → connect → load_config → generate → compare ─→ skip → END
                                                   └→ branch → publish → pull_request → END

compare takes the skip edge when the generated README has the same digest as
the README on the default branch; nothing is written to the host then.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Literal, TypedDict

from langgraph.graph import END, StateGraph

from readme_sync.config import Settings
from readme_sync.database.models import Job
from readme_sync.errors import GenerationError, RemoteReadError
from readme_sync.generator.base import DocumentGenerator
from readme_sync.github.base import GitHubAPIError, RepositoryHost
from readme_sync.schemas import JobState, RepoConfig, RepoReference
from readme_sync.tools.content import compute_sha
from readme_sync.tools.git_ops import commit_readme, ensure_branch
from readme_sync.tools.pulls import resolve_pull_request
from readme_sync.tools.repo import read_config, read_readme, resolve_head


logger = logging.getLogger(__name__)

HostFactory = Callable[[int], Awaitable[RepositoryHost]]

# Workflow state of each node
NODE_STATES: dict[str, JobState] = {
    "connect": JobState.STARTED,
    "load_config": JobState.GENERATING,
    "generate": JobState.GENERATING,
    "compare": JobState.COMPARING,
    "skip": JobState.SKIP,
    "branch": JobState.PUBLISHING,
    "publish": JobState.PUBLISHING,
    "pull_request": JobState.RESOLVING_PR,
}

# Job message recorded when a node fails
FAILURE_MESSAGES: dict[str, str] = {
    "connect": "Failed getting repository data",
    "load_config": "Failed getting config",
    "generate": "Failed generating readme",
    "compare": "Failed getting github README content",
    "skip": "Failed recording up to date readme",
    "branch": "Failed creating branch",
    "publish": "Failed pushing readme content",
    "pull_request": "Failed creating PR",
}


# =============================================================================
# State Definition
# =============================================================================

class ReadmeState(TypedDict, total=False):
    """State passed between workflow nodes.

    Attributes:
        default_branch: Branch the README is published on
        head_sha: Commit the README is generated from
        repo_config: Repository configuration
        content: Generated README, credits included
        new_sha: Digest of ``content``
        default_sha: Digest of the README on the default branch, empty if absent
        readme_path: Path of the README on the default branch
        branch_created: Whether this attempt created the integration branch
        commit_sha: Commit published on the integration branch
        pr_number: Pull request of the integration branch
        pr_created: Whether this attempt opened the pull request
        message: Outcome message of the job
    """
    default_branch: str
    head_sha: str
    repo_config: RepoConfig
    content: bytes
    new_sha: str
    default_sha: str
    readme_path: str
    branch_created: bool
    commit_sha: str
    pr_number: int
    pr_created: bool
    message: str


def credits_line(settings: Settings) -> bytes:
    return f"\nCreated by [{settings.bot_name}]({settings.credits_url})\n".encode("utf-8")


# =============================================================================
# Node Functions
# =============================================================================

class JobRun:
    """Runs the workflow nodes for one job.

    The job row is updated in memory as facts are learned (default branch,
    head SHA, pull request) so the terminal write carries them even when a
    later node fails.
    """

    def __init__(
        self,
        job: Job,
        host_factory: HostFactory,
        generator: DocumentGenerator,
        settings: Settings,
    ):
        self.job = job
        self.step = "connect"
        self.host: RepositoryHost | None = None
        self._host_factory = host_factory
        self._generator = generator
        self._settings = settings

    @property
    def state(self) -> JobState:
        return NODE_STATES[self.step]

    @property
    def failure_message(self) -> str:
        return FAILURE_MESSAGES[self.step]

    def _enter(self, step: str) -> None:
        self.step = step
        logger.debug(f"[{self.job.tag}] {step} ({self.state.value})")

    async def connect(self, state: ReadmeState) -> ReadmeState:
        """Get an installation client, repository metadata and the head commit."""
        self._enter("connect")
        job = self.job

        try:
            self.host = await self._host_factory(job.install)
            info = await self.host.get_repository(job.owner, job.repo)
        except GitHubAPIError as e:
            raise RemoteReadError("failed getting repo data") from e

        job.default_branch = info.default_branch
        job.private = info.private
        job.stars = info.stars

        if not job.head_sha:
            job.head_sha = await resolve_head(self.host, job.owner, job.repo, job.default_branch)

        return {"default_branch": job.default_branch, "head_sha": job.head_sha}

    async def load_config(self, state: ReadmeState) -> ReadmeState:
        self._enter("load_config")
        config = await read_config(
            self.host,
            self.job.owner,
            self.job.repo,
            self._settings.config_path,
            ref=state["head_sha"],
        )
        return {"repo_config": config}

    async def generate(self, state: ReadmeState) -> ReadmeState:
        """Run the generator and compute the digest of its output."""
        self._enter("generate")
        config = state["repo_config"]
        ref = RepoReference(owner=self.job.owner, repo=self.job.repo, ref=state["head_sha"])

        try:
            content = await self._generator.generate(self.host, ref, config)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"failed running generator: {e}") from e

        if config.credit:
            content += credits_line(self._settings)
        return {"content": content, "new_sha": compute_sha(content)}

    async def compare(self, state: ReadmeState) -> ReadmeState:
        """Read the README currently published on the default branch."""
        self._enter("compare")
        current = await read_readme(
            self.host,
            self.job.owner,
            self.job.repo,
            state["default_branch"],
            self._settings.readme_path,
        )
        return {"default_sha": current.sha, "readme_path": current.path}

    async def skip(self, state: ReadmeState) -> ReadmeState:
        self._enter("skip")
        return {"message": f"Readme in branch {state['default_branch']} is up to date"}

    async def branch(self, state: ReadmeState) -> ReadmeState:
        self._enter("branch")
        created = await ensure_branch(
            self.host,
            self.job.owner,
            self.job.repo,
            self._settings.integration_branch,
            state["head_sha"],
        )
        return {"branch_created": created}

    async def publish(self, state: ReadmeState) -> ReadmeState:
        """Commit the generated README on the integration branch.

        The base digest is what the integration branch holds right now: the
        default branch README for a branch created by this attempt, otherwise
        the README on the integration branch itself.
        """
        self._enter("publish")
        branch = self._settings.integration_branch

        if state["branch_created"]:
            base_sha = state["default_sha"]
        else:
            current = await read_readme(
                self.host,
                self.job.owner,
                self.job.repo,
                branch,
                self._settings.readme_path,
            )
            base_sha = current.sha
            if current.sha == state["new_sha"]:
                logger.info(
                    f"[{self.job.tag}] Readme in branch {branch} is up to date, making sure PR is open"
                )

        commit_sha = await commit_readme(
            self.host,
            self.job.owner,
            self.job.repo,
            branch=branch,
            path=state["readme_path"],
            content=state["content"],
            base_sha=base_sha,
            settings=self._settings,
        )
        return {"commit_sha": commit_sha}

    async def pull_request(self, state: ReadmeState) -> ReadmeState:
        self._enter("pull_request")
        number, created = await resolve_pull_request(
            self.host,
            self.job.owner,
            self.job.repo,
            self._settings.integration_branch,
            state["default_branch"],
            self._settings,
        )
        self.job.pr = number
        message = "Created PR" if created else "PR updated"
        return {"pr_number": number, "pr_created": created, "message": message}

    async def execute(self) -> str:
        """Run the workflow to completion.

        Returns:
            The job's outcome message
        """
        graph = build_workflow(self).compile()
        final = await graph.ainvoke({
            "default_branch": self.job.default_branch,
            "head_sha": self.job.head_sha,
        })
        return final["message"]


# =============================================================================
# Routing Functions
# =============================================================================

def should_publish(state: ReadmeState) -> Literal["skip", "branch"]:
    """Skip publishing when the default branch already has the new README."""
    if state["default_sha"] == state["new_sha"]:
        return "skip"
    return "branch"


# =============================================================================
# Workflow Builder
# =============================================================================

def build_workflow(run: JobRun) -> StateGraph:
    """Build the LangGraph workflow for one job run."""
    workflow = StateGraph(ReadmeState)

    # Add nodes
    workflow.add_node("connect", run.connect)
    workflow.add_node("load_config", run.load_config)
    workflow.add_node("generate", run.generate)
    workflow.add_node("compare", run.compare)
    workflow.add_node("skip", run.skip)
    workflow.add_node("branch", run.branch)
    workflow.add_node("publish", run.publish)
    workflow.add_node("pull_request", run.pull_request)

    # Set entry point
    workflow.set_entry_point("connect")

    # Add edges
    workflow.add_edge("connect", "load_config")
    workflow.add_edge("load_config", "generate")
    workflow.add_edge("generate", "compare")

    # Digest gate
    workflow.add_conditional_edges(
        "compare",
        should_publish,
        {
            "skip": "skip",
            "branch": "branch",
        },
    )

    workflow.add_edge("skip", END)
    workflow.add_edge("branch", "publish")
    workflow.add_edge("publish", "pull_request")
    workflow.add_edge("pull_request", END)

    return workflow
