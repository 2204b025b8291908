"""Job workflow and orchestration."""

from readme_sync.jobs.orchestrator import JobOrchestrator, StartedJob
from readme_sync.jobs.workflow import JobRun, build_workflow

__all__ = ["JobOrchestrator", "JobRun", "StartedJob", "build_workflow"]
