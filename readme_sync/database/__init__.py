"""Persistence layer: tables, sessions and the job store."""

from readme_sync.database.models import Job, Project, ProjectBase

__all__ = ["Job", "Project", "ProjectBase"]
