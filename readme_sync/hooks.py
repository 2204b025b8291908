"""GitHub webhook handling.

Turns webhook deliveries into job triggers:
- push to the default branch
- app installed on repositories
- pull request merged into the default branch
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any

from readme_sync.schemas import Trigger


logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def verify_signature(body: bytes, header: str | None, secret: str) -> bool:
    """Check the ``X-Hub-Signature-256`` header of a delivery.

    An empty secret disables verification.
    """
    if not secret:
        return True
    if not header or not header.startswith(SIGNATURE_PREFIX):
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, header[len(SIGNATURE_PREFIX):])


def branch_of_ref(ref: str) -> str:
    return ref.removeprefix("refs/heads/")


def parse_event(event: str, payload: dict[str, Any], app_id: int = 0) -> list[Trigger]:
    """Convert a webhook delivery into job triggers.

    Args:
        event: Value of the ``X-GitHub-Event`` header
        payload: Decoded delivery body
        app_id: Our GitHub App ID, used to ignore pushes made by the app

    Returns:
        Triggers to start, possibly empty
    """
    installation_id = (payload.get("installation") or {}).get("id")
    if installation_id is None:
        logger.warning(f"Ignoring {event} event without installation")
        return []

    if event == "push":
        return _push_triggers(payload, installation_id, app_id)
    if event in ("installation", "installation_repositories"):
        return _install_triggers(event, payload, installation_id)
    if event == "pull_request":
        return _pull_request_triggers(payload, installation_id)

    logger.info(f"Ignoring {event} event")
    return []


def _push_triggers(payload: dict[str, Any], installation_id: int, app_id: int) -> list[Trigger]:
    repo = payload.get("repository") or {}
    branch = branch_of_ref(payload.get("ref", ""))
    if branch != repo.get("default_branch"):
        logger.info(f"Skipping push to non default branch {branch!r}")
        return []
    if payload.get("deleted"):
        logger.info(f"Skipping deletion of {branch!r}")
        return []
    if app_id and (payload.get("installation") or {}).get("app_id") == app_id:
        logger.info("Skipping self push")
        return []

    owner = repo.get("owner") or {}
    head = payload.get("head_commit") or {}
    return [
        Trigger(
            installation_id=installation_id,
            owner=owner.get("login") or owner.get("name"),
            repo=repo["name"],
            head_sha=head.get("id") or payload.get("after"),
            default_branch=branch,
            reason=f"Push to {branch}",
        )
    ]


def _install_triggers(event: str, payload: dict[str, Any], installation_id: int) -> list[Trigger]:
    action = payload.get("action")
    if event == "installation":
        repositories = payload.get("repositories") or []
        added = repositories if action == "created" else []
        removed = repositories if action == "deleted" else []
    else:
        added = payload.get("repositories_added") or []
        removed = payload.get("repositories_removed") or []

    logger.info(f"Install hook triggered added={len(added)} removed={len(removed)}")
    for repo in removed:
        logger.info(f"Removed of {repo.get('full_name')}")

    triggers = []
    for repo in added:
        owner, _, name = repo["full_name"].partition("/")
        triggers.append(
            Trigger(
                installation_id=installation_id,
                owner=owner,
                repo=name,
                reason="New Install",
            )
        )
    return triggers


def _pull_request_triggers(payload: dict[str, Any], installation_id: int) -> list[Trigger]:
    pull = payload.get("pull_request") or {}
    if payload.get("action") != "closed" or not pull.get("merged"):
        logger.info("Skipping non-merge PR")
        return []

    repo = payload.get("repository") or {}
    default_branch = repo.get("default_branch")
    base = (pull.get("base") or {}).get("ref")
    if base != default_branch:
        logger.info(f"Skipping merge to non-default branch: {base}")
        return []

    return [
        Trigger(
            installation_id=installation_id,
            owner=repo["owner"]["login"],
            repo=repo["name"],
            default_branch=default_branch,
            reason=f"PR#{pull.get('number')}",
        )
    ]
