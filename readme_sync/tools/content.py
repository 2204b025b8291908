"""Content addressing for published documents."""

from __future__ import annotations

import hashlib


def compute_sha(content: bytes) -> str:
    """Compute the git blob object ID of ``content``.

    This is the same digest the repository host reports for file contents, so
    a locally computed value can be compared with, and passed back as, the
    base SHA of a remote file.
    """
    header = f"blob {len(content)}\0".encode()
    return hashlib.sha1(header + content).hexdigest()


def short_sha(sha: str | None) -> str:
    """Abbreviate a commit or blob SHA for log lines."""
    if not sha:
        return ""
    return sha[:8]
