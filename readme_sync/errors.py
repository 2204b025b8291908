"""Error taxonomy for readme-sync jobs.

Every failure inside a job attempt is converted into one of these classes
before it is recorded, so a failed job always carries a stable
``error_code`` next to its human readable message.
"""

from __future__ import annotations


class ReadmeSyncError(Exception):
    """Base class for classified job failures."""

    error_code = "internal_error"
    retryable = False


class ConfigurationError(ReadmeSyncError):
    """The repository configuration file is malformed."""

    error_code = "config_error"


class GenerationError(ReadmeSyncError):
    """The document generator could not produce a README."""

    error_code = "generation_error"


class RemoteError(ReadmeSyncError):
    """A call to the repository host failed."""

    error_code = "remote_error"
    retryable = True


class RemoteReadError(RemoteError):
    """A lookup failed for a reason other than "not found"."""

    error_code = "remote_read_error"


class RemoteWriteError(RemoteError):
    """A write to the repository host failed."""

    error_code = "remote_write_error"


class RemoteWriteConflict(RemoteWriteError):
    """The host rejected a write because its base is stale or the ref exists."""

    error_code = "remote_conflict"


class JobTimeoutError(ReadmeSyncError):
    """The whole-attempt time budget was exceeded."""

    error_code = "timeout"
    retryable = True


class PersistenceError(ReadmeSyncError):
    """A job or project transaction failed."""

    error_code = "persistence_error"
    retryable = True


def describe(exc: BaseException) -> str:
    """Render an exception with its cause chain, outermost first."""
    parts = []
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = str(current) or type(current).__name__
        parts.append(text)
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None
    return ": ".join(parts)
