"""
Error taxonomy for the Git LoC tracker.

Per-item errors (RepoAccessError, DiffComputeError, SinkWriteError) are
caught at the smallest scope, logged and skipped. Only FatalSetupError
escapes to the process boundary.
"""

from typing import Optional


class LocTrackerError(Exception):
    """Base class for all tracker errors."""


class RepoAccessError(LocTrackerError):
    """A repository could not be opened, read, or walked."""

    def __init__(self, path: str, message: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        super().__init__(f"{path}: {message}")


class DiffComputeError(LocTrackerError):
    """A single diff statistic could not be computed."""

    def __init__(self, what: str, message: str, cause: Optional[BaseException] = None):
        self.what = what
        self.cause = cause
        super().__init__(f"{what}: {message}")


class SinkWriteError(LocTrackerError):
    """A change record could not be appended to the persistence sink."""

    def __init__(self, repo_name: str, message: str, cause: Optional[BaseException] = None):
        self.repo_name = repo_name
        self.cause = cause
        super().__init__(f"Failed to store change for {repo_name}: {message}")


class FatalSetupError(LocTrackerError):
    """The watch source or the sink could not be initialized."""


__all__ = [
    "LocTrackerError",
    "RepoAccessError",
    "DiffComputeError",
    "SinkWriteError",
    "FatalSetupError",
]
