"""Exception types raised by proc_util."""

from __future__ import annotations


class ProcessUtilError(Exception):
    """Base class for all proc_util errors."""


class LaunchError(ProcessUtilError):
    """Raised when a command cannot be spawned."""


class WaitError(ProcessUtilError):
    """Raised when waiting for a process is interrupted."""


class ProcessNotFoundError(ProcessUtilError, LookupError):
    """Raised when no process table entry matches a lookup."""


class ProcessPermissionError(ProcessUtilError, PermissionError):
    """Raised when the OS refuses to deliver a signal.

    ``denied`` lists the pids that could not be signalled, ``signalled`` the
    ones that were, when a single call addressed several processes.
    """

    def __init__(self, message: str, denied: list[int] | None = None, signalled: list[int] | None = None) -> None:
        super().__init__(message)
        self.denied = denied if denied is not None else []
        self.signalled = signalled if signalled is not None else []


class ProcessStillRunningError(ProcessUtilError):
    """Raised when an exit code is requested before the process exited."""
