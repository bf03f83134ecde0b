"""Launch, inspect and terminate external processes on POSIX hosts."""

from __future__ import annotations

__version__ = "1.0.0"

from proc_util.config import ProcessConfig
from proc_util.errors import (
    LaunchError,
    ProcessNotFoundError,
    ProcessPermissionError,
    ProcessStillRunningError,
    ProcessUtilError,
    WaitError,
)
from proc_util.process_handle import ProcessHandle, read_stream
from proc_util.process_lookup import ProcessLookup
from proc_util.process_runner import ProcessRunner
from proc_util.process_terminator import ProcessTerminator
from proc_util.process_util import ProcessUtil

__all__ = [
    "LaunchError",
    "ProcessConfig",
    "ProcessHandle",
    "ProcessLookup",
    "ProcessNotFoundError",
    "ProcessPermissionError",
    "ProcessRunner",
    "ProcessStillRunningError",
    "ProcessTerminator",
    "ProcessUtil",
    "ProcessUtilError",
    "WaitError",
    "read_stream",
]
