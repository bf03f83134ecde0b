"""Process table queries: pid lookup by command line and liveness checks."""

from __future__ import annotations

import contextlib
import logging
import os
import re
from collections.abc import Iterator, Sequence

import psutil

from proc_util.config import ProcessConfig
from proc_util.errors import ProcessNotFoundError

logger = logging.getLogger(__name__)

# Match quality, lower is better
_EXACT = 0
_PREFIX = 1
_CONTAINED = 2


def _query_tokens(command: str, args: Sequence[str] | None) -> list[str]:
    tokens = command.split()
    if args:
        tokens.extend(" ".join(args).split())
    # A trailing '&' only detaches the job; it never shows up in the table.
    if tokens and tokens[-1] == "&":
        tokens.pop()
    return tokens


def _match_rank(query: list[str], cmdline: list[str]) -> int | None:
    """Rank how well a process command line matches the query tokens."""
    if not query or len(cmdline) < len(query):
        return None
    if cmdline == query:
        return _EXACT
    if cmdline[: len(query)] == query:
        return _PREFIX
    for start in range(1, len(cmdline) - len(query) + 1):
        if cmdline[start : start + len(query)] == query:
            return _CONTAINED
    return None


def _is_zombie(proc: psutil.Process) -> bool:
    try:
        return proc.status() == psutil.STATUS_ZOMBIE
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


class ProcessLookup:
    """Finds processes in the live process table using psutil."""

    def __init__(self, config: ProcessConfig | None = None) -> None:
        self.config = config if config is not None else ProcessConfig()

    def _iter_cmdlines(self) -> Iterator[tuple[int, list[str]]]:
        """Yield (pid, whitespace tokenized command line) for every visible, live process."""
        own_pid = os.getpid()
        for proc in psutil.process_iter(["pid", "cmdline", "status"]):
            info = proc.info
            if info["pid"] == own_pid or info.get("status") == psutil.STATUS_ZOMBIE:
                continue
            cmdline = info.get("cmdline")
            if not cmdline:  # kernel threads, or access denied
                continue
            yield info["pid"], " ".join(cmdline).split()

    def find_process_id(self, command: str, args: Sequence[str] | None = None) -> int:
        """
        Return the pid of the running process whose command line matches.

        The query is ``command`` followed by ``args``. An exact command line
        wins over one that starts with the query, which wins over one that
        merely contains it as a contiguous run of tokens. Ties go to the first
        entry of the table.

        Raises:
            ProcessNotFoundError: If no process matches.
        """
        query = _query_tokens(command, args)
        best_pid: int | None = None
        best_rank: int | None = None
        for pid, cmdline in self._iter_cmdlines():
            rank = _match_rank(query, cmdline)
            if rank is None:
                continue
            if best_rank is None or rank < best_rank:
                best_pid, best_rank = pid, rank
                if rank == _EXACT:
                    break

        if best_pid is None:
            error_message = f"No running process matches {' '.join(query)!r}"
            raise ProcessNotFoundError(error_message)
        logger.debug("Command %r resolved to pid %s", " ".join(query), best_pid)
        return best_pid

    def find_matching(self, pattern: str) -> list[int]:
        """Return the pids whose command line matches the regular expression ``pattern``."""
        regex = re.compile(pattern)
        return [pid for pid, cmdline in self._iter_cmdlines() if regex.search(" ".join(cmdline))]

    def is_running(self, pid: int) -> bool:
        """True while the process table holds a live (non-zombie) entry for ``pid``."""
        if pid <= 0:
            return False
        try:
            proc = psutil.Process(pid)
        except psutil.NoSuchProcess:
            return False
        return not _is_zombie(proc) and proc.is_running()

    def find_supervisor_process_id(self) -> int:
        """Return the pid of the supervising process.

        That is the process running ``config.supervisor_command`` when set,
        otherwise the current interpreter.
        """
        if self.config.supervisor_command:
            return self.find_process_id(self.config.supervisor_command)
        return os.getpid()

    def describe(self, pid: int) -> str:
        """Summarize a process the way lookups see it.

        Reports the tokenized command line matched by find_process_id, whether
        is_running counts it as live, and every descendant with zombies flagged.
        """
        try:
            process = psutil.Process(pid)
            lines = [
                f"Process {pid} ({process.name()}) parent={process.ppid()}",
                f"Status: {process.status()} running={self.is_running(pid)}",
                f"Tokens: {' '.join(process.cmdline()).split()}",
            ]
            for child in process.children(recursive=True):
                with contextlib.suppress(psutil.NoSuchProcess):
                    if _is_zombie(child):
                        lines.append(f"  child {child.pid}: zombie")
                    else:
                        lines.append(f"  child {child.pid}: {' '.join(child.cmdline())}")
        except psutil.Error as e:
            logger.debug("Could not inspect pid %s: %s", pid, e)
            return f"Could not get process info for PID {pid}"
        return "\n".join(lines)
