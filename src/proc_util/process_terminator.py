"""Signal delivery: graceful termination, forced kills and pattern based kills."""

from __future__ import annotations

import logging
import os
import time

import psutil

from proc_util.config import ProcessConfig
from proc_util.errors import ProcessPermissionError
from proc_util.process_lookup import ProcessLookup

logger = logging.getLogger(__name__)


def _get_process(pid: int) -> psutil.Process | None:
    if pid <= 0:
        # 0 and negative pids address whole process groups
        error_message = f"Invalid pid: {pid}"
        raise ValueError(error_message)
    try:
        return psutil.Process(pid)
    except psutil.NoSuchProcess:
        return None


class ProcessTerminator:
    """
    Sends termination signals to processes.

    Every operation is idempotent: a pid that already exited, or never
    existed, is silently ignored. Refused signals raise ProcessPermissionError.
    """

    def __init__(self, config: ProcessConfig | None = None, lookup: ProcessLookup | None = None) -> None:
        self.config = config if config is not None else ProcessConfig()
        self.lookup = lookup if lookup is not None else ProcessLookup(self.config)

    def _signal(self, pid: int, force: bool) -> None:
        proc = _get_process(pid)
        if proc is None:
            logger.debug("Pid %s is gone, nothing to signal", pid)
            return
        try:
            if force:
                proc.kill()
            else:
                proc.terminate()
        except psutil.NoSuchProcess:
            logger.debug("Pid %s exited before it could be signalled", pid)
        except psutil.AccessDenied as e:
            error_message = f"Not permitted to signal process {pid}"
            raise ProcessPermissionError(error_message) from e
        else:
            logger.debug("Sent %s to pid %s", "SIGKILL" if force else "SIGTERM", pid)

    def terminate(self, pid: int) -> None:
        """Send SIGTERM to ``pid``."""
        self._signal(pid, force=False)

    def kill(self, pid: int) -> None:
        """Send SIGKILL to ``pid``."""
        self._signal(pid, force=True)

    def kill_all(self, pattern: str, force: bool = True) -> list[int]:
        """
        Signal every process whose command line matches the regex ``pattern``.

        A process the OS refuses to signal does not stop the others from being
        signalled.

        Args:
            pattern: Regular expression searched in each joined command line.
            force: Send SIGKILL when True, SIGTERM otherwise.

        Returns:
            The pids that were signalled.

        Raises:
            ProcessPermissionError: After every match was tried, if any was
                refused. ``denied`` and ``signalled`` hold the pids of each kind.
        """
        signalled: list[int] = []
        denied: list[int] = []
        for pid in self.lookup.find_matching(pattern):
            try:
                self._signal(pid, force=force)
            except ProcessPermissionError:
                logger.warning("Not permitted to signal pid %s matching %r", pid, pattern)
                denied.append(pid)
            else:
                signalled.append(pid)
        if signalled:
            logger.info("Signalled %d processes matching %r: %s", len(signalled), pattern, signalled)
        if denied:
            error_message = f"Not permitted to signal processes {denied} matching {pattern!r}"
            raise ProcessPermissionError(error_message, denied, signalled)
        return signalled

    def _wait_stopped(self, pids: list[int], timeout: float) -> list[int]:
        """Poll until every pid stopped or the timeout elapsed, returning the survivors.

        Only the process table is inspected; nothing is reaped, so a Popen
        owning one of the pids still collects its real exit status.
        """
        deadline = time.monotonic() + timeout
        alive = [pid for pid in pids if self.lookup.is_running(pid)]
        while alive and time.monotonic() < deadline:
            time.sleep(min(self.config.poll_interval, max(deadline - time.monotonic(), 0)))
            alive = [pid for pid in alive if self.lookup.is_running(pid)]
        return alive

    def terminate_then_kill(self, pid: int, grace_period: float | None = None) -> None:
        """
        Send SIGTERM, then SIGKILL if the process outlives the grace period.

        Args:
            pid: Process to stop.
            grace_period: Seconds to wait after SIGTERM. Defaults to config.grace_period.
        """
        if grace_period is None:
            grace_period = self.config.grace_period

        if _get_process(pid) is None:
            return
        self.terminate(pid)
        for survivor in self._wait_stopped([pid], grace_period):
            logger.warning("Pid %s ignored SIGTERM for %ss, killing it", survivor, grace_period)
            self.kill(survivor)

    def kill_tree(self, pid: int, grace_period: float | None = None) -> None:
        """Kill a process and all its children."""
        if grace_period is None:
            grace_period = self.config.grace_period

        parent = _get_process(pid)
        if parent is None:
            return
        if parent.pid == os.getpid():
            error_message = "Refusing to kill the current process tree"
            raise ValueError(error_message)
        try:
            children = [child.pid for child in parent.children(recursive=True)]
        except psutil.NoSuchProcess:
            children = []

        # First try graceful termination
        for child in children:
            self.terminate(child)

        # Force kill any that are still alive
        for child in self._wait_stopped(children, grace_period):
            self.kill(child)

        self.terminate_then_kill(parent.pid, grace_period)
