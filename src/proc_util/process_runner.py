"""Launching of external commands.

## Basic Usage

```python
runner = ProcessRunner()

# Shell string, block until it exits
exit_code = runner.run("/bin/sh ./script.sh")

# Argument vector, no shell interpretation
exit_code = runner.run(["/bin/sh", "./script.sh"])

# Fire and forget, the child is reaped in the background
runner.run("sleep 10", wait_for_completion=False)

# Detached shell job, returns the launching shell's exit code
runner.run("./daemon.sh", run_in_background=True)

# Capture stdout and stderr separately
handle = runner.run_with_handle("echo out; echo err 1>&2")
print(handle.exit_code(), handle.read_stdout(), handle.read_stderr())
```
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Sequence
from typing import Any

from proc_util.config import ProcessConfig
from proc_util.errors import LaunchError, WaitError
from proc_util.process_handle import ProcessHandle
from proc_util.process_reaper import ProcessReaper

logger = logging.getLogger(__name__)

# A shell string or an argument vector
Command = str | Sequence[str]


def command_to_str(command: Command) -> str:
    """Render a command as a single shell string."""
    if isinstance(command, str):
        return command
    return shlex.join(command)


def as_background(command: Command) -> str:
    """Wrap a command so that the shell detaches it as a background job."""
    command_str = command_to_str(command).rstrip()
    if command_str.endswith("&") and not command_str.endswith("&&"):
        command_str = command_str[:-1].rstrip()
    if not command_str:
        error_message = "Command must not be empty"
        raise ValueError(error_message)
    return f"{command_str} &"


class ProcessRunner:
    """
    Spawns commands and reports their exit codes.

    String commands are interpreted by ``<shell> -c``; sequences are executed
    directly, so arguments containing spaces or metacharacters are passed as is.
    The runner holds no per-process state; every call is independent.
    """

    def __init__(self, config: ProcessConfig | None = None) -> None:
        self.config = config if config is not None else ProcessConfig()

    def _prepare_command(self, command: Command) -> list[str]:
        """Build the argv handed to Popen."""
        if isinstance(command, str):
            return [self.config.shell, "-c", command]
        argv = list(command)
        if not argv:
            error_message = "Command must not be empty"
            raise ValueError(error_message)
        return argv

    def _popen(self, command: Command, **pipes: Any) -> subprocess.Popen[bytes]:
        argv = self._prepare_command(command)
        logger.debug("Spawning %s", argv)
        try:
            return subprocess.Popen(  # noqa: S603
                argv,
                cwd=self.config.build_cwd(),
                env=self.config.build_env(),
                **pipes,
            )
        except OSError as e:
            error_message = f"Failed to launch {command_to_str(command)!r}: {e}"
            raise LaunchError(error_message) from e

    def _wait(self, proc: subprocess.Popen[bytes]) -> int:
        try:
            return proc.wait()
        except KeyboardInterrupt as e:
            logger.warning("Interrupted while waiting for pid %s, killing it", proc.pid)
            proc.kill()
            proc.wait()
            error_message = f"Interrupted while waiting for process {proc.pid}"
            raise WaitError(error_message) from e

    def run(self, command: Command, wait_for_completion: bool = True, run_in_background: bool = False) -> int:
        """
        Launch a command.

        Args:
            command: Shell string or argument vector.
            wait_for_completion: Block until the launched process exits.
            run_in_background: Detach the command as a shell job (trailing ``&``).
                The returned code is then the launching shell's own.

        Returns:
            The exit code when waiting, otherwise 0 once the spawn succeeded.

        Raises:
            LaunchError: If the process cannot be spawned.
            WaitError: If interrupted while waiting.
        """
        if run_in_background:
            command = as_background(command)

        proc = self._popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

        if wait_for_completion:
            rtn = self._wait(proc)
            logger.debug("Command %r exited with %s", command_to_str(command), rtn)
            return rtn

        # Nobody waits for this child; reap it so it leaves the process table.
        ProcessReaper(proc, self.config.poll_interval).start()
        return 0

    def start(self, command: Command) -> int:
        """Run a command in the foreground and return its exit code."""
        return self.run(command, wait_for_completion=True, run_in_background=False)

    def start_background(self, command: Command, wait_for_completion: bool) -> int:
        """Run a command as a detached shell job."""
        return self.run(command, wait_for_completion=wait_for_completion, run_in_background=True)

    def spawn(self, command: Command) -> ProcessHandle:
        """
        Launch a command with stdin, stdout and stderr piped.

        The caller owns the returned handle and must wait() or close() it.

        Raises:
            LaunchError: If the process cannot be spawned.
        """
        proc = self._popen(
            command,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        return ProcessHandle(proc, encoding=self.config.encoding)

    def run_with_handle(self, command: Command) -> ProcessHandle:
        """
        Run a command to completion, keeping its output and exit code.

        stdin is /dev/null. stdout and stderr are captured separately.

        Raises:
            LaunchError: If the process cannot be spawned.
            WaitError: If interrupted while waiting.
        """
        proc = self._popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        handle = ProcessHandle(proc, encoding=self.config.encoding)
        handle.wait()
        return handle
