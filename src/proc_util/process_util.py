"""Facade combining launching, lookup and termination behind one object."""

from __future__ import annotations

from collections.abc import Sequence

from proc_util.config import ProcessConfig
from proc_util.process_handle import ProcessHandle
from proc_util.process_lookup import ProcessLookup
from proc_util.process_runner import Command, ProcessRunner
from proc_util.process_terminator import ProcessTerminator


class ProcessUtil:
    """
    Constructible entry point for process supervision.

    Components may be injected, otherwise they are built from ``config``.
    Nothing here is global; create as many instances as needed.
    """

    def __init__(
        self,
        config: ProcessConfig | None = None,
        runner: ProcessRunner | None = None,
        lookup: ProcessLookup | None = None,
        terminator: ProcessTerminator | None = None,
    ) -> None:
        self.config = config if config is not None else ProcessConfig()
        self.runner = runner if runner is not None else ProcessRunner(self.config)
        self.lookup = lookup if lookup is not None else ProcessLookup(self.config)
        self.terminator = terminator if terminator is not None else ProcessTerminator(self.config, self.lookup)

    # Launching
    def run(self, command: Command, wait_for_completion: bool = True, run_in_background: bool = False) -> int:
        return self.runner.run(command, wait_for_completion, run_in_background)

    def start(self, command: Command) -> int:
        return self.runner.start(command)

    def start_background(self, command: Command, wait_for_completion: bool) -> int:
        return self.runner.start_background(command, wait_for_completion)

    def spawn(self, command: Command) -> ProcessHandle:
        return self.runner.spawn(command)

    def run_with_handle(self, command: Command) -> ProcessHandle:
        return self.runner.run_with_handle(command)

    # Lookup
    def find_process_id(self, command: str, args: Sequence[str] | None = None) -> int:
        return self.lookup.find_process_id(command, args)

    def is_running(self, pid: int) -> bool:
        return self.lookup.is_running(pid)

    def find_supervisor_process_id(self) -> int:
        return self.lookup.find_supervisor_process_id()

    def describe(self, pid: int) -> str:
        return self.lookup.describe(pid)

    # Termination
    def terminate(self, pid: int) -> None:
        self.terminator.terminate(pid)

    def kill(self, pid: int) -> None:
        self.terminator.kill(pid)

    def kill_all(self, pattern: str, force: bool = True) -> list[int]:
        return self.terminator.kill_all(pattern, force)

    def terminate_then_kill(self, pid: int, grace_period: float | None = None) -> None:
        self.terminator.terminate_then_kill(pid, grace_period)

    def kill_tree(self, pid: int, grace_period: float | None = None) -> None:
        self.terminator.kill_tree(pid, grace_period)
