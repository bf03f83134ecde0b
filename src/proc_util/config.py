"""Configuration shared by the process components."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class ProcessConfig:
    """Settings passed explicitly to ProcessRunner, ProcessLookup and ProcessTerminator."""

    shell: str = "/bin/sh"
    poll_interval: float = 0.1  # seconds between reaper polls
    grace_period: float = 5.0  # seconds between SIGTERM and SIGKILL
    encoding: str = "utf-8"
    cwd: Path | None = None
    env: dict[str, str] | None = None
    supervisor_command: str | None = None

    def build_env(self) -> dict[str, str] | None:
        """Return the environment for a child, or None to inherit ours unchanged."""
        if not self.env:
            return None
        env = os.environ.copy()
        env.update(self.env)
        return env

    def build_cwd(self) -> str | None:
        return str(self.cwd) if self.cwd is not None else None
