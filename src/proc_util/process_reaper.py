"""Process reaper module.

This module contains the ProcessReaper class which polls a child launched without
waiting until it terminates, so its process table entry is released.
"""

import _thread
import logging
import subprocess
import threading
import time
import traceback
from typing import Any

logger = logging.getLogger(__name__)


class ProcessReaper:
    """Background thread that polls a child process until it terminates."""

    def __init__(self, proc: "subprocess.Popen[Any]", poll_interval: float = 0.1) -> None:
        self._proc = proc
        self._poll_interval = poll_interval
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        name = f"ProcessReaper-{self._proc.pid}"
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        thread_name = threading.current_thread().name
        try:
            while self._proc.poll() is None:
                time.sleep(self._poll_interval)
            logger.debug("Reaped pid %s with exit code %s", self._proc.pid, self._proc.returncode)
        except KeyboardInterrupt:
            logger.warning("Thread %s caught KeyboardInterrupt", thread_name)
            traceback.print_exc()
            _thread.interrupt_main()
            raise
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("Reaper thread error in %s: %s", thread_name, e)

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def thread(self) -> threading.Thread | None:
        return self._thread
