"""Handle over a spawned process and its standard streams."""

from __future__ import annotations

import contextlib
import io
import logging
import subprocess
from typing import IO, Any

from proc_util.errors import ProcessStillRunningError, WaitError
from proc_util.stream_drainer import StreamDrainer

logger = logging.getLogger(__name__)


def read_stream(stream: IO[bytes] | None, encoding: str = "utf-8") -> str:
    """Drain a binary stream to a string. A missing stream reads as empty."""
    if stream is None:
        return ""
    return stream.read().decode(encoding, errors="replace")


class ProcessHandle:
    """
    Wraps one spawned process together with its stdin, stdout and stderr.

    Before wait() the streams are the live pipes of the child. wait() drains
    stdout and stderr on separate threads while blocking on exit, then swaps
    both for in-memory buffers holding every byte the child wrote, so they can
    still be read after the pipes are gone.
    """

    def __init__(self, process: subprocess.Popen[Any], encoding: str = "utf-8") -> None:
        self.process = process
        self.encoding = encoding
        self._stdout: IO[bytes] | None = process.stdout
        self._stderr: IO[bytes] | None = process.stderr
        self._drained = False

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def process_stdin(self) -> IO[bytes] | None:
        """Pipe into the child's stdin, None when stdin was not piped."""
        return self.process.stdin

    @property
    def process_stdout(self) -> IO[bytes] | None:
        return self._stdout

    @property
    def process_stderr(self) -> IO[bytes] | None:
        return self._stderr

    @property
    def returncode(self) -> int | None:
        """Exit code, or None while the process has not been observed to exit."""
        return self.process.returncode

    def poll(self) -> int | None:
        return self.process.poll()

    @property
    def finished(self) -> bool:
        return self.poll() is not None

    def exit_code(self) -> int:
        """
        Return the exit code of the terminated process.

        Raises:
            ProcessStillRunningError: If the process has not exited yet.
        """
        rc = self.process.poll()
        if rc is None:
            error_message = f"Process {self.pid} is still running"
            raise ProcessStillRunningError(error_message)
        return rc

    def _close_stdin(self) -> None:
        stdin = self.process.stdin
        if stdin is None or stdin.closed:
            return
        # The child may already be gone, leaving nobody to receive EOF.
        with contextlib.suppress(BrokenPipeError, ValueError, OSError):
            stdin.close()

    def _start_drainers(self) -> list[tuple[str, StreamDrainer]]:
        drainers: list[tuple[str, StreamDrainer]] = []
        for name, stream in (("stdout", self._stdout), ("stderr", self._stderr)):
            if stream is None or stream.closed:
                continue
            drainer = StreamDrainer(stream, f"{self.pid}-{name}")
            drainer.start()
            drainers.append((name, drainer))
        return drainers

    def wait(self) -> int:
        """
        Block until the process exits, capturing everything it writes.

        stdin is closed first to signal end of input. Safe to call again; later
        calls return the stored exit code.

        Returns:
            Process exit code.

        Raises:
            WaitError: If interrupted while blocked. The child is killed first.
        """
        if self._drained:
            return self.exit_code()

        self._close_stdin()
        drainers = self._start_drainers()
        try:
            rtn = self.process.wait()
        except KeyboardInterrupt as e:
            logger.warning("Interrupted while waiting for pid %s, killing it", self.pid)
            with contextlib.suppress(ProcessLookupError, OSError):
                self.process.kill()
            self.process.wait()
            for _, drainer in drainers:
                drainer.join(timeout=1.0)
            error_message = f"Interrupted while waiting for process {self.pid}"
            raise WaitError(error_message) from e

        for name, drainer in drainers:
            drainer.join()
            buffered = io.BytesIO(drainer.data)
            if name == "stdout":
                self._stdout = buffered
            else:
                self._stderr = buffered
        self._drained = True
        logger.debug("Process %s exited with %s", self.pid, rtn)
        return rtn

    def read_stdout(self) -> str:
        """Read the remaining stdout content as text."""
        return read_stream(self._stdout, self.encoding)

    def read_stderr(self) -> str:
        """Read the remaining stderr content as text."""
        return read_stream(self._stderr, self.encoding)

    def close(self) -> None:
        """Kill the child if it is still running, reap it and close every pipe."""
        if self.process.poll() is None:
            logger.debug("Killing still running pid %s on close", self.pid)
            with contextlib.suppress(ProcessLookupError, OSError):
                self.process.kill()
            self.process.wait()
        self._close_stdin()
        for stream in (self._stdout, self._stderr):
            if stream is not None and not stream.closed:
                with contextlib.suppress(ValueError, OSError):
                    stream.close()

    def __enter__(self) -> ProcessHandle:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: Any | None) -> bool:
        self.close()
        # Do not suppress exceptions
        return False

    def __repr__(self) -> str:
        return f"ProcessHandle(pid={self.pid}, returncode={self.returncode})"
