"""Stream drainer module.

This module contains the StreamDrainer class which empties a child's output pipe
in a dedicated thread so that a full OS pipe buffer can never block the child.
"""

import _thread
import logging
import threading
import traceback
import warnings
from typing import IO

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 4096


class StreamDrainer:
    """Dedicated reader that drains one binary pipe into memory.

    Reads chunk by chunk until EOF, which only happens once the child exited
    and every writer closed its end of the pipe. The pipe is closed afterwards.
    """

    def __init__(self, stream: IO[bytes], name: str) -> None:
        self._stream = stream
        self._name = name
        self._chunks: list[bytes] = []
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run, name=f"StreamDrainer-{self._name}", daemon=True)
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def data(self) -> bytes:
        """Every byte read so far."""
        return b"".join(self._chunks)

    def _read_until_eof(self) -> None:
        # read1 returns whatever is available instead of waiting for a full chunk
        read = getattr(self._stream, "read1", self._stream.read)
        while True:
            chunk = read(_CHUNK_SIZE)
            if not chunk:  # EOF reached
                break
            self._chunks.append(chunk)

    def _handle_io_error(self, e: ValueError | OSError) -> None:
        # Closed file descriptors are the normal outcome of a forced shutdown.
        error_str = str(e)
        if any(msg in error_str for msg in ["closed file", "Bad file descriptor"]):
            warnings.warn(f"Stream drainer {self._name} encountered closed file: {e}", stacklevel=2)
        else:
            logger.warning("Stream drainer %s encountered error: %s", self._name, e)

    def _close_stream(self) -> None:
        if self._stream.closed:
            return
        try:
            self._stream.close()
        except (ValueError, OSError) as err:
            warnings.warn(f"Stream drainer {self._name} failed to close pipe: {err}", stacklevel=2)

    def run(self) -> None:
        """Read the stream until EOF, then close it."""
        try:
            self._read_until_eof()
        except KeyboardInterrupt:
            logger.warning("Thread %s caught KeyboardInterrupt", threading.current_thread().name)
            traceback.print_exc()
            _thread.interrupt_main()
            raise
        except (ValueError, OSError) as e:
            self._handle_io_error(e)
        finally:
            self._close_stream()
        logger.debug("Stream drainer %s finished with %d bytes", self._name, sum(len(c) for c in self._chunks))
