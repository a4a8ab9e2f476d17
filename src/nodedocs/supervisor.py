"""Run the external renderer and relay its output line by line.

The child writes stdout and stderr into one OS pipe. The parent never
blocks on the child: it polls for an exit code, drains whatever bytes
are available, frames them into lines and sleeps for a short interval.
Once the child has exited the pipe is drained one last time and any
unterminated tail is emitted as a final line.
"""

from __future__ import annotations

import codecs
import logging
import os
import re
import subprocess
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from .errors import ToolLaunchError
from .models import ChildProcessResult

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.1
READ_CHUNK = 64 * 1024

_WHITESPACE = re.compile(r"\s")


class LineFramer:
    """Accumulates raw bytes and hands back complete lines.

    Lines end at ``\\n``; a trailing ``\\r`` is trimmed. Incomplete
    multi-byte sequences and partial lines stay buffered until more data
    arrives or ``flush`` is called.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, data: bytes) -> list[str]:
        if data:
            self._buffer += self._decoder.decode(data)
        return self._take_lines()

    def flush(self) -> list[str]:
        """Emit everything left, including an unterminated last line."""
        self._buffer += self._decoder.decode(b"", final=True)
        lines = self._take_lines()
        if self._buffer:
            lines.append(self._buffer.removesuffix("\r"))
            self._buffer = ""
        return lines

    def _take_lines(self) -> list[str]:
        lines: list[str] = []
        while True:
            idx = self._buffer.find("\n")
            if idx < 0:
                break
            lines.append(self._buffer[:idx].removesuffix("\r"))
            self._buffer = self._buffer[idx + 1:]
        return lines


def _read_available(fd: int) -> bytes:
    """Read every byte currently sitting in the (non-blocking) pipe."""
    chunks: list[bytes] = []
    while True:
        try:
            chunk = os.read(fd, READ_CHUNK)
        except BlockingIOError:
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


def _terminate(proc: subprocess.Popen, grace: float) -> None:
    proc.terminate()
    try:
        proc.wait(timeout=grace)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


def _quote(value: str) -> str:
    if value and not _WHITESPACE.search(value):
        return value
    return '"' + value.replace('"', '\\"') + '"'


def format_command_line(executable: str, args: Sequence[str]) -> str:
    """Human-readable command line; values containing spaces are quoted.

    ``-outputdir=My Docs`` is shown as ``-outputdir="My Docs"``.
    """
    parts = [_quote(executable)]
    for arg in args:
        if arg.startswith("-") and "=" in arg:
            key, _, value = arg.partition("=")
            parts.append(f"{key}={_quote(value)}")
        else:
            parts.append(_quote(arg))
    return " ".join(parts)


def run_tool(
    executable: str,
    args: Sequence[str],
    *,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    cancel: threading.Event | None = None,
    on_line: Callable[[str], None] | None = None,
    cwd: Path | None = None,
    label: str | None = None,
    terminate_grace: float = 5.0,
) -> ChildProcessResult:
    """Spawn *executable* with *args* and supervise it until it exits.

    Every output line is logged as ``[<label>] <line>`` and passed to
    *on_line*. Setting *cancel* terminates the child at the next poll.

    Raises:
        ToolLaunchError: the process could not be started.
    """
    label = label or Path(executable).stem
    read_fd, write_fd = os.pipe()
    proc: subprocess.Popen | None = None
    try:
        os.set_blocking(read_fd, False)
        try:
            proc = subprocess.Popen(
                [executable, *args],
                stdin=subprocess.DEVNULL,
                stdout=write_fd,
                stderr=write_fd,
                cwd=cwd,
            )
        except OSError as exc:
            raise ToolLaunchError(executable, exc.strerror or str(exc)) from exc

        logger.debug("Started %s (pid %d)", label, proc.pid)
        framer = LineFramer()
        lines: list[str] = []

        def emit(batch: list[str]) -> None:
            for line in batch:
                logger.info("[%s] %s", label, line)
                lines.append(line)
                if on_line is not None:
                    on_line(line)

        start = time.monotonic()
        cancelled = False
        exit_code: int | None = None
        while exit_code is None:
            exit_code = proc.poll()
            if exit_code is None and cancel is not None and cancel.is_set():
                logger.debug("Cancellation requested; terminating %s", label)
                _terminate(proc, terminate_grace)
                cancelled = True
                exit_code = proc.returncode
            emit(framer.feed(_read_available(read_fd)))
            if exit_code is None:
                time.sleep(poll_interval)

        # Output written just before exit may still be in the pipe.
        emit(framer.feed(_read_available(read_fd)))
        emit(framer.flush())

        return ChildProcessResult(
            exit_code=exit_code,
            drained=True,
            cancelled=cancelled,
            duration_seconds=time.monotonic() - start,
            lines=tuple(lines),
        )
    finally:
        # Leaving by exception (a failing callback, Ctrl-C) must not orphan the child.
        if proc is not None and proc.poll() is None:
            logger.warning("Terminating %s (pid %d) after supervision ended early", label, proc.pid)
            _terminate(proc, terminate_grace)
        os.close(read_fd)
        os.close(write_fd)
