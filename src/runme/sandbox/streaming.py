"""Concurrent stdout/stderr streaming for a single spawned command.

Every backend routes process execution through :func:`spawn_with_streaming`
so output behaves the same regardless of where a command runs.

Two reader threads drain the child's stdout and stderr independently and
post decoded lines onto one queue, tagged with their origin. The calling
thread is the only consumer: it delivers lines to the sink in arrival order,
so neither stream can stall the other and the sink is never called from two
threads at once. The relative order of stdout and stderr lines is best
effort and may differ between runs.
"""

from __future__ import annotations

import logging
import queue
import subprocess
import threading
import time
from enum import Enum
from typing import IO, Optional, Protocol, Union

from runme.sandbox.exceptions import ExecutionError
from runme.sandbox.models import CommandStatus, SpawnCommand

logger = logging.getLogger(__name__)


class StreamKind(str, Enum):
    """Origin of a line of output."""

    STDOUT = "stdout"
    STDERR = "stderr"


class OutputSink(Protocol):
    """Receiver for streamed command output, one decoded line per call."""

    def on_stdout(self, chunk: str) -> None: ...

    def on_stderr(self, chunk: str) -> None: ...


class _EndOfStream:
    """Sentinel posted by a reader when its stream is exhausted."""

    def __init__(self, error: Optional[BaseException] = None) -> None:
        self.error = error


_Message = tuple[StreamKind, Union[str, _EndOfStream]]


def decode_line(raw: bytes) -> str:
    """Decode one raw line, dropping the trailing ``\\r``/``\\n``."""
    return raw.decode("utf-8", errors="replace").rstrip("\r\n")


def _read_stream(kind: StreamKind, stream: IO[bytes], channel: queue.Queue[_Message]) -> None:
    error: Optional[BaseException] = None
    try:
        for raw in iter(stream.readline, b""):
            line = decode_line(raw)
            if line:
                channel.put((kind, line))
    except (OSError, ValueError) as exc:
        error = exc
    finally:
        stream.close()
        channel.put((kind, _EndOfStream(error)))


def spawn_with_streaming(command: SpawnCommand, sink: OutputSink) -> CommandStatus:
    """Run *command*, forwarding its output to *sink* line by line.

    Args:
        command: Program, arguments and working directory to run.
        sink: Receives each non-empty stdout/stderr line as it arrives.

    Returns:
        The exit status and wall-clock duration of the command.

    Raises:
        ExecutionError: If the process cannot be spawned, or reading one of
            its streams fails.
    """
    if not command.argv:
        raise ExecutionError("", "no command given")

    logger.debug("Spawning %s (cwd=%s)", list(command.argv), command.cwd)
    start = time.monotonic()
    try:
        process = subprocess.Popen(
            list(command.argv),
            cwd=command.cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as exc:
        reason = exc.strerror or str(exc)
        raise ExecutionError(command.binary, reason) from exc

    assert process.stdout is not None and process.stderr is not None
    channel: queue.Queue[_Message] = queue.Queue()
    readers = [
        threading.Thread(
            target=_read_stream,
            args=(StreamKind.STDOUT, process.stdout, channel),
            name="runme-stdout",
            daemon=True,
        ),
        threading.Thread(
            target=_read_stream,
            args=(StreamKind.STDERR, process.stderr, channel),
            name="runme-stderr",
            daemon=True,
        ),
    ]
    for reader in readers:
        reader.start()

    reader_error: Optional[BaseException] = None
    try:
        open_streams = len(readers)
        while open_streams:
            kind, message = channel.get()
            if isinstance(message, _EndOfStream):
                open_streams -= 1
                if message.error is not None and reader_error is None:
                    reader_error = message.error
            elif kind is StreamKind.STDOUT:
                sink.on_stdout(message)
            else:
                sink.on_stderr(message)
    finally:
        for reader in readers:
            reader.join()
        returncode = process.wait()

    duration = time.monotonic() - start
    if reader_error is not None:
        raise ExecutionError(
            command.binary, f"failed reading output: {reader_error}"
        ) from reader_error

    status = CommandStatus.from_returncode(returncode, duration)
    logger.debug(
        "%s exited with %s after %.3fs", command.binary, status.exit_code, duration
    )
    return status
