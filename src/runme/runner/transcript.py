"""Per-command output transcripts and live console streaming."""

from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape

from runme.markdown.models import CodeBlock


class CommandTranscript:
    """Accumulates one command's stdout and stderr.

    Each stream's transcript starts with ``"$ <command>"`` on its first
    non-empty chunk; every chunk is followed by a newline.
    """

    def __init__(self, command: str) -> None:
        self.command = command
        self._stdout: list[str] = []
        self._stderr: list[str] = []

    @property
    def stdout(self) -> Optional[str]:
        return self._render(self._stdout)

    @property
    def stderr(self) -> Optional[str]:
        return self._render(self._stderr)

    def append_stdout(self, chunk: str) -> bool:
        """Append *chunk*; return True if it was the first stdout chunk."""
        return self._append(self._stdout, chunk)

    def append_stderr(self, chunk: str) -> bool:
        """Append *chunk*; return True if it was the first stderr chunk."""
        return self._append(self._stderr, chunk)

    @staticmethod
    def _append(chunks: list[str], chunk: str) -> bool:
        if not chunk:
            return False
        chunks.append(chunk)
        return len(chunks) == 1

    def _render(self, chunks: list[str]) -> Optional[str]:
        if not chunks:
            return None
        return "".join([f"$ {self.command}\n", *(f"{chunk}\n" for chunk in chunks)])


class LiveStreamer:
    """Echo command output to the terminal while a block runs.

    Stdout goes to *console*, stderr (in red) to *err_console*. A header
    naming the block and command precedes each command's first chunk on
    each stream.
    """

    def __init__(
        self,
        block: CodeBlock,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ) -> None:
        self.label = block.display_id
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def on_stdout(self, command: str, chunk: str, first: bool) -> None:
        if first:
            self.console.print(
                f"[cyan]\\[{escape(self.label)}][/cyan] $ {escape(command)}",
                highlight=False,
            )
        self.console.print(escape(chunk), highlight=False, soft_wrap=True)

    def on_stderr(self, command: str, chunk: str, first: bool) -> None:
        if first:
            self.err_console.print(
                f"[red]\\[{escape(self.label)}][/red] $ {escape(command)} (stderr)",
                highlight=False,
            )
        self.err_console.print(f"[red]{escape(chunk)}[/red]", highlight=False, soft_wrap=True)


class TranscriptSink:
    """Output sink that records into a transcript and optionally streams live."""

    def __init__(
        self,
        transcript: CommandTranscript,
        streamer: Optional[LiveStreamer] = None,
    ) -> None:
        self.transcript = transcript
        self.streamer = streamer

    def on_stdout(self, chunk: str) -> None:
        first = self.transcript.append_stdout(chunk)
        if self.streamer is not None and chunk:
            self.streamer.on_stdout(self.transcript.command, chunk, first)

    def on_stderr(self, chunk: str) -> None:
        first = self.transcript.append_stderr(chunk)
        if self.streamer is not None and chunk:
            self.streamer.on_stderr(self.transcript.command, chunk, first)
