"""Block execution engine.

Turns a :class:`~runme.markdown.models.CodeBlock` into a
:class:`~runme.runner.models.BlockReport` by running its command lines one
at a time against a sandbox backend.

Checks, in order (first match wins):

1. The block carries a skip reason -> skipped with that reason.
2. The block is not shell -> skipped as an unsupported language.
3. The content is empty -> skipped.
4. Each non-blank, non-comment line is word-split and run; the first
   failing command fails the block and later lines never run. A block whose
   lines are all blank or comments is skipped.
5. Otherwise the block passed.
"""

from __future__ import annotations

import logging
import shlex
from typing import Optional

from rich.console import Console

from runme.markdown.models import CodeBlock
from runme.runner.exceptions import BlockExecutionError, CommandParseError
from runme.runner.models import BlockReport, BlockStatus
from runme.runner.transcript import CommandTranscript, LiveStreamer, TranscriptSink
from runme.sandbox.backends import SandboxBackend
from runme.sandbox.exceptions import ExecutionError

logger = logging.getLogger(__name__)

EMPTY_BLOCK_REASON = "Block empty; nothing to execute"
COMMENT_ONLY_REASON = "Block only had comments/blank lines"


def unsupported_language_reason(language: Optional[str]) -> str:
    return f"Language '{language or 'shell'}' unsupported yet; add a plugin"


def strip_comment(line: str) -> str:
    """Drop a trailing ``#`` comment that starts a word outside quotes.

    A ``#`` inside a word (``http://host/#frag``) or inside quotes is kept.
    """
    quote: Optional[str] = None
    escaped = False
    for index, char in enumerate(line):
        if escaped:
            escaped = False
        elif char == "\\" and quote != "'":
            escaped = True
        elif quote is not None:
            if char == quote:
                quote = None
        elif char in "'\"":
            quote = char
        elif char == "#" and (index == 0 or line[index - 1].isspace()):
            return line[:index]
    return line


def split_command(line: str) -> list[str]:
    """Word-split a command line with POSIX shell quoting rules.

    A trailing comment is removed first, so ``make test  # suite`` yields
    ``["make", "test"]``.

    Raises:
        ValueError: On unbalanced quotes or a dangling escape.
    """
    return shlex.split(strip_comment(line))


def execute_block(
    block: CodeBlock,
    backend: SandboxBackend,
    stream_live: bool = False,
    console: Optional[Console] = None,
    err_console: Optional[Console] = None,
) -> BlockReport:
    """Execute *block* on *backend* and report the outcome.

    Command failures are recorded in the returned report. Only problems
    that make the block impossible to run are raised.

    Args:
        block: The block to run.
        backend: Sandbox the commands run in.
        stream_live: Echo output to the console while commands run.
        console: Console for live stdout (defaults to a new stdout console).
        err_console: Console for live stderr (defaults to a new stderr console).

    Returns:
        The block's report.

    Raises:
        CommandParseError: If a line cannot be word-split.
        BlockExecutionError: If the backend cannot start a command.
    """
    if block.skip_reason is not None:
        return BlockReport.from_skip(block, block.skip_reason)

    if not block.is_shell:
        return BlockReport.from_skip(block, unsupported_language_reason(block.language))

    if not block.content.strip():
        return BlockReport.from_skip(block, EMPTY_BLOCK_REASON)

    streamer = LiveStreamer(block, console, err_console) if stream_live else None
    total_duration = 0.0
    stdout_parts: list[str] = []
    stderr_parts: list[str] = []
    status = BlockStatus.passed()
    executed = 0

    for number, raw_line in enumerate(block.content.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        try:
            argv = split_command(line)
        except ValueError as exc:
            raise CommandParseError(block.id, number, line, str(exc)) from exc
        if not argv:
            continue
        executed += 1

        transcript = CommandTranscript(line)
        sink = TranscriptSink(transcript, streamer)
        logger.debug("%s line %d: %s", block.id, number, argv)
        try:
            outcome = backend.run(argv, sink)
        except ExecutionError as exc:
            raise BlockExecutionError(block.id, number, exc) from exc

        if transcript.stdout is not None:
            stdout_parts.append(transcript.stdout)
        if transcript.stderr is not None:
            stderr_parts.append(transcript.stderr)
        total_duration += outcome.duration

        if not outcome.success:
            status = BlockStatus.failed(outcome.exit_code)
            logger.debug(
                "%s failed at line %d with exit code %s", block.id, number, outcome.exit_code
            )
            break

    if executed == 0:
        return BlockReport.from_skip(block, COMMENT_ONLY_REASON)

    return BlockReport(
        id=block.id,
        name=block.name,
        headings=block.headings,
        language=block.language,
        sandbox=backend.label,
        duration_ms=int(total_duration * 1000),
        status=status,
        stdout="\n".join(stdout_parts) if stdout_parts else None,
        stderr="\n".join(stderr_parts) if stderr_parts else None,
    )
