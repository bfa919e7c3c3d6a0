"""Runner exception hierarchy.

All exceptions raised while running blocks are subclasses of
``RunnerError``. Each one is fatal for the run; a command that merely exits
non-zero is recorded in its block's report instead.
"""

from __future__ import annotations


class RunnerError(Exception):
    """Base class for all runner exceptions."""


class BlockLookupError(RunnerError, LookupError):
    """No block matches the requested id or name.

    Attributes:
        key: The id or name that was requested.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"unknown block id or name {key!r}")


class CommandParseError(RunnerError):
    """A command line in a block cannot be word-split.

    Attributes:
        block_id: Block containing the line.
        line_number: 1-based line number within the block's content.
        line: The offending line, trimmed.
    """

    def __init__(self, block_id: str, line_number: int, line: str, reason: str = "") -> None:
        self.block_id = block_id
        self.line_number = line_number
        self.line = line
        detail = f": {reason}" if reason else ""
        super().__init__(f"unable to parse {block_id} line {line_number} {line!r}{detail}")


class BlockExecutionError(RunnerError):
    """A command in a block could not be started by the backend.

    Attributes:
        block_id: Block being executed.
        line_number: 1-based line number within the block's content.
    """

    def __init__(self, block_id: str, line_number: int, cause: Exception) -> None:
        self.block_id = block_id
        self.line_number = line_number
        self.cause = cause
        super().__init__(f"while executing {block_id} line {line_number}: {cause}")
