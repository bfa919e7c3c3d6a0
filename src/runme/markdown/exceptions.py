"""Exceptions raised while extracting code blocks from markdown."""

from __future__ import annotations


class ParseError(Exception):
    """Raised when a markdown document has malformed code-block structure.

    Attributes:
        message: Human-readable description of the problem.
        line: 1-based source line where the problem was detected.
            ``0`` means the line could not be determined.
    """

    def __init__(self, message: str, line: int = 0) -> None:
        self.message = message
        self.line = line
        loc = f" (line {line})" if line else ""
        super().__init__(f"{message}{loc}")
