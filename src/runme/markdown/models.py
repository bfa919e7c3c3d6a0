"""Data models for markdown block extraction.

Models:
    - CodeBlock: A runnable block discovered in a document
    - Heading: A section heading with its level
    - HeadingStack: The path of headings enclosing the current position
    - FenceInfo: Parsed form of a fenced block's info string
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SHELL_LANGUAGES: frozenset[str] = frozenset({"bash", "sh", "shell", "zsh"})


# ---------------------------------------------------------------------------
# Code blocks
# ---------------------------------------------------------------------------


class CodeBlock(BaseModel):
    """A code block discovered in a markdown document.

    Blocks are immutable once extracted. The ``id`` reflects discovery
    order (``block-001``, ``block-002``, ...) and never changes when the
    caller filters the block list.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable identifier assigned by discovery order")
    name: Optional[str] = Field(
        default=None,
        description="User-assigned name from a runme:name directive",
    )
    language: Optional[str] = Field(
        default=None,
        description="Lowercase language token from the info string",
    )
    headings: tuple[str, ...] = Field(
        default=(),
        description="Enclosing heading titles, outermost first",
    )
    content: str = Field(default="", description="Trimmed block content")
    skip_reason: Optional[str] = Field(
        default=None,
        description="Why a directive marked this block as non-runnable",
    )
    line: int = Field(default=0, ge=0, description="1-based line of the opening fence")

    @property
    def is_shell(self) -> bool:
        """True when the block can be run as shell commands.

        Untagged blocks are assumed to be shell.
        """
        if self.language is None:
            return True
        return self.language.strip().lower() in SHELL_LANGUAGES

    @property
    def display_id(self) -> str:
        """Identifier decorated with the block name, e.g. ``block-002 (setup)``."""
        if self.name:
            return f"{self.id} ({self.name})"
        return self.id


# ---------------------------------------------------------------------------
# Headings
# ---------------------------------------------------------------------------


class Heading(BaseModel):
    """A section heading."""

    model_config = ConfigDict(frozen=True)

    level: int = Field(..., ge=1, le=6)
    title: str

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()


class HeadingStack:
    """Ordered stack of the headings enclosing the current document position.

    :meth:`push` is the only mutation: it drops every entry whose level is
    greater than or equal to the new heading's level, then appends it, so
    sibling sections replace each other and the stack never holds two
    headings of the same level.
    """

    def __init__(self) -> None:
        self._entries: list[Heading] = []

    def push(self, heading: Heading) -> None:
        self._entries = [h for h in self._entries if h.level < heading.level]
        self._entries.append(heading)

    def titles(self) -> tuple[str, ...]:
        return tuple(h.title for h in self._entries)

    def levels(self) -> tuple[int, ...]:
        return tuple(h.level for h in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))


# ---------------------------------------------------------------------------
# Fence info strings
# ---------------------------------------------------------------------------


class FenceInfo(BaseModel):
    """Parsed fence info string.

    Attributes:
        language: First token that is not a ``key=value`` pair or directive,
            lowercased. ``None`` for an empty info string.
        name: Value of an inline ``runme:name=<value>`` token.
        ignore: True when ``runme:ignore`` or ``runme:skip`` is present.
        attributes: Any other ``key=value`` tokens, kept verbatim.
    """

    model_config = ConfigDict(frozen=True)

    language: Optional[str] = None
    name: Optional[str] = None
    ignore: bool = False
    attributes: dict[str, str] = Field(default_factory=dict)
