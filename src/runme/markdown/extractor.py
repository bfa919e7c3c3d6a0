"""Code-block extraction from markdown documents.

Walks the lexer's event stream once, left to right, tracking the heading
context and any pending ``runme:`` directives, and returns the runnable
blocks in discovery order.

Directive surfaces:

- HTML comments, applying to the next code block only::

      <!-- runme:name install-deps -->
      <!-- runme:ignore -->            (alias: runme:skip)

- Fence info-string tokens, in any order after the language::

      ```bash runme:name=setup runme:ignore
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from runme.markdown.exceptions import ParseError
from runme.markdown.lexer import CodeBlockKind, Event, EventType, lex
from runme.markdown.models import CodeBlock, FenceInfo, Heading, HeadingStack

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Directive vocabulary
# ---------------------------------------------------------------------------

DIRECTIVE_PREFIX = "runme:"
NAME_DIRECTIVE = "runme:name"
SKIP_DIRECTIVES: frozenset[str] = frozenset({"runme:ignore", "runme:skip"})
DEFAULT_SKIP_REASON = "Marked with runme:ignore"


# ---------------------------------------------------------------------------
# Directive parsing
# ---------------------------------------------------------------------------


def parse_info_string(info: str) -> FenceInfo:
    """Parse a fence info string into language, inline name and ignore flag.

    The first token that is neither a ``runme:`` directive nor a
    ``key=value`` pair is the language. ``runme:name=`` with an empty value
    is ignored.

    Example::

        >>> parse_info_string("bash runme:name=setup runme:ignore")
        FenceInfo(language='bash', name='setup', ignore=True, attributes={})
    """
    language: Optional[str] = None
    name: Optional[str] = None
    ignore = False
    attributes: dict[str, str] = {}

    for token in info.split():
        lowered = token.lower()
        if lowered in SKIP_DIRECTIVES:
            ignore = True
        elif lowered.startswith(NAME_DIRECTIVE + "="):
            value = token[len(NAME_DIRECTIVE) + 1:].strip()
            if value:
                name = value
        elif lowered.startswith(DIRECTIVE_PREFIX):
            logger.debug("Ignoring unknown fence directive %r", token)
        elif "=" in token:
            key, _, value = token.partition("=")
            attributes[key] = value
        elif language is None:
            language = lowered

    return FenceInfo(language=language, name=name, ignore=ignore, attributes=attributes)


def _comment_body(html: str) -> Optional[str]:
    raw = html.strip()
    if not raw.startswith("<!--") or not raw.endswith("-->"):
        return None
    return raw[4:-3].strip()


def parse_skip_directive(html: str) -> Optional[str]:
    """Return the skip reason for an ignore/skip comment, else ``None``.

    Text following the keyword is appended to the default reason, e.g.
    ``<!-- runme:skip needs network -->`` gives
    ``"Marked with runme:ignore: needs network"``.
    """
    body = _comment_body(html)
    if body is None:
        return None
    parts = body.split(None, 1)
    if not parts or parts[0].lower() not in SKIP_DIRECTIVES:
        return None
    note = " ".join(parts[1].split()) if len(parts) > 1 else ""
    return f"{DEFAULT_SKIP_REASON}: {note}" if note else DEFAULT_SKIP_REASON


def parse_name_directive(html: str) -> Optional[str]:
    """Return the block name from a ``<!-- runme:name X -->`` comment."""
    body = _comment_body(html)
    if body is None or not body.lower().startswith(NAME_DIRECTIVE):
        return None
    name = body[len(NAME_DIRECTIVE):]
    if name[:1] not in ("", " ", "\t", "\n", "="):
        return None
    name = name.lstrip("=").strip()
    return name or None


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class _HeadingBuilder:
    """Accumulates the inline fragments of an open heading."""

    def __init__(self, level: int) -> None:
        self.level = level
        self._fragments: list[str] = []

    def push(self, fragment: str) -> None:
        fragment = fragment.strip()
        if fragment:
            self._fragments.append(fragment)

    def build(self) -> Heading:
        return Heading(level=self.level, title=" ".join(self._fragments))


class _OpenBlock:
    """In-flight code block state."""

    def __init__(self, line: int, info: FenceInfo) -> None:
        self.line = line
        self.info = info
        self._parts: list[str] = []

    def append(self, fragment: str) -> None:
        self._parts.append(fragment)

    @property
    def content(self) -> str:
        return "".join(self._parts).strip()


def extract_from_events(events: Iterable[Event]) -> list[CodeBlock]:
    """Run the extraction state machine over an event stream.

    Raises:
        ParseError: If a code block is still open when the events run out,
            or a close event arrives without a matching open.
    """
    blocks: list[CodeBlock] = []
    headings = HeadingStack()
    active_heading: Optional[_HeadingBuilder] = None
    current: Optional[_OpenBlock] = None
    pending_skip: Optional[str] = None
    pending_name: Optional[str] = None

    for event in events:
        if event.type is EventType.HEADING_OPEN:
            if current is None:
                active_heading = _HeadingBuilder(event.level)

        elif event.type is EventType.HEADING_CLOSE:
            if active_heading is not None:
                headings.push(active_heading.build())
                active_heading = None

        elif event.type in (EventType.TEXT, EventType.CODE):
            if current is not None:
                current.append(event.value)
            elif active_heading is not None:
                active_heading.push(event.value)

        elif event.type is EventType.HTML:
            if current is not None:
                current.append(event.value)
                continue
            reason = parse_skip_directive(event.value)
            if reason is not None:
                pending_skip = reason
                continue
            name = parse_name_directive(event.value)
            if name is not None:
                pending_name = name

        elif event.type is EventType.CODE_BLOCK_OPEN:
            if current is not None:
                raise ParseError("code block opened inside another code block", event.line)
            info = (
                parse_info_string(event.info)
                if event.kind is CodeBlockKind.FENCED
                else FenceInfo()
            )
            if info.ignore:
                pending_skip = DEFAULT_SKIP_REASON
            current = _OpenBlock(event.line, info)

        elif event.type is EventType.CODE_BLOCK_CLOSE:
            if current is None:
                raise ParseError("encountered closing code block without start", event.line)
            blocks.append(
                CodeBlock(
                    id=f"block-{len(blocks) + 1:03d}",
                    name=pending_name or current.info.name,
                    language=current.info.language,
                    headings=headings.titles(),
                    content=current.content,
                    skip_reason=pending_skip,
                    line=current.line,
                )
            )
            current = None
            pending_name = None
            pending_skip = None

    if current is not None:
        raise ParseError("markdown ended while inside code block", current.line)

    if pending_name is not None or pending_skip is not None:
        logger.debug("Discarding directive with no following code block")

    return blocks


def extract_blocks(document: str) -> list[CodeBlock]:
    """Parse *document* and return its code blocks in discovery order.

    Args:
        document: Markdown source text.

    Returns:
        Ordered list of :class:`CodeBlock` records with ids ``block-001``,
        ``block-002``, ...

    Raises:
        ParseError: If a fenced block is left unterminated.
    """
    blocks = extract_from_events(lex(document))
    logger.debug("Extracted %d code block(s)", len(blocks))
    return blocks
