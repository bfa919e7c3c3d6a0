"""Line-oriented markdown lexer producing a structural event stream.

Implements the subset of CommonMark block structure that matters for
finding runnable code, without any external markdown dependency. The
lexer emits a flat list of :class:`Event` objects which
:mod:`runme.markdown.extractor` walks exactly once.

Recognised structure:
    - ATX headings (``#`` .. ``######``, optional closing ``#`` run)
    - Setext headings (paragraph text underlined with ``===`` or ``---``)
    - Fenced code blocks with backticks or tildes
    - Indented code blocks (four spaces or a tab)
    - HTML comment blocks (``<!-- ... -->``, possibly multi-line)
    - List items, whose content indentation is removed before a
      continuation line is classified
    - Block quotes, whose ``>`` markers are removed the same way; a line
      with fewer markers ends the quote (and any code block inside it)
    - Everything else is paragraph text

Event types:
    HEADING_OPEN      level set, starts inline fragments
    HEADING_CLOSE     level set
    TEXT              inline text, or one line of code-block content
    CODE              inline code span
    HTML              raw HTML comment block
    CODE_BLOCK_OPEN   kind and info set
    CODE_BLOCK_CLOSE

A fenced block that is still open at end of input gets no
``CODE_BLOCK_CLOSE`` event; detecting that is the consumer's job.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class EventType(Enum):
    """Structural event kinds emitted by the lexer."""

    HEADING_OPEN = auto()
    HEADING_CLOSE = auto()
    TEXT = auto()
    CODE = auto()
    HTML = auto()
    CODE_BLOCK_OPEN = auto()
    CODE_BLOCK_CLOSE = auto()


class CodeBlockKind(str, Enum):
    """How a code block was written in the source."""

    FENCED = "fenced"
    INDENTED = "indented"


@dataclass(frozen=True)
class Event:
    """A single structural event with its source location."""

    type: EventType
    value: str = ""
    line: int = 0
    level: int = 0
    kind: Optional[CodeBlockKind] = None
    info: str = ""


# ---------------------------------------------------------------------------
# Block-level patterns
# ---------------------------------------------------------------------------

_ATX_RE = re.compile(r"^ {0,3}(#{1,6})(?=[ \t]|$)(.*)$")
_ATX_CLOSING_RE = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")
_SETEXT_RE = re.compile(r"^ {0,3}(=+|-+)[ \t]*$")
_FENCE_OPEN_RE = re.compile(r"^( {0,3})(`{3,}|~{3,})(.*)$")
_FENCE_CLOSE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})[ \t]*$")
_THEMATIC_BREAK_RE = re.compile(r"^ {0,3}(?:(?:\*[ \t]*){3,}|(?:-[ \t]*){3,}|(?:_[ \t]*){3,})$")
_LIST_ITEM_RE = re.compile(r"^( {0,3})([-+*]|\d{1,9}[.)])([ \t]+|$)")
_HTML_COMMENT_OPEN_RE = re.compile(r"^ {0,3}<!--")
_QUOTE_MARKER_RE = re.compile(r"^ {0,3}> ?")
_LINE_SPLIT_RE = re.compile(r"\r\n|\r|\n")

# ---------------------------------------------------------------------------
# Inline patterns (heading text flattening)
# ---------------------------------------------------------------------------

_CODE_SPAN_RE = re.compile(r"(?<!`)(`+)(?!`)(.+?)(?<!`)\1(?!`)")
_ESCAPE_RE = re.compile(r"\\([!-/:-@\[-`{-~])")
_IMAGE_OR_LINK_RE = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")
_REFERENCE_LINK_RE = re.compile(r"!?\[([^\]]*)\]\[[^\]]*\]")
_AUTOLINK_RE = re.compile(r"<((?:https?|ftp|mailto):[^>\s]+)>")
_INLINE_TAG_RE = re.compile(r"</?[A-Za-z][A-Za-z0-9-]*(?:\s[^<>]*)?/?>")
_STAR_EMPHASIS_RE = re.compile(r"(\*\*|\*|~~)(?=\S)(.+?)(?<=\S)\1")
_UNDERSCORE_EMPHASIS_RE = re.compile(r"(?<![A-Za-z0-9])(__|_)(?=\S)(.+?)(?<=\S)\1(?![A-Za-z0-9])")

# Escaped punctuation is parked in the private-use area while emphasis and
# links are stripped, then restored.
_ESCAPE_BASE = 0xE000


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _expand_indent(line: str) -> str:
    """Expand tabs in the leading whitespace of *line* to 4-column stops."""
    stripped = line.lstrip(" \t")
    prefix = line[: len(line) - len(stripped)]
    if "\t" not in prefix:
        return line
    return prefix.expandtabs(4) + stripped


def _strip_columns(line: str, width: int) -> str:
    """Remove up to *width* columns of leading whitespace from *line*."""
    if width <= 0:
        return line
    line = _expand_indent(line)
    return line[min(width, _indent_width(line)):]


def _strip_quotes(line: str, limit: Optional[int] = None) -> tuple[int, str]:
    """Remove up to *limit* block-quote markers; return how many were removed."""
    depth = 0
    while limit is None or depth < limit:
        marker = _QUOTE_MARKER_RE.match(line)
        if not marker:
            break
        line = line[marker.end():]
        depth += 1
    return depth, line


def flatten_inline(text: str, line: int = 0) -> list[Event]:
    """Split inline markdown into TEXT and CODE events.

    Code spans become ``CODE`` events with their literal content. The text
    between them keeps link and image labels, and loses emphasis markers,
    inline HTML tags and backslash escapes.
    """
    events: list[Event] = []
    pos = 0
    for match in _CODE_SPAN_RE.finditer(text):
        if match.start() > pos:
            events.append(Event(EventType.TEXT, _flatten_text(text[pos:match.start()]), line))
        code = match.group(2)
        if len(code) > 2 and code.startswith(" ") and code.endswith(" ") and code.strip():
            code = code[1:-1]
        events.append(Event(EventType.CODE, code, line))
        pos = match.end()
    if pos < len(text):
        events.append(Event(EventType.TEXT, _flatten_text(text[pos:]), line))
    return [e for e in events if e.value]


def _flatten_text(text: str) -> str:
    text = _ESCAPE_RE.sub(lambda m: chr(_ESCAPE_BASE + ord(m.group(1))), text)
    text = _IMAGE_OR_LINK_RE.sub(r"\1", text)
    text = _REFERENCE_LINK_RE.sub(r"\1", text)
    text = _AUTOLINK_RE.sub(r"\1", text)
    text = _INLINE_TAG_RE.sub("", text)
    for pattern in (_STAR_EMPHASIS_RE, _UNDERSCORE_EMPHASIS_RE):
        previous = None
        while previous != text:
            previous = text
            text = pattern.sub(r"\2", text)
    return "".join(
        chr(ord(ch) - _ESCAPE_BASE) if _ESCAPE_BASE <= ord(ch) < _ESCAPE_BASE + 128 else ch
        for ch in text
    )


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------


@dataclass
class _Fence:
    char: str
    length: int
    indent: int
    container: int
    quote: int


class _Lexer:
    """Converts a markdown document into a flat list of events."""

    def __init__(self, source: str) -> None:
        self._lines = _LINE_SPLIT_RE.split(source)
        self._events: list[Event] = []
        self._paragraph: list[tuple[int, str]] = []
        self._indented: list[str] = []
        self._indented_line = 0
        self._html: Optional[list[str]] = None
        self._html_line = 0
        self._fence: Optional[_Fence] = None
        self._list_indent = 0
        self._quote_depth = 0

    def tokenize(self) -> list[Event]:
        """Lex the full document and return the event list."""
        for number, raw in enumerate(self._lines, start=1):
            if self._fence is not None and self._fence_line(raw, number):
                continue
            if self._html is not None:
                _, line = _strip_quotes(raw, self._quote_depth)
                self._html.append(line)
                if "-->" in line:
                    self._flush_html()
            else:
                self._block_line(self._leave_container(raw), number)

        self._close_indented()
        if self._html is not None:
            self._flush_html()
        self._close_paragraph()
        return self._events

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def _leave_container(self, raw: str) -> str:
        """Strip block-quote markers and list-item indentation from *raw*.

        A change in quote depth closes the open paragraph and any list,
        except for a lazy paragraph continuation line.
        """
        depth, rest = _strip_quotes(raw)
        line = _expand_indent(rest)
        if depth != self._quote_depth:
            lazy = (
                depth < self._quote_depth
                and self._paragraph
                and line.strip()
                and not self._starts_block(line)
            )
            if lazy:
                return line
            self._close_indented()
            self._close_paragraph()
            self._quote_depth = depth
            self._list_indent = 0

        if not self._list_indent or not line.strip():
            return line
        indent = _indent_width(line)
        if indent >= self._list_indent:
            return line[self._list_indent:]
        if self._paragraph and not self._starts_block(line):
            return line
        self._list_indent = 0
        return line

    def _starts_block(self, line: str) -> bool:
        return bool(
            _ATX_RE.match(line)
            or _FENCE_OPEN_RE.match(line)
            or _THEMATIC_BREAK_RE.match(line)
            or _LIST_ITEM_RE.match(line)
            or _HTML_COMMENT_OPEN_RE.match(line)
        )

    # ------------------------------------------------------------------
    # Block classification
    # ------------------------------------------------------------------

    def _block_line(self, line: str, number: int) -> None:
        if not line.strip():
            if self._indented:
                self._indented.append("")
            else:
                self._close_paragraph()
            return

        indent = _indent_width(line)
        if self._indented:
            if indent >= 4:
                self._indented.append(line[4:])
                return
            self._close_indented()

        if indent >= 4:
            if self._paragraph:
                self._paragraph.append((number, line.strip()))
            else:
                self._indented = [line[4:]]
                self._indented_line = number
            return

        if self._paragraph and (setext := _SETEXT_RE.match(line)):
            level = 1 if setext.group(1).startswith("=") else 2
            title = " ".join(text for _, text in self._paragraph)
            first_line = self._paragraph[0][0]
            self._paragraph = []
            self._emit_heading(level, title, first_line)
            return

        fence = _FENCE_OPEN_RE.match(line)
        if fence and not (fence.group(2).startswith("`") and "`" in fence.group(3)):
            self._close_paragraph()
            self._fence = _Fence(
                char=fence.group(2)[0],
                length=len(fence.group(2)),
                indent=len(fence.group(1)),
                container=self._list_indent,
                quote=self._quote_depth,
            )
            self._events.append(
                Event(
                    EventType.CODE_BLOCK_OPEN,
                    line=number,
                    kind=CodeBlockKind.FENCED,
                    info=fence.group(3).strip(),
                )
            )
            return

        atx = _ATX_RE.match(line)
        if atx:
            self._close_paragraph()
            title = _ATX_CLOSING_RE.sub("", atx.group(2).strip())
            self._emit_heading(len(atx.group(1)), title, number)
            return

        if _HTML_COMMENT_OPEN_RE.match(line):
            self._close_paragraph()
            self._html = [line]
            self._html_line = number
            if "-->" in line.split("<!--", 1)[1]:
                self._flush_html()
            return

        if _THEMATIC_BREAK_RE.match(line):
            self._close_paragraph()
            return

        item = _LIST_ITEM_RE.match(line)
        if item:
            self._close_paragraph()
            lead, marker, spacing = (len(g) for g in item.groups())
            offset = lead + marker + (spacing if 0 < spacing <= 4 else 1)
            base = self._list_indent if _indent_width(line) < self._list_indent else 0
            self._list_indent = base + offset
            rest = line[offset:] if len(line) > offset else ""
            if rest.strip():
                self._block_line(rest, number)
            return

        self._paragraph.append((number, line.strip()))

    def _fence_line(self, raw: str, number: int) -> bool:
        """Handle one line inside a fence; return False if the fence was left."""
        fence = self._fence
        assert fence is not None
        depth, line = _strip_quotes(raw, fence.quote)
        if depth < fence.quote:
            self._events.append(Event(EventType.CODE_BLOCK_CLOSE, line=number - 1))
            self._fence = None
            return False
        line = _strip_columns(line, fence.container)
        closing = _FENCE_CLOSE_RE.match(_expand_indent(line))
        if closing and closing.group(1)[0] == fence.char and len(closing.group(1)) >= fence.length:
            self._events.append(Event(EventType.CODE_BLOCK_CLOSE, line=number))
            self._fence = None
            return True
        content = _strip_columns(line, fence.indent)
        self._events.append(Event(EventType.TEXT, content + "\n", number))
        return True

    # ------------------------------------------------------------------
    # Flushing helpers
    # ------------------------------------------------------------------

    def _emit_heading(self, level: int, title: str, number: int) -> None:
        self._events.append(Event(EventType.HEADING_OPEN, line=number, level=level))
        self._events.extend(flatten_inline(title, number))
        self._events.append(Event(EventType.HEADING_CLOSE, line=number, level=level))

    def _close_paragraph(self) -> None:
        if not self._paragraph:
            return
        first_line = self._paragraph[0][0]
        text = "\n".join(text for _, text in self._paragraph)
        self._paragraph = []
        self._events.extend(flatten_inline(text, first_line))

    def _close_indented(self) -> None:
        if not self._indented:
            return
        while self._indented and not self._indented[-1].strip():
            self._indented.pop()
        number = self._indented_line
        self._events.append(
            Event(EventType.CODE_BLOCK_OPEN, line=number, kind=CodeBlockKind.INDENTED)
        )
        for offset, content in enumerate(self._indented):
            self._events.append(Event(EventType.TEXT, content + "\n", number + offset))
        self._events.append(
            Event(EventType.CODE_BLOCK_CLOSE, line=number + len(self._indented) - 1)
        )
        self._indented = []

    def _flush_html(self) -> None:
        assert self._html is not None
        self._events.append(Event(EventType.HTML, "\n".join(self._html), self._html_line))
        self._html = None


def lex(document: str) -> list[Event]:
    """Lex *document* into a list of structural :class:`Event` objects."""
    return _Lexer(document).tokenize()
