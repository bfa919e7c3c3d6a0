"""runme markdown – runnable code-block discovery.

- :func:`extract_blocks` – Parse a document into ordered :class:`CodeBlock` records
- :class:`CodeBlock` – A discovered block with heading context and directives
- :class:`ParseError` – Malformed code-block structure
"""

from runme.markdown.exceptions import ParseError
from runme.markdown.extractor import (
    DEFAULT_SKIP_REASON,
    extract_blocks,
    extract_from_events,
    parse_info_string,
)
from runme.markdown.models import CodeBlock, FenceInfo, Heading, HeadingStack

__all__ = [
    "DEFAULT_SKIP_REASON",
    "CodeBlock",
    "FenceInfo",
    "Heading",
    "HeadingStack",
    "ParseError",
    "extract_blocks",
    "extract_from_events",
    "parse_info_string",
]
