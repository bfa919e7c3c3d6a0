"""Helpers for running a whole document: selection, duplicate names, iteration."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Iterator, Optional, Sequence

from rich.console import Console

from runme.markdown.models import CodeBlock
from runme.runner.engine import execute_block
from runme.runner.exceptions import BlockLookupError
from runme.runner.models import BlockReport
from runme.sandbox.backends import SandboxBackend

logger = logging.getLogger(__name__)


def select_blocks(blocks: Sequence[CodeBlock], key: Optional[str] = None) -> list[CodeBlock]:
    """Return every block, or the first block whose id or name is *key*.

    Raises:
        BlockLookupError: If *key* matches no block.
    """
    if key is None:
        return list(blocks)
    for block in blocks:
        if block.id == key or block.name == key:
            return [block]
    raise BlockLookupError(key)


def duplicate_names(blocks: Iterable[CodeBlock]) -> dict[str, list[str]]:
    """Map each name used by more than one block to those blocks' ids.

    The result is ordered by name.
    """
    by_name: dict[str, list[str]] = defaultdict(list)
    for block in blocks:
        if block.name is not None:
            by_name[block.name].append(block.id)
    return {name: ids for name, ids in sorted(by_name.items()) if len(ids) > 1}


def warn_duplicate_names(blocks: Iterable[CodeBlock]) -> dict[str, list[str]]:
    """Log a warning for each duplicated block name and return the duplicates."""
    duplicates = duplicate_names(blocks)
    for name, ids in duplicates.items():
        logger.warning(
            "runme:name '%s' is used by multiple blocks (%s); "
            "selecting '%s' targets the first match.",
            name,
            ", ".join(ids),
            name,
        )
    return duplicates


def iter_reports(
    blocks: Iterable[CodeBlock],
    backend: SandboxBackend,
    stream_live: bool = False,
    console: Optional[Console] = None,
    err_console: Optional[Console] = None,
) -> Iterator[BlockReport]:
    """Execute *blocks* one at a time, yielding each report as it completes.

    A fatal error stops the iteration; reports already yielded stay with
    the caller.
    """
    for block in blocks:
        logger.debug("Running %s", block.display_id)
        yield execute_block(
            block,
            backend,
            stream_live=stream_live,
            console=console,
            err_console=err_console,
        )
