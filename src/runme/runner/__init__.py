"""runme runner – block execution and reporting.

- :func:`execute_block` – Run one block against a sandbox backend
- :func:`iter_reports` – Run blocks sequentially, yielding reports
- :func:`select_blocks` / :func:`duplicate_names` – Document-level helpers
- :class:`BlockReport` / :class:`BlockStatus` – Report models
"""

from runme.runner.engine import (
    COMMENT_ONLY_REASON,
    EMPTY_BLOCK_REASON,
    execute_block,
    split_command,
    unsupported_language_reason,
)
from runme.runner.exceptions import (
    BlockExecutionError,
    BlockLookupError,
    CommandParseError,
    RunnerError,
)
from runme.runner.models import BlockReport, BlockStatus, StatusKind
from runme.runner.session import (
    duplicate_names,
    iter_reports,
    select_blocks,
    warn_duplicate_names,
)

__all__ = [
    "COMMENT_ONLY_REASON",
    "EMPTY_BLOCK_REASON",
    "BlockExecutionError",
    "BlockLookupError",
    "BlockReport",
    "BlockStatus",
    "CommandParseError",
    "RunnerError",
    "StatusKind",
    "duplicate_names",
    "execute_block",
    "iter_reports",
    "select_blocks",
    "split_command",
    "unsupported_language_reason",
    "warn_duplicate_names",
]
