"""runme CLI error handling.

Every failure that stops a command is shown as one Rich panel on stderr
and mapped to an exit code:

    0 - Success
    1 - General error (unreadable document, malformed markdown, unknown
        block, sandbox or spawn failure)
    2 - Configuration error
    3 - At least one block failed

Domain exceptions (:class:`~runme.markdown.exceptions.ParseError`,
:class:`~runme.runner.exceptions.RunnerError`,
:class:`~runme.sandbox.exceptions.SandboxError`, file errors) are
translated here; commands only say what they were doing via
:func:`error_context`.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Generator, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from runme.markdown.exceptions import ParseError
from runme.runner.exceptions import RunnerError
from runme.sandbox.exceptions import SandboxError

EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_BLOCKS_FAILED = 3
EXIT_INTERRUPTED = 130

# Most specific first: ``isinstance`` picks the first match.
_DOMAIN_TITLES: tuple[tuple[type[BaseException], str], ...] = (
    (ParseError, "Markdown Error"),
    (RunnerError, "Run Aborted"),
    (SandboxError, "Sandbox Error"),
    (OSError, "File Error"),
    (UnicodeDecodeError, "File Error"),
)

DOMAIN_ERRORS: tuple[type[BaseException], ...] = tuple(cls for cls, _ in _DOMAIN_TITLES)


class CLIError(Exception):
    """A failure reported to the user as a single error panel.

    Attributes:
        message: Text shown in the panel.
        exit_code: Process exit code.
        title: Panel title naming the kind of failure.
    """

    def __init__(
        self,
        message: str,
        exit_code: int = EXIT_GENERAL_ERROR,
        title: str = "Error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code
        self.title = title


class ConfigError(CLIError):
    """Configuration could not be loaded or validated."""

    def __init__(self, message: str) -> None:
        super().__init__(message, exit_code=EXIT_CONFIG_ERROR, title="Configuration Error")


def describe(exc: BaseException) -> str:
    """One-line description of *exc* for the error panel."""
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc)


def title_for(exc: BaseException) -> str:
    for cls, title in _DOMAIN_TITLES:
        if isinstance(exc, cls):
            return title
    return "Error"


def wrap_error(exc: BaseException, context: str) -> CLIError:
    """Turn a domain exception into a :class:`CLIError` prefixed with *context*.

    An existing :class:`CLIError` keeps its exit code and title.
    """
    if isinstance(exc, CLIError):
        return CLIError(f"{context}: {exc.message}", exc.exit_code, exc.title)
    return CLIError(f"{context}: {describe(exc)}", EXIT_GENERAL_ERROR, title_for(exc))


@contextmanager
def error_context(context: str) -> Generator[None, None, None]:
    """Prefix any domain error raised inside the block with *context*.

    Example::

        with error_context(f"while reading {path}"):
            text = path.read_text()
    """
    try:
        yield
    except DOMAIN_ERRORS as exc:
        raise wrap_error(exc, context) from exc


_stderr = Console(stderr=True)


def _print_panel(console: Console, message: str, title: str) -> None:
    console.print(
        Panel(
            f"[bold red]{escape(message)}[/bold red]",
            title=f"[red]{escape(title)}[/red]",
            border_style="red",
        )
    )


@contextmanager
def error_handler(console: Optional[Console] = None) -> Generator[None, None, None]:
    """Report any exception escaping the block as a panel and exit.

    Raises:
        SystemExit: With the exit code mapped from the exception.
    """
    out = console or _stderr
    try:
        yield
    except CLIError as exc:
        _print_panel(out, exc.message, exc.title)
        sys.exit(exc.exit_code)
    except DOMAIN_ERRORS as exc:
        _print_panel(out, describe(exc), title_for(exc))
        sys.exit(EXIT_GENERAL_ERROR)
    except KeyboardInterrupt:
        out.print("\n[yellow]Interrupted.[/yellow]")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        _print_panel(out, str(exc), "Unexpected Error")
        sys.exit(EXIT_GENERAL_ERROR)
