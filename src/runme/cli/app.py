"""runme CLI application entry point.

Built with `Typer <https://typer.tiangolo.com/>`_ and
`Rich <https://rich.readthedocs.io/>`_.

Usage::

    runme list README.md
    runme run README.md
    runme --sandbox containerized --image alpine:3.19 run docs/install.md --block setup
    runme run README.md --format json
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from runme.cli.config import DEFAULT_CONFIG_FILE, RunmeConfig, default_config_toml, load_config
from runme.cli.errors import (
    EXIT_BLOCKS_FAILED,
    CLIError,
    error_context,
    error_handler,
    wrap_error,
)
from runme.cli.logging_setup import setup_logging
from runme.cli.render import (
    render_block_list,
    render_report,
    render_summary,
    reports_to_json,
)
from runme.markdown import CodeBlock, extract_blocks
from runme.runner import (
    BlockReport,
    RunnerError,
    iter_reports,
    select_blocks,
    warn_duplicate_names,
)
from runme.sandbox import SandboxKind, create_sandbox

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="runme",
    help="runme – execute the code blocks of a markdown document and report on them.",
    add_completion=False,
    no_args_is_help=True,
)

_console = Console(stderr=True)
_out_console = Console()

DEFAULT_TARGET = Path("README.md")


class ReportFormat(str, Enum):
    """Output format for ``runme run``."""

    HUMAN = "human"
    JSON = "json"


# ---------------------------------------------------------------------------
# Version callback
# ---------------------------------------------------------------------------


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from runme import __version__

        _console.print(f"runme {__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Main callback (global options)
# ---------------------------------------------------------------------------


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) output.",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help=f"Path to configuration TOML file (default: ./{DEFAULT_CONFIG_FILE}).",
    ),
    sandbox: Optional[SandboxKind] = typer.Option(
        None,
        "--sandbox",
        "-s",
        case_sensitive=False,
        help="Sandbox runtime to execute code blocks with.",
    ),
    image: Optional[str] = typer.Option(
        None,
        "--image",
        help="Container image for --sandbox containerized (overrides RUNME_DOCKER_IMAGE).",
    ),
    container_arg: Optional[list[str]] = typer.Option(
        None,
        "--container-arg",
        help="Extra argument forwarded to '<engine> run'. Repeatable.",
    ),
    engine: Optional[str] = typer.Option(
        None,
        "--engine",
        help="Container engine executable (docker, podman, ...).",
    ),
) -> None:
    """Global options for runme."""
    with error_handler(_console):
        settings = load_config(config)
        updates: dict = {}
        if sandbox is not None:
            updates["sandbox"] = sandbox
        if image:
            updates["container_image"] = image
        if container_arg:
            updates["container_args"] = list(container_arg)
        if engine:
            updates["container_engine"] = engine
        settings = settings.model_copy(update=updates)

        setup_logging("DEBUG" if verbose else settings.log_level, settings.log_file)
        ctx.obj = settings


def _settings(ctx: typer.Context) -> RunmeConfig:
    return ctx.obj if isinstance(ctx.obj, RunmeConfig) else RunmeConfig()


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _load_blocks(target: Path) -> list[CodeBlock]:
    """Read and parse *target*."""
    with error_context(f"while reading {target}"):
        document = target.read_text(encoding="utf-8")
    with error_context(f"while parsing {target}"):
        blocks = extract_blocks(document)
    warn_duplicate_names(blocks)
    return blocks


def _render(reports: list[BlockReport], report_format: ReportFormat) -> None:
    if report_format is ReportFormat.JSON:
        typer.echo(reports_to_json(reports))
        return
    for report in reports:
        render_report(report, _out_console, streamed=True)
    render_summary(reports, _out_console)


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------


@app.command("list")
def list_blocks(
    target: Path = typer.Argument(DEFAULT_TARGET, help="Markdown document to inspect."),
) -> None:
    """List discovered code blocks without executing them."""
    with error_handler(_console):
        blocks = _load_blocks(target)
        render_block_list(blocks, _out_console)


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@app.command()
def run(
    ctx: typer.Context,
    target: Path = typer.Argument(DEFAULT_TARGET, help="Markdown document to execute."),
    block: Optional[str] = typer.Option(
        None,
        "--block",
        "-b",
        help="Block id (e.g. block-002) or runme:name to execute.",
    ),
    report_format: ReportFormat = typer.Option(
        ReportFormat.HUMAN,
        "--format",
        "-f",
        case_sensitive=False,
        help="Report format. Human output streams command output live.",
    ),
) -> None:
    """Execute runnable code blocks and report pass/fail/skip per block.

    Commands run in the document's directory. Exits with code 3 when any
    block fails.
    """
    settings = _settings(ctx)
    failed = False
    with error_handler(_console):
        blocks = _load_blocks(target)
        with error_context(f"while selecting blocks in {target}"):
            subset = select_blocks(blocks, block)

        workdir = target.parent
        backend = create_sandbox(settings.to_sandbox_config(workdir))
        with error_context(f"while preparing {backend.label} sandbox"):
            backend.prepare()
        logger.debug("Running %d block(s) with %s sandbox", len(subset), backend.label)

        stream_live = report_format is ReportFormat.HUMAN
        reports: list[BlockReport] = []
        try:
            for report in iter_reports(
                subset,
                backend,
                stream_live=stream_live,
                console=_out_console,
                err_console=_console,
            ):
                reports.append(report)
        except RunnerError as exc:
            _render(reports, report_format)
            current = subset[len(reports)]
            raise wrap_error(exc, f"while running {current.display_id}") from exc

        _render(reports, report_format)
        failed = any(report.status.is_failed for report in reports)

    if failed:
        raise typer.Exit(code=EXIT_BLOCKS_FAILED)


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None,
        help="Directory to write the configuration file into. Defaults to current directory.",
    ),
) -> None:
    """Write a default ``.runme.toml`` configuration file."""
    with error_handler(_console):
        directory = path or Path.cwd()
        config_file = directory / DEFAULT_CONFIG_FILE
        if config_file.exists():
            raise CLIError(f"{config_file} already exists")
        with error_context(f"while writing {config_file}"):
            directory.mkdir(parents=True, exist_ok=True)
            config_file.write_text(default_config_toml(), encoding="utf-8")
        _console.print(f"[green]Wrote {config_file}[/green]")
