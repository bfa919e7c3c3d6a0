"""Human and JSON rendering for block listings and reports."""

from __future__ import annotations

import json
from typing import Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from runme.markdown.models import CodeBlock
from runme.runner.models import BlockReport, StatusKind

HEADING_SEPARATOR = " › "

_STATUS_STYLES = {
    StatusKind.PASSED: "green",
    StatusKind.FAILED: "bold red",
    StatusKind.SKIPPED: "yellow",
}


def heading_path(headings: Sequence[str]) -> str:
    return HEADING_SEPARATOR.join(headings) if headings else "(root)"


def render_block_list(blocks: Sequence[CodeBlock], console: Console) -> None:
    """Print a table of discovered blocks."""
    console.print(f"Discovered {len(blocks)} block(s):")
    if not blocks:
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Block", no_wrap=True)
    table.add_column("Language", width=10)
    table.add_column("Line", justify="right", style="dim")
    table.add_column("Context", min_width=20)
    table.add_column("Skip", style="yellow")

    for block in blocks:
        table.add_row(
            escape(block.display_id),
            escape(block.language or "shell"),
            str(block.line),
            escape(heading_path(block.headings)),
            escape(block.skip_reason or ""),
        )
    console.print(table)


def render_report(report: BlockReport, console: Console, streamed: bool = False) -> None:
    """Print one block report.

    Transcripts are omitted when the output was already streamed live.
    """
    style = _STATUS_STYLES[report.status.kind]
    console.print(f"\n[bold]== {escape(report.display_id)} ==[/bold]")
    if report.language:
        console.print(f"language: {escape(report.language)}")
    if report.sandbox:
        console.print(f"sandbox: {escape(report.sandbox)}")
    if report.headings:
        console.print(f"context: {escape(heading_path(report.headings))}")
    console.print(f"status: [{style}]{escape(str(report.status))}[/{style}]")
    if report.skip_reason:
        console.print(f"skip reason: {escape(report.skip_reason)}")
    if report.duration_ms and not report.status.is_skipped:
        console.print(f"duration: {report.duration_ms} ms", style="dim")
    if not streamed:
        if report.stdout:
            console.print("stdout:", style="bold")
            console.print(escape(report.stdout.rstrip("\n")), highlight=False, soft_wrap=True)
        if report.stderr:
            console.print("stderr:", style="bold red")
            console.print(escape(report.stderr.rstrip("\n")), highlight=False, soft_wrap=True)


def render_summary(reports: Sequence[BlockReport], console: Console) -> None:
    """Print pass/fail/skip totals."""
    counts = {kind: 0 for kind in StatusKind}
    for report in reports:
        counts[report.status.kind] += 1
    console.print(
        f"\n[bold]Summary:[/bold] "
        f"[green]{counts[StatusKind.PASSED]} passed[/green], "
        f"[red]{counts[StatusKind.FAILED]} failed[/red], "
        f"[yellow]{counts[StatusKind.SKIPPED]} skipped[/yellow]"
    )


def reports_to_json(reports: Sequence[BlockReport]) -> str:
    """Serialize *reports* as a pretty-printed JSON array."""
    return json.dumps([report.to_dict() for report in reports], indent=2, ensure_ascii=False)
