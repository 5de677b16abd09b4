"""Rich console rendering for activity reports."""

from __future__ import annotations

from typing import Literal

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from filepulse.models import FileRecord, TrackingKind

from .aggregator import format_size
from .models import ActivitySummary, HourlyBucket, Report

ReportFormat = Literal["table", "summary", "json"]

_TRACKING_STYLES = {
    TrackingKind.GIT: "blue",
    TrackingKind.DOTFILE: "magenta",
    TrackingKind.SNAPSHOT: "cyan",
    TrackingKind.NEW: "green",
    TrackingKind.UNTRACKED: "white",
}

COLUMNS = (
    "#",
    "File Path",
    "Modified",
    "Size",
    "Tracking",
    "Status",
    "Index",
    "Worktree",
    "+Lines",
    "-Lines",
    "Chunks",
)


def record_row(index: int, record: FileRecord, time_format: str) -> list[str]:
    """Return the display cells for ``record``."""
    tracking = record.tracking
    tracking_cell = "-"
    if tracking is not None:
        tracking_cell = f"[{_TRACKING_STYLES[tracking]}]{tracking.value}[/]"
    raw = record.status.raw_code
    return [
        str(index),
        escape(record.relative_path),
        record.modified_at.strftime(time_format),
        format_size(record.size_bytes),
        tracking_cell,
        raw if raw == "--" else f"[yellow]{raw}[/yellow]",
        record.status.index_state.value,
        record.status.worktree_state.value,
        f"[green]{record.diff.additions}[/green]",
        f"[red]{record.diff.deletions}[/red]",
        str(record.diff.chunks),
    ]


def bucket_table(bucket: HourlyBucket, time_format: str) -> Table:
    table = Table(title=f"Files Modified During: {bucket.label}", title_justify="left")
    for name in COLUMNS:
        table.add_column(name, justify="right" if name == "#" else "left")
    for index, record in enumerate(bucket.records, start=1):
        table.add_row(*record_row(index, record, time_format))
    return table


def _summary_lines(summary: ActivitySummary, *, indent: str = "") -> list[str]:
    lines = [
        f"{indent}[green]Files: {summary.total_files}[/green]",
        f"{indent}[cyan]Hours with activity: {summary.active_hours}[/cyan]",
        f"{indent}[yellow]Modified: {summary.modified_files}[/yellow]",
    ]
    for kind, count in summary.by_tracking.items():
        if count:
            lines.append(f"{indent}[cyan]{kind}: {count}[/cyan]")
    lines.append(
        f"{indent}[green]Additions: {summary.total_additions}[/green], "
        f"[red]Deletions: {summary.total_deletions}[/red]"
    )
    return lines


def render_report(
    report: Report,
    console: Console,
    *,
    output_format: ReportFormat = "table",
    time_format: str = "%Y-%m-%d %H:%M:%S",
) -> None:
    """Print ``report`` to ``console`` in the requested format."""
    if output_format == "json":
        console.print_json(data=report.model_dump(mode="json"))
        return

    window = report.metadata.time_window or "window"
    if output_format == "summary":
        console.rule(f"[blue]File activity summary ({window})[/blue]")
        for line in _summary_lines(report.summary):
            console.print(line)
        console.print(f"[cyan]Total chunks: {report.summary.total_chunks}[/cyan]")
        if report.summary.top_files:
            console.print("[blue]Most active files:[/blue]")
            for position, path in enumerate(report.summary.top_files, start=1):
                console.print(f"  {position}. {escape(path)}")
    else:
        if not report.buckets:
            console.print("[cyan]No files to display.[/cyan]")
        else:
            console.rule(f"[blue]Overall summary - file activity ({window})[/blue]")
            for line in _summary_lines(report.summary):
                console.print(line)
            for bucket in report.buckets:
                console.print()
                console.print(bucket_table(bucket, time_format))
                console.print("[blue]Hour summary:[/blue]")
                for line in _summary_lines(bucket.summary, indent="  "):
                    console.print(line)

    if report.warnings:
        console.print()
        console.print("[yellow]Warnings:[/yellow]")
        for warning in report.warnings:
            location = f" ({escape(warning.path)})" if warning.path else ""
            console.print(f"  - [yellow]{escape(warning.message)}{location}[/yellow]")


__all__ = ["COLUMNS", "ReportFormat", "bucket_table", "record_row", "render_report"]
