"""Renderers for status reports: text, JSON and files-only."""

import json
from collections.abc import Sequence
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from toolsync.artifacts.mapper import deployed_target_paths
from toolsync.artifacts.models import HealthStatus, SourceFailure, StatusReport, SyncStatus
from toolsync.cli.output import machine_output, user_output

_SYNC_COLORS: dict[SyncStatus, str] = {
    "up-to-date": "green",
    "needs-update": "yellow",
    "error": "red",
}

_HEALTH_COLORS: dict[HealthStatus, str] = {
    "healthy": "green",
    "warning": "yellow",
    "error": "red",
}

_MAPPING_STATUS_MARKUP = {
    "deployed": "[green]deployed[/green]",
    "pending": "[yellow]pending[/yellow]",
    "skipped": "[dim]skipped[/dim]",
}


def _console() -> Console:
    # Wide enough that absolute target paths are never truncated
    return Console(stderr=True, force_terminal=True, width=200)


def _printable(text: str) -> str:
    """Replace undecodable file name bytes (lone surrogates) so the text can be written."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def _short_hash(content_hash: str) -> str:
    return content_hash.removeprefix("sha256:")[:12]


def render_failure(failure: SourceFailure) -> None:
    user_output(click.style("Error: ", fg="red") + failure.message)


def render_json(payload: dict[str, Any]) -> None:
    machine_output(json.dumps(payload, indent=2))


def render_files_only(report: StatusReport, *, as_json: bool = False) -> None:
    """Deployed targets for piping into other tools: one per line, or a JSON list."""
    targets = [str(p) for p in deployed_target_paths(list(report.mappings))]
    if as_json:
        machine_output(json.dumps(targets, indent=2))
        return
    for target in targets:
        machine_output(_printable(target))


def render_report_text(report: StatusReport, *, verbose: bool) -> None:
    source = report.source
    user_output(click.style(source.id, bold=True) + click.style(f" ({source.location})", dim=True))

    sync_line = click.style(report.sync_status, fg=_SYNC_COLORS[report.sync_status])
    if report.sync_error is not None:
        sync_line += click.style(f" - {report.sync_error}", dim=True)
    user_output(f"  Sync:        {sync_line}")
    health_color = _HEALTH_COLORS[report.health_status]
    user_output(f"  Health:      {click.style(report.health_status, fg=health_color)}")
    for issue in report.health_issues:
        issue_color = "red" if issue.severity == "error" else "yellow"
        user_output(
            "    " + click.style(issue.message, fg=issue_color) + f" ({issue.suggestion})"
        )
    if verbose and report.local_revision is not None:
        user_output(f"  Local:       {report.local_revision}")
    if verbose and report.remote_revision is not None:
        user_output(f"  Remote:      {report.remote_revision}")

    if report.last_synced_at is not None:
        user_output(f"  Last synced: {report.last_synced_at.isoformat()}")
    else:
        user_output("  Last synced: " + click.style("never", dim=True))

    user_output(
        f"  Deployed:    {report.deployed_count}  "
        f"Failed: {report.failed_count}  Skipped: {report.skipped_count}"
    )
    by_kind = report.deployed_counts_by_kind
    if by_kind:
        counts = ", ".join(f"{kind} {count}" for kind, count in sorted(by_kind.items()))
        user_output(f"  By kind:     {counts}")

    if report.has_conflicts:
        user_output(click.style(f"  Conflicts ({len(report.conflicts)}):", fg="red", bold=True))
        for conflict in report.conflicts:
            line = f"    {_printable(str(conflict.target_path))}"
            if verbose:
                line += (
                    f" (expected {_short_hash(conflict.expected_hash)},"
                    f" found {_short_hash(conflict.actual_hash)})"
                )
            user_output(click.style(line, fg="red"))

    if not report.mappings:
        user_output(click.style("  No files found.", dim=True))
        return

    user_output()
    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Kind", no_wrap=True)
    table.add_column("Target", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    if verbose:
        table.add_column("Hash", style="dim", no_wrap=True)
        table.add_column("Size", justify="right", no_wrap=True)

    for mapping in report.mappings:
        row = [
            _printable(mapping.source_path),
            mapping.kind,
            _printable(str(mapping.target_path)) if mapping.target_path is not None else "-",
            _MAPPING_STATUS_MARKUP[mapping.status],
        ]
        if verbose:
            row.extend([_short_hash(mapping.source_hash), str(mapping.size)])
        table.add_row(*row)

    _console().print(table)


def render_status_table(results: Sequence[StatusReport | SourceFailure]) -> None:
    """One row per source; failures are listed after the table."""
    reports = [r for r in results if isinstance(r, StatusReport)]
    failures = [r for r in results if isinstance(r, SourceFailure)]

    if reports:
        table = Table(show_header=True, header_style="bold", box=None)
        table.add_column("Source", style="cyan", no_wrap=True)
        table.add_column("Sync", no_wrap=True)
        table.add_column("Health", no_wrap=True)
        table.add_column("Deployed", justify="right", no_wrap=True)
        table.add_column("Failed", justify="right", no_wrap=True)
        table.add_column("Skipped", justify="right", no_wrap=True)
        table.add_column("Conflicts", justify="right", no_wrap=True)
        for report in reports:
            color = _SYNC_COLORS[report.sync_status]
            conflicts = str(len(report.conflicts))
            health_color = _HEALTH_COLORS[report.health_status]
            table.add_row(
                report.source.id,
                f"[{color}]{report.sync_status}[/{color}]",
                f"[{health_color}]{report.health_status}[/{health_color}]",
                str(report.deployed_count),
                str(report.failed_count),
                str(report.skipped_count),
                f"[red]{conflicts}[/red]" if report.has_conflicts else conflicts,
            )
        _console().print(table)

    for failure in failures:
        render_failure(failure)
