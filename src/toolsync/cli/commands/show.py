"""Show command - display how one source maps onto the tool directory."""

from typing import NoReturn

import click

from toolsync.artifacts.models import SourceFailure, SourceFailureType
from toolsync.artifacts.report import failure_to_dict, report_to_dict
from toolsync.cli.render import (
    render_failure,
    render_files_only,
    render_json,
    render_report_text,
)
from toolsync.core.context import ToolsyncContext
from toolsync.core.errors import ScanError, SourceNotFoundError, StateFileError


def _fail(
    source_id: str, error_type: SourceFailureType, error: Exception, output_format: str
) -> NoReturn:
    failure = SourceFailure(source_id=source_id, error_type=error_type, message=str(error))
    if output_format == "json":
        render_json({"error": failure_to_dict(failure)})
    else:
        render_failure(failure)
    raise SystemExit(1)


@click.command("show")
@click.argument("source_id")
@click.option("--files-only", is_flag=True, help="Print only deployed target paths")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.option("--verbose", "-v", is_flag=True, help="Include hashes, sizes and revisions")
@click.pass_obj
def show_cmd(
    ctx: ToolsyncContext,
    source_id: str,
    files_only: bool,
    output_format: str,
    verbose: bool,
) -> None:
    """Show sync status, conflicts and file mappings of SOURCE_ID.

    With --files-only, --format json prints the deployed targets as a JSON list.
    """
    try:
        source = ctx.registry.require_source(source_id)
        report = ctx.status_service.get_status(source)
    except SourceNotFoundError as e:
        _fail(source_id, "not-found", e, output_format)
    except ScanError as e:
        _fail(source_id, "scan-error", e, output_format)
    except StateFileError as e:
        _fail(source_id, "state-error", e, output_format)

    if files_only:
        render_files_only(report, as_json=output_format == "json")
    elif output_format == "json":
        render_json(report_to_dict(report, verbose=verbose))
    else:
        render_report_text(report, verbose=verbose)
