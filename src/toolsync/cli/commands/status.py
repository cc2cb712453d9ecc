"""Status command - summarize many sources at once."""

import click

from toolsync.artifacts.models import SourceDescriptor, SourceFailure, StatusReport
from toolsync.artifacts.report import failure_to_dict, report_to_dict
from toolsync.cli.output import user_output
from toolsync.cli.render import render_json, render_status_table
from toolsync.core.context import ToolsyncContext
from toolsync.core.errors import SourceNotFoundError, StateFileError


def _collect_results(
    ctx: ToolsyncContext, source_ids: tuple[str, ...], require_sync: bool
) -> list[StatusReport | SourceFailure]:
    """Reports for the requested sources, in request order."""
    if not source_ids:
        sources = ctx.registry.list_sources()
        return ctx.status_service.get_status_batch(sources, require_sync=require_sync)

    # Unknown ids keep their slot as not-found failures
    slots: list[SourceDescriptor | SourceFailure] = []
    for source_id in source_ids:
        try:
            slots.append(ctx.registry.require_source(source_id))
        except SourceNotFoundError as e:
            slots.append(SourceFailure(source_id=source_id, error_type="not-found", message=str(e)))

    found = [s for s in slots if isinstance(s, SourceDescriptor)]
    computed = iter(ctx.status_service.get_status_batch(found, require_sync=require_sync))
    return [s if isinstance(s, SourceFailure) else next(computed) for s in slots]


@click.command("status")
@click.argument("source_ids", nargs=-1)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.option(
    "--require-sync",
    is_flag=True,
    help="Treat an unreachable remote as a failure instead of a sync error",
)
@click.pass_obj
def status_cmd(
    ctx: ToolsyncContext,
    source_ids: tuple[str, ...],
    output_format: str,
    require_sync: bool,
) -> None:
    """Show deployment status of registered sources (all of them by default)."""
    try:
        results = _collect_results(ctx, source_ids, require_sync)
    except StateFileError as e:
        user_output(click.style("Error: ", fg="red") + str(e))
        raise SystemExit(1) from e
    failures = [r for r in results if isinstance(r, SourceFailure)]

    if output_format == "json":
        render_json(
            {
                "reports": [
                    report_to_dict(r, verbose=False) for r in results if isinstance(r, StatusReport)
                ],
                "failures": [failure_to_dict(f) for f in failures],
            }
        )
    elif not results:
        user_output("No sources registered.")
    else:
        render_status_table(results)

    if failures:
        raise SystemExit(1)
