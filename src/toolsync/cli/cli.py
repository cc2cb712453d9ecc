import logging

import click

from toolsync.cli.commands.show import show_cmd
from toolsync.cli.commands.status import status_cmd
from toolsync.cli.output import user_output
from toolsync.core.context import create_context

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="toolsync")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Report how registered sources are deployed into the tool directory."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s - %(levelname)s - %(message)s")

    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        try:
            ctx.obj = create_context()
        except ValueError as e:
            user_output(click.style("Error: ", fg="red") + f"Invalid configuration: {e}")
            raise SystemExit(1) from e


cli.add_command(show_cmd)
cli.add_command(status_cmd)


def main() -> None:
    """CLI entry point used by the `toolsync` console script."""
    cli()
