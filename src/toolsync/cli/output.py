"""Output helpers: user-facing messages on stderr, machine-readable data on stdout."""

import click


def user_output(message: str = "", nl: bool = True) -> None:
    """Write a message meant for a human. Goes to stderr so stdout stays parseable."""
    click.echo(message, err=True, nl=nl)


def machine_output(message: str = "", nl: bool = True) -> None:
    """Write data meant for scripts (JSON, file lists) to stdout."""
    click.echo(message, nl=nl)
