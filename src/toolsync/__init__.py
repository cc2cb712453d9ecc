"""toolsync CLI entry point.

This package deploys commands, agents and hooks from registered sources into
the user's tool directory and reports on their state. See `toolsync --help`
for details.
"""

from toolsync.cli.cli import cli

__all__ = ["cli"]
