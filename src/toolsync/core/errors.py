"""Error taxonomy for the deployment and status engine.

Recoverable errors (GitUnavailable) are absorbed into a report's sync status.
Fatal errors (ScanError, StateFileError) abort the request for a single
source only. CacheCorruption never leaves the cache.
"""

from pathlib import Path


class ToolsyncError(Exception):
    """Base class for all toolsync errors."""


class ScanError(ToolsyncError):
    """A source checkout could not be read."""

    def __init__(self, source_id: str, path: Path, reason: str) -> None:
        self.source_id = source_id
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot scan source '{source_id}' at {path}: {reason}")


class GitUnavailable(ToolsyncError):
    """The git collaborator could not answer (unreachable remote, timeout, no git)."""

    def __init__(self, location: str, reason: str) -> None:
        self.location = location
        self.reason = reason
        super().__init__(f"Git unavailable for {location}: {reason}")


class SourceNotFoundError(ToolsyncError):
    """No source is registered under the requested id."""

    def __init__(self, source_id: str) -> None:
        self.source_id = source_id
        super().__init__(f"Source not found: {source_id}")


class CacheCorruption(ToolsyncError):
    """A stored cache entry is malformed."""

    def __init__(self, key: object, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Corrupt cache entry for {key}: {reason}")


class StateFileError(ToolsyncError):
    """A toolsync state file (sources.toml, deployments.toml) is unreadable or malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid state file {path}: {reason}")
