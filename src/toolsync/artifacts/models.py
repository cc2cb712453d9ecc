"""Data models for artifact deployment and source status."""

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal

# Type of artifact based on directory structure in a source checkout
ArtifactKind = Literal["command", "agent", "hook", "unrecognized"]

# Source variants: a real git checkout, or a single managed text file
SourceKind = Literal["git", "single-file"]

SyncStatus = Literal["up-to-date", "needs-update", "error"]

MappingStatus = Literal["deployed", "pending", "skipped"]

# "auto" classifies by path; "type-based" deploys every file as the declared kind
DeploymentMode = Literal["auto", "type-based"]

HealthSeverity = Literal["error", "warning"]

HealthStatus = Literal["healthy", "warning", "error"]

VIRTUAL_SCHEME = "text://"

_VIRTUAL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def validate_virtual_location(location: str) -> str:
    """Validate a text:// location and return the virtual name.

    Only identifier characters and "." are allowed in the name; any
    path traversal segment is rejected.

    Raises:
        ValueError: If the location is not a well-formed virtual location
    """
    if not location.startswith(VIRTUAL_SCHEME):
        raise ValueError(f"Not a virtual location: {location}")
    name = location[len(VIRTUAL_SCHEME) :]
    if not name or _VIRTUAL_NAME_PATTERN.match(name) is None:
        raise ValueError(f"Invalid virtual source name: {name!r}")
    if name == "." or ".." in name:
        raise ValueError(f"Path traversal not allowed in virtual source name: {name!r}")
    return name


@dataclass(frozen=True)
class SourceDescriptor:
    """One registered content source. Owned by the registry, immutable."""

    id: str
    location: str
    local_path: Path
    kind: SourceKind
    # Required for single-file sources; on git sources it switches to type-based deployment
    declared_kind: ArtifactKind | None

    @classmethod
    def from_location(
        cls,
        *,
        source_id: str,
        location: str,
        local_path: Path,
        declared_kind: ArtifactKind | None = None,
    ) -> "SourceDescriptor":
        """Build a descriptor, deriving the source kind from the location.

        Raises:
            ValueError: If a virtual location is malformed or lacks a declared kind,
                or if the declared kind is "unrecognized"
        """
        if declared_kind == "unrecognized":
            raise ValueError(f"Source '{source_id}' cannot declare kind 'unrecognized'")
        if location.startswith(VIRTUAL_SCHEME):
            validate_virtual_location(location)
            if declared_kind is None:
                raise ValueError(f"Single-file source '{source_id}' requires a declared kind")
            return cls(
                id=source_id,
                location=location,
                local_path=local_path,
                kind="single-file",
                declared_kind=declared_kind,
            )
        return cls(
            id=source_id,
            location=location,
            local_path=local_path,
            kind="git",
            declared_kind=declared_kind,
        )

    @property
    def is_virtual(self) -> bool:
        return self.kind == "single-file"

    @property
    def deployment_mode(self) -> DeploymentMode:
        """"type-based" when every file deploys as the declared kind, else "auto"."""
        if self.declared_kind is not None and not self.is_virtual:
            return "type-based"
        return "auto"

    @property
    def virtual_name(self) -> str:
        """Name part of a text:// location.

        Raises:
            ValueError: If this is not a single-file source
        """
        return validate_virtual_location(self.location)


@dataclass(frozen=True)
class ArtifactMapping:
    """Association between one source file and its deployment target."""

    source_path: str  # forward-slash path relative to the checkout root
    kind: ArtifactKind
    target_path: Path | None  # None iff kind is "unrecognized"
    deployed: bool
    source_hash: str  # "sha256:<hex>"
    size: int

    @property
    def status(self) -> MappingStatus:
        if self.target_path is None:
            return "skipped"
        if self.deployed:
            return "deployed"
        return "pending"


@dataclass(frozen=True)
class ConflictEntry:
    """A deployed file whose on-disk content diverged from what deployment wrote."""

    target_path: Path
    expected_hash: str
    actual_hash: str


@dataclass(frozen=True)
class HealthIssue:
    """A problem found while checking a source, with the action that resolves it."""

    severity: HealthSeverity
    message: str
    suggestion: str


@dataclass(frozen=True)
class StatusReport:
    """Aggregated status of one source. Never mutated after construction."""

    source: SourceDescriptor
    sync_status: SyncStatus
    last_synced_at: datetime | None
    mappings: tuple[ArtifactMapping, ...]
    conflicts: tuple[ConflictEntry, ...]
    deployed_count: int
    failed_count: int
    skipped_count: int
    local_revision: str | None
    remote_revision: str | None
    sync_error: str | None
    generated_at: datetime
    health_issues: tuple[HealthIssue, ...] = ()

    @property
    def has_conflicts(self) -> bool:
        return len(self.conflicts) > 0

    @property
    def health_status(self) -> HealthStatus:
        if any(issue.severity == "error" for issue in self.health_issues):
            return "error"
        if self.health_issues:
            return "warning"
        return "healthy"

    @property
    def deployed_counts_by_kind(self) -> dict[ArtifactKind, int]:
        """Number of deployed files per kind; kinds with none are omitted."""
        counts: dict[ArtifactKind, int] = {}
        for mapping in self.mappings:
            if mapping.deployed:
                counts[mapping.kind] = counts.get(mapping.kind, 0) + 1
        return counts


SourceFailureType = Literal["scan-error", "not-found", "git-unavailable", "state-error"]


@dataclass(frozen=True)
class SourceFailure:
    """Fatal error for one source in a status request. Implements NonIdealState."""

    source_id: str
    error_type: SourceFailureType
    message: str
