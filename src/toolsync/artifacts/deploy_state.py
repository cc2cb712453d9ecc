"""Deployment records: content hashes written by the last deployment of each source.

Records are tracked separately from the mapper's pure output and are the
reference point for conflict detection.
"""

import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from toolsync.core.errors import StateFileError

# Schema version for future migrations
SCHEMA_VERSION = 1


@dataclass(frozen=True)
class DeploymentRecord:
    """What the last successful deployment of a source wrote.

    The files dict maps absolute target paths to content hashes (sha256:...).
    """

    source_id: str
    deployed_at: datetime
    files: dict[str, str]

    def expected_hash(self, target_path: Path) -> str | None:
        return self.files.get(str(target_path))


class DeploymentStateStore(ABC):
    """Abstract interface for reading and writing deployment records."""

    @abstractmethod
    def get_record(self, source_id: str) -> DeploymentRecord | None:
        """Get the deployment record of a source.

        Returns:
            DeploymentRecord if the source was ever deployed, None otherwise

        Raises:
            StateFileError: If the state file or this source's record is malformed
        """
        ...

    @abstractmethod
    def save_record(self, record: DeploymentRecord) -> None:
        """Replace the deployment record of record.source_id."""
        ...

    @abstractmethod
    def path(self) -> Path:
        """Get the path to the state file (for error messages and debugging)."""
        ...


class RealDeploymentStateStore(DeploymentStateStore):
    """Production implementation that reads/writes <toolsync home>/deployments.toml.

    Only the requested source's table is parsed, so a malformed record of one
    source never hides the records of the others.

    Example deployments.toml:
      schema_version = 1

      [deployments.team-commands]
      deployed_at = "2024-01-15T10:30:00+00:00"

      [deployments.team-commands.files]
      "/home/me/.claude/commands/review.md" = "sha256:9f86d08..."
    """

    def __init__(self, state_path: Path) -> None:
        self._state_path = state_path

    def get_record(self, source_id: str) -> DeploymentRecord | None:
        info = self._load_tables().get(source_id)
        if info is None:
            return None
        return self._parse_record(source_id, info)

    def save_record(self, record: DeploymentRecord) -> None:
        doc = self._load_document()
        doc["schema_version"] = SCHEMA_VERSION
        if "deployments" not in doc:
            doc["deployments"] = tomlkit.table()
        elif not isinstance(doc["deployments"], dict):
            raise StateFileError(self._state_path, "'deployments' must be a table")

        entry = tomlkit.table()
        entry["deployed_at"] = record.deployed_at.isoformat()
        files_table = tomlkit.table()
        for target, content_hash in sorted(record.files.items()):
            files_table[target] = content_hash
        entry["files"] = files_table
        doc["deployments"][record.source_id] = entry  # type: ignore[index]

        self._state_path.parent.mkdir(parents=True, exist_ok=True)
        self._state_path.write_text(tomlkit.dumps(doc), encoding="utf-8")

    def path(self) -> Path:
        return self._state_path

    def _load_tables(self) -> dict[str, Any]:
        """Load the raw per-source tables, checking only file-level structure.

        Raises:
            StateFileError: If the file is not valid TOML or has a newer schema
        """
        if not self._state_path.exists():
            return {}

        try:
            data = tomllib.loads(self._state_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
            raise StateFileError(self._state_path, str(e)) from e

        self._check_schema_version(data.get("schema_version", 1))
        deployments = data.get("deployments", {})
        if not isinstance(deployments, dict):
            raise StateFileError(self._state_path, "'deployments' must be a table")
        return deployments

    def _load_document(self) -> tomlkit.TOMLDocument:
        if not self._state_path.exists():
            return tomlkit.document()
        try:
            doc = tomlkit.parse(self._state_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, TOMLKitError) as e:
            raise StateFileError(self._state_path, str(e)) from e
        self._check_schema_version(doc.get("schema_version", 1))
        return doc

    def _check_schema_version(self, schema_version: object) -> None:
        if not isinstance(schema_version, int) or isinstance(schema_version, bool):
            raise StateFileError(self._state_path, f"invalid schema_version {schema_version!r}")
        if schema_version > SCHEMA_VERSION:
            raise StateFileError(
                self._state_path,
                f"schema version {schema_version} is newer than the supported "
                f"version {SCHEMA_VERSION}; upgrade toolsync",
            )

    def _parse_record(self, source_id: str, info: object) -> DeploymentRecord:
        """Parse one source's table.

        Raises:
            StateFileError: If required keys are missing or have the wrong type
        """
        if not isinstance(info, dict):
            raise StateFileError(self._state_path, f"deployment '{source_id}' must be a table")
        raw_deployed_at = info.get("deployed_at")
        if not isinstance(raw_deployed_at, str):
            raise StateFileError(
                self._state_path, f"deployment '{source_id}' is missing 'deployed_at'"
            )
        try:
            deployed_at = datetime.fromisoformat(raw_deployed_at)
        except ValueError as e:
            raise StateFileError(
                self._state_path,
                f"deployment '{source_id}' has invalid deployed_at {raw_deployed_at!r}",
            ) from e

        files = info.get("files", {})
        if not isinstance(files, dict) or not all(isinstance(v, str) for v in files.values()):
            raise StateFileError(
                self._state_path, f"deployment '{source_id}' has a malformed 'files' table"
            )
        return DeploymentRecord(source_id=source_id, deployed_at=deployed_at, files=dict(files))


class FakeDeploymentStateStore(DeploymentStateStore):
    """In-memory implementation for tests.

    Use constructor injection to set up initial records.
    """

    def __init__(self, records: list[DeploymentRecord] | None = None) -> None:
        self._records = {r.source_id: r for r in records} if records else {}
        self._saved: list[DeploymentRecord] = []

    def get_record(self, source_id: str) -> DeploymentRecord | None:
        return self._records.get(source_id)

    def save_record(self, record: DeploymentRecord) -> None:
        self._records[record.source_id] = record
        self._saved.append(record)

    def path(self) -> Path:
        return Path("/fake/toolsync/deployments.toml")

    @property
    def saved_records(self) -> list[DeploymentRecord]:
        """Read-only access to saved records for test assertions."""
        return list(self._saved)
