"""Production implementation of SourceRegistry using a TOML file."""

import tomllib
from pathlib import Path

import tomlkit

from toolsync.artifacts.models import ArtifactKind, SourceDescriptor
from toolsync.core.errors import StateFileError
from toolsync.gateway.registry.abc import SourceRegistry

# Schema version for future migrations
SCHEMA_VERSION = 1

_VALID_DECLARED_KINDS: tuple[ArtifactKind, ...] = ("command", "agent", "hook")


def _parse_declared_kind(source_id: str, value: object) -> ArtifactKind | None:
    if value is None:
        return None
    if value == "command":
        return "command"
    if value == "agent":
        return "agent"
    if value == "hook":
        return "hook"
    raise ValueError(
        f"Source '{source_id}' has invalid declared_kind {value!r}; "
        f"expected one of {', '.join(_VALID_DECLARED_KINDS)}"
    )


class RealSourceRegistry(SourceRegistry):
    """Production implementation that reads/writes <toolsync home>/sources.toml.

    Example sources.toml:
      schema_version = 1

      [sources.team-commands]
      location = "https://github.com/acme/claude-commands.git"
      local_path = "/home/me/.toolsync/repos/team-commands"

      [sources.release-notes]
      location = "text://release-notes.md"
      local_path = "/home/me/.toolsync/text/release-notes"
      declared_kind = "command"
    """

    def __init__(self, registry_path: Path) -> None:
        self._registry_path = registry_path

    def list_sources(self) -> list[SourceDescriptor]:
        return sorted(self._load().values(), key=lambda s: s.id)

    def get_source(self, source_id: str) -> SourceDescriptor | None:
        return self._load().get(source_id)

    def register(self, source: SourceDescriptor) -> None:
        data = self._load()
        if source.id in data:
            raise ValueError(f"Source '{source.id}' already exists")
        data[source.id] = source
        self._save(data)

    def path(self) -> Path:
        return self._registry_path

    def _load(self) -> dict[str, SourceDescriptor]:
        """Load and parse registry from TOML.

        Raises:
            StateFileError: If the file is unreadable, malformed, or uses a newer schema
        """
        if not self._registry_path.exists():
            return {}

        try:
            data = tomllib.loads(self._registry_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
            raise StateFileError(self._registry_path, str(e)) from e

        schema_version = data.get("schema_version", 1)
        if not isinstance(schema_version, int) or schema_version > SCHEMA_VERSION:
            raise StateFileError(
                self._registry_path,
                f"schema version {schema_version!r} is not supported; "
                f"this version of toolsync only supports up to version {SCHEMA_VERSION}",
            )

        sources: dict[str, SourceDescriptor] = {}
        for source_id, info in data.get("sources", {}).items():
            try:
                sources[source_id] = SourceDescriptor.from_location(
                    source_id=source_id,
                    location=info["location"],
                    local_path=Path(info["local_path"]).expanduser(),
                    declared_kind=_parse_declared_kind(source_id, info.get("declared_kind")),
                )
            except KeyError as e:
                raise StateFileError(
                    self._registry_path, f"source '{source_id}' is missing {e.args[0]!r}"
                ) from e
            except (TypeError, ValueError) as e:
                raise StateFileError(self._registry_path, str(e)) from e
        return sources

    def _save(self, data: dict[str, SourceDescriptor]) -> None:
        """Save registry to TOML."""
        self._registry_path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        doc["schema_version"] = SCHEMA_VERSION

        sources_table = tomlkit.table()
        for source_id, source in sorted(data.items()):
            entry = tomlkit.table()
            entry["location"] = source.location
            entry["local_path"] = str(source.local_path)
            if source.declared_kind is not None:
                entry["declared_kind"] = source.declared_kind
            sources_table[source_id] = entry
        doc["sources"] = sources_table

        self._registry_path.write_text(tomlkit.dumps(doc), encoding="utf-8")
