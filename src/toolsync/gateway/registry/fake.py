"""In-memory fake implementation of SourceRegistry for testing."""

from pathlib import Path

from toolsync.artifacts.models import SourceDescriptor
from toolsync.gateway.registry.abc import SourceRegistry


class FakeSourceRegistry(SourceRegistry):
    """Test implementation that stores sources in memory.

    Example:
        >>> registry = FakeSourceRegistry(sources=[
        ...     SourceDescriptor.from_location(
        ...         source_id="team",
        ...         location="https://github.com/acme/team.git",
        ...         local_path=Path("/repos/team"),
        ...     )
        ... ])
    """

    def __init__(self, sources: list[SourceDescriptor] | None = None) -> None:
        self._sources: dict[str, SourceDescriptor] = {}
        for source in sources or []:
            self.register(source)

    def list_sources(self) -> list[SourceDescriptor]:
        return sorted(self._sources.values(), key=lambda s: s.id)

    def get_source(self, source_id: str) -> SourceDescriptor | None:
        return self._sources.get(source_id)

    def register(self, source: SourceDescriptor) -> None:
        if source.id in self._sources:
            raise ValueError(f"Source '{source.id}' already exists")
        self._sources[source.id] = source

    def path(self) -> Path:
        return Path("/fake/toolsync/sources.toml")
