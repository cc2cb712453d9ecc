"""Abstract interface for the registry of known content sources."""

from abc import ABC, abstractmethod
from pathlib import Path

from toolsync.artifacts.models import SourceDescriptor
from toolsync.core.errors import SourceNotFoundError


class SourceRegistry(ABC):
    """Abstract interface for source registry lookups.

    Provides dependency injection for the persisted source list, enabling
    in-memory implementations for tests without touching the filesystem.
    The status engine only reads from the registry.
    """

    @abstractmethod
    def list_sources(self) -> list[SourceDescriptor]:
        """List all registered sources, sorted by id."""
        ...

    @abstractmethod
    def get_source(self, source_id: str) -> SourceDescriptor | None:
        """Get a registered source by id.

        Returns:
            SourceDescriptor if found, None otherwise
        """
        ...

    def require_source(self, source_id: str) -> SourceDescriptor:
        """Get a registered source by id, failing if it is unknown.

        Raises:
            SourceNotFoundError: If no source has this id
        """
        source = self.get_source(source_id)
        if source is None:
            raise SourceNotFoundError(source_id)
        return source

    @abstractmethod
    def register(self, source: SourceDescriptor) -> None:
        """Register a new source.

        Raises:
            ValueError: If a source with the same id already exists
        """
        ...

    @abstractmethod
    def path(self) -> Path:
        """Get the path to the registry file (for error messages and debugging)."""
        ...
