"""Abstract base class for the git operations the status engine consumes."""

from abc import ABC, abstractmethod
from pathlib import Path


class Git(ABC):
    """Abstract interface for git revision queries.

    All implementations (real, fake) must implement this interface.
    """

    @abstractmethod
    def get_local_revision(self, repo_root: Path) -> str:
        """Get the commit SHA checked out at HEAD.

        Args:
            repo_root: Path to the local checkout

        Raises:
            GitUnavailable: If the checkout has no readable HEAD or git is missing
        """
        ...

    @abstractmethod
    def get_remote_revision(self, location: str, *, timeout_seconds: float) -> str:
        """Get the commit SHA of the remote's HEAD.

        Args:
            location: Remote URL
            timeout_seconds: Upper bound for the network call

        Raises:
            GitUnavailable: If the remote is unreachable or the call times out
        """
        ...

    @abstractmethod
    def init(self, path: Path) -> None:
        """Create an empty repository at path.

        Used at registration time only; the status engine never calls it.
        """
        ...
