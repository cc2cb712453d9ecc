"""Fake implementation of Git for testing."""

import threading
from pathlib import Path

from toolsync.core.errors import GitUnavailable
from toolsync.gateway.git.abc import Git


class FakeGit(Git):
    """In-memory fake implementation of Git.

    Constructor Injection:
    ---------------------
    - local_revisions: Mapping of repo_root -> HEAD sha
    - remote_revisions: Mapping of location -> remote HEAD sha
    - remote_raises: Exception to raise from get_remote_revision()

    Unknown repo roots / locations raise GitUnavailable, like a missing repo
    or an unreachable remote would.

    Mutation Tracking:
    -----------------
    - remote_calls: List of (location, timeout_seconds) tuples
    - initialized_paths: List of paths passed to init()
    """

    def __init__(
        self,
        *,
        local_revisions: dict[Path, str] | None = None,
        remote_revisions: dict[str, str] | None = None,
        remote_raises: Exception | None = None,
    ) -> None:
        self._local_revisions = local_revisions or {}
        self._remote_revisions = remote_revisions or {}
        self._remote_raises = remote_raises
        self._lock = threading.Lock()
        self._remote_calls: list[tuple[str, float]] = []
        self._initialized_paths: list[Path] = []

    def get_local_revision(self, repo_root: Path) -> str:
        revision = self._local_revisions.get(repo_root)
        if revision is None:
            raise GitUnavailable(str(repo_root), "not a git repository")
        return revision

    def get_remote_revision(self, location: str, *, timeout_seconds: float) -> str:
        with self._lock:
            self._remote_calls.append((location, timeout_seconds))
        if self._remote_raises is not None:
            raise self._remote_raises
        revision = self._remote_revisions.get(location)
        if revision is None:
            raise GitUnavailable(location, "remote unreachable")
        return revision

    def init(self, path: Path) -> None:
        self._initialized_paths.append(path)

    def set_local_revision(self, repo_root: Path, revision: str) -> None:
        """Simulate a pull that moved HEAD."""
        self._local_revisions[repo_root] = revision

    @property
    def remote_calls(self) -> list[tuple[str, float]]:
        """Read-only access to remote revision queries for test assertions."""
        with self._lock:
            return list(self._remote_calls)

    @property
    def initialized_paths(self) -> list[Path]:
        return list(self._initialized_paths)
