"""Production implementation of git revision queries using subprocess."""

import logging
import subprocess
from pathlib import Path

from toolsync.core.errors import GitUnavailable
from toolsync.gateway.git.abc import Git

logger = logging.getLogger(__name__)

# Local git commands never touch the network; keep them bounded anyway
_LOCAL_GIT_TIMEOUT = 10


def _run_git(cmd: list[str], *, location: str, cwd: Path | None, timeout: float) -> str:
    """Run a git command and return stripped stdout.

    Raises:
        GitUnavailable: On missing git binary, non-zero exit or timeout
    """
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise GitUnavailable(location, "git executable not found") from e
    except subprocess.TimeoutExpired as e:
        raise GitUnavailable(location, f"timed out after {timeout}s") from e
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise GitUnavailable(location, stderr or f"exit status {e.returncode}") from e
    return result.stdout.strip()


class RealGit(Git):
    """Real implementation of Git using subprocess."""

    def get_local_revision(self, repo_root: Path) -> str:
        return _run_git(
            ["git", "rev-parse", "HEAD"],
            location=str(repo_root),
            cwd=repo_root,
            timeout=_LOCAL_GIT_TIMEOUT,
        )

    def get_remote_revision(self, location: str, *, timeout_seconds: float) -> str:
        output = _run_git(
            ["git", "ls-remote", location, "HEAD"],
            location=location,
            cwd=None,
            timeout=timeout_seconds,
        )
        # Format: "<sha>\tHEAD"
        first_line = output.splitlines()[0] if output else ""
        sha = first_line.split("\t", 1)[0].strip()
        if not sha:
            raise GitUnavailable(location, "remote reported no HEAD")
        logger.debug("Remote HEAD for %s is %s", location, sha)
        return sha

    def init(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)
        _run_git(
            ["git", "init", "--quiet"],
            location=str(path),
            cwd=path,
            timeout=_LOCAL_GIT_TIMEOUT,
        )
