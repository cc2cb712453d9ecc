"""Application context with dependency injection."""

from dataclasses import dataclass
from pathlib import Path

from toolsync.artifacts.deploy_state import (
    DeploymentStateStore,
    FakeDeploymentStateStore,
    RealDeploymentStateStore,
)
from toolsync.core.cache import ResultCache
from toolsync.core.config import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_GIT_TIMEOUT_SECONDS,
    DEFAULT_MAX_WORKERS,
    ToolsyncConfig,
    load_config,
    resolve_home,
)
from toolsync.core.status_service import RepositoryStatusService
from toolsync.gateway.git.abc import Git
from toolsync.gateway.git.fake import FakeGit
from toolsync.gateway.git.real import RealGit
from toolsync.gateway.registry.abc import SourceRegistry
from toolsync.gateway.registry.fake import FakeSourceRegistry
from toolsync.gateway.registry.real import RealSourceRegistry
from toolsync.gateway.time.abc import Time
from toolsync.gateway.time.fake import FakeTime
from toolsync.gateway.time.real import RealTime


@dataclass(frozen=True)
class ToolsyncContext:
    """Immutable context holding all dependencies for toolsync operations.

    Created at CLI entry point and threaded through the application.
    Frozen to prevent accidental modification at runtime.
    """

    registry: SourceRegistry
    git: Git
    time: Time
    deploy_state: DeploymentStateStore
    status_service: RepositoryStatusService
    config: ToolsyncConfig


def _build_status_service(
    *, git: Git, time: Time, deploy_state: DeploymentStateStore, config: ToolsyncConfig
) -> RepositoryStatusService:
    return RepositoryStatusService(
        git=git,
        deploy_state=deploy_state,
        cache=ResultCache(time, default_ttl_seconds=config.cache_ttl_seconds),
        time=time,
        tool_dir=config.tool_dir,
        git_timeout_seconds=config.git_timeout_seconds,
        max_workers=config.max_workers,
    )


def create_context() -> ToolsyncContext:
    """Create production context with real implementations.

    Called at CLI entry point to create the context for the entire
    command execution.

    Raises:
        ValueError: If config.toml holds invalid settings
    """
    config = load_config(resolve_home())
    git = RealGit()
    time = RealTime()
    deploy_state = RealDeploymentStateStore(config.deployments_path)
    return ToolsyncContext(
        registry=RealSourceRegistry(config.registry_path),
        git=git,
        time=time,
        deploy_state=deploy_state,
        status_service=_build_status_service(
            git=git, time=time, deploy_state=deploy_state, config=config
        ),
        config=config,
    )


def context_for_test(
    *,
    registry: SourceRegistry | None = None,
    git: Git | None = None,
    time: Time | None = None,
    deploy_state: DeploymentStateStore | None = None,
    tool_dir: Path | None = None,
    config: ToolsyncConfig | None = None,
) -> ToolsyncContext:
    """Create a context backed by fakes, for tests.

    Any dependency not provided gets its fake default. tool_dir is a
    shortcut for a default config pointing at that directory.

    Example:
        >>> ctx = context_for_test(
        ...     registry=FakeSourceRegistry(sources=[source]),
        ...     git=FakeGit(local_revisions={...}, remote_revisions={...}),
        ...     tool_dir=tmp_path / ".claude",
        ... )
    """
    if config is None:
        config = ToolsyncConfig(
            home=Path("/fake/toolsync"),
            tool_dir=tool_dir if tool_dir is not None else Path("/fake/.claude"),
            cache_ttl_seconds=DEFAULT_CACHE_TTL_SECONDS,
            git_timeout_seconds=DEFAULT_GIT_TIMEOUT_SECONDS,
            max_workers=DEFAULT_MAX_WORKERS,
        )
    resolved_git = git if git is not None else FakeGit()
    resolved_time = time if time is not None else FakeTime()
    resolved_deploy_state = deploy_state if deploy_state is not None else FakeDeploymentStateStore()
    return ToolsyncContext(
        registry=registry if registry is not None else FakeSourceRegistry(),
        git=resolved_git,
        time=resolved_time,
        deploy_state=resolved_deploy_state,
        status_service=_build_status_service(
            git=resolved_git, time=resolved_time, deploy_state=resolved_deploy_state, config=config
        ),
        config=config,
    )
