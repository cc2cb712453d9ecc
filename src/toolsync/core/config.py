import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_HOME = Path("~/.toolsync")
DEFAULT_TOOL_DIR = Path("~/.claude")
DEFAULT_CACHE_TTL_SECONDS = 60.0
DEFAULT_GIT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_WORKERS = 8

HOME_ENV_VAR = "TOOLSYNC_HOME"
TOOL_DIR_ENV_VAR = "TOOLSYNC_TOOL_DIR"


@dataclass(frozen=True)
class ToolsyncConfig:
    """In-memory representation of `<toolsync home>/config.toml`.

    Example config.toml:
      # Where artifacts are deployed (defaults to ~/.claude)
      tool_dir = "~/.claude"

      # Seconds a computed status report stays cached
      cache_ttl_seconds = 60

      # Upper bound on each remote git query
      git_timeout_seconds = 10

      # Sources examined in parallel by `toolsync status`
      max_workers = 8
    """

    home: Path
    tool_dir: Path
    cache_ttl_seconds: float
    git_timeout_seconds: float
    max_workers: int

    @property
    def registry_path(self) -> Path:
        return self.home / "sources.toml"

    @property
    def deployments_path(self) -> Path:
        return self.home / "deployments.toml"


def resolve_home(env: Mapping[str, str] | None = None) -> Path:
    """Resolve the toolsync home directory, honoring TOOLSYNC_HOME."""
    environ = os.environ if env is None else env
    override = environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return DEFAULT_HOME.expanduser()


def _positive_number(data: Mapping[str, object], key: str, default: float) -> float:
    value = data.get(key, default)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int | float) or value <= 0:
        raise ValueError(f"Invalid value for '{key}': expected a positive number, got {value!r}")
    return float(value)


def _positive_int(data: Mapping[str, object], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"Invalid value for '{key}': expected a positive integer, got {value!r}")
    return value


def load_config(home: Path, env: Mapping[str, str] | None = None) -> ToolsyncConfig:
    """Load config.toml from the toolsync home if present; otherwise return defaults.

    TOOLSYNC_TOOL_DIR in the environment overrides the tool_dir setting.

    Raises:
        ValueError: If a setting has the wrong type or is out of range
    """
    environ = os.environ if env is None else env

    cfg_path = home / "config.toml"
    data: dict[str, object] = {}
    if cfg_path.exists():
        data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))

    raw_tool_dir = data.get("tool_dir", str(DEFAULT_TOOL_DIR))
    if not isinstance(raw_tool_dir, str) or not raw_tool_dir:
        raise ValueError(f"Invalid value for 'tool_dir': expected a path, got {raw_tool_dir!r}")
    tool_dir_override = environ.get(TOOL_DIR_ENV_VAR)
    if tool_dir_override:
        raw_tool_dir = tool_dir_override

    return ToolsyncConfig(
        home=home,
        tool_dir=Path(raw_tool_dir).expanduser(),
        cache_ttl_seconds=_positive_number(data, "cache_ttl_seconds", DEFAULT_CACHE_TTL_SECONDS),
        git_timeout_seconds=_positive_number(
            data, "git_timeout_seconds", DEFAULT_GIT_TIMEOUT_SECONDS
        ),
        max_workers=_positive_int(data, "max_workers", DEFAULT_MAX_WORKERS),
    )
