"""Resolve deployment target paths under the user's tool directory."""

from pathlib import Path, PurePosixPath

from toolsync.artifacts.classifier import (
    has_supported_extension,
    match_rule,
    normalize_source_path,
)
from toolsync.artifacts.models import ArtifactKind

# Destination directory for each deployable kind, relative to the tool dir
KIND_DIRECTORIES: dict[ArtifactKind, str] = {
    "command": "commands",
    "agent": "agents",
    "hook": "hooks",
}

# Repository documentation is never deployed as an artifact
DOCUMENTATION_FILE_NAMES = frozenset({"readme.md"})


def resolve_target(kind: ArtifactKind, source_path: str, tool_dir: Path) -> Path | None:
    """Compute the absolute target for a classified source file.

    Strips the recognized category prefix (e.g. "commands/" or
    ".claude/commands/") and re-roots the remainder under the kind's
    destination directory. Pure: depends only on its arguments.

    Returns:
        Target path, or None for unrecognized files (and for paths whose
        prefix does not agree with the given kind)
    """
    if kind == "unrecognized":
        return None
    rule = match_rule(source_path)
    if rule is None or rule.kind != kind:
        return None
    normalized = normalize_source_path(source_path)
    remainder = PurePosixPath(normalized[len(rule.prefix) :])
    return tool_dir / KIND_DIRECTORIES[kind] / Path(*remainder.parts)


def resolve_virtual_target(kind: ArtifactKind, name: str, tool_dir: Path) -> Path | None:
    """Compute the target for the managed file of a single-file source.

    The declared kind picks the directory; ".md" is appended when missing.
    """
    if kind == "unrecognized":
        return None
    file_name = name if name.endswith(".md") else f"{name}.md"
    return tool_dir / KIND_DIRECTORIES[kind] / file_name


def resolve_typed_target(kind: ArtifactKind, source_path: str, tool_dir: Path) -> Path | None:
    """Compute the target of a file in a source that declares its kind.

    Every supported file deploys as the declared kind, keeping its path
    relative to the checkout root. README files are never deployed.
    """
    if kind == "unrecognized":
        return None
    normalized = PurePosixPath(normalize_source_path(source_path))
    if not has_supported_extension(normalized.name):
        return None
    if normalized.name.lower() in DOCUMENTATION_FILE_NAMES:
        return None
    return tool_dir / KIND_DIRECTORIES[kind] / Path(*normalized.parts)
