"""Map files in a source checkout onto deployment targets."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from toolsync.artifacts.classifier import classify
from toolsync.artifacts.hashing import compute_file_hash, hash_if_exists
from toolsync.artifacts.models import ArtifactKind, ArtifactMapping, SourceDescriptor
from toolsync.artifacts.targets import (
    resolve_target,
    resolve_typed_target,
    resolve_virtual_target,
)
from toolsync.core.errors import ScanError

logger = logging.getLogger(__name__)

# Version-control metadata directories never contain artifacts
VCS_METADATA_DIRS = frozenset({".git", ".hg", ".svn"})


@dataclass(frozen=True)
class SourceFile:
    """A regular file found in a checkout."""

    relative_path: str  # forward-slash path relative to the checkout root
    absolute_path: Path


def scan_source_files(source: SourceDescriptor) -> list[SourceFile]:
    """Enumerate regular files in a checkout, sorted by relative path.

    VCS metadata directories are excluded and directory symlinks are not followed.

    Raises:
        ScanError: If the checkout (or any directory inside it) cannot be read
    """
    root = source.local_path
    if not root.exists():
        raise ScanError(source.id, root, "checkout path does not exist")
    if not root.is_dir():
        raise ScanError(source.id, root, "checkout path is not a directory")

    def _raise_scan_error(error: OSError) -> None:
        raise ScanError(source.id, Path(error.filename or root), error.strerror or str(error))

    # os.walk does not report an unreadable root on its own
    try:
        with os.scandir(root):
            pass
    except OSError as e:
        raise ScanError(source.id, root, e.strerror or str(e)) from e

    files: list[SourceFile] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_scan_error):
        dirnames[:] = [d for d in dirnames if d not in VCS_METADATA_DIRS]
        current = Path(dirpath)
        for filename in filenames:
            absolute = current / filename
            if not absolute.is_file():
                continue
            relative = absolute.relative_to(root).as_posix()
            files.append(SourceFile(relative_path=relative, absolute_path=absolute))

    return sorted(files, key=lambda f: f.relative_path)


def _build_mapping(
    source: SourceDescriptor,
    source_file: SourceFile,
    kind: ArtifactKind,
    target_path: Path | None,
) -> ArtifactMapping:
    try:
        source_hash = compute_file_hash(source_file.absolute_path)
        size = source_file.absolute_path.stat().st_size
    except OSError as e:
        raise ScanError(source.id, source_file.absolute_path, e.strerror or str(e)) from e

    deployed = False
    if target_path is not None:
        # Byte identity via content hash; mtimes are never consulted
        try:
            deployed = hash_if_exists(target_path) == source_hash
        except OSError as e:
            raise ScanError(source.id, target_path, e.strerror or str(e)) from e

    return ArtifactMapping(
        source_path=source_file.relative_path,
        kind=kind,
        target_path=target_path,
        deployed=deployed,
        source_hash=source_hash,
        size=size,
    )


def _map_single_file_source(
    source: SourceDescriptor, files: list[SourceFile], tool_dir: Path
) -> list[ArtifactMapping]:
    if not files:
        raise ScanError(source.id, source.local_path, "single-file source has no managed file")

    declared_kind = source.declared_kind
    assert declared_kind is not None  # enforced by SourceDescriptor.from_location

    managed, *extra = files
    if extra:
        logger.debug(
            "Source %s has %d unexpected extra files; treating them as unrecognized",
            source.id,
            len(extra),
        )

    mappings = [
        _build_mapping(
            source,
            managed,
            declared_kind,
            resolve_virtual_target(declared_kind, source.virtual_name, tool_dir),
        )
    ]
    for source_file in extra:
        mappings.append(_build_mapping(source, source_file, "unrecognized", None))
    return mappings


def _map_typed_file(
    source: SourceDescriptor, source_file: SourceFile, tool_dir: Path
) -> ArtifactMapping:
    declared_kind = source.declared_kind
    assert declared_kind is not None  # type-based sources always declare a kind
    target_path = resolve_typed_target(declared_kind, source_file.relative_path, tool_dir)
    if target_path is None:
        return _build_mapping(source, source_file, "unrecognized", None)
    return _build_mapping(source, source_file, declared_kind, target_path)


def map_deployments(source: SourceDescriptor, tool_dir: Path) -> list[ArtifactMapping]:
    """Map every file of a source onto its deployment target.

    Git sources classify each file by its path, unless they declare a kind:
    then every supported file deploys as that kind with its relative path
    kept. Single-file sources use the declared kind for their one file.
    Unrecognized files are kept (with no target) so callers can show them
    as skipped.

    Returns:
        Mapping entries sorted lexicographically by source path

    Raises:
        ScanError: If the checkout cannot be read
    """
    files = scan_source_files(source)

    if source.is_virtual:
        mappings = _map_single_file_source(source, files, tool_dir)
    elif source.deployment_mode == "type-based":
        mappings = [_map_typed_file(source, f, tool_dir) for f in files]
    else:
        mappings = []
        for source_file in files:
            kind = classify(source_file.relative_path)
            target_path = resolve_target(kind, source_file.relative_path, tool_dir)
            mappings.append(_build_mapping(source, source_file, kind, target_path))

    logger.debug("Mapped %d files for source %s", len(mappings), source.id)
    return sorted(mappings, key=lambda m: m.source_path)


def deployed_target_paths(mappings: list[ArtifactMapping]) -> list[Path]:
    """Target paths of entries that are currently deployed, in mapping order."""
    return [m.target_path for m in mappings if m.deployed and m.target_path is not None]
