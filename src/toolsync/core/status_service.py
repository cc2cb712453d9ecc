"""Repository status: sync state, deployment mapping and conflicts per source."""

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from toolsync.artifacts.deploy_state import DeploymentRecord, DeploymentStateStore
from toolsync.artifacts.hashing import compute_file_hash, fingerprint_parts, hash_if_exists
from toolsync.artifacts.mapper import SourceFile, map_deployments, scan_source_files
from toolsync.artifacts.models import (
    ArtifactMapping,
    ConflictEntry,
    HealthIssue,
    SourceDescriptor,
    SourceFailure,
    StatusReport,
    SyncStatus,
)
from toolsync.core.cache import CacheKey, ResultCache
from toolsync.core.errors import GitUnavailable, ScanError, StateFileError
from toolsync.gateway.git.abc import Git
from toolsync.gateway.time.abc import Time

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_WORKERS = 8

# Fingerprint component used when a checkout has no readable HEAD
NO_HEAD = "no-head"


@dataclass(frozen=True)
class _SyncFacts:
    status: SyncStatus
    local_revision: str | None
    remote_revision: str | None
    error: str | None


def _stat_parts(source: SourceDescriptor, files: list[SourceFile]) -> list[str]:
    parts: list[str] = []
    for source_file in files:
        try:
            stat = source_file.absolute_path.stat()
        except OSError as e:
            raise ScanError(source.id, source_file.absolute_path, e.strerror or str(e)) from e
        parts.extend([source_file.relative_path, str(stat.st_mtime_ns), str(stat.st_size)])
    return parts


def _content_parts(source: SourceDescriptor, files: list[SourceFile]) -> list[str]:
    parts: list[str] = []
    for source_file in files:
        try:
            content_hash = compute_file_hash(source_file.absolute_path)
        except OSError as e:
            raise ScanError(source.id, source_file.absolute_path, e.strerror or str(e)) from e
        parts.extend([source_file.relative_path, content_hash])
    return parts


def _find_conflicts(
    source: SourceDescriptor,
    mappings: list[ArtifactMapping],
    record: DeploymentRecord | None,
) -> list[ConflictEntry]:
    """Targets whose content differs from what the last deployment wrote."""
    if record is None:
        return []
    conflicts: list[ConflictEntry] = []
    for mapping in mappings:
        if mapping.target_path is None:
            continue
        expected_hash = record.expected_hash(mapping.target_path)
        if expected_hash is None:
            continue
        try:
            actual_hash = hash_if_exists(mapping.target_path)
        except OSError as e:
            raise ScanError(source.id, mapping.target_path, e.strerror or str(e)) from e
        # A removed target is pending redeployment, not a conflict
        if actual_hash is not None and actual_hash != expected_hash:
            conflicts.append(
                ConflictEntry(
                    target_path=mapping.target_path,
                    expected_hash=expected_hash,
                    actual_hash=actual_hash,
                )
            )
    return conflicts


def _health_issues(
    source: SourceDescriptor,
    sync: _SyncFacts,
    record: DeploymentRecord | None,
    conflicts: list[ConflictEntry],
) -> list[HealthIssue]:
    """Problems that need user action, ordered from checkout to deployed files."""
    issues: list[HealthIssue] = []
    if source.is_virtual:
        if sync.status == "error":
            issues.append(
                HealthIssue("error", "Managed file is missing", "Re-register the source")
            )
    elif not (source.local_path / ".git").exists():
        issues.append(
            HealthIssue(
                "error", "Git repository is corrupted or invalid", "Re-clone the repository"
            )
        )
    elif sync.status == "error":
        issues.append(
            HealthIssue("warning", "Git status check failed", "Check repository integrity")
        )
    elif sync.status == "needs-update":
        issues.append(
            HealthIssue(
                "warning",
                "Repository is behind remote",
                "Run update command to sync with remote",
            )
        )

    if record is not None:
        missing = [target for target in record.files if not Path(target).exists()]
        if missing:
            issues.append(
                HealthIssue(
                    "warning",
                    f"Some deployed files are missing ({len(missing)})",
                    "Re-deploy the source",
                )
            )
    if conflicts:
        issues.append(
            HealthIssue(
                "warning",
                f"Deployed files were modified locally ({len(conflicts)})",
                "Review local edits before re-deploying",
            )
        )
    return issues


class RepositoryStatusService:
    """Computes and caches StatusReports for registered sources.

    Reports are cached by (source id, content fingerprint). The fingerprint
    only covers the source checkout, so callers that change deployed files
    must call invalidate() for the affected source.
    """

    def __init__(
        self,
        *,
        git: Git,
        deploy_state: DeploymentStateStore,
        cache: ResultCache,
        time: Time,
        tool_dir: Path,
        git_timeout_seconds: float = DEFAULT_GIT_TIMEOUT_SECONDS,
        cache_ttl_seconds: float | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._git = git
        self._deploy_state = deploy_state
        self._cache = cache
        self._time = time
        self._tool_dir = tool_dir
        self._git_timeout_seconds = git_timeout_seconds
        self._cache_ttl_seconds = cache_ttl_seconds
        self._max_workers = max_workers

    @property
    def tool_dir(self) -> Path:
        return self._tool_dir

    def fingerprint(self, source: SourceDescriptor) -> str:
        """Cheap digest that changes whenever the source checkout changes.

        Git sources combine HEAD with path, mtime and size of every file.
        Single-file sources hash their file content.

        Raises:
            ScanError: If the checkout cannot be read
        """
        files = scan_source_files(source)
        if source.is_virtual:
            return fingerprint_parts([source.kind, *_content_parts(source, files)])

        try:
            head = self._git.get_local_revision(source.local_path)
        except GitUnavailable as e:
            logger.debug("No HEAD for %s: %s", source.id, e.reason)
            head = NO_HEAD
        return fingerprint_parts([source.kind, head, *_stat_parts(source, files)])

    def get_status(self, source: SourceDescriptor, *, require_sync: bool = False) -> StatusReport:
        """Compute (or fetch from cache) the status report of one source.

        Args:
            source: Source to report on
            require_sync: Raise instead of reporting sync_status="error" when
                git cannot answer

        Raises:
            ScanError: If the checkout cannot be read
            GitUnavailable: If require_sync is set and the sync check failed
            StateFileError: If the deployment record of the source is malformed
        """
        key = CacheKey(source_id=source.id, fingerprint=self.fingerprint(source))
        report = self._cache.get_or_compute(
            key,
            lambda: self._compute_report(source),
            ttl_seconds=self._cache_ttl_seconds,
        )
        if require_sync and not source.is_virtual and report.sync_status == "error":
            raise GitUnavailable(source.location, report.sync_error or "sync check failed")
        return report

    def get_status_batch(
        self,
        sources: Sequence[SourceDescriptor],
        *,
        require_sync: bool = False,
        max_workers: int | None = None,
    ) -> list[StatusReport | SourceFailure]:
        """Compute reports for many sources in parallel.

        Results are in input order. A fatal error for one source becomes a
        SourceFailure in its slot and does not affect the others.
        """
        if not sources:
            return []
        workers = min(max_workers or self._max_workers, len(sources))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._status_or_failure, source, require_sync)
                for source in sources
            ]
            return [future.result() for future in futures]

    def invalidate(self, source_id: str) -> None:
        """Forget cached reports for a source (after it was deployed or updated)."""
        self._cache.invalidate(source_id)

    def _status_or_failure(
        self, source: SourceDescriptor, require_sync: bool
    ) -> StatusReport | SourceFailure:
        try:
            return self.get_status(source, require_sync=require_sync)
        except ScanError as e:
            logger.debug("Scan failed for %s: %s", source.id, e)
            return SourceFailure(source_id=source.id, error_type="scan-error", message=str(e))
        except GitUnavailable as e:
            return SourceFailure(source_id=source.id, error_type="git-unavailable", message=str(e))
        except StateFileError as e:
            logger.debug("State file unreadable for %s: %s", source.id, e)
            return SourceFailure(source_id=source.id, error_type="state-error", message=str(e))

    def _check_sync(self, source: SourceDescriptor) -> _SyncFacts:
        try:
            local_revision = self._git.get_local_revision(source.local_path)
        except GitUnavailable as e:
            logger.debug("Local revision unavailable for %s: %s", source.id, e.reason)
            return _SyncFacts("error", None, None, e.reason)
        try:
            remote_revision = self._git.get_remote_revision(
                source.location, timeout_seconds=self._git_timeout_seconds
            )
        except GitUnavailable as e:
            logger.debug("Remote revision unavailable for %s: %s", source.id, e.reason)
            return _SyncFacts("error", local_revision, None, e.reason)

        status: SyncStatus = "up-to-date" if local_revision == remote_revision else "needs-update"
        return _SyncFacts(status, local_revision, remote_revision, None)

    def _compute_report(self, source: SourceDescriptor) -> StatusReport:
        if source.is_virtual and not scan_source_files(source):
            # The managed file vanished; there is nothing to map
            logger.debug("Managed file missing for single-file source %s", source.id)
            mappings: list[ArtifactMapping] = []
            sync = _SyncFacts("error", None, None, "managed file is missing")
        else:
            if source.is_virtual:
                sync = _SyncFacts("up-to-date", None, None, None)
            else:
                sync = self._check_sync(source)
            mappings = map_deployments(source, self._tool_dir)

        record = self._deploy_state.get_record(source.id)
        conflicts = _find_conflicts(source, mappings, record)
        health_issues = _health_issues(source, sync, record, conflicts)

        deployed_count = sum(1 for m in mappings if m.status == "deployed")
        failed_count = sum(1 for m in mappings if m.status == "pending")
        skipped_count = sum(1 for m in mappings if m.status == "skipped")

        logger.debug(
            "Status for %s: sync=%s deployed=%d failed=%d skipped=%d conflicts=%d",
            source.id,
            sync.status,
            deployed_count,
            failed_count,
            skipped_count,
            len(conflicts),
        )
        return StatusReport(
            source=source,
            sync_status=sync.status,
            last_synced_at=record.deployed_at if record is not None else None,
            mappings=tuple(mappings),
            conflicts=tuple(conflicts),
            deployed_count=deployed_count,
            failed_count=failed_count,
            skipped_count=skipped_count,
            local_revision=sync.local_revision,
            remote_revision=sync.remote_revision,
            sync_error=sync.error,
            generated_at=self._time.now(),
            health_issues=tuple(health_issues),
        )
