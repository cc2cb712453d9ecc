"""Tests for RepositoryStatusService."""

import os
from datetime import UTC, datetime
from pathlib import Path

import pytest

from toolsync.artifacts.deploy_state import (
    DeploymentRecord,
    DeploymentStateStore,
    FakeDeploymentStateStore,
    RealDeploymentStateStore,
)
from toolsync.artifacts.hashing import compute_bytes_hash
from toolsync.artifacts.models import SourceDescriptor, SourceFailure, StatusReport
from toolsync.core.cache import ResultCache
from toolsync.core.errors import GitUnavailable, ScanError, StateFileError
from toolsync.core.status_service import RepositoryStatusService
from toolsync.gateway.git.fake import FakeGit
from toolsync.gateway.time.fake import FakeTime

REMOTE = "https://github.com/acme/team.git"


def _write(root: Path, files: dict[str, str]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _git_source(
    local_path: Path, source_id: str = "team", location: str = REMOTE
) -> SourceDescriptor:
    return SourceDescriptor.from_location(
        source_id=source_id, location=location, local_path=local_path
    )


def _service(
    *,
    git: FakeGit,
    tool_dir: Path,
    deploy_state: DeploymentStateStore | None = None,
    time: FakeTime | None = None,
) -> RepositoryStatusService:
    clock = time if time is not None else FakeTime()
    return RepositoryStatusService(
        git=git,
        deploy_state=deploy_state if deploy_state is not None else FakeDeploymentStateStore(),
        cache=ResultCache(clock, default_ttl_seconds=60),
        time=clock,
        tool_dir=tool_dir,
        git_timeout_seconds=3,
    )


def _synced_git(checkout: Path, local: str = "abc123", remote: str = "abc123") -> FakeGit:
    return FakeGit(local_revisions={checkout: local}, remote_revisions={REMOTE: remote})


class TestSyncStatus:
    def test_up_to_date_when_revisions_match(self, checkout: Path, tool_dir: Path) -> None:
        git = _synced_git(checkout)

        report = _service(git=git, tool_dir=tool_dir).get_status(_git_source(checkout))

        assert report.sync_status == "up-to-date"
        assert report.local_revision == "abc123"
        assert report.remote_revision == "abc123"
        assert report.sync_error is None
        assert git.remote_calls == [(REMOTE, 3)]

    def test_needs_update_when_revisions_differ(self, checkout: Path, tool_dir: Path) -> None:
        git = _synced_git(checkout, local="abc123", remote="def456")

        report = _service(git=git, tool_dir=tool_dir).get_status(_git_source(checkout))

        assert report.sync_status == "needs-update"

    def test_unreachable_remote_is_error_with_mappings(
        self, checkout: Path, tool_dir: Path
    ) -> None:
        _write(checkout, {"commands/review.md": "review", "agents/dev.md": "dev"})
        git = FakeGit(local_revisions={checkout: "abc123"})

        report = _service(git=git, tool_dir=tool_dir).get_status(_git_source(checkout))

        assert report.sync_status == "error"
        assert report.sync_error is not None
        assert "remote unreachable" in report.sync_error
        assert [m.source_path for m in report.mappings] == ["agents/dev.md", "commands/review.md"]
        assert report.failed_count == 2

    def test_missing_head_is_error(self, checkout: Path, tool_dir: Path) -> None:
        git = FakeGit(remote_revisions={REMOTE: "abc123"})

        report = _service(git=git, tool_dir=tool_dir).get_status(_git_source(checkout))

        assert report.sync_status == "error"
        assert report.local_revision is None
        assert git.remote_calls == []

    def test_require_sync_raises_when_remote_unreachable(
        self, checkout: Path, tool_dir: Path
    ) -> None:
        git = FakeGit(
            local_revisions={checkout: "abc123"},
            remote_raises=GitUnavailable(REMOTE, "timed out after 3s"),
        )

        with pytest.raises(GitUnavailable, match="timed out"):
            _service(git=git, tool_dir=tool_dir).get_status(
                _git_source(checkout), require_sync=True
            )


class TestCounts:
    def test_counts_deployed_failed_and_skipped(self, checkout: Path, tool_dir: Path) -> None:
        _write(
            checkout,
            {"commands/review.md": "review", "agents/dev.md": "dev", "README.md": "readme"},
        )
        _write(tool_dir, {"commands/review.md": "review"})

        report = _service(git=_synced_git(checkout), tool_dir=tool_dir).get_status(
            _git_source(checkout)
        )

        assert report.deployed_count == 1
        assert report.failed_count == 1
        assert report.skipped_count == 1
        assert report.generated_at == datetime(2024, 1, 15, 10, 30, 0, tzinfo=UTC)


class TestConflicts:
    def test_externally_edited_target_is_a_conflict(self, checkout: Path, tool_dir: Path) -> None:
        _write(checkout, {"commands/review.md": "original"})
        _write(tool_dir, {"commands/review.md": "edited by hand"})
        target = tool_dir / "commands" / "review.md"
        deployed_at = datetime(2024, 1, 14, 9, 0, 0, tzinfo=UTC)
        deploy_state = FakeDeploymentStateStore(
            records=[
                DeploymentRecord(
                    source_id="team",
                    deployed_at=deployed_at,
                    files={str(target): compute_bytes_hash(b"original")},
                )
            ]
        )

        report = _service(
            git=_synced_git(checkout), tool_dir=tool_dir, deploy_state=deploy_state
        ).get_status(_git_source(checkout))

        assert report.sync_status == "up-to-date"
        assert report.has_conflicts
        (conflict,) = report.conflicts
        assert conflict.target_path == target
        assert conflict.expected_hash == compute_bytes_hash(b"original")
        assert conflict.actual_hash == compute_bytes_hash(b"edited by hand")
        assert report.last_synced_at == deployed_at

    def test_untouched_target_is_not_a_conflict(self, checkout: Path, tool_dir: Path) -> None:
        _write(checkout, {"commands/review.md": "original"})
        _write(tool_dir, {"commands/review.md": "original"})
        target = tool_dir / "commands" / "review.md"
        deploy_state = FakeDeploymentStateStore(
            records=[
                DeploymentRecord(
                    source_id="team",
                    deployed_at=datetime(2024, 1, 14, tzinfo=UTC),
                    files={str(target): compute_bytes_hash(b"original")},
                )
            ]
        )

        report = _service(
            git=_synced_git(checkout), tool_dir=tool_dir, deploy_state=deploy_state
        ).get_status(_git_source(checkout))

        assert report.conflicts == ()
        assert report.deployed_count == 1

    def test_removed_target_is_pending_not_conflict(self, checkout: Path, tool_dir: Path) -> None:
        _write(checkout, {"agents/dev.md": "dev"})
        target = tool_dir / "agents" / "dev.md"
        deploy_state = FakeDeploymentStateStore(
            records=[
                DeploymentRecord(
                    source_id="team",
                    deployed_at=datetime(2024, 1, 14, tzinfo=UTC),
                    files={str(target): compute_bytes_hash(b"dev")},
                )
            ]
        )

        report = _service(
            git=_synced_git(checkout), tool_dir=tool_dir, deploy_state=deploy_state
        ).get_status(_git_source(checkout))

        assert report.conflicts == ()
        assert report.failed_count == 1

    def test_never_deployed_source_has_no_conflicts(self, checkout: Path, tool_dir: Path) -> None:
        _write(checkout, {"commands/a.md": "a"})
        _write(tool_dir, {"commands/a.md": "something else"})

        report = _service(git=_synced_git(checkout), tool_dir=tool_dir).get_status(
            _git_source(checkout)
        )

        assert report.conflicts == ()
        assert report.last_synced_at is None


class TestSingleFileSources:
    def _source(self, local_path: Path) -> SourceDescriptor:
        return SourceDescriptor.from_location(
            source_id="notes",
            location="text://release-notes.md",
            local_path=local_path,
            declared_kind="command",
        )

    def test_up_to_date_without_git(self, checkout: Path, tool_dir: Path) -> None:
        _write(checkout, {"release-notes.md": "# Notes"})
        git = FakeGit()

        report = _service(git=git, tool_dir=tool_dir).get_status(self._source(checkout))

        assert report.sync_status == "up-to-date"
        assert git.remote_calls == []
        (mapping,) = report.mappings
        assert mapping.target_path == tool_dir / "commands" / "release-notes.md"

    def test_missing_file_is_error(self, checkout: Path, tool_dir: Path) -> None:
        report = _service(git=FakeGit(), tool_dir=tool_dir).get_status(self._source(checkout))

        assert report.sync_status == "error"
        assert report.sync_error == "managed file is missing"
        assert report.mappings == ()

    def test_fingerprint_follows_content(self, checkout: Path, tool_dir: Path) -> None:
        service = _service(git=FakeGit(), tool_dir=tool_dir)
        source = self._source(checkout)
        _write(checkout, {"release-notes.md": "v1"})
        first = service.fingerprint(source)

        assert service.fingerprint(source) == first
        _write(checkout, {"release-notes.md": "v2"})
        assert service.fingerprint(source) != first


class TestCaching:
    def test_repeated_request_is_served_from_cache(self, checkout: Path, tool_dir: Path) -> None:
        git = _synced_git(checkout)
        service = _service(git=git, tool_dir=tool_dir)
        source = _git_source(checkout)

        first = service.get_status(source)
        second = service.get_status(source)

        assert second is first
        assert len(git.remote_calls) == 1

    def test_content_change_is_a_cache_miss(self, checkout: Path, tool_dir: Path) -> None:
        _write(checkout, {"commands/a.md": "a"})
        git = _synced_git(checkout)
        service = _service(git=git, tool_dir=tool_dir)
        source = _git_source(checkout)
        service.get_status(source)

        _write(checkout, {"commands/a.md": "a longer body"})
        report = service.get_status(source)

        assert len(git.remote_calls) == 2
        assert report.mappings[0].size == len("a longer body")

    def test_head_change_is_a_cache_miss(self, checkout: Path, tool_dir: Path) -> None:
        git = _synced_git(checkout)
        service = _service(git=git, tool_dir=tool_dir)
        source = _git_source(checkout)
        assert service.get_status(source).sync_status == "up-to-date"

        git.set_local_revision(checkout, "fff999")

        assert service.get_status(source).sync_status == "needs-update"

    def test_expired_entry_is_recomputed(self, checkout: Path, tool_dir: Path) -> None:
        time = FakeTime()
        git = _synced_git(checkout)
        service = _service(git=git, tool_dir=tool_dir, time=time)
        source = _git_source(checkout)
        service.get_status(source)

        time.advance(61)
        service.get_status(source)

        assert len(git.remote_calls) == 2

    def test_invalidate_forces_recompute(self, checkout: Path, tool_dir: Path) -> None:
        git = _synced_git(checkout)
        service = _service(git=git, tool_dir=tool_dir)
        source = _git_source(checkout)
        service.get_status(source)

        service.invalidate("team")
        service.get_status(source)

        assert len(git.remote_calls) == 2

    def test_cached_sync_error_still_honors_require_sync(
        self, checkout: Path, tool_dir: Path
    ) -> None:
        git = FakeGit(local_revisions={checkout: "abc123"})
        service = _service(git=git, tool_dir=tool_dir)
        source = _git_source(checkout)
        assert service.get_status(source).sync_status == "error"

        with pytest.raises(GitUnavailable):
            service.get_status(source, require_sync=True)


class TestBatch:
    def test_one_failing_source_does_not_affect_others(
        self, tmp_path: Path, tool_dir: Path
    ) -> None:
        first = tmp_path / "first"
        third = tmp_path / "third"
        _write(first, {"commands/a.md": "a"})
        _write(third, {"agents/b.md": "b"})
        git = FakeGit(
            local_revisions={first: "111", third: "333"},
            remote_revisions={"https://x/first.git": "111", "https://x/third.git": "000"},
        )
        sources = [
            _git_source(first, "first", "https://x/first.git"),
            _git_source(tmp_path / "missing", "second", "https://x/second.git"),
            _git_source(third, "third", "https://x/third.git"),
        ]

        results = _service(git=git, tool_dir=tool_dir).get_status_batch(sources)

        assert isinstance(results[0], StatusReport)
        assert results[0].source.id == "first"
        assert results[0].sync_status == "up-to-date"
        assert results[1] == SourceFailure(
            source_id="second",
            error_type="scan-error",
            message=str(ScanError("second", tmp_path / "missing", "checkout path does not exist")),
        )
        assert isinstance(results[2], StatusReport)
        assert results[2].source.id == "third"
        assert results[2].sync_status == "needs-update"

    def test_require_sync_failure_is_reported_per_source(
        self, checkout: Path, tool_dir: Path
    ) -> None:
        git = FakeGit(local_revisions={checkout: "abc123"})

        results = _service(git=git, tool_dir=tool_dir).get_status_batch(
            [_git_source(checkout)], require_sync=True
        )

        (failure,) = results
        assert isinstance(failure, SourceFailure)
        assert failure.error_type == "git-unavailable"

    def test_preserves_input_order(self, tmp_path: Path, tool_dir: Path) -> None:
        names = [f"source-{i}" for i in range(6)]
        local_revisions = {}
        for name in names:
            (tmp_path / name).mkdir()
            local_revisions[tmp_path / name] = "rev"
        git = FakeGit(
            local_revisions=local_revisions,
            remote_revisions={f"https://x/{name}.git": "rev" for name in names},
        )
        sources = [_git_source(tmp_path / n, n, f"https://x/{n}.git") for n in reversed(names)]

        results = _service(git=git, tool_dir=tool_dir).get_status_batch(sources, max_workers=3)

        assert [r.source.id for r in results if isinstance(r, StatusReport)] == list(
            reversed(names)
        )

    def test_empty_batch(self, tool_dir: Path) -> None:
        assert _service(git=FakeGit(), tool_dir=tool_dir).get_status_batch([]) == []

    def test_undecodable_file_name_does_not_break_the_batch(
        self, tmp_path: Path, tool_dir: Path
    ) -> None:
        healthy = tmp_path / "healthy"
        odd = tmp_path / "odd"
        _write(healthy, {"commands/a.md": "a"})
        (odd / "commands").mkdir(parents=True)
        try:
            (odd / "commands" / os.fsdecode(b"\xff.md")).write_text("x", encoding="utf-8")
        except (OSError, UnicodeEncodeError):
            pytest.skip("filesystem rejects non-UTF-8 file names")
        git = FakeGit(
            local_revisions={healthy: "111", odd: "222"},
            remote_revisions={"https://x/healthy.git": "111", "https://x/odd.git": "222"},
        )
        sources = [
            _git_source(healthy, "healthy", "https://x/healthy.git"),
            _git_source(odd, "odd", "https://x/odd.git"),
        ]

        results = _service(git=git, tool_dir=tool_dir).get_status_batch(sources)

        assert [type(r) for r in results] == [StatusReport, StatusReport]
        odd_report = results[1]
        assert isinstance(odd_report, StatusReport)
        assert odd_report.failed_count == 1

    def test_malformed_record_of_another_source_is_ignored(
        self, checkout: Path, tool_dir: Path, tmp_path: Path
    ) -> None:
        state_path = tmp_path / "deployments.toml"
        state_path.write_text(
            "schema_version = 1\n\n[deployments.other]\nfiles = {}\n", encoding="utf-8"
        )

        (report,) = _service(
            git=_synced_git(checkout),
            tool_dir=tool_dir,
            deploy_state=RealDeploymentStateStore(state_path),
        ).get_status_batch([_git_source(checkout)])

        assert isinstance(report, StatusReport)
        assert report.last_synced_at is None

    def test_malformed_state_file_is_a_state_error(
        self, checkout: Path, tool_dir: Path, tmp_path: Path
    ) -> None:
        state_path = tmp_path / "deployments.toml"
        state_path.write_text("[deployments.team\n", encoding="utf-8")

        (failure,) = _service(
            git=_synced_git(checkout),
            tool_dir=tool_dir,
            deploy_state=RealDeploymentStateStore(state_path),
        ).get_status_batch([_git_source(checkout)])

        assert isinstance(failure, SourceFailure)
        assert failure.error_type == "state-error"
        assert str(state_path) in failure.message

    def test_get_status_raises_state_file_error(
        self, checkout: Path, tool_dir: Path, tmp_path: Path
    ) -> None:
        state_path = tmp_path / "deployments.toml"
        state_path.write_text(
            '[deployments.team]\ndeployed_at = "yesterday"\n', encoding="utf-8"
        )
        service = _service(
            git=_synced_git(checkout),
            tool_dir=tool_dir,
            deploy_state=RealDeploymentStateStore(state_path),
        )

        with pytest.raises(StateFileError, match="invalid deployed_at"):
            service.get_status(_git_source(checkout))


class TestTypeBasedSources:
    def test_every_supported_file_deploys_as_declared_kind(
        self, checkout: Path, tool_dir: Path
    ) -> None:
        _write(
            checkout,
            {"review.md": "r", "subfolder/nested.js": "n", "README.md": "doc", "notes.txt": "t"},
        )
        _write(tool_dir, {"commands/review.md": "r"})
        source = SourceDescriptor.from_location(
            source_id="team", location=REMOTE, local_path=checkout, declared_kind="command"
        )

        report = _service(git=_synced_git(checkout), tool_dir=tool_dir).get_status(source)

        assert {m.source_path: m.target_path for m in report.mappings} == {
            "README.md": None,
            "notes.txt": None,
            "review.md": tool_dir / "commands" / "review.md",
            "subfolder/nested.js": tool_dir / "commands" / "subfolder" / "nested.js",
        }
        assert report.deployed_count == 1
        assert report.deployed_counts_by_kind == {"command": 1}


class TestHealth:
    def test_synced_git_checkout_is_healthy(self, checkout: Path, tool_dir: Path) -> None:
        (checkout / ".git").mkdir()

        report = _service(git=_synced_git(checkout), tool_dir=tool_dir).get_status(
            _git_source(checkout)
        )

        assert report.health_issues == ()
        assert report.health_status == "healthy"

    def test_checkout_without_git_metadata_is_an_error(
        self, checkout: Path, tool_dir: Path
    ) -> None:
        report = _service(git=_synced_git(checkout), tool_dir=tool_dir).get_status(
            _git_source(checkout)
        )

        assert report.health_status == "error"
        assert [i.suggestion for i in report.health_issues] == ["Re-clone the repository"]

    def test_behind_remote_is_a_warning(self, checkout: Path, tool_dir: Path) -> None:
        (checkout / ".git").mkdir()
        git = _synced_git(checkout, local="abc123", remote="def456")

        report = _service(git=git, tool_dir=tool_dir).get_status(_git_source(checkout))

        assert report.health_status == "warning"
        (issue,) = report.health_issues
        assert issue.suggestion == "Run update command to sync with remote"

    def test_failed_sync_check_is_a_warning(self, checkout: Path, tool_dir: Path) -> None:
        (checkout / ".git").mkdir()
        git = FakeGit(local_revisions={checkout: "abc123"})

        report = _service(git=git, tool_dir=tool_dir).get_status(_git_source(checkout))

        (issue,) = report.health_issues
        assert issue.severity == "warning"
        assert issue.message == "Git status check failed"

    def test_missing_deployed_files_and_conflicts_are_warnings(
        self, checkout: Path, tool_dir: Path
    ) -> None:
        (checkout / ".git").mkdir()
        _write(checkout, {"commands/a.md": "a", "commands/b.md": "b"})
        _write(tool_dir, {"commands/a.md": "edited"})
        deploy_state = FakeDeploymentStateStore(
            records=[
                DeploymentRecord(
                    source_id="team",
                    deployed_at=datetime(2024, 1, 14, tzinfo=UTC),
                    files={
                        str(tool_dir / "commands" / "a.md"): compute_bytes_hash(b"a"),
                        str(tool_dir / "commands" / "b.md"): compute_bytes_hash(b"b"),
                    },
                )
            ]
        )

        report = _service(
            git=_synced_git(checkout), tool_dir=tool_dir, deploy_state=deploy_state
        ).get_status(_git_source(checkout))

        assert report.health_status == "warning"
        assert [i.message for i in report.health_issues] == [
            "Some deployed files are missing (1)",
            "Deployed files were modified locally (1)",
        ]

    def test_single_file_source_without_file_is_an_error(
        self, checkout: Path, tool_dir: Path
    ) -> None:
        source = SourceDescriptor.from_location(
            source_id="notes",
            location="text://notes.md",
            local_path=checkout,
            declared_kind="agent",
        )

        report = _service(git=FakeGit(), tool_dir=tool_dir).get_status(source)

        assert report.health_status == "error"
