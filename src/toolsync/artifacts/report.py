"""Convert status reports into JSON-ready dicts."""

from typing import Any

from toolsync.artifacts.models import ArtifactMapping, SourceFailure, StatusReport


def _mapping_to_dict(mapping: ArtifactMapping, *, verbose: bool) -> dict[str, Any]:
    data: dict[str, Any] = {
        "source_path": mapping.source_path,
        "kind": mapping.kind,
        "target_path": str(mapping.target_path) if mapping.target_path is not None else None,
        "status": mapping.status,
    }
    if verbose:
        data["source_hash"] = mapping.source_hash
        data["size"] = mapping.size
    return data


def report_to_dict(report: StatusReport, *, verbose: bool) -> dict[str, Any]:
    """Serialize a report; verbose adds hashes, sizes and revisions.

    Paths are emitted as str; undecodable file names keep their surrogate
    escapes, which json.dumps writes as \\u escapes.
    """
    source = report.source
    data: dict[str, Any] = {
        "source": {
            "id": source.id,
            "location": source.location,
            "local_path": str(source.local_path),
            "kind": source.kind,
            "deployment_mode": source.deployment_mode,
        },
        "sync_status": report.sync_status,
        "sync_error": report.sync_error,
        "last_synced_at": (
            report.last_synced_at.isoformat() if report.last_synced_at is not None else None
        ),
        "counts": {
            "deployed": report.deployed_count,
            "failed": report.failed_count,
            "skipped": report.skipped_count,
            "by_kind": dict(sorted(report.deployed_counts_by_kind.items())),
        },
        "health": {
            "status": report.health_status,
            "issues": [
                {
                    "severity": issue.severity,
                    "message": issue.message,
                    "suggestion": issue.suggestion,
                }
                for issue in report.health_issues
            ],
        },
        "conflicts": [
            {
                "target_path": str(conflict.target_path),
                "expected_hash": conflict.expected_hash,
                "actual_hash": conflict.actual_hash,
            }
            for conflict in report.conflicts
        ],
        "mappings": [_mapping_to_dict(m, verbose=verbose) for m in report.mappings],
    }
    if verbose:
        data["source"]["declared_kind"] = source.declared_kind
        data["local_revision"] = report.local_revision
        data["remote_revision"] = report.remote_revision
        data["generated_at"] = report.generated_at.isoformat()
    return data


def failure_to_dict(failure: SourceFailure) -> dict[str, Any]:
    return {
        "source_id": failure.source_id,
        "error_type": failure.error_type,
        "message": failure.message,
    }
