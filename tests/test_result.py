"""Tests for operation results and phase reports."""

from __future__ import annotations

from vaultsync.sync.exceptions import (
    ConfigurationError,
    LocalIOError,
    ObjectNotFoundError,
    PartialOperationError,
    TransportError,
)
from vaultsync.sync.result import ErrorKind, PhaseReport, Result, SyncReport, kind_for


def test_kind_for_maps_exception_hierarchy():
    assert kind_for(ConfigurationError("x")) is ErrorKind.CONFIGURATION
    assert kind_for(TransportError("x")) is ErrorKind.TRANSPORT
    assert kind_for(ObjectNotFoundError("k")) is ErrorKind.TRANSPORT
    assert kind_for(LocalIOError("x")) is ErrorKind.LOCAL_IO
    assert kind_for(PartialOperationError("x", completed="copy", failed="delete")) is ErrorKind.PARTIAL
    assert kind_for(PermissionError("x")) is ErrorKind.LOCAL_IO
    assert kind_for(RuntimeError("x")) is ErrorKind.TRANSPORT


def test_result_from_exception_keeps_detail_and_path():
    result = Result.from_exception(ObjectNotFoundError("base/a.md"), action="download", path="a.md")

    assert not result.is_ok
    assert result.kind is ErrorKind.TRANSPORT
    assert "base/a.md" in result.detail
    assert result.to_dict() == {
        "status": "error",
        "action": "download",
        "path": "a.md",
        "kind": "transport",
        "detail": "Object not found: base/a.md",
    }


def test_phase_report_counts_and_summary():
    report = PhaseReport("download")
    report.add(Result.ok(action="create", path="a.md"))
    report.add(Result.ok(action="create", path="b.md"))
    report.add(Result.ok(action="modify", path="c.md"))
    report.add(Result.err(ErrorKind.TRANSPORT, "boom", action="download", path="d.md"))
    report.skipped = 2

    assert report.count("create") == 2
    assert report.writes == 3
    assert not report.success
    assert [r.path for r in report.errors] == ["d.md"]
    assert report.summary() == "2 create, 1 modify, 1 failed, 2 unchanged"


def test_empty_phase_report_has_no_changes():
    report = PhaseReport("upload")
    assert report.success
    assert report.summary() == "no changes"


def test_sync_report_aggregates_phases():
    down = PhaseReport("download")
    down.add(Result.ok(action="create", path="a.md"))
    up = PhaseReport("upload")
    up.add(Result.ok(action="upload", path="b.md"))
    report = SyncReport(phases=[down, up])

    assert report.success
    assert report.writes == 2
    assert report.phase("upload") is up
    assert report.phase("tombstones") is None
    assert report.summary() == "download: 1 create; upload: 1 upload"
    assert report.to_dict()["error"] is None


def test_sync_report_with_error_is_not_successful():
    report = SyncReport(error=Result.err(ErrorKind.CONFIGURATION, "Sync service is not initialized"))

    assert not report.success
    assert report.summary() == "Sync service is not initialized"
