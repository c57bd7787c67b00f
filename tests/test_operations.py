"""Tests for single-file operations."""

from __future__ import annotations

import asyncio

import pytest

from vaultsync.sync.operations import INACTIVE_DETAIL, FileOperations
from vaultsync.sync.result import ErrorKind
from vaultsync.sync.settings import SyncSettings
from vaultsync.sync.store import ZERO_METADATA, MemoryObjectStore


def _settings(**overrides) -> SyncSettings:
    values = dict(
        account_name="acct",
        credential="sv=2024&sig=abc",
        container_name="notes",
        base_directory="base",
        backend="memory",
    )
    values.update(overrides)
    return SyncSettings(**values)


def _active(store: MemoryObjectStore, **overrides) -> FileOperations:
    ops = FileOperations(_settings(**overrides), store_factory=lambda _: store)
    assert ops.initialize().is_ok
    return ops


def test_settings_normalize_credential_and_base_directory():
    settings = _settings(base_directory="//base//sub")

    assert settings.credential == "?sv=2024&sig=abc"
    assert settings.base_directory == "base/sub/"
    assert settings.to_dict()["credential"] == "(set)"


@pytest.mark.parametrize("missing", ["account_name", "credential", "container_name"])
def test_initialize_without_required_field_stays_inactive(missing: str):
    store = MemoryObjectStore()
    ops = FileOperations(_settings(**{missing: ""}), store_factory=lambda _: store)

    result = ops.initialize()

    assert not result.is_ok
    assert result.kind is ErrorKind.CONFIGURATION
    assert missing in result.detail
    assert not ops.is_active


def test_inactive_operations_never_touch_the_store():
    store = MemoryObjectStore()
    ops = FileOperations(_settings(credential=""), store_factory=lambda _: store)
    ops.initialize()

    results = [
        asyncio.run(ops.upload_file("a.md", b"x")),
        asyncio.run(ops.download_file("a.md")),
        asyncio.run(ops.rename_file("a.md", "b.md")),
        asyncio.run(ops.delete_file("a.md")),
    ]

    assert all(r.kind is ErrorKind.CONFIGURATION and r.detail == INACTIVE_DETAIL for r in results)
    assert asyncio.run(ops.get_metadata("a.md")) is ZERO_METADATA
    assert store.calls == []


def test_store_factory_failure_is_reported():
    def factory(_):
        raise RuntimeError("no route to host")

    ops = FileOperations(_settings(), store_factory=factory)
    result = ops.initialize()

    assert not result.is_ok
    assert result.kind is ErrorKind.TRANSPORT
    assert not ops.is_active


def test_upload_writes_under_base_directory_and_returns_metadata():
    store = MemoryObjectStore(clock=lambda: 1_234)
    ops = _active(store)

    result = asyncio.run(ops.upload_file("notes/a.md", b"hello"))

    assert result.is_ok
    assert result.value.last_modified == 1_234
    assert store.body("base/notes/a.md") == b"hello"


def test_upload_failure_returns_transport_error():
    store = MemoryObjectStore()
    store.fail("put_object", "base/a.md")
    ops = _active(store)

    result = asyncio.run(ops.upload_file("a.md", b"x"))

    assert result.kind is ErrorKind.TRANSPORT
    assert result.path == "a.md"


def test_download_returns_text():
    store = MemoryObjectStore()
    store.seed("base/a.md", "héllo".encode("utf-8"))
    ops = _active(store)

    result = asyncio.run(ops.download_file("a.md"))

    assert result.is_ok
    assert result.value == "héllo"


def test_download_of_empty_body_is_empty_text():
    store = MemoryObjectStore()
    store.seed("base/empty.md", b"")
    ops = _active(store)

    assert asyncio.run(ops.download_file("empty.md")).value == ""


def test_download_of_missing_object_is_an_error():
    ops = _active(MemoryObjectStore())

    result = asyncio.run(ops.download_file("missing.md"))

    assert not result.is_ok
    assert result.kind is ErrorKind.TRANSPORT


def test_rename_copies_then_deletes():
    store = MemoryObjectStore()
    store.seed("base/old.md", b"body")
    ops = _active(store)

    result = asyncio.run(ops.rename_file("old.md", "new.md"))

    assert result.is_ok
    assert store.keys() == {"base/new.md"}
    assert store.keys(include_deleted=True) == {"base/new.md", "base/old.md"}
    assert [op for op, _ in store.calls] == ["copy_object", "delete_object"]


def test_rename_with_failed_delete_leaves_both_objects():
    store = MemoryObjectStore()
    store.seed("base/old.md", b"body")
    store.fail("delete_object", "base/old.md")
    ops = _active(store)

    result = asyncio.run(ops.rename_file("old.md", "new.md"))

    assert not result.is_ok
    assert result.kind is ErrorKind.PARTIAL
    assert store.keys() == {"base/old.md", "base/new.md"}


def test_rename_with_failed_copy_changes_nothing():
    store = MemoryObjectStore()
    store.seed("base/old.md", b"body")
    store.fail("copy_object", "base/old.md")
    ops = _active(store)

    result = asyncio.run(ops.rename_file("old.md", "new.md"))

    assert result.kind is ErrorKind.TRANSPORT
    assert store.keys() == {"base/old.md"}
    assert ("delete_object", "base/old.md") not in store.calls


def test_delete_soft_deletes_remote_object():
    store = MemoryObjectStore()
    store.seed("base/a.md", b"x")
    ops = _active(store)

    assert asyncio.run(ops.delete_file("a.md")).is_ok
    assert asyncio.run(ops.delete_file("a.md")).is_ok
    assert store.keys() == set()
    assert store.keys(include_deleted=True) == {"base/a.md"}


def test_get_metadata_falls_back_to_zero_on_failure():
    store = MemoryObjectStore()
    store.seed("base/a.md", b"x", last_modified=99)
    ops = _active(store)

    assert asyncio.run(ops.get_metadata("a.md")).last_modified == 99
    store.fail("get_object_metadata", "base/a.md")
    assert asyncio.run(ops.get_metadata("a.md")) is ZERO_METADATA
