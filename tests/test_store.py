"""Tests for the memory and directory object stores."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from vaultsync.sync.exceptions import ObjectNotFoundError, TransportError
from vaultsync.sync.settings import SyncSettings
from vaultsync.sync.store import (
    ZERO_METADATA,
    DirectoryObjectStore,
    MemoryObjectStore,
    available_backends,
    create_store,
)


class FakeClock:
    def __init__(self, now: int = 1_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def _list(store, prefix: str = "", include_deleted: bool = False):
    async def _collect():
        return [obj async for obj in store.list_objects(prefix, include_deleted=include_deleted)]

    return asyncio.run(_collect())


def _memory(clock: FakeClock) -> MemoryObjectStore:
    return MemoryObjectStore(clock=clock)


def _directory(clock: FakeClock, tmp_path: Path) -> DirectoryObjectStore:
    return DirectoryObjectStore(tmp_path / "container", clock=clock)


@pytest.fixture(params=["memory", "directory"])
def store_and_clock(request, tmp_path: Path):
    clock = FakeClock()
    if request.param == "memory":
        return _memory(clock), clock
    return _directory(clock, tmp_path), clock


def test_put_returns_metadata_stamped_with_clock(store_and_clock):
    store, clock = store_and_clock
    clock.now = 5_000

    metadata = asyncio.run(store.put_object("base/a.md", b"hello", 5))

    assert metadata.last_modified == 5_000
    assert metadata.content_length == 5
    assert metadata.content_type == "text/markdown"
    assert asyncio.run(store.get_object_metadata("base/a.md")) == metadata
    assert asyncio.run(store.get_object_body("base/a.md")) == b"hello"


def test_put_keeps_created_on_for_existing_object(store_and_clock):
    store, clock = store_and_clock
    asyncio.run(store.put_object("a.md", b"v1", 2))
    clock.now = 9_000

    metadata = asyncio.run(store.put_object("a.md", b"v2", 2))

    assert metadata.created_on == 1_000
    assert metadata.last_modified == 9_000


def test_list_filters_by_prefix_and_hides_deleted(store_and_clock):
    store, _ = store_and_clock
    asyncio.run(store.put_object("base/a.md", b"a", 1))
    asyncio.run(store.put_object("base/b.md", b"b", 1))
    asyncio.run(store.put_object("other/c.md", b"c", 1))
    asyncio.run(store.delete_object("base/b.md"))

    live = _list(store, "base/")
    everything = _list(store, "base/", include_deleted=True)

    assert [o.key for o in live] == ["base/a.md"]
    assert [(o.key, o.deleted) for o in everything] == [("base/a.md", False), ("base/b.md", True)]


def test_metadata_of_missing_or_deleted_object_is_zero(store_and_clock):
    store, _ = store_and_clock
    asyncio.run(store.put_object("gone.md", b"x", 1))
    asyncio.run(store.delete_object("gone.md"))

    assert asyncio.run(store.get_object_metadata("missing.md")) is ZERO_METADATA
    assert asyncio.run(store.get_object_metadata("gone.md")).is_zero


def test_body_of_deleted_object_raises_not_found(store_and_clock):
    store, _ = store_and_clock
    asyncio.run(store.put_object("gone.md", b"x", 1))
    asyncio.run(store.delete_object("gone.md"))

    with pytest.raises(ObjectNotFoundError):
        asyncio.run(store.get_object_body("gone.md"))


def test_delete_is_idempotent(store_and_clock):
    store, _ = store_and_clock
    asyncio.run(store.delete_object("never-existed.md"))
    asyncio.run(store.put_object("a.md", b"x", 1))
    asyncio.run(store.delete_object("a.md"))
    asyncio.run(store.delete_object("a.md"))

    assert [o.key for o in _list(store, include_deleted=True)] == ["a.md"]


def test_put_revives_deleted_object(store_and_clock):
    store, _ = store_and_clock
    asyncio.run(store.put_object("a.md", b"old", 3))
    asyncio.run(store.delete_object("a.md"))
    asyncio.run(store.put_object("a.md", b"new", 3))

    [obj] = _list(store, include_deleted=True)
    assert not obj.deleted
    assert asyncio.run(store.get_object_body("a.md")) == b"new"


def test_copy_creates_new_object_with_fresh_timestamp(store_and_clock):
    store, clock = store_and_clock
    asyncio.run(store.put_object("old.md", b"body", 4))
    clock.now = 7_000

    asyncio.run(store.copy_object("old.md", "new.md"))

    assert asyncio.run(store.get_object_body("new.md")) == b"body"
    assert asyncio.run(store.get_object_metadata("new.md")).last_modified == 7_000
    assert asyncio.run(store.get_object_body("old.md")) == b"body"


def test_copy_of_missing_source_raises(store_and_clock):
    store, _ = store_and_clock
    with pytest.raises(ObjectNotFoundError):
        asyncio.run(store.copy_object("missing.md", "dest.md"))


def test_memory_store_purges_tombstones_after_retention():
    clock = FakeClock(0)
    store = MemoryObjectStore(clock=clock, retention_ms=100)
    asyncio.run(store.put_object("a.md", b"x", 1))
    asyncio.run(store.delete_object("a.md"))

    clock.now = 100
    assert [o.key for o in _list(store, include_deleted=True)] == ["a.md"]

    clock.now = 101
    assert _list(store, include_deleted=True) == []
    assert store.keys(include_deleted=True) == set()


def test_memory_store_failure_injection():
    store = MemoryObjectStore(clock=FakeClock())
    store.seed("a.md", b"x")
    store.fail("get_object_body", "a.md")
    store.fail("get_object_metadata", "a.md")

    with pytest.raises(TransportError):
        asyncio.run(store.get_object_body("a.md"))
    assert asyncio.run(store.get_object_metadata("a.md")) is ZERO_METADATA

    store.heal()
    assert asyncio.run(store.get_object_body("a.md")) == b"x"
    assert ("get_object_body", "a.md") in store.calls


def test_directory_store_layout_and_index(tmp_path: Path):
    store = _directory(FakeClock(42), tmp_path)
    asyncio.run(store.put_object("base/notes/a.md", b"hello", 5))
    asyncio.run(store.put_object("base/b.md", b"bye", 3))
    asyncio.run(store.delete_object("base/b.md"))

    root = tmp_path / "container"
    assert (root / "objects" / "base" / "notes" / "a.md").read_bytes() == b"hello"
    assert not (root / "objects" / "base" / "b.md").exists()

    index = json.loads((root / "index.json").read_text(encoding="utf-8"))["objects"]
    assert index["base/notes/a.md"]["lastModified"] == 42
    assert index["base/notes/a.md"]["contentLength"] == 5
    assert index["base/b.md"]["deleted"] is True


def test_directory_store_purges_tombstones_after_retention(tmp_path: Path):
    clock = FakeClock(0)
    store = DirectoryObjectStore(tmp_path / "container", clock=clock, retention_ms=100)
    asyncio.run(store.put_object("a.md", b"x", 1))
    asyncio.run(store.put_object("b.md", b"y", 1))
    asyncio.run(store.delete_object("a.md"))

    clock.now = 100
    assert [o.key for o in _list(store, include_deleted=True)] == ["a.md", "b.md"]

    clock.now = 101
    assert [o.key for o in _list(store, include_deleted=True)] == ["b.md"]
    index = json.loads((tmp_path / "container" / "index.json").read_text(encoding="utf-8"))
    assert sorted(index["objects"]) == ["b.md"]


def test_directory_store_survives_reopen(tmp_path: Path):
    asyncio.run(_directory(FakeClock(), tmp_path).put_object("a.md", b"x", 1))

    reopened = _directory(FakeClock(), tmp_path)

    assert [o.key for o in _list(reopened)] == ["a.md"]


def test_directory_store_rejects_escaping_keys(tmp_path: Path):
    store = _directory(FakeClock(), tmp_path)
    with pytest.raises(TransportError):
        asyncio.run(store.put_object("../escape.md", b"x", 1))


def test_create_store_uses_registered_backends(tmp_path: Path):
    settings = SyncSettings(
        account_name="acct",
        credential="sv=1",
        container_name="notes",
        backend="directory",
        store_root=tmp_path,
    )

    store = create_store(settings)

    assert {"directory", "memory"} <= set(available_backends())
    assert isinstance(store, DirectoryObjectStore)
    assert store.root == tmp_path / "acct" / "notes"


def test_create_store_rejects_unknown_backend():
    with pytest.raises(TransportError):
        create_store(SyncSettings(backend="ftp"))
