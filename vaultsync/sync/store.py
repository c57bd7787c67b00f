"""Remote object store capability and the bundled backends.

The engine only talks to a :class:`RemoteObjectStore`. Cloud clients live
outside this package; the two backends here keep a container in memory or in
a directory so the engine can run (and be tested) without a network.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Callable,
    Dict,
    Optional,
    Protocol,
    Set,
    Tuple,
)

from .exceptions import ObjectNotFoundError, TransportError

if TYPE_CHECKING:
    from .settings import SyncSettings

logger = logging.getLogger("vaultsync.sync.store")

DEFAULT_CONTENT_TYPE = "text/markdown"
DEFAULT_RETENTION_MS = 7 * 24 * 60 * 60 * 1000

Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ObjectMetadata:
    """Properties of a stored object. Timestamps are epoch milliseconds."""

    last_modified: int = 0
    created_on: int = 0
    content_type: str = ""
    content_length: int = 0

    @property
    def is_zero(self) -> bool:
        return self.last_modified == 0


# Returned when a metadata lookup fails: the remote counts as infinitely old.
ZERO_METADATA = ObjectMetadata()


@dataclass(frozen=True)
class RemoteObject:
    """One entry from a container listing."""

    key: str
    last_modified: int = 0
    created_on: int = 0
    content_type: str = ""
    content_length: int = 0
    deleted: bool = False

    @property
    def metadata(self) -> ObjectMetadata:
        return ObjectMetadata(
            last_modified=self.last_modified,
            created_on=self.created_on,
            content_type=self.content_type,
            content_length=self.content_length,
        )


class RemoteObjectStore(Protocol):
    """Operations the engine needs from a flat key/value container."""

    def list_objects(self, prefix: str, include_deleted: bool = False) -> AsyncIterator[RemoteObject]:
        ...

    async def get_object_metadata(self, key: str) -> ObjectMetadata:
        """Return metadata, or ``ZERO_METADATA`` if the lookup fails."""
        ...

    async def get_object_body(self, key: str) -> Optional[bytes]:
        ...

    async def put_object(
        self,
        key: str,
        data: bytes,
        length: int,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> ObjectMetadata:
        ...

    async def delete_object(self, key: str) -> None:
        ...

    async def copy_object(self, source_key: str, dest_key: str) -> None:
        ...


_BACKENDS: Dict[str, Any] = {}


def register_store_backend(name: str):
    """Class decorator registering a backend under ``name``.

    Registered classes build themselves with ``from_settings(settings)``.
    """

    def wrapper(cls):
        _BACKENDS[name.lower()] = cls
        return cls

    return wrapper


def available_backends() -> Tuple[str, ...]:
    return tuple(sorted(_BACKENDS))


def create_store(settings: "SyncSettings") -> RemoteObjectStore:
    backend = settings.backend.lower()
    factory = _BACKENDS.get(backend)
    if factory is None:
        raise TransportError(
            f"Unknown store backend '{settings.backend}' (available: {', '.join(available_backends())})"
        )
    return factory.from_settings(settings)


@dataclass
class _Entry:
    metadata: ObjectMetadata
    body: Optional[bytes]
    deleted: bool = False
    deleted_on: int = 0


@register_store_backend("memory")
class MemoryObjectStore:
    """Dict-backed container with soft delete.

    ``fail(operation, key)`` makes every call of ``operation`` for ``key`` raise
    :class:`TransportError` until :meth:`heal` is called.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        retention_ms: int = DEFAULT_RETENTION_MS,
    ) -> None:
        self._clock = clock or now_ms
        self.retention_ms = retention_ms
        self._entries: Dict[str, _Entry] = {}
        self._failures: Dict[str, Set[str]] = {}
        self.calls: list = []

    @classmethod
    def from_settings(cls, settings: "SyncSettings") -> "MemoryObjectStore":
        return cls()

    def fail(self, operation: str, key: str) -> None:
        self._failures.setdefault(operation, set()).add(key)

    def heal(self, operation: Optional[str] = None) -> None:
        if operation is None:
            self._failures.clear()
        else:
            self._failures.pop(operation, None)

    def _check(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        if key in self._failures.get(operation, ()):
            raise TransportError(f"Simulated {operation} failure for {key}")

    def _live(self, key: str) -> _Entry:
        entry = self._entries.get(key)
        if entry is None or entry.deleted:
            raise ObjectNotFoundError(key)
        return entry

    def _purge_expired(self) -> None:
        cutoff = self._clock() - self.retention_ms
        expired = [k for k, e in self._entries.items() if e.deleted and e.deleted_on < cutoff]
        for key in expired:
            del self._entries[key]

    def seed(
        self,
        key: str,
        data: bytes,
        last_modified: Optional[int] = None,
        deleted: bool = False,
    ) -> None:
        """Place an object directly, bypassing failure injection."""
        stamp = self._clock() if last_modified is None else last_modified
        self._entries[key] = _Entry(
            metadata=ObjectMetadata(
                last_modified=stamp,
                created_on=stamp,
                content_type=DEFAULT_CONTENT_TYPE,
                content_length=len(data),
            ),
            body=data,
            deleted=deleted,
            deleted_on=self._clock() if deleted else 0,
        )

    def keys(self, include_deleted: bool = False) -> Set[str]:
        return {k for k, e in self._entries.items() if include_deleted or not e.deleted}

    def body(self, key: str) -> Optional[bytes]:
        entry = self._entries.get(key)
        return None if entry is None else entry.body

    async def list_objects(self, prefix: str, include_deleted: bool = False) -> AsyncIterator[RemoteObject]:
        self._check("list_objects", prefix)
        self._purge_expired()
        for key in sorted(self._entries):
            entry = self._entries[key]
            if not key.startswith(prefix):
                continue
            if entry.deleted and not include_deleted:
                continue
            meta = entry.metadata
            yield RemoteObject(
                key=key,
                last_modified=meta.last_modified,
                created_on=meta.created_on,
                content_type=meta.content_type,
                content_length=meta.content_length,
                deleted=entry.deleted,
            )

    async def get_object_metadata(self, key: str) -> ObjectMetadata:
        try:
            self._check("get_object_metadata", key)
            return self._live(key).metadata
        except TransportError as exc:
            logger.debug("Metadata lookup failed for %s: %s", key, exc)
            return ZERO_METADATA

    async def get_object_body(self, key: str) -> Optional[bytes]:
        self._check("get_object_body", key)
        return self._live(key).body

    async def put_object(
        self,
        key: str,
        data: bytes,
        length: int,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> ObjectMetadata:
        self._check("put_object", key)
        stamp = self._clock()
        previous = self._entries.get(key)
        created = previous.metadata.created_on if previous and not previous.deleted else stamp
        metadata = ObjectMetadata(
            last_modified=stamp,
            created_on=created,
            content_type=content_type,
            content_length=length,
        )
        self._entries[key] = _Entry(metadata=metadata, body=bytes(data[:length]))
        return metadata

    async def delete_object(self, key: str) -> None:
        self._check("delete_object", key)
        entry = self._entries.get(key)
        if entry is None or entry.deleted:
            return
        entry.deleted = True
        entry.deleted_on = self._clock()

    async def copy_object(self, source_key: str, dest_key: str) -> None:
        self._check("copy_object", source_key)
        source = self._live(source_key)
        stamp = self._clock()
        self._entries[dest_key] = _Entry(
            metadata=replace(source.metadata, last_modified=stamp, created_on=stamp),
            body=source.body,
        )


@register_store_backend("directory")
class DirectoryObjectStore:
    """Container kept on disk as flat key files plus a JSON index.

    Layout::

        <root>/objects/<key>   object bodies
        <root>/index.json      {key: {lastModified, createdOn, contentType,
                                      contentLength, deleted}}

    Deleting an object drops its body and keeps the index entry flagged as
    deleted (with ``deletedOn``), so include-deleted listings still report it
    until ``retention_ms`` has passed.
    """

    INDEX_NAME = "index.json"

    def __init__(
        self,
        root: Path,
        clock: Optional[Clock] = None,
        retention_ms: int = DEFAULT_RETENTION_MS,
    ) -> None:
        self.root = Path(root)
        self._clock = clock or now_ms
        self.retention_ms = retention_ms
        self._objects = self.root / "objects"
        self._index_path = self.root / self.INDEX_NAME

    @classmethod
    def from_settings(cls, settings: "SyncSettings") -> "DirectoryObjectStore":
        return cls(settings.store_root / settings.account_name / settings.container_name)

    def _object_path(self, key: str) -> Path:
        parts = [p for p in key.split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            raise TransportError(f"Invalid object key: {key!r}")
        return self._objects.joinpath(*parts)

    def _load_index(self) -> Dict[str, Dict[str, Any]]:
        if not self._index_path.exists():
            return {}
        try:
            with open(self._index_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise TransportError(f"Failed to read index {self._index_path}: {exc}") from exc
        return data.get("objects", {}) if isinstance(data, dict) else {}

    def _save_index(self, index: Dict[str, Dict[str, Any]]) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            tmp = self._index_path.with_suffix(".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump({"objects": index}, f, indent=2, sort_keys=True)
            os.replace(tmp, self._index_path)
        except OSError as exc:
            raise TransportError(f"Failed to write index {self._index_path}: {exc}") from exc

    @staticmethod
    def _to_object(key: str, raw: Dict[str, Any]) -> RemoteObject:
        return RemoteObject(
            key=key,
            last_modified=int(raw.get("lastModified", 0)),
            created_on=int(raw.get("createdOn", 0)),
            content_type=str(raw.get("contentType", "")),
            content_length=int(raw.get("contentLength", 0)),
            deleted=bool(raw.get("deleted", False)),
        )

    def _purge_expired(self, index: Dict[str, Dict[str, Any]]) -> None:
        cutoff = self._clock() - self.retention_ms
        expired = [
            key
            for key, raw in index.items()
            if raw.get("deleted") and int(raw.get("deletedOn", 0)) < cutoff
        ]
        if not expired:
            return
        for key in expired:
            del index[key]
        logger.debug("Purged %d expired deleted objects from %s", len(expired), self.root)
        self._save_index(index)

    def _list(self, prefix: str, include_deleted: bool) -> list:
        index = self._load_index()
        self._purge_expired(index)
        objects = []
        for key in sorted(index):
            if not key.startswith(prefix):
                continue
            obj = self._to_object(key, index[key])
            if obj.deleted and not include_deleted:
                continue
            objects.append(obj)
        return objects

    async def list_objects(self, prefix: str, include_deleted: bool = False) -> AsyncIterator[RemoteObject]:
        objects = await asyncio.to_thread(self._list, prefix, include_deleted)
        for obj in objects:
            yield obj

    def _metadata(self, key: str) -> ObjectMetadata:
        raw = self._load_index().get(key)
        if raw is None or raw.get("deleted"):
            raise ObjectNotFoundError(key)
        return self._to_object(key, raw).metadata

    async def get_object_metadata(self, key: str) -> ObjectMetadata:
        try:
            return await asyncio.to_thread(self._metadata, key)
        except TransportError as exc:
            logger.debug("Metadata lookup failed for %s: %s", key, exc)
            return ZERO_METADATA

    def _read(self, key: str) -> Optional[bytes]:
        self._metadata(key)
        path = self._object_path(key)
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as exc:
            raise TransportError(f"Failed to read {key}: {exc}") from exc

    async def get_object_body(self, key: str) -> Optional[bytes]:
        return await asyncio.to_thread(self._read, key)

    def _write(self, key: str, data: bytes, length: int, content_type: str) -> ObjectMetadata:
        index = self._load_index()
        path = self._object_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(bytes(data[:length]))
        except OSError as exc:
            raise TransportError(f"Failed to write {key}: {exc}") from exc
        stamp = self._clock()
        previous = index.get(key)
        created = stamp
        if previous and not previous.get("deleted"):
            created = int(previous.get("createdOn", stamp))
        index[key] = {
            "lastModified": stamp,
            "createdOn": created,
            "contentType": content_type,
            "contentLength": length,
            "deleted": False,
        }
        self._save_index(index)
        return self._to_object(key, index[key]).metadata

    async def put_object(
        self,
        key: str,
        data: bytes,
        length: int,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> ObjectMetadata:
        return await asyncio.to_thread(self._write, key, data, length, content_type)

    def _delete(self, key: str) -> None:
        index = self._load_index()
        raw = index.get(key)
        if raw is None or raw.get("deleted"):
            return
        path = self._object_path(key)
        try:
            if path.is_file():
                path.unlink()
        except OSError as exc:
            raise TransportError(f"Failed to delete {key}: {exc}") from exc
        raw["deleted"] = True
        raw["deletedOn"] = self._clock()
        self._save_index(index)

    async def delete_object(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    def _copy(self, source_key: str, dest_key: str) -> None:
        metadata = self._metadata(source_key)
        body = self._read(source_key) or b""
        self._write(dest_key, body, len(body), metadata.content_type or DEFAULT_CONTENT_TYPE)

    async def copy_object(self, source_key: str, dest_key: str) -> None:
        await asyncio.to_thread(self._copy, source_key, dest_key)


__all__ = [
    "ObjectMetadata",
    "RemoteObject",
    "RemoteObjectStore",
    "ZERO_METADATA",
    "MemoryObjectStore",
    "DirectoryObjectStore",
    "register_store_backend",
    "available_backends",
    "create_store",
    "now_ms",
]
