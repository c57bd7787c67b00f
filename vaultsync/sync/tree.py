"""Local tree capability and its filesystem implementation."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Protocol

from .exceptions import LocalIOError
from .paths import normalize_path
from .settings import DEFAULT_EXTENSIONS

logger = logging.getLogger("vaultsync.sync.tree")


@dataclass(frozen=True)
class LocalFile:
    """A document in the vault. Timestamps are epoch milliseconds."""

    path: str
    mtime: int
    ctime: int = 0
    size: int = 0


class LocalTree(Protocol):
    """Operations the engine needs from the local hierarchical tree."""

    async def list_files(self) -> List[LocalFile]:
        ...

    async def get_file(self, path: str) -> Optional[LocalFile]:
        ...

    async def read_file(self, path: str) -> bytes:
        ...

    async def create_file(self, path: str, data: bytes, mtime: Optional[int] = None) -> None:
        ...

    async def overwrite_file(self, path: str, data: bytes, mtime: Optional[int] = None) -> None:
        ...

    async def delete_file(self, path: str) -> None:
        ...

    async def set_mtime(self, path: str, mtime: int) -> None:
        ...

    async def path_exists(self, path: str) -> bool:
        ...

    async def is_folder(self, path: str) -> bool:
        ...

    async def create_folder(self, path: str) -> None:
        ...

    def is_document(self, path: str) -> bool:
        ...


def _ns_to_ms(value: int) -> int:
    return value // 1_000_000


class FilesystemTree:
    """Vault rooted at a directory on disk."""

    def __init__(self, root: Path, extensions: Iterable[str] = DEFAULT_EXTENSIONS) -> None:
        self.root = Path(root)
        self.extensions = tuple(e.lower() for e in extensions)

    def resolve(self, path: str) -> Path:
        if Path(path).is_absolute() or path.startswith("/"):
            raise LocalIOError(f"Expected a vault-relative path, got {path!r}")
        rel = normalize_path(path)
        parts = [p for p in rel.split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            raise LocalIOError(f"Invalid vault path: {path!r}")
        return self.root.joinpath(*parts)

    def is_document(self, path: str) -> bool:
        return Path(path).suffix.lower() in self.extensions

    def _iter_files(self) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(self.root):
            # Dot directories hold host metadata, logs and local store state.
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            for name in sorted(filenames):
                if name.startswith("."):
                    continue
                yield Path(dirpath) / name

    def _describe(self, file_path: Path) -> LocalFile:
        stat = file_path.stat()
        return LocalFile(
            path=file_path.relative_to(self.root).as_posix(),
            mtime=_ns_to_ms(stat.st_mtime_ns),
            ctime=_ns_to_ms(stat.st_ctime_ns),
            size=stat.st_size,
        )

    def _list(self) -> List[LocalFile]:
        files: List[LocalFile] = []
        for file_path in self._iter_files():
            if not self.is_document(file_path.name):
                continue
            try:
                files.append(self._describe(file_path))
            except OSError as exc:
                logger.warning("Failed to stat %s: %s", file_path, exc)
        files.sort(key=lambda f: f.path)
        return files

    async def list_files(self) -> List[LocalFile]:
        return await asyncio.to_thread(self._list)

    def _get(self, path: str) -> Optional[LocalFile]:
        target = self.resolve(path)
        if not target.is_file():
            return None
        try:
            return self._describe(target)
        except OSError as exc:
            raise LocalIOError(f"Failed to stat {path}: {exc}") from exc

    async def get_file(self, path: str) -> Optional[LocalFile]:
        return await asyncio.to_thread(self._get, path)

    def _read(self, path: str) -> bytes:
        try:
            return self.resolve(path).read_bytes()
        except OSError as exc:
            raise LocalIOError(f"Failed to read {path}: {exc}") from exc

    async def read_file(self, path: str) -> bytes:
        return await asyncio.to_thread(self._read, path)

    def _write(self, path: str, data: bytes, mode: str, mtime: Optional[int]) -> None:
        target = self.resolve(path)
        if mode == "wb" and not target.is_file():
            raise LocalIOError(f"Cannot overwrite {path}: no such file")
        try:
            with open(target, mode) as f:
                f.write(data)
            if mtime is not None:
                self._utime(target, mtime)
        except OSError as exc:
            raise LocalIOError(f"Failed to write {path}: {exc}") from exc

    async def create_file(self, path: str, data: bytes, mtime: Optional[int] = None) -> None:
        await asyncio.to_thread(self._write, path, data, "xb", mtime)

    async def overwrite_file(self, path: str, data: bytes, mtime: Optional[int] = None) -> None:
        await asyncio.to_thread(self._write, path, data, "wb", mtime)

    def _delete(self, path: str) -> None:
        try:
            self.resolve(path).unlink()
        except OSError as exc:
            raise LocalIOError(f"Failed to delete {path}: {exc}") from exc

    async def delete_file(self, path: str) -> None:
        await asyncio.to_thread(self._delete, path)

    @staticmethod
    def _utime(target: Path, mtime: int) -> None:
        stat = target.stat()
        os.utime(target, ns=(stat.st_atime_ns, mtime * 1_000_000))

    def _set_mtime(self, path: str, mtime: int) -> None:
        try:
            self._utime(self.resolve(path), mtime)
        except OSError as exc:
            raise LocalIOError(f"Failed to set mtime on {path}: {exc}") from exc

    async def set_mtime(self, path: str, mtime: int) -> None:
        await asyncio.to_thread(self._set_mtime, path, mtime)

    async def path_exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).exists)

    async def is_folder(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).is_dir)

    def _mkdir(self, path: str) -> None:
        try:
            self.resolve(path).mkdir(exist_ok=True)
        except FileExistsError as exc:
            raise LocalIOError(f"Cannot create folder {path}: a file is in the way") from exc
        except OSError as exc:
            raise LocalIOError(f"Failed to create folder {path}: {exc}") from exc

    async def create_folder(self, path: str) -> None:
        await asyncio.to_thread(self._mkdir, path)


__all__ = ["LocalFile", "LocalTree", "FilesystemTree"]
