"""Typed file events pushed by the host and consumed one at a time."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union

from .engine import ReconciliationEngine
from .result import PhaseReport, Result, SyncReport

Outcome = Union[Result, PhaseReport, SyncReport]


class FileEventKind(str, Enum):
    """What happened in the vault, or which pass the host asked for."""
    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    RENAME = "rename"
    FULL_SYNC = "full_sync"
    UPLOAD_ONLY = "upload_only"
    DOWNLOAD_ONLY = "download_only"


@dataclass(frozen=True)
class FileEvent:
    kind: FileEventKind
    path: str = ""
    old_path: Optional[str] = None


_STOP = object()


class SyncDispatcher:
    """Queue of :class:`FileEvent` messages applied by a single consumer.

    The ``on_*`` and ``trigger_*`` methods only enqueue. Events are applied
    by :meth:`drain` or :meth:`run`, never two at once.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        queue: Optional[asyncio.Queue] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.engine = engine
        self.queue: asyncio.Queue = queue if queue is not None else asyncio.Queue()
        self.log = logger or logging.getLogger("vaultsync.sync.events")

    def push(self, event: FileEvent) -> None:
        self.queue.put_nowait(event)

    def on_local_create(self, path: str) -> None:
        self.push(FileEvent(FileEventKind.CREATE, path))

    def on_local_modify(self, path: str) -> None:
        self.push(FileEvent(FileEventKind.MODIFY, path))

    def on_local_delete(self, path: str) -> None:
        self.push(FileEvent(FileEventKind.DELETE, path))

    def on_local_rename(self, old_path: str, new_path: str) -> None:
        self.push(FileEvent(FileEventKind.RENAME, new_path, old_path=old_path))

    def trigger_full_sync(self) -> None:
        self.push(FileEvent(FileEventKind.FULL_SYNC))

    def trigger_upload_only(self) -> None:
        self.push(FileEvent(FileEventKind.UPLOAD_ONLY))

    def trigger_download_only(self) -> None:
        self.push(FileEvent(FileEventKind.DOWNLOAD_ONLY))

    def stop(self) -> None:
        self.queue.put_nowait(_STOP)

    async def handle(self, event: FileEvent) -> Optional[Outcome]:
        """Apply one event. Returns ``None`` for events that are ignored."""
        self.log.debug("Handling %s event for %r", event.kind.value, event.path)
        engine = self.engine
        operations = engine.operations

        if event.kind in (FileEventKind.CREATE, FileEventKind.MODIFY):
            if not engine.tree.is_document(event.path):
                return None
            try:
                if await engine.tree.is_folder(event.path):
                    return None
            except Exception as exc:
                return Result.from_exception(exc, action="upload", path=event.path)
            return await engine.upload_local(event.path)
        if event.kind is FileEventKind.DELETE:
            return await operations.delete_file(event.path)
        if event.kind is FileEventKind.RENAME:
            return await operations.rename_file(event.old_path or "", event.path)
        if event.kind is FileEventKind.FULL_SYNC:
            return await engine.full_sync()
        if event.kind is FileEventKind.UPLOAD_ONLY:
            return await engine.upload_from_vault()
        if event.kind is FileEventKind.DOWNLOAD_ONLY:
            return await engine.download_to_vault()
        return None

    async def drain(self) -> List[Outcome]:
        """Apply everything queued so far and return the outcomes."""
        outcomes: List[Outcome] = []
        while not self.queue.empty():
            event = self.queue.get_nowait()
            try:
                if event is _STOP:
                    continue
                outcome = await self.handle(event)
                if outcome is not None:
                    outcomes.append(outcome)
            finally:
                self.queue.task_done()
        return outcomes

    async def run(self) -> None:
        """Consume events until :meth:`stop` is called."""
        while True:
            event = await self.queue.get()
            try:
                if event is _STOP:
                    return
                await self.handle(event)
            except Exception:  # pragma: no cover - handle() reports its own errors
                self.log.exception("Unhandled error processing %r", event)
            finally:
                self.queue.task_done()


__all__ = ["FileEvent", "FileEventKind", "SyncDispatcher"]
