"""Two-way reconciliation between the vault and the remote container.

A full pass runs three phases in order:

1. ``download_to_vault``: remote objects missing locally are created (with
   their parent folders); objects strictly newer than the local file replace
   its content.
2. ``delete_soft_deletes_from_vault``: local files whose remote object is
   soft-deleted are removed.
3. ``upload_from_vault``: local files never seen remotely are uploaded, then
   every other local file strictly newer than its remote object is uploaded.

Only document types (``sync.extensions``) take part; other remote keys are
skipped by the download and tombstone phases as well.

No state survives between passes. Each phase lists the container afresh and
re-reads local files by path, so any phase can be retried on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set

from .operations import INACTIVE_DETAIL, FileOperations, StoreFactory
from .paths import PathMapper
from .result import ErrorKind, PhaseReport, Result, SyncReport
from .settings import SyncSettings
from .store import RemoteObject, RemoteObjectStore
from .tree import FilesystemTree, LocalTree

DOWNLOAD_PHASE = "download"
TOMBSTONE_PHASE = "tombstones"
UPLOAD_PHASE = "upload"


@dataclass
class SyncSnapshot:
    """Remote keys under the base directory, as vault paths."""

    live_keys: Set[str] = field(default_factory=set)
    deleted_keys: Set[str] = field(default_factory=set)
    objects: Dict[str, RemoteObject] = field(default_factory=dict)

    @classmethod
    async def build(
        cls,
        store: RemoteObjectStore,
        mapper: PathMapper,
        include_deleted: bool = False,
    ) -> "SyncSnapshot":
        snapshot = cls()
        async for obj in store.list_objects(mapper.prefix, include_deleted=include_deleted):
            if not mapper.owns(obj.key):
                continue
            path = mapper.to_local_path(obj.key)
            if obj.deleted:
                snapshot.deleted_keys.add(path)
            else:
                snapshot.live_keys.add(path)
                snapshot.objects[path] = obj
        # A key re-created after deletion is live.
        snapshot.deleted_keys -= snapshot.live_keys
        return snapshot

    def seen(self, path: str) -> bool:
        return path in self.live_keys or path in self.deleted_keys


class ReconciliationEngine:
    """Drives sync passes over a :class:`LocalTree` and :class:`FileOperations`."""

    def __init__(
        self,
        operations: FileOperations,
        tree: LocalTree,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.operations = operations
        self.tree = tree
        self.log = logger or logging.getLogger("vaultsync.sync.engine")

    @property
    def is_active(self) -> bool:
        return self.operations.is_active

    @property
    def mapper(self) -> PathMapper:
        return self.operations.mapper

    async def full_sync(self) -> SyncReport:
        """Download, propagate soft deletes, then upload."""
        report = SyncReport()
        if not self.is_active:
            self.log.debug("Skipping full sync: service inactive")
            report.error = Result.err(ErrorKind.CONFIGURATION, INACTIVE_DETAIL, action="sync")
            return report

        self.log.info("Starting full sync")
        report.phases.append(await self.download_to_vault())
        report.phases.append(await self.delete_soft_deletes_from_vault())
        report.phases.append(await self.upload_from_vault())
        if report.success:
            self.log.info("Full sync finished: %s", report.summary())
        else:
            self.log.warning("Full sync finished with errors: %s", report.summary())
        return report

    async def _snapshot(self, report: PhaseReport, include_deleted: bool) -> Optional[SyncSnapshot]:
        store = self.operations.store
        if store is None:
            report.add(Result.err(ErrorKind.CONFIGURATION, INACTIVE_DETAIL, action="list"))
            return None
        try:
            snapshot = await SyncSnapshot.build(store, self.mapper, include_deleted=include_deleted)
        except Exception as exc:
            self.log.error("Error listing container for %s phase: %s", report.phase, exc)
            report.add(Result.from_exception(exc, action="list"))
            return None
        self.log.debug(
            "Found %d live and %d deleted objects in container",
            len(snapshot.live_keys),
            len(snapshot.deleted_keys),
        )
        return snapshot

    async def download_to_vault(self) -> PhaseReport:
        report = PhaseReport(DOWNLOAD_PHASE)
        snapshot = await self._snapshot(report, include_deleted=False)
        if snapshot is None:
            return report

        for path in sorted(snapshot.live_keys):
            try:
                result = await self._download_one(path, snapshot.objects[path])
            except Exception as exc:
                self.log.error("Error syncing %s from the container: %s", path, exc)
                result = Result.from_exception(exc, action="download", path=path)
            if result is None:
                report.skipped += 1
            else:
                report.add(result)

        self.log.debug("Finished downloading from container: %s", report.summary())
        return report

    async def _download_one(self, path: str, obj: RemoteObject) -> Optional[Result]:
        if not path or path.endswith("/"):
            self.log.debug("%r is a folder placeholder, skipping", obj.key)
            return None
        if not self.tree.is_document(path):
            self.log.debug("%s is not a synced document type, skipping", path)
            return None

        if await self.tree.path_exists(path):
            if await self.tree.is_folder(path):
                self.log.debug("%s is a folder, skipping", path)
                return None
            local = await self.tree.get_file(path)
            if local is None:
                return None
            metadata = await self.operations.get_metadata(path)
            if metadata.last_modified <= local.mtime:
                return None

            self.log.debug("Downloading latest version of %s from the container", path)
            downloaded = await self.operations.download_file(path)
            if not downloaded.is_ok:
                return downloaded
            await self.tree.overwrite_file(
                path,
                downloaded.value.encode("utf-8"),
                mtime=metadata.last_modified,
            )
            return Result.ok(action="modify", path=path)

        await self._materialize_folders(path)
        downloaded = await self.operations.download_file(path)
        if not downloaded.is_ok:
            return downloaded
        self.log.debug("Creating file %s", path)
        await self.tree.create_file(
            path,
            downloaded.value.encode("utf-8"),
            mtime=obj.last_modified or None,
        )
        return Result.ok(action="create", path=path)

    async def _materialize_folders(self, path: str) -> None:
        folders = [part for part in path.split("/") if part][:-1]
        for depth in range(1, len(folders) + 1):
            folder = "/".join(folders[:depth])
            if await self.tree.path_exists(folder):
                continue
            self.log.debug("Creating folder %s", folder)
            await self.tree.create_folder(folder)

    async def delete_soft_deletes_from_vault(self) -> PhaseReport:
        report = PhaseReport(TOMBSTONE_PHASE)
        snapshot = await self._snapshot(report, include_deleted=True)
        if snapshot is None:
            return report

        for path in sorted(snapshot.deleted_keys):
            if not self.tree.is_document(path):
                self.log.debug("%s is not a synced document type, skipping", path)
                report.skipped += 1
                continue
            try:
                if not await self.tree.path_exists(path) or await self.tree.is_folder(path):
                    report.skipped += 1
                    continue
                self.log.debug("Deleting %s (deleted in container)", path)
                await self.tree.delete_file(path)
                report.add(Result.ok(action="delete", path=path))
            except Exception as exc:
                self.log.error("Error deleting %s from the vault: %s", path, exc)
                report.add(Result.from_exception(exc, action="delete", path=path))

        return report

    async def upload_from_vault(self) -> PhaseReport:
        report = PhaseReport(UPLOAD_PHASE)
        snapshot = await self._snapshot(report, include_deleted=True)
        if snapshot is None:
            return report

        try:
            files = await self.tree.list_files()
        except Exception as exc:
            self.log.error("Error listing vault files: %s", exc)
            report.add(Result.from_exception(exc, action="list"))
            return report
        self.log.debug("Found %d files in vault", len(files))

        # New files are tried once per pass, even when the upload fails.
        attempted: Set[str] = set()
        for local in files:
            if snapshot.seen(local.path):
                continue
            self.log.debug("Uploading new file %s", local.path)
            report.add(await self.upload_local(local.path))
            attempted.add(local.path)

        for listed in files:
            if listed.path in attempted:
                continue
            try:
                local = await self.tree.get_file(listed.path)
                if local is None:
                    report.skipped += 1
                    continue
                metadata = await self.operations.get_metadata(local.path)
            except Exception as exc:
                self.log.error("Error checking %s: %s", listed.path, exc)
                report.add(Result.from_exception(exc, action="upload", path=listed.path))
                continue
            if metadata.last_modified < local.mtime:
                report.add(await self.upload_local(local.path))
            else:
                report.skipped += 1

        self.log.debug("Finished uploading vault files: %s", report.summary())
        return report

    async def upload_local(self, path: str) -> Result:
        """Upload the current content of ``path``.

        On success the local mtime is stamped with the object's new
        ``last_modified`` so neither side looks newer on the next pass. The
        stamp is skipped if the file changed while it was being uploaded.
        """
        if not self.is_active:
            return Result.err(ErrorKind.CONFIGURATION, INACTIVE_DETAIL, action="upload", path=path)
        try:
            before = await self.tree.get_file(path)
            if before is None:
                return Result.err(ErrorKind.LOCAL_IO, f"No such file: {path}", action="upload", path=path)
            content = await self.tree.read_file(path)
        except Exception as exc:
            self.log.error("Error reading %s: %s", path, exc)
            return Result.from_exception(exc, action="upload", path=path)

        result = await self.operations.upload_file(path, content, len(content))
        if not result.is_ok or result.value is None or result.value.is_zero:
            return result

        try:
            after = await self.tree.get_file(path)
            if after is not None and after.mtime == before.mtime:
                await self.tree.set_mtime(path, result.value.last_modified)
        except Exception as exc:
            self.log.warning("Uploaded %s but could not stamp its mtime: %s", path, exc)
        return result


def build_engine(
    settings: SyncSettings,
    vault_dir: Path,
    store_factory: Optional[StoreFactory] = None,
    logger: Optional[logging.Logger] = None,
) -> ReconciliationEngine:
    """Wire operations and a filesystem tree, and initialize the store.

    The returned engine is inactive if the settings are incomplete.
    """
    operations = FileOperations(settings, store_factory=store_factory, logger=logger)
    operations.initialize()
    tree = FilesystemTree(vault_dir, settings.extensions)
    return ReconciliationEngine(operations, tree, logger=logger)


__all__ = [
    "ReconciliationEngine",
    "build_engine",
    "SyncSnapshot",
    "DOWNLOAD_PHASE",
    "TOMBSTONE_PHASE",
    "UPLOAD_PHASE",
]
