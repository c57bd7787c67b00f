"""Single-file operations against the remote container."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .exceptions import ConfigurationError, PartialOperationError
from .paths import PathMapper
from .result import ErrorKind, Result
from .settings import SyncSettings
from .store import (
    DEFAULT_CONTENT_TYPE,
    ZERO_METADATA,
    ObjectMetadata,
    RemoteObjectStore,
    create_store,
)

StoreFactory = Callable[[SyncSettings], RemoteObjectStore]

INACTIVE_DETAIL = "Sync service is not initialized"


class FileOperations:
    """Upload, download, rename and delete single files by vault path.

    Nothing happens until :meth:`initialize` succeeds. While inactive every
    operation returns a configuration error without touching the store.
    """

    def __init__(
        self,
        settings: SyncSettings,
        store_factory: Optional[StoreFactory] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings
        self.mapper = PathMapper.from_base_directory(settings.base_directory)
        self._store_factory = store_factory or create_store
        self._store: Optional[RemoteObjectStore] = None
        self.log = logger or logging.getLogger("vaultsync.sync.operations")

        self.log.debug("Account name is %s", settings.account_name)
        self.log.debug("Container name is %s", settings.container_name)
        self.log.debug("Base directory is %r", self.mapper.base_directory)

    @property
    def is_active(self) -> bool:
        return self._store is not None

    @property
    def store(self) -> Optional[RemoteObjectStore]:
        return self._store

    def initialize(self) -> Result:
        """Validate the settings and connect the store."""
        self._store = None
        try:
            missing = self.settings.missing_fields()
            if missing:
                raise ConfigurationError(
                    "Missing required setting(s): " + ", ".join(missing)
                )
            self._store = self._store_factory(self.settings)
        except Exception as exc:
            self.log.error("Error initializing sync service: %s", exc)
            return Result.from_exception(exc, action="initialize")
        self.log.debug("Sync service initialized")
        return Result.ok(action="initialize")

    def _inactive(self, action: str, path: str) -> Result:
        self.log.debug("Skipping %s of %s: service inactive", action, path)
        return Result.err(ErrorKind.CONFIGURATION, INACTIVE_DETAIL, action=action, path=path)

    async def upload_file(
        self,
        path: str,
        content: bytes,
        length: Optional[int] = None,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ) -> Result:
        """Overwrite the remote object for ``path``; ``value`` holds its metadata."""
        if self._store is None:
            return self._inactive("upload", path)
        length = len(content) if length is None else length
        key = self.mapper.to_remote_key(path)
        self.log.debug("Uploading file %s", path)
        try:
            metadata = await self._store.put_object(key, content, length, content_type)
        except Exception as exc:
            self.log.error("Error uploading file %s: %s", path, exc)
            return Result.from_exception(exc, action="upload", path=path)
        self.log.debug("Done uploading file %s", path)
        return Result.ok(action="upload", path=path, value=metadata)

    async def download_file(self, path: str) -> Result:
        """Fetch the remote body for ``path`` as text.

        An error result means "do not overwrite", never "empty file".
        """
        if self._store is None:
            return self._inactive("download", path)
        key = self.mapper.to_remote_key(path)
        self.log.debug("Downloading file %s", path)
        try:
            body = await self._store.get_object_body(key)
            if body is None:
                raise ValueError(f"Object {key} has no body")
            text = body.decode("utf-8")
        except Exception as exc:
            self.log.error("Error downloading file %s: %s", path, exc)
            return Result.from_exception(exc, action="download", path=path)
        self.log.debug("Downloaded file %s", path)
        return Result.ok(action="download", path=path, value=text)

    async def rename_file(self, old_path: str, new_path: str) -> Result:
        """Copy to the new key, then delete the old one.

        If the delete fails both objects remain; that is reported, not repaired.
        """
        if self._store is None:
            return self._inactive("rename", new_path)
        old_key = self.mapper.to_remote_key(old_path)
        new_key = self.mapper.to_remote_key(new_path)
        self.log.debug("Renaming file %s to %s", old_path, new_path)
        try:
            await self._store.copy_object(old_key, new_key)
        except Exception as exc:
            self.log.error("Error renaming file %s: %s", old_path, exc)
            return Result.from_exception(exc, action="rename", path=new_path)
        try:
            await self._store.delete_object(old_key)
        except Exception as exc:
            partial = PartialOperationError(
                f"Copied {old_key} to {new_key} but failed to delete the source: {exc}",
                completed="copy",
                failed="delete",
            )
            self.log.error("Error renaming file %s: %s", old_path, partial)
            return Result.from_exception(partial, action="rename", path=new_path)
        self.log.debug("Renamed file %s to %s", old_path, new_path)
        return Result.ok(action="rename", path=new_path)

    async def delete_file(self, path: str) -> Result:
        if self._store is None:
            return self._inactive("delete", path)
        key = self.mapper.to_remote_key(path)
        try:
            await self._store.delete_object(key)
        except Exception as exc:
            self.log.error("Error deleting file %s: %s", path, exc)
            return Result.from_exception(exc, action="delete", path=path)
        return Result.ok(action="delete", path=path)

    async def get_metadata(self, path: str) -> ObjectMetadata:
        """Remote metadata for ``path``, or the zero sentinel on any failure."""
        if self._store is None:
            return ZERO_METADATA
        try:
            return await self._store.get_object_metadata(self.mapper.to_remote_key(path))
        except Exception as exc:
            self.log.error("Error fetching metadata for %s: %s", path, exc)
            return ZERO_METADATA


__all__ = ["FileOperations", "StoreFactory", "INACTIVE_DETAIL"]
