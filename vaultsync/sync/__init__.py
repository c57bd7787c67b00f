"""Vault to blob container synchronization."""

from __future__ import annotations

from .engine import (
    DOWNLOAD_PHASE,
    TOMBSTONE_PHASE,
    UPLOAD_PHASE,
    ReconciliationEngine,
    SyncSnapshot,
    build_engine,
)
from .events import FileEvent, FileEventKind, SyncDispatcher
from .exceptions import (
    ConfigurationError,
    LocalIOError,
    ObjectNotFoundError,
    PartialOperationError,
    SyncError,
    TransportError,
)
from .operations import FileOperations
from .paths import PathMapper, normalize_base_directory
from .result import ErrorKind, PhaseReport, Result, SyncReport
from .settings import SyncSettings
from .store import (
    ZERO_METADATA,
    DirectoryObjectStore,
    MemoryObjectStore,
    ObjectMetadata,
    RemoteObject,
    RemoteObjectStore,
    available_backends,
    create_store,
    register_store_backend,
)
from .tree import FilesystemTree, LocalFile, LocalTree

__all__ = [
    # Engine
    "ReconciliationEngine",
    "SyncSnapshot",
    "build_engine",
    "DOWNLOAD_PHASE",
    "TOMBSTONE_PHASE",
    "UPLOAD_PHASE",
    # Events
    "FileEvent",
    "FileEventKind",
    "SyncDispatcher",
    # Operations
    "FileOperations",
    "SyncSettings",
    "PathMapper",
    "normalize_base_directory",
    # Results
    "ErrorKind",
    "Result",
    "PhaseReport",
    "SyncReport",
    # Errors
    "SyncError",
    "ConfigurationError",
    "TransportError",
    "ObjectNotFoundError",
    "LocalIOError",
    "PartialOperationError",
    # Store
    "RemoteObjectStore",
    "RemoteObject",
    "ObjectMetadata",
    "ZERO_METADATA",
    "MemoryObjectStore",
    "DirectoryObjectStore",
    "register_store_backend",
    "available_backends",
    "create_store",
    # Tree
    "LocalTree",
    "LocalFile",
    "FilesystemTree",
]
