"""Exceptions raised by the store and tree adapters."""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for sync failures."""


class ConfigurationError(SyncError):
    """A required identifier or credential is missing."""


class TransportError(SyncError):
    """Any failure talking to the remote object store."""


class ObjectNotFoundError(TransportError):
    """The requested key does not exist (or is soft-deleted)."""

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}")
        self.key = key


class LocalIOError(SyncError):
    """Failure reading or writing the local tree."""


class PartialOperationError(SyncError):
    """A multi-step remote operation stopped part way through."""

    def __init__(self, message: str, completed: str, failed: str):
        super().__init__(message)
        self.completed = completed
        self.failed = failed


__all__ = [
    "SyncError",
    "ConfigurationError",
    "TransportError",
    "ObjectNotFoundError",
    "LocalIOError",
    "PartialOperationError",
]
