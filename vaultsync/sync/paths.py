"""Translation between vault-relative paths and remote object keys."""

from __future__ import annotations

import re
from dataclasses import dataclass

SEPARATOR = "/"
_REPEATED_SEPARATORS = re.compile(r"/+")


def normalize_base_directory(value: str) -> str:
    """Canonicalize a configured base directory.

    Repeated separators collapse to one, a leading separator is stripped and a
    single trailing separator is added unless the result is empty.

        >>> normalize_base_directory("//notes//daily")
        'notes/daily/'
        >>> normalize_base_directory("/")
        ''
    """
    value = _REPEATED_SEPARATORS.sub(SEPARATOR, (value or "").strip())
    if value == SEPARATOR:
        return ""
    if value.startswith(SEPARATOR):
        value = value[1:]
    if value and not value.endswith(SEPARATOR):
        value = f"{value}{SEPARATOR}"
    return value


def normalize_path(path: str) -> str:
    """Return a vault-relative path with forward slashes and no leading slash."""
    path = _REPEATED_SEPARATORS.sub(SEPARATOR, path.replace("\\", SEPARATOR))
    return path.strip(SEPARATOR)


@dataclass(frozen=True)
class PathMapper:
    """Maps vault paths onto keys beneath ``base_directory`` and back.

    Construct through :meth:`from_base_directory` so the base directory is
    canonical; the mapping functions do not re-check it.
    """

    base_directory: str = ""

    @classmethod
    def from_base_directory(cls, value: str) -> "PathMapper":
        return cls(base_directory=normalize_base_directory(value))

    @property
    def prefix(self) -> str:
        return self.base_directory

    def to_remote_key(self, path: str) -> str:
        return f"{self.base_directory}{path}"

    def to_local_path(self, key: str) -> str:
        if self.base_directory and key.startswith(self.base_directory):
            return key[len(self.base_directory):]
        return key

    def owns(self, key: str) -> bool:
        """True if ``key`` lives beneath the base directory."""
        return key.startswith(self.base_directory)


__all__ = ["PathMapper", "normalize_base_directory", "normalize_path", "SEPARATOR"]
