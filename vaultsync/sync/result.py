"""Tagged results returned by every public sync operation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from .exceptions import (
    ConfigurationError,
    LocalIOError,
    PartialOperationError,
    TransportError,
)


class ErrorKind(str, Enum):
    """Failure classes a sync operation can report."""
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    LOCAL_IO = "local_io"
    PARTIAL = "partial"


_KIND_BY_EXCEPTION = (
    (ConfigurationError, ErrorKind.CONFIGURATION),
    (PartialOperationError, ErrorKind.PARTIAL),
    (LocalIOError, ErrorKind.LOCAL_IO),
    (TransportError, ErrorKind.TRANSPORT),
)


def kind_for(exc: BaseException) -> ErrorKind:
    """Classify an exception; unknown errors count as transport failures."""
    for exc_type, kind in _KIND_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return kind
    if isinstance(exc, OSError):
        return ErrorKind.LOCAL_IO
    return ErrorKind.TRANSPORT


@dataclass
class Result:
    """Outcome of a single operation."""

    status: Literal["ok", "error"]
    action: str = ""
    path: str = ""
    kind: Optional[ErrorKind] = None
    detail: str = ""
    value: Any = None

    @classmethod
    def ok(cls, action: str = "", path: str = "", value: Any = None, detail: str = "") -> "Result":
        return cls(status="ok", action=action, path=path, value=value, detail=detail)

    @classmethod
    def err(cls, kind: ErrorKind, detail: str, action: str = "", path: str = "") -> "Result":
        return cls(status="error", action=action, path=path, kind=kind, detail=detail)

    @classmethod
    def from_exception(cls, exc: BaseException, action: str = "", path: str = "") -> "Result":
        return cls.err(kind_for(exc), str(exc) or exc.__class__.__name__, action=action, path=path)

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "status": self.status,
            "action": self.action,
            "path": self.path,
        }
        if self.kind is not None:
            result["kind"] = self.kind.value
        if self.detail:
            result["detail"] = self.detail
        return result


@dataclass
class PhaseReport:
    """Per-file results collected by one reconciliation phase."""

    phase: str
    results: List[Result] = field(default_factory=list)
    skipped: int = 0

    def add(self, result: Result) -> Result:
        self.results.append(result)
        return result

    def count(self, action: str) -> int:
        return sum(1 for r in self.results if r.is_ok and r.action == action)

    @property
    def errors(self) -> List[Result]:
        return [r for r in self.results if not r.is_ok]

    @property
    def writes(self) -> int:
        """Successful operations that changed either store."""
        return sum(1 for r in self.results if r.is_ok)

    @property
    def success(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        parts = []
        for action in sorted({r.action for r in self.results if r.is_ok}):
            parts.append(f"{self.count(action)} {action}")
        if self.errors:
            parts.append(f"{len(self.errors)} failed")
        if self.skipped:
            parts.append(f"{self.skipped} unchanged")
        return ", ".join(parts) if parts else "no changes"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase,
            "success": self.success,
            "writes": self.writes,
            "skipped": self.skipped,
            "summary": self.summary(),
            "errors": [r.to_dict() for r in self.errors],
        }


@dataclass
class SyncReport:
    """Result of a full reconciliation pass."""

    phases: List[PhaseReport] = field(default_factory=list)
    error: Optional[Result] = None

    @property
    def success(self) -> bool:
        return self.error is None and all(p.success for p in self.phases)

    @property
    def writes(self) -> int:
        return sum(p.writes for p in self.phases)

    def phase(self, name: str) -> Optional[PhaseReport]:
        for report in self.phases:
            if report.phase == name:
                return report
        return None

    def summary(self) -> str:
        if self.error is not None:
            return self.error.detail
        return "; ".join(f"{p.phase}: {p.summary()}" for p in self.phases)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "writes": self.writes,
            "summary": self.summary(),
            "phases": [p.to_dict() for p in self.phases],
            "error": self.error.to_dict() if self.error else None,
        }


__all__ = ["ErrorKind", "Result", "PhaseReport", "SyncReport", "kind_for"]
