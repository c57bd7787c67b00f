"""Typed sync settings built from the merged configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .paths import normalize_base_directory

REQUIRED_FIELDS = ("account_name", "credential", "container_name")
DEFAULT_EXTENSIONS = (".md",)


def normalize_credential(value: str) -> str:
    """Shared-access tokens are appended to URLs, so they always start with '?'."""
    value = (value or "").strip()
    if value and not value.startswith("?"):
        value = f"?{value}"
    return value


def normalize_extensions(values: Any) -> tuple:
    result = []
    for raw in values or ():
        text = str(raw).strip().lower()
        if not text:
            continue
        result.append(text if text.startswith(".") else f".{text}")
    return tuple(result) or DEFAULT_EXTENSIONS


@dataclass
class SyncSettings:
    """Settings for sync operations."""

    account_name: str = ""
    credential: str = ""
    container_name: str = ""
    base_directory: str = ""
    backend: str = "directory"
    store_root: Path = Path(".vaultsync/remote")
    extensions: tuple = DEFAULT_EXTENSIONS
    sync_on_startup: bool = True
    sync_on_interval: bool = False
    interval_minutes: float = 5
    debug: bool = False

    def __post_init__(self) -> None:
        self.base_directory = normalize_base_directory(self.base_directory)
        self.credential = normalize_credential(self.credential)
        self.extensions = normalize_extensions(self.extensions)
        self.store_root = Path(self.store_root)

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        vault_dir: Optional[Path] = None,
    ) -> "SyncSettings":
        raw = config.get("sync", {}) if config else {}
        store_root = Path(str(raw.get("store_root", ".vaultsync/remote"))).expanduser()
        if vault_dir is not None and not store_root.is_absolute():
            store_root = vault_dir / store_root
        return cls(
            account_name=str(raw.get("account_name", "") or ""),
            credential=str(raw.get("credential", "") or ""),
            container_name=str(raw.get("container_name", "") or ""),
            base_directory=str(raw.get("base_directory", "") or ""),
            backend=str(raw.get("backend", "directory")),
            store_root=store_root,
            extensions=tuple(raw.get("extensions", DEFAULT_EXTENSIONS)),
            sync_on_startup=bool(raw.get("sync_on_startup", True)),
            sync_on_interval=bool(raw.get("sync_on_interval", False)),
            interval_minutes=raw.get("interval_minutes", 5),
            debug=bool(raw.get("debug", False)),
        )

    def missing_fields(self) -> List[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_name": self.account_name,
            "credential": "(set)" if self.credential else "",
            "container_name": self.container_name,
            "base_directory": self.base_directory,
            "backend": self.backend,
            "store_root": str(self.store_root),
            "extensions": list(self.extensions),
            "sync_on_startup": self.sync_on_startup,
            "sync_on_interval": self.sync_on_interval,
            "interval_minutes": self.interval_minutes,
            "debug": self.debug,
        }


__all__ = ["SyncSettings", "REQUIRED_FIELDS", "normalize_credential"]
