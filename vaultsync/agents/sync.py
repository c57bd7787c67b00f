"""Bootstrap agent that reconciles the vault with its container."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from ..configuration import ConfigurationBundle
from ..logging_utils import sync_logger
from ..sync import SyncSettings, build_engine
from ..sync.operations import StoreFactory

logger = logging.getLogger("vaultsync.agents.sync")


@dataclass
class SyncAgentResult:
    """Summary data returned after the sync agent runs."""

    status: Literal["ok", "inactive", "disabled", "error"]
    detail: str
    container: str = ""
    base_directory: str = ""
    writes: int = 0
    phases: Dict[str, str] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "detail": self.detail,
            "container": self.container,
            "base_directory": self.base_directory,
            "writes": self.writes,
            "phases": dict(self.phases),
            "errors": list(self.errors),
        }


def run_sync_agent(
    bundle: ConfigurationBundle,
    store_factory: Optional[StoreFactory] = None,
) -> SyncAgentResult:
    """Run one full sync pass when ``sync.sync_on_startup`` is set."""

    settings = SyncSettings.from_config(bundle.merged, bundle.vault_dir)

    if not settings.sync_on_startup:
        detail = "sync.agent disabled via sync.sync_on_startup."
        logger.info(detail)
        return SyncAgentResult(status="disabled", detail=detail)

    engine = build_engine(
        settings,
        bundle.vault_dir,
        store_factory=store_factory,
        logger=sync_logger(settings.debug),
    )
    if not engine.is_active:
        missing = settings.missing_fields()
        detail = (
            "Sync inactive; missing " + ", ".join(missing)
            if missing
            else "Sync inactive; the store could not be initialized."
        )
        logger.info(detail)
        return SyncAgentResult(status="inactive", detail=detail, container=settings.container_name)

    report = asyncio.run(engine.full_sync())
    errors = [
        f"{err.path or err.action}: {err.detail}"
        for phase in report.phases
        for err in phase.errors
    ]
    result = SyncAgentResult(
        status="ok" if report.success else "error",
        detail=report.summary(),
        container=settings.container_name,
        base_directory=settings.base_directory,
        writes=report.writes,
        phases={phase.phase: phase.summary() for phase in report.phases},
        errors=errors,
    )
    logger.info("sync.agent completed: %s", result.detail)
    return result


__all__ = ["run_sync_agent", "SyncAgentResult"]
