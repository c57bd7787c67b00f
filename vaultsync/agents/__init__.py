"""Agents run by the vaultsync runtime."""

from .registry import AgentDefinition, AgentRegistry
from .sync import SyncAgentResult, run_sync_agent

REGISTRY = AgentRegistry()
REGISTRY.register(
    AgentDefinition(
        name="sync.agent",
        description="Run a full vault/container sync at startup when sync.sync_on_startup is set.",
        handler=run_sync_agent,
        triggers=("bootstrap",),
    )
)

__all__ = [
    "REGISTRY",
    "AgentDefinition",
    "AgentRegistry",
    "SyncAgentResult",
    "run_sync_agent",
]
