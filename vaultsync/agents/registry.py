"""Agent registry and metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..configuration import ConfigurationBundle, Diagnostic

logger = logging.getLogger("vaultsync.agents.registry")

AgentHandler = Callable[[ConfigurationBundle], Any]


@dataclass
class AgentDefinition:
    """An agent the runtime can run on a trigger such as ``bootstrap``."""

    name: str
    description: str
    handler: AgentHandler
    triggers: Sequence[str] = field(default_factory=lambda: ("bootstrap",))
    default_enabled: bool = True
    requires_ready: bool = True


class AgentRegistry:
    """Tracks agents and runs the enabled ones for a trigger."""

    def __init__(self) -> None:
        self._registry: Dict[str, AgentDefinition] = {}

    def register(self, definition: AgentDefinition) -> None:
        key = definition.name.lower().strip()
        if not key:
            raise ValueError("Agent name cannot be empty.")
        self._registry[key] = definition
        logger.debug("Registered agent '%s'.", key)

    def definitions(self) -> Sequence[AgentDefinition]:
        return list(self._registry.values())

    def definition(self, name: str) -> Optional[AgentDefinition]:
        return self._registry.get(name.lower())

    def enabled(self, bundle: ConfigurationBundle) -> Dict[str, bool]:
        """Resolve ``agents.enabled`` / ``agents.disabled`` against the defaults.

        A non-empty ``enabled`` list is exclusive; otherwise ``disabled``
        switches individual agents off.
        """
        agents_cfg = bundle.merged.get("agents", {}) if bundle.merged else {}
        enabled = set(_names(agents_cfg.get("enabled")))
        disabled = set(_names(agents_cfg.get("disabled")))

        states: Dict[str, bool] = {}
        for key, definition in self._registry.items():
            if enabled:
                states[key] = key in enabled
            elif key in disabled:
                states[key] = False
            else:
                states[key] = definition.default_enabled
        return states

    def run(
        self,
        bundle: ConfigurationBundle,
        *,
        trigger: str = "bootstrap",
    ) -> Dict[str, Any]:
        """Run every enabled agent registered for ``trigger``.

        Results are recorded in ``bundle.agent_state`` and returned.
        """
        results: Dict[str, Any] = {}
        states = self.enabled(bundle)
        for key, definition in self._registry.items():
            if trigger not in definition.triggers:
                continue
            if not states.get(key, False):
                logger.info("Skipping agent '%s' (disabled).", definition.name)
                continue
            if definition.requires_ready and bundle.status != "ready":
                logger.info(
                    "Skipping agent '%s' because configuration status is '%s'.",
                    definition.name,
                    bundle.status,
                )
                continue
            try:
                outcome = definition.handler(bundle)
            except Exception as exc:
                logger.exception("Agent '%s' failed: %s", definition.name, exc)
                bundle.diagnostics.append(
                    Diagnostic(level="error", message=f"Agent '{definition.name}' failed: {exc}")
                )
                results[definition.name] = {"status": "error", "detail": str(exc)}
                continue
            results[definition.name] = _as_record(outcome)

        bundle.agent_state.update(results)
        return results


def _names(raw: Any) -> List[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple, set)):
        return []
    return [str(item).lower().strip() for item in raw if str(item).strip()]


def _as_record(outcome: Any) -> Dict[str, Any]:
    """Coerce handler output into a dict ``/status`` can render."""
    if outcome is None:
        return {"status": "ok"}
    if hasattr(outcome, "to_dict"):
        return outcome.to_dict()
    if isinstance(outcome, dict):
        return outcome
    return {"status": "ok", "detail": str(outcome)}


__all__ = ["AgentDefinition", "AgentRegistry"]
