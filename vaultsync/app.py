"""Command-line entry point for the vaultsync runtime.

``vaultsync`` with no arguments opens an interactive ``> /command`` loop;
``vaultsync sync full`` runs one slash command and exits.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
import sys
try:
    import readline
except ImportError:  # pragma: no cover
    readline = None
from typing import List, Optional, Sequence

from .agents import REGISTRY
from .commands import COMMANDS
from .configuration import (
    ConfigurationBundle,
    Diagnostic,
    load_runtime_configuration,
    resolve_vault_dir,
)
from .logging_utils import FALLBACK_ROOT, setup_logging
from .slash_commands import CommandRouter

REPO_ROOT = Path(__file__).resolve().parent.parent
logger = logging.getLogger("vaultsync")


def _log_path_within_vault(log_path: Path, vault_dir: Path) -> bool:
    try:
        log_path.relative_to(vault_dir)
        return True
    except ValueError:
        return False


def build_router(config: ConfigurationBundle) -> CommandRouter:
    """Register every slash command against the loaded configuration."""

    router = CommandRouter(config, metadata={"repo_root": str(REPO_ROOT)})
    for command in COMMANDS:
        router.register(command)
    return router


def emit_configuration_report(config: ConfigurationBundle) -> None:
    """Print diagnostics so operators can correct issues quickly."""

    if not config.diagnostics:
        print(
            f"[config] Loaded {len(config.files_loaded)} file(s) "
            f"from repo and vault config directories."
        )
        return

    print("[config] Diagnostics:")
    for diag in config.diagnostics:
        prefix = diag.source or config.vault_dir
        print(f"  - ({diag.level.upper()}) {diag.message} [{prefix}]")


def configure_logging(config: ConfigurationBundle) -> Path:
    """Install log handlers using ``VAULTSYNC_LOG_LEVEL`` or ``logging.level``."""

    logging_cfg = (config.merged.get("logging") or {}) if config.merged else {}
    level_name = (os.environ.get("VAULTSYNC_LOG_LEVEL") or logging_cfg.get("level") or "WARNING").upper()
    structured = bool(logging_cfg.get("structured", True))

    # Never create a vault directory just to hold logs.
    log_root = config.vault_dir if config.vault_dir.is_dir() else FALLBACK_ROOT
    log_path = setup_logging(log_root, level_name, structured=structured)
    config.log_path = log_path
    if not _log_path_within_vault(log_path, config.vault_dir):
        config.diagnostics.append(
            Diagnostic(
                level="warning",
                message=f"Vault log directory is unavailable; logging to fallback path '{log_path}'.",
                source=log_path,
            )
        )
    return log_path


def configure_autocomplete(router: CommandRouter) -> None:
    """Enable readline tab completion for slash commands."""

    if readline is None:
        return

    commands = list(router.command_names)

    def completer(text: str, state: int):
        if not readline.get_line_buffer().startswith("/"):
            return None
        fragment = text[1:] if text.startswith("/") else text
        matches = [f"/{cmd}" for cmd in commands if cmd.startswith(fragment)]
        return matches[state] if state < len(matches) else None

    readline.set_completer(completer)
    readline.parse_and_bind("tab: complete")
    readline.set_completer_delims(" \t")


def execute_cli_command(command_line: str, router: CommandRouter) -> str:
    """Run one slash command line (leading ``/`` optional) and print its output."""

    parts = command_line.strip().lstrip("/").split()
    if not parts:
        return ""
    command, args = parts[0], parts[1:]
    result = router.handle(command, args)
    print(result)
    logger.info("Executed CLI command: %s", " ".join(parts))
    return result


def bootstrap_agents(config: ConfigurationBundle) -> None:
    """Invoke enabled agents that should run during startup."""

    REGISTRY.run(config, trigger="bootstrap")


def run_repl(router: CommandRouter) -> None:
    configure_autocomplete(router)
    print("[vaultsync] Type /help for commands, /quit to exit.")
    while True:
        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\n[Exiting vaultsync]")
            break

        if not line:
            continue
        if line.lower().lstrip("/") in {"quit", "exit"}:
            print("[Goodbye]")
            break
        if not line.startswith("/"):
            print("[vaultsync] Commands start with '/'. Use /help to list them.")
            continue
        execute_cli_command(line, router)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for ``vaultsync`` and ``python -m vaultsync``."""

    args: List[str] = list(sys.argv[1:] if argv is None else argv)

    config = load_runtime_configuration(resolve_vault_dir())
    log_path = configure_logging(config)
    logger.info("Logging initialized at %s", log_path)
    emit_configuration_report(config)
    bootstrap_agents(config)
    router = build_router(config)

    if args:
        execute_cli_command(" ".join(args), router)
        return 0

    run_repl(router)
    return 0


__all__ = [
    "bootstrap_agents",
    "build_router",
    "configure_logging",
    "emit_configuration_report",
    "execute_cli_command",
    "main",
]
