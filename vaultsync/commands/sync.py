"""Slash command for vault synchronization."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import List

from rich.console import Console
from rich.table import Table

from ..logging_utils import sync_logger
from ..slash_commands import (
    SlashCommand,
    SlashCommandContext,
    render_report,
    render_rich,
)
from ..sync import (
    ReconciliationEngine,
    RemoteObject,
    SyncReport,
    build_engine,
)


def _handler(context: SlashCommandContext, args: List[str]) -> str:
    """Run and inspect vault synchronization."""

    if not args:
        return _show_status(context)

    subcommand = args[0].lower()

    if subcommand == "status":
        return _show_status(context)
    elif subcommand in ("full", "sync"):
        return _run(context, "full")
    elif subcommand == "push":
        return _run(context, "push")
    elif subcommand == "pull":
        return _run(context, "pull")
    elif subcommand == "tombstones":
        return _run(context, "tombstones")
    elif subcommand == "remote":
        return _show_remote(context)
    elif subcommand == "help":
        return USAGE
    else:
        return f"[sync] Unknown subcommand '{subcommand}'. Use /sync help for usage."


def _engine(context: SlashCommandContext) -> ReconciliationEngine:
    settings = context.sync_settings
    return build_engine(
        settings,
        context.config.vault_dir,
        store_factory=context.store_factory,
        logger=sync_logger(settings.debug),
    )


def _show_status(context: SlashCommandContext) -> str:
    """Show sync settings and whether the service can start."""
    settings = context.sync_settings
    missing = settings.missing_fields()

    def _render(console: Console) -> None:
        table = Table(title="Vault Sync Status", show_header=False)
        table.add_column("Property", style="bold")
        table.add_column("Value")

        table.add_row("Active", "no" if missing else "yes")
        if missing:
            table.add_row("Missing", ", ".join(missing))
        table.add_row("Account", settings.account_name or "(not set)")
        table.add_row("Container", settings.container_name or "(not set)")
        table.add_row("Credential", "(set)" if settings.credential else "(not set)")
        table.add_row("Base Directory", settings.base_directory or "(container root)")
        table.add_row("Backend", settings.backend)
        table.add_row("Store Root", str(settings.store_root))
        table.add_row("Extensions", ", ".join(settings.extensions))
        table.add_row("Sync On Startup", str(settings.sync_on_startup))
        interval = f"every {settings.interval_minutes} min" if settings.sync_on_interval else "off"
        table.add_row("Interval Sync", interval)
        table.add_row("Debug", str(settings.debug))

        console.print(table)

    return render_rich(_render)


def _run(context: SlashCommandContext, mode: str) -> str:
    """Run a full pass or a single phase."""
    engine = _engine(context)
    if not engine.is_active:
        missing = ", ".join(engine.operations.settings.missing_fields()) or "see logs"
        return f"[sync] Sync is inactive ({missing}). Check the sync section of the configuration."

    if mode == "full":
        report = asyncio.run(engine.full_sync())
    else:
        phase = {
            "push": engine.upload_from_vault,
            "pull": engine.download_to_vault,
            "tombstones": engine.delete_soft_deletes_from_vault,
        }[mode]
        report = SyncReport(phases=[asyncio.run(phase())])

    return render_report(report)


def _show_remote(context: SlashCommandContext) -> str:
    """List objects under the base directory, including soft-deleted ones."""
    engine = _engine(context)
    store = engine.operations.store
    if store is None:
        return "[sync] Sync is inactive. Check the sync section of the configuration."

    async def _collect() -> List[RemoteObject]:
        prefix = engine.mapper.prefix
        return [obj async for obj in store.list_objects(prefix, include_deleted=True)]

    try:
        objects = asyncio.run(_collect())
    except Exception as e:
        return f"[sync] Error listing container: {e}"

    def _render(console: Console) -> None:
        console.print(f"[bold]Container objects[/bold] ({len(objects)})\n")

        table = Table(show_header=True)
        table.add_column("Path", style="cyan")
        table.add_column("Last Modified")
        table.add_column("Size", justify="right")
        table.add_column("State")

        for obj in objects[:50]:
            table.add_row(
                engine.mapper.to_local_path(obj.key),
                _format_timestamp(obj.last_modified),
                _format_size(obj.content_length),
                "[red]deleted[/red]" if obj.deleted else "live",
            )

        if len(objects) > 50:
            console.print(f"(showing first 50 of {len(objects)} objects)")

        console.print(table)

    return render_rich(_render)


def _format_timestamp(millis: int) -> str:
    if not millis:
        return "-"
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _format_size(size: int) -> str:
    """Format file size in human-readable form."""
    if size < 1024:
        return f"{size} B"
    elif size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    else:
        return f"{size / (1024 * 1024):.1f} MB"


USAGE = """[sync] Usage:
  /sync              Show sync status
  /sync status       Show sync status
  /sync full         Download, apply remote deletions, then upload
  /sync pull         Download remote changes only
  /sync push         Upload local changes only
  /sync tombstones   Delete local files removed in the container
  /sync remote       List container objects (including deleted)
  /sync help         Show this help

Configuration (in vault config):
  sync:
    account_name: myaccount
    credential: "?sv=..."
    container_name: notes
    base_directory: vault/
    backend: directory      # directory or memory
    store_root: .vaultsync/remote
    extensions: [".md"]
    sync_on_startup: true
    sync_on_interval: false
    interval_minutes: 5
    debug: false"""


COMMAND = SlashCommand(
    name="sync",
    description="Synchronize the vault with its container. Usage: /sync [status|full|pull|push|tombstones|remote]",
    handler=_handler,
    usage=USAGE,
)
