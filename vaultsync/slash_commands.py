"""Slash command registry plus the rendering shared by sync commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from io import StringIO
import logging
import shutil
from typing import Any, Callable, Dict, List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from .configuration import ConfigurationBundle
from .sync import Result, SyncError, SyncReport, SyncSettings
from .sync.operations import StoreFactory

SlashCommandHandler = Callable[["SlashCommandContext", List[str]], str]

logger = logging.getLogger("vaultsync.commands")

MAX_ERROR_ROWS = 10


@dataclass
class SlashCommandContext:
    """Context passed into each slash command handler."""

    config: ConfigurationBundle
    router: "CommandRouter"
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def sync_settings(self) -> SyncSettings:
        return SyncSettings.from_config(self.config.merged, self.config.vault_dir)

    @property
    def store_factory(self) -> Optional[StoreFactory]:
        """Store override injected by tests or an embedding host."""
        return self.metadata.get("store_factory")


@dataclass
class SlashCommand:
    """Metadata about a slash command.

    ``usage`` is the long form shown by ``/help <name>``.
    """

    name: str
    description: str
    handler: SlashCommandHandler
    usage: str = ""
    requires_ready: bool = False


class CommandRouter:
    """Registry + dispatcher for slash commands.

    A :class:`SyncError` escaping a handler is reported as a failed
    :class:`Result` instead of ending the session.
    """

    def __init__(
        self,
        config: ConfigurationBundle,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.config = config
        self._commands: Dict[str, SlashCommand] = {}
        self.metadata = metadata or {}

    def register(self, command: SlashCommand) -> None:
        self._commands[command.name.lower()] = command

    def handle(self, command_name: str, args: List[str]) -> str:
        command = self._commands.get(command_name.lower())
        if command is None:
            return f"[router] Unknown command '/{command_name}'. Use /help to list commands."
        if command.requires_ready and self.config.status != "ready":
            return (
                f"[router] '/{command_name}' requires a ready configuration "
                f"(current status: {self.config.status})."
            )
        context = SlashCommandContext(
            config=self.config,
            router=self,
            metadata=self.metadata,
        )
        try:
            return command.handler(context, args)
        except SyncError as exc:
            logger.error("/%s failed: %s", command.name, exc)
            return format_result(Result.from_exception(exc, action=f"/{command.name}"))

    @property
    def command_names(self) -> Sequence[str]:
        return sorted(self._commands.keys())

    def commands(self) -> Sequence[SlashCommand]:
        return [self._commands[name] for name in self.command_names]

    def get(self, command_name: str) -> Optional[SlashCommand]:
        return self._commands.get(command_name.lower().lstrip("/"))


def describe_sync_state(settings: SyncSettings) -> str:
    """One line saying whether sync can run and against which container."""

    missing = settings.missing_fields()
    if missing:
        return f"Sync inactive (missing {', '.join(missing)})"
    target = settings.container_name
    if settings.base_directory:
        target = f"{target}/{settings.base_directory}"
    return f"Sync active: {settings.backend} container '{target}'"


def format_result(result: Result) -> str:
    """Plain one-line rendering of a single operation outcome."""

    subject = " ".join(part for part in (result.action, result.path) if part) or "operation"
    if result.is_ok:
        return f"[sync] {subject}: ok"
    kind = result.kind.value if result.kind is not None else "error"
    return f"[sync] {subject} failed ({kind}): {result.detail}"


def render_help_table(
    commands: Sequence[SlashCommand],
    settings: Optional[SyncSettings] = None,
) -> str:
    """Render the slash command table, captioned with the sync state."""

    def _render(console: Console) -> None:
        table = Table(title="Slash Commands", show_header=True, header_style="bold cyan")
        table.add_column("Command", style="green", no_wrap=True)
        table.add_column("Description")
        for cmd in commands:
            table.add_row(f"/{cmd.name}", cmd.description)
        if settings is not None:
            table.caption = describe_sync_state(settings)
        console.print(table)

    return render_rich(_render)


def render_report(report: SyncReport) -> str:
    """Render per-phase counts and the first few errors of a sync run."""

    def _render(console: Console) -> None:
        status = "[green]completed[/green]" if report.success else "[yellow]completed with errors[/yellow]"
        console.print(f"[bold]Sync {status}[/bold]")

        table = Table(show_header=True)
        table.add_column("Phase", style="cyan")
        table.add_column("Result")
        for phase in report.phases:
            table.add_row(phase.phase, phase.summary())
        console.print(table)

        errors = [err for phase in report.phases for err in phase.errors]
        if report.error is not None:
            errors.insert(0, report.error)
        if errors:
            console.print("[red]Errors:[/red]")
            for err in errors[:MAX_ERROR_ROWS]:
                console.print(f"  ! {format_result(err)}", markup=False, highlight=False)
            if len(errors) > MAX_ERROR_ROWS:
                console.print(f"  ... and {len(errors) - MAX_ERROR_ROWS} more")

    return render_rich(_render)


def render_rich(render_fn: Callable[[Console], None]) -> str:
    """Render a Rich layout to an ANSI string without printing live."""

    terminal_size = shutil.get_terminal_size(fallback=(80, 24))
    # Clamp to a reasonable minimum so Rich does not choke on ultra-small widths.
    width = max(20, terminal_size.columns)
    height = max(10, terminal_size.lines)

    console = Console(
        record=True,
        force_terminal=True,
        color_system="auto",
        width=width,
        height=height,
        file=StringIO(),
    )
    render_fn(console)
    return console.export_text(clear=False, styles=True)


__all__ = [
    "SlashCommand",
    "SlashCommandContext",
    "CommandRouter",
    "describe_sync_state",
    "format_result",
    "render_help_table",
    "render_report",
    "render_rich",
]
