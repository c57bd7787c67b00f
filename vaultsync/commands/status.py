"""Slash command for runtime status."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..slash_commands import SlashCommand, SlashCommandContext, render_rich

SECTION_ALIASES: Dict[str, Sequence[str]] = {
    "info": ("info", "summary"),
    "diagnostics": ("diagnostics", "diag", "diags"),
    "agents": ("agents", "agent"),
}
DEFAULT_MAX_ROWS = 5


def _resolve_sections(args: Iterable[str]) -> Tuple[List[str], bool]:
    """Return sections to render and whether all rows should be shown."""

    normalized = [arg.strip().lower() for arg in args]
    show_all = any(arg in {"--all", "-a", "all"} for arg in normalized)

    requested = [
        section
        for section, aliases in SECTION_ALIASES.items()
        if any(arg in aliases for arg in normalized)
    ]
    return requested or list(SECTION_ALIASES.keys()), show_all


def _limited(rows: Sequence[Sequence[str]], show_all: bool) -> Tuple[Sequence[Sequence[str]], str]:
    if show_all or len(rows) <= DEFAULT_MAX_ROWS:
        return rows, ""
    return rows[:DEFAULT_MAX_ROWS], f"[dim]Showing {DEFAULT_MAX_ROWS}/{len(rows)}. Add '--all' for the full list.[/dim]"


def _handler(context: SlashCommandContext, args: List[str]) -> str:
    config = context.config
    sections, show_all = _resolve_sections(args)

    def _render_summary(console: Console) -> None:
        sync_cfg = config.merged.get("sync", {}) if config.merged else {}
        container = sync_cfg.get("container_name") or "(not set)"
        base = sync_cfg.get("base_directory") or "(container root)"

        info = Table.grid(padding=(0, 1))
        info.add_column("Key", style="bold", no_wrap=True)
        info.add_column("Value", overflow="fold")
        info.add_row("Vault", str(config.vault_dir))
        info.add_row("Status", config.status)
        info.add_row("Config files", str(len(config.files_loaded)))
        info.add_row("Log path", str(config.log_path or "(not initialized)"))
        info.add_row("Container", f"{container} ({base})")
        console.print(Panel(info, title="Runtime Status", border_style="green", padding=(0, 1)))

    def _render_diagnostics(console: Console) -> None:
        if not config.diagnostics:
            console.print(Panel("[green]No diagnostics reported.", title="Diagnostics", border_style="red"))
            return

        table = Table(show_header=True, header_style="bold red", box=box.SIMPLE, pad_edge=False)
        table.add_column("Lvl", style="red", no_wrap=True)
        table.add_column("Message", overflow="fold", ratio=2)
        table.add_column("Source", overflow="fold", ratio=1)

        rows = [
            (diag.level.upper(), diag.message, str(diag.source or config.vault_dir))
            for diag in config.diagnostics
        ]
        shown, footer = _limited(rows, show_all)
        for row in shown:
            table.add_row(*row)
        console.print(Panel(table, title="Diagnostics", border_style="red", padding=(0, 1)))
        if footer:
            console.print(footer)

    def _render_agents(console: Console) -> None:
        if not config.agent_state:
            console.print(Panel("[green]No agent records yet.", title="Agents", border_style="blue"))
            return

        table = Table(show_header=True, header_style="bold blue", box=box.SIMPLE, pad_edge=False)
        table.add_column("Agent", style="cyan", overflow="fold", ratio=1)
        table.add_column("Status", style="green", no_wrap=True)
        table.add_column("Detail", overflow="fold", ratio=2)

        rows = []
        for name in sorted(config.agent_state):
            state = config.agent_state.get(name) or {}
            rows.append(
                (
                    name,
                    str(state.get("status", "unknown")).upper(),
                    str(state.get("detail") or "(no detail)"),
                )
            )
        shown, footer = _limited(rows, show_all)
        for row in shown:
            table.add_row(*row)
        console.print(Panel(table, title="Agents", border_style="blue", padding=(0, 1)))
        if footer:
            console.print(footer)

    renderers = {
        "info": _render_summary,
        "diagnostics": _render_diagnostics,
        "agents": _render_agents,
    }

    def _render(console: Console) -> None:
        for section in sections:
            renderers[section](console)

    return render_rich(_render)


COMMAND = SlashCommand(
    name="status",
    description="Show vault, container, and configuration diagnostics. Usage: /status [info|diagnostics|agents] [--all]",
    handler=_handler,
)
