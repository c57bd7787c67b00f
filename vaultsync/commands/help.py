"""Slash command for listing commands and the current sync state."""

from __future__ import annotations

from typing import List

from ..slash_commands import (
    SlashCommand,
    SlashCommandContext,
    describe_sync_state,
    render_help_table,
)


def _handler(context: SlashCommandContext, args: List[str]) -> str:
    settings = context.sync_settings
    if not args:
        return render_help_table(context.router.commands(), settings)

    command = context.router.get(args[0])
    if command is None:
        return f"[help] Unknown command '/{args[0].lstrip('/')}'. Use /help to list commands."
    lines = [f"/{command.name}: {command.description}"]
    if command.usage:
        lines.extend(["", command.usage])
    lines.extend(["", describe_sync_state(settings)])
    return "\n".join(lines)


COMMAND = SlashCommand(
    name="help",
    description="List slash commands and whether sync is active.",
    handler=_handler,
    usage="/help           List commands\n/help <command>  Show usage for one command",
)
