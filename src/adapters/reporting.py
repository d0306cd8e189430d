"""Human-readable reports for the CLI.

Keeping formatting here prevents drift between commands and keeps labels
consistent regardless of which report shows them.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence, Tuple

from rich.table import Table
from rich.text import Text

from core.config import FilterBlock, IdentityConfig, KeywordPolicy
from core.models import Identity

EMPTY = "(none)"


def format_identity_label(identity: Identity, usernames: Mapping[str, str]) -> str:
    """Return a human-friendly identity label, using @usernames if known."""

    username = usernames.get(identity.self_id)
    if not username:
        return str(identity)
    return f"@{username} ({identity})"


def _flag(enabled: bool) -> Text:
    return Text("on", style="green") if enabled else Text("off", style="red")


def summarize_source_filter(block: FilterBlock) -> str:
    if not block.enabled:
        return "off"
    if not block.rules:
        return f"{block.mode.value}: {EMPTY}"
    rules = ", ".join(f"{rule.kind}={rule.value}" for rule in block.rules)
    return f"{block.mode.value}: {rules}"


def summarize_command_filter(block: FilterBlock) -> str:
    if not block.enabled:
        return "off (all commands)"
    if not block.rules:
        return "on: (none, every command rejected)"
    # The mode is shown as configured even though the list is an allow-list.
    return f"{block.mode.value}: {', '.join(block.rules)}"


def summarize_keyword_filter(block: FilterBlock, policy: KeywordPolicy) -> str:
    if not block.enabled:
        if policy == KeywordPolicy.PERMISSIVE:
            return "off (all messages)"
        return "off (no messages)"
    if not block.rules:
        return "on: (none, never matches)"
    return f"{block.mode.value}: {', '.join(block.rules)}"


def build_bots_table(
    configs: Iterable[IdentityConfig],
    online: Mapping[Identity, bool],
    usernames: Mapping[str, str],
) -> Table:
    """Configured identities with their connection status."""

    table = Table(title="Configured bots")
    table.add_column("#", justify="right")
    table.add_column("bot")
    table.add_column("managed")
    table.add_column("status")
    for index, config in enumerate(configs, start=1):
        is_online = online.get(config.identity, False)
        table.add_row(
            str(index),
            format_identity_label(config.identity, usernames),
            _flag(config.enabled),
            Text("online", style="green") if is_online else Text("offline", style="red"),
        )
    return table


def build_config_table(configs: Iterable[IdentityConfig]) -> Table:
    """Per-identity filter summary in configuration order."""

    table = Table(title="Bot configuration")
    table.add_column("bot")
    table.add_column("managed")
    table.add_column("mode")
    table.add_column("source filter")
    table.add_column("command filter")
    table.add_column("keyword filter")
    for config in configs:
        table.add_row(
            str(config.identity),
            _flag(config.enabled),
            config.keyword_policy.value,
            summarize_source_filter(config.source_filter),
            summarize_command_filter(config.command_filter),
            summarize_keyword_filter(config.keyword_filter, config.keyword_policy),
        )
    return table


def build_commands_table(commands: Mapping[Identity, Sequence[Tuple[str, Optional[str]]]]) -> Table:
    """Commands each bot advertises, for filling command allow-lists."""

    table = Table(title="Available commands")
    table.add_column("bot")
    table.add_column("command")
    table.add_column("description")
    for identity, entries in commands.items():
        if not entries:
            table.add_row(str(identity), EMPTY, "")
            continue
        for name, description in entries:
            table.add_row(str(identity), f"/{name}", description or "")
    return table


def build_assignees_table(assignees: Mapping[str, str], usernames: Mapping[str, str]) -> Table:
    """Channels that currently have an owner."""

    table = Table(title="Channel assignees")
    table.add_column("channel")
    table.add_column("assignee")
    for channel_key, self_id in sorted(assignees.items()):
        username = usernames.get(self_id)
        table.add_row(channel_key, f"@{username} ({self_id})" if username else self_id)
    return table
