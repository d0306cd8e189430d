"""Read-only listing of the commands a bot advertises to Telegram.

Advisory only: used to help fill command allow-lists, never consulted by
the decision engine.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from telethon import TelegramClient, functions, types

LOGGER = logging.getLogger(__name__)


async def list_bot_commands(client: TelegramClient) -> List[Tuple[str, Optional[str]]]:
    """Return (command, description) pairs registered for the default scope."""

    result = await client(
        functions.bots.GetBotCommandsRequest(
            scope=types.BotCommandScopeDefault(),
            lang_code="",
        )
    )
    commands = [(command.command, command.description or None) for command in result]
    LOGGER.debug("Fetched %s commands", len(commands))
    return commands
