"""Telegram client factory for botwarden.

One Telethon client is created per configured bot. We explicitly manage each
client's lifecycle (start/disconnect) so it is obvious when sessions are
created and when they end.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, Tuple

from dotenv import load_dotenv
from telethon import TelegramClient

from core.config import IdentityConfig
from core.models import Identity


def _api_credentials() -> Tuple[int, str]:
    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    # Fail fast on missing credentials to avoid an ambiguous login failure.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")
    return int(api_id), api_hash


def build_bot_clients(configs: Iterable[IdentityConfig]) -> Dict[Identity, Tuple[TelegramClient, str]]:
    """Create an unstarted client and look up the token for each Telegram bot.

    API_ID/API_HASH and the per-bot tokens (named by ``token_env``) are read
    via python-dotenv to keep secrets out of the repo. Session files are named
    ``<SESSION_NAME>-<self_id>``.
    """

    load_dotenv()
    api_id, api_hash = _api_credentials()
    session_prefix = os.getenv("SESSION_NAME", "botwarden")
    logger = logging.getLogger(__name__)

    clients: Dict[Identity, Tuple[TelegramClient, str]] = {}
    for config in configs:
        identity = config.identity
        if identity.platform != "telegram":
            logger.info("Skipping %s: no client for this platform", identity)
            continue
        if not config.token_env:
            raise RuntimeError(f"token_env is required for {identity}")
        token = os.getenv(config.token_env)
        if not token:
            raise RuntimeError(f"{config.token_env} is not set for {identity}")
        logger.info("Initializing Telegram client for %s", identity)
        clients[identity] = (
            TelegramClient(f"{session_prefix}-{identity.self_id}", api_id, api_hash),
            token,
        )
    return clients
