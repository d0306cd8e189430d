"""Application entry point for botwarden."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Dict, List, Optional, Tuple

from art import tprint
from dotenv import load_dotenv
from rich.console import Console
from telethon import TelegramClient, events

import settings
from adapters.delivery_batcher import DeliveryBatcher
from adapters.reporting import (
    build_assignees_table,
    build_bots_table,
    build_commands_table,
    build_config_table,
)
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_commands import list_bot_commands
from adapters.telegram_mapper import build_message, delivery_fingerprint
from client import build_bot_clients
from core.config import EngineConfig, build_identity_configs
from core.models import Delivery, Identity
from core.processor import ArbitrationProcessor
from core.registry import IdentityRegistry

NAME = "BOTWARDEN"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    names = [bot.get("token_env") for bot in settings.BOTS_CONFIG if bot.get("token_env")]
    redact_cfg = config.get("redact", {}) if config else {}
    if redact_cfg.get("enabled", False):
        names.extend(redact_cfg.get("patterns", []))
    values = []
    for name in names:
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/botwarden.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_registry() -> IdentityRegistry:
    return IdentityRegistry(build_identity_configs(settings.BOTS_CONFIG))


class _Session:
    """Started bot clients plus what we learned about them from get_me()."""

    def __init__(self) -> None:
        self.clients: Dict[Identity, TelegramClient] = {}
        self.online: Dict[Identity, bool] = {}
        # lower-cased username -> self_id, for resolving @mentions
        self.bot_usernames: Dict[str, str] = {}
        # self_id -> username, for labels
        self.labels: Dict[str, str] = {}

    async def start(self, registry: IdentityRegistry) -> None:
        logger = logging.getLogger(__name__)
        for identity, (client, token) in build_bot_clients(registry.identities()).items():
            try:
                await client.start(bot_token=token)
                me = await client.get_me()
            except Exception:
                logger.exception("Failed to start bot %s", identity)
                self.online[identity] = False
                continue

            actual = Identity(platform=identity.platform, self_id=str(me.id))
            logger.info("Bot online: %s", actual)
            if registry.config_for(actual.platform, actual.self_id) is None:
                logger.warning("Bot %s is not configured; add it to config.json to manage it", actual)
            self.clients[actual] = client
            self.online[identity] = True
            if me.username:
                self.bot_usernames[me.username.lower()] = actual.self_id
                self.labels[actual.self_id] = me.username

    async def stop(self) -> None:
        for client in self.clients.values():
            await client.disconnect()


def _make_handler(identity: Identity, session: _Session, batcher: DeliveryBatcher):
    logger = logging.getLogger(__name__)

    async def handler(event) -> None:
        try:
            message = await build_message(event.message, identity, session.bot_usernames)
            await batcher.submit(delivery_fingerprint(event.message), Delivery(identity, message))
        except Exception:
            # Fail open: the message goes through unmanaged.
            logger.exception("Error while processing message for %s", identity)

    return handler


async def _serve(registry: IdentityRegistry) -> None:
    logger = logging.getLogger(__name__)

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()

    engine_config = EngineConfig(
        manage_direct_messages=settings.MANAGE_DIRECT_MESSAGES,
        restore_on_shutdown=settings.RESTORE_ON_SHUTDOWN,
    )
    processor = ArbitrationProcessor(
        registry=registry,
        store=storage,
        sink=storage,
        engine_config=engine_config,
    )
    batcher = DeliveryBatcher(processor.handle, window_seconds=settings.BATCH_WINDOW_MS / 1000)

    session = _Session()
    await session.start(registry)
    if not session.clients:
        raise RuntimeError("No bot could be started")

    # One handler per bot; all filtering happens in the core processor.
    for identity, client in session.clients.items():
        client.add_event_handler(_make_handler(identity, session, batcher), events.NewMessage(incoming=True))

    logger.info("Ready: %s of %s bots online", len(session.clients), len(registry))
    try:
        await asyncio.gather(*(client.run_until_disconnected() for client in session.clients.values()))
    finally:
        await batcher.drain()
        if engine_config.restore_on_shutdown:
            processor.restore()
        await session.stop()
        logger.info("Stopped")


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting botwarden")
    registry = _build_registry()
    logger.info("%s bots are configured", len(registry))

    try:
        asyncio.run(_serve(registry))
    except KeyboardInterrupt:
        logger.info("Interrupted")


def _show_config() -> None:
    registry = _build_registry()
    console = Console()
    if not len(registry):
        console.print("No bots are configured")
        return
    console.print(build_config_table(registry.identities()))


def _show_bots() -> None:
    registry = _build_registry()

    async def _collect() -> _Session:
        session = _Session()
        await session.start(registry)
        await session.stop()
        return session

    session = asyncio.run(_collect())
    Console().print(build_bots_table(registry.identities(), session.online, session.labels))


def _show_commands() -> None:
    registry = _build_registry()
    logger = logging.getLogger(__name__)

    async def _collect() -> Dict[Identity, List[Tuple[str, Optional[str]]]]:
        session = _Session()
        await session.start(registry)
        commands: Dict[Identity, List[Tuple[str, Optional[str]]]] = {}
        try:
            for identity, client in session.clients.items():
                try:
                    commands[identity] = await list_bot_commands(client)
                except Exception:
                    logger.exception("Could not list commands for %s", identity)
                    commands[identity] = []
        finally:
            await session.stop()
        return commands

    Console().print(build_commands_table(asyncio.run(_collect())))


def _show_assignees(platform: Optional[str] = None) -> None:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    Console().print(build_assignees_table(storage.list_assignees(platform), {}))


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="botwarden")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start arbitrating channel assignees")
    subparsers.add_parser("bots", help="Show configured bots and whether they can log in")
    subparsers.add_parser("config", help="Show the filter configuration of every bot")
    subparsers.add_parser("commands", help="Show the commands each bot advertises")
    assignees_parser = subparsers.add_parser("assignees", help="Show which bot owns each channel")
    assignees_parser.add_argument("--platform", help="Only show channels of this platform, e.g. telegram")

    args = parser.parse_args(argv)
    if args.command == "config":
        _show_config()
        return
    if args.command == "bots":
        _configure_logging()
        _show_bots()
        return
    if args.command == "commands":
        _configure_logging()
        _show_commands()
        return
    if args.command == "assignees":
        _show_assignees(args.platform)
        return
    _run()


if __name__ == "__main__":
    main()
