"""Application entry point for the WhatsApp-to-Telegram bridge."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from telethon import TelegramClient

import settings
from adapters.credential_store import FileCredentialStore
from adapters.qr_display import QRCodeDisplay
from adapters.session_loader import load_session_provider
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_sender import TelegramBotSender
from adapters.telegram_topics import register_topic_tracker
from client import build_bot_client
from core.accounting import ErrorAccounting
from core.connection import CLOSED_UNKNOWN, ConnectionManager
from core.errors import ConnectionClosedError
from core.escalation import Escalator
from core.filters import MessageFilter, build_filters
from core.forwarder import Forwarder
from core.health import HealthMonitor
from core.processor import MessageDispatcher, MessageProcessor
from core.quotes import QuoteResolver

NAME = "WABRIDGE"
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
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", True):
        return []
    values = []
    for name in redact_cfg.get("patterns", ["BOT_TOKEN", "API_HASH"]):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
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
        path = file_cfg.get("path", "logs/wabridge.log")
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


async def _bridge(
    client: TelegramClient,
    bot_token: str,
    storage: SQLiteStorage,
    filters: list[MessageFilter],
    resolver: QuoteResolver,
) -> None:
    logger = logging.getLogger(__name__)

    await client.start(bot_token=bot_token)
    register_topic_tracker(client, storage, settings.TARGET_CHAT_ID)
    sender = TelegramBotSender(client)
    logger.info("Telegram bot connected")

    policy = settings.CONNECTION
    accounting = ErrorAccounting(
        max_failures=policy.max_consecutive_failures,
        window_seconds=policy.failure_window_seconds,
    )
    escalator = Escalator(
        sender,
        settings.ADMIN_CHAT_ID,
        storage,
        grace_seconds=policy.shutdown_grace_seconds,
    )
    health_monitor = HealthMonitor(
        accounting,
        escalator,
        interval=policy.health_check_interval_seconds,
        timeout=policy.health_check_timeout_seconds,
    )

    # The processor needs the manager (for media downloads) and the manager
    # needs somewhere to dispatch messages, so the handler resolves late.
    processor: Optional[MessageProcessor] = None
    dispatcher = MessageDispatcher(lambda message: processor.handle(message))
    manager = ConnectionManager(
        provider=load_session_provider(settings.SESSION_PROVIDER, settings.SESSION_PROVIDER_OPTIONS),
        credentials=FileCredentialStore(settings.AUTH_DIR),
        accounting=accounting,
        escalator=escalator,
        health_monitor=health_monitor,
        on_messages=dispatcher.dispatch,
        challenge=QRCodeDisplay(settings.QR_PATH),
        reconnect_delay=policy.reconnect_delay_seconds,
    )
    forwarder = Forwarder(sender, storage, manager, settings.FORWARDING)
    processor = MessageProcessor(filters, forwarder, storage, resolver)

    await manager.start()
    logger.info("WhatsApp session is ready. Listening for incoming messages...")
    await manager.wait_closed()
    # The loop only ends through escalation; anything else is still fatal.
    await escalator.escalate(ConnectionClosedError("WhatsApp connection loop ended"), CLOSED_UNKNOWN)


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting wabridge")

    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    seeded = storage.seed_topics(settings.TOPICS)
    if seeded:
        logger.info("%s topics loaded from config", seeded)

    resolver = QuoteResolver(settings.OWN_ID)
    filters = build_filters(settings.FILTERS_CONFIG, resolver)
    logger.info("%s filters are loaded", len(filters))
    if not filters:
        logger.warning("No filters configured; nothing will be forwarded")

    client, bot_token = build_bot_client()
    client.loop.run_until_complete(_bridge(client, bot_token, storage, filters, resolver))


def _show_filters() -> None:
    filters = build_filters(settings.FILTERS_CONFIG)
    if not filters:
        print("No filters configured.")
        return
    for index, message_filter in enumerate(filters, start=1):
        forward = f" [forwards {message_filter.forward}]"
        print(f"{index}. {message_filter.describe()}{forward}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="wabridge")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bridge")
    subparsers.add_parser("filters", help="Print the configured filters and exit")

    args = parser.parse_args(argv)
    if args.command == "filters":
        _show_filters()
        return
    _run()


if __name__ == "__main__":
    main()
