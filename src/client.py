"""Telegram bot client factory for wabridge.

We explicitly manage the client's lifecycle (start/disconnect) so it is
obvious when the bot session is created and when it ends.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient


def build_bot_client() -> tuple[TelegramClient, str]:
    """Create a Telethon client and return it with the bot token.

    We read API_ID/API_HASH/BOT_TOKEN via python-dotenv to keep secrets out
    of the repo. The session name defaults to "wabridge-bot".
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")
    bot_token = os.getenv("BOT_TOKEN")
    session_name = os.getenv("BOT_SESSION_NAME", "wabridge-bot")

    # Fail fast on missing credentials rather than starting a half-configured bridge.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")
    if not bot_token:
        raise RuntimeError("Missing BOT_TOKEN in environment")

    logging.getLogger(__name__).info("Initializing Telegram bot client")

    return TelegramClient(session_name, int(api_id), api_hash), bot_token
