"""Keep the topic directory in sync with the Telegram forum.

When a topic is created (or renamed) in the target chat, Telegram posts a
service message. We record its title against the topic's thread id so the
forwarder can route by name.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from telethon import TelegramClient, events, utils
from telethon.tl.types import (
    MessageActionTopicCreate,
    MessageActionTopicEdit,
    MessageService,
    UpdateNewChannelMessage,
)

from adapters.sqlite_storage import SQLiteStorage

LOGGER = logging.getLogger(__name__)


def _thread_id_from_message(message) -> Optional[int]:
    reply_to = getattr(message, "reply_to", None)
    if not reply_to:
        return None
    top_id = getattr(reply_to, "reply_to_top_id", None)
    if top_id:
        return top_id
    return getattr(reply_to, "reply_to_msg_id", None)


def topic_update_from_message(message) -> Optional[Tuple[str, int]]:
    """Return (title, thread_id) for topic create/rename service messages."""

    action = getattr(message, "action", None)
    if isinstance(action, MessageActionTopicCreate):
        # The creation message itself is the topic's top message.
        return action.title, message.id
    if isinstance(action, MessageActionTopicEdit) and action.title:
        thread_id = _thread_id_from_message(message)
        if thread_id is not None:
            return action.title, thread_id
    return None


def register_topic_tracker(client: TelegramClient, storage: SQLiteStorage, chat_id: int) -> None:
    """Listen for topic service messages in `chat_id` and store them."""

    @client.on(events.Raw(UpdateNewChannelMessage))
    async def handler(update) -> None:
        message = update.message
        if not isinstance(message, MessageService):
            return
        if utils.get_peer_id(message.peer_id) != chat_id:
            return
        topic = topic_update_from_message(message)
        if topic is None:
            return
        title, thread_id = topic
        try:
            storage.save_topic(title, thread_id)
        except Exception:
            LOGGER.exception("Failed to store topic %s", title)
            return
        LOGGER.info("Topic %s mapped to thread %s", title, thread_id)
