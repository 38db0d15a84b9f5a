"""Relay matched WhatsApp messages to Telegram.

Forwarding failures are logged and swallowed here: a failed send says
nothing about the health of the WhatsApp connection, so it must never reach
the reconnect/escalation logic.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from core.config import ForwardingConfig
from core.formatting import UNSUPPORTED_PLACEHOLDER, format_forward_text
from core.models import TEXT_KINDS, ContentKind, Message, display_text
from core.ports import MediaSource, SenderPort, TopicDirectory

LOGGER = logging.getLogger(__name__)


def topic_from_text(text: str, pattern: Optional["re.Pattern[str]"]) -> Optional[str]:
    """Derive a topic name from message text.

    Captured groups are concatenated (whole match if the pattern has none)
    with whitespace and '#' removed, so "#CSC 101" becomes "CSC101".
    """

    if pattern is None or not text:
        return None
    found = pattern.search(text)
    if not found:
        return None
    parts = [part for part in found.groups() if part] or [found.group(0)]
    name = re.sub(r"[\s#]+", "", "".join(parts))
    return name or None


class Forwarder:
    def __init__(
        self,
        sender: SenderPort,
        topics: TopicDirectory,
        media: MediaSource,
        config: ForwardingConfig,
    ) -> None:
        self._sender = sender
        self._topics = topics
        self._media = media
        self._chat_id = config.target_chat_id
        self._include_sender = config.include_sender
        self._topic_pattern = re.compile(config.topic_pattern) if config.topic_pattern else None

    def resolve_topic(self, message: Message) -> Optional[int]:
        name = topic_from_text(display_text(message), self._topic_pattern)
        if name is None:
            return None
        topic_id = self._topics.lookup(name)
        if topic_id is None:
            LOGGER.warning("Topic %s not found, sending without topic", name)
        return topic_id

    def _format(self, message: Message, text: Optional[str]) -> str:
        return format_forward_text(message.push_name, text, self._include_sender)

    async def forward(self, message: Message, topic_source: Optional[Message] = None) -> bool:
        """Send one message to Telegram. Returns False when nothing was sent."""

        content = message.content
        if content is None:
            return False

        try:
            topic_id = self.resolve_topic(topic_source or message)
            if content.kind in TEXT_KINDS:
                await self._sender.send_text(self._chat_id, self._format(message, content.text), topic_id)
            elif content.kind is ContentKind.IMAGE:
                photo = await self._media.download_media(message)
                await self._sender.send_photo(self._chat_id, photo, self._format(message, content.caption), topic_id)
            elif content.kind is ContentKind.DOCUMENT:
                document = await self._media.download_media(message)
                await self._sender.send_document(
                    self._chat_id,
                    document,
                    content.file_name,
                    content.mimetype,
                    self._format(message, content.caption),
                    topic_id,
                )
            else:
                await self._sender.send_text(self._chat_id, self._format(message, UNSUPPORTED_PLACEHOLDER), topic_id)
        except Exception:
            LOGGER.exception("Error forwarding message %s to Telegram", message.key.id)
            return False

        LOGGER.info("Forwarded %s message %s from %s", content.kind.value, message.key.id, message.key.remote_jid)
        return True
