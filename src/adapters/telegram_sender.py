"""Telegram delivery adapter.

Sends through a Telethon client logged in as the bridge bot. Forum topics
are addressed by replying to the topic's top message id.
"""

from __future__ import annotations

import io
from typing import Optional

from telethon import TelegramClient
from telethon.tl.types import DocumentAttributeFilename

from core.errors import TransportError

DEFAULT_PHOTO_NAME = "photo.jpg"
DEFAULT_DOCUMENT_NAME = "document"


def _named_buffer(data: bytes, name: str) -> io.BytesIO:
    # Telethon infers the upload type from the file name.
    buffer = io.BytesIO(data)
    buffer.name = name
    return buffer


class TelegramBotSender:
    """Satisfies the core SenderPort contract."""

    def __init__(self, client: TelegramClient) -> None:
        self._client = client

    async def send_text(self, chat_id: int, text: str, topic_id: Optional[int] = None) -> None:
        try:
            await self._client.send_message(chat_id, text, parse_mode="html", reply_to=topic_id)
        except Exception as exc:
            raise TransportError(f"Failed to send text to {chat_id}: {exc}") from exc

    async def send_photo(
        self,
        chat_id: int,
        photo: bytes,
        caption: str,
        topic_id: Optional[int] = None,
    ) -> None:
        try:
            await self._client.send_file(
                chat_id,
                _named_buffer(photo, DEFAULT_PHOTO_NAME),
                caption=caption,
                parse_mode="html",
                reply_to=topic_id,
            )
        except Exception as exc:
            raise TransportError(f"Failed to send photo to {chat_id}: {exc}") from exc

    async def send_document(
        self,
        chat_id: int,
        document: bytes,
        file_name: Optional[str],
        mimetype: Optional[str],
        caption: str,
        topic_id: Optional[int] = None,
    ) -> None:
        # Telethon derives the mime type from the file name; mimetype is kept
        # in the signature for senders that accept it directly.
        name = file_name or DEFAULT_DOCUMENT_NAME
        try:
            await self._client.send_file(
                chat_id,
                _named_buffer(document, name),
                caption=caption,
                parse_mode="html",
                force_document=True,
                attributes=[DocumentAttributeFilename(name)],
                reply_to=topic_id,
            )
        except Exception as exc:
            raise TransportError(f"Failed to send document to {chat_id}: {exc}") from exc
