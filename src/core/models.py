"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the WhatsApp session library's message types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class ContentKind(str, Enum):
    """Tag for the content variant carried by a message."""

    TEXT = "text"
    EXTENDED_TEXT = "extended_text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    STICKER = "sticker"
    OTHER = "other"


TEXT_KINDS = frozenset({ContentKind.TEXT, ContentKind.EXTENDED_TEXT})


@dataclass(frozen=True)
class MessageKey:
    """Identifies a message inside a conversation."""

    remote_jid: str
    from_me: bool
    id: str
    participant: Optional[str] = None


@dataclass(frozen=True)
class ContextInfo:
    """Reply metadata pointing at the quoted message."""

    stanza_id: Optional[str] = None
    participant: Optional[str] = None
    remote_jid: Optional[str] = None
    quoted: Optional["MessageContent"] = None


@dataclass(frozen=True)
class MessageContent:
    """Tagged content payload. Only the fields relevant to `kind` are set."""

    kind: ContentKind
    text: Optional[str] = None
    caption: Optional[str] = None
    file_name: Optional[str] = None
    mimetype: Optional[str] = None
    context: Optional[ContextInfo] = None


@dataclass(frozen=True)
class Message:
    """Inbound WhatsApp message as seen by the core."""

    key: MessageKey
    timestamp: datetime
    push_name: Optional[str]
    content: Optional[MessageContent]


@dataclass(frozen=True)
class ConnectionUpdate:
    """Connection state change reported by the session."""

    state: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[BaseException] = None
    qr: Optional[str] = None


@dataclass(frozen=True)
class CrashRecord:
    """Diagnostic record written on fatal escalation."""

    timestamp: datetime
    classification: str
    message: str
    detail: str


def message_text(message: Message) -> str:
    """Return plain or extended text, ignoring media captions."""

    content = message.content
    if content is None or content.kind not in TEXT_KINDS:
        return ""
    return content.text or ""


def display_text(message: Message) -> str:
    """Return the text a human would read: body text or media caption."""

    content = message.content
    if content is None:
        return ""
    if content.kind in TEXT_KINDS:
        return content.text or ""
    return content.caption or ""
