"""Ports (interfaces) used by the core.

Ports define the minimal contracts for the WhatsApp session, credential
persistence, Telegram delivery and audit logging so that the core can be
reused with different backends and tested with fakes.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

from core.models import CrashRecord, Message

# Event names emitted by a session.
CREDS_UPDATE = "creds.update"
CONNECTION_UPDATE = "connection.update"
MESSAGES_UPSERT = "messages.upsert"

Credentials = dict


class SessionPort(Protocol):
    """A live WhatsApp session created by a SessionProvider."""

    def add_listener(self, event: str, handler: Callable[..., Any]) -> None:
        ...

    def remove_listener(self, event: str, handler: Callable[..., Any]) -> None:
        ...

    async def probe_liveness(self) -> None:
        """Raise on failure (e.g. a presence update that did not go through)."""
        ...

    async def download_media(self, message: Message) -> bytes:
        ...

    async def close(self) -> None:
        ...


class MediaSource(Protocol):
    """Anything that can fetch the media bytes behind a message."""

    async def download_media(self, message: Message) -> bytes:
        ...


class SessionProvider(Protocol):
    """Creates WhatsApp sessions from persisted credentials."""

    async def open(self, credentials: Optional[Credentials]) -> SessionPort:
        ...


class CredentialStore(Protocol):
    def load(self) -> Optional[Credentials]:
        ...

    def save(self, credentials: Credentials) -> None:
        ...

    def clear(self) -> None:
        ...


class SenderPort(Protocol):
    """Telegram send operations. Every method raises TransportError on failure."""

    async def send_text(self, chat_id: int, text: str, topic_id: Optional[int] = None) -> None:
        ...

    async def send_photo(
        self,
        chat_id: int,
        photo: bytes,
        caption: str,
        topic_id: Optional[int] = None,
    ) -> None:
        ...

    async def send_document(
        self,
        chat_id: int,
        document: bytes,
        file_name: Optional[str],
        mimetype: Optional[str],
        caption: str,
        topic_id: Optional[int] = None,
    ) -> None:
        ...


class TopicDirectory(Protocol):
    def lookup(self, name: str) -> Optional[int]:
        ...


class AuditLogPort(Protocol):
    """Best-effort audit sink. Callers must not let failures propagate."""

    def append_filter_match(self, filter_name: str, message: Message) -> None:
        ...

    def append_inbound_message(self, message: Message) -> None:
        ...

    def append_crash_record(self, record: CrashRecord) -> None:
        ...


class ChallengePresenter(Protocol):
    """Displays and clears the login QR challenge."""

    def show(self, qr: str) -> None:
        ...

    def clear(self) -> None:
        ...
