"""Core message processing pipeline.

This module is integration-agnostic. It only relies on ports for audit
logging and on the forwarder for delivery, so the WhatsApp side can be
swapped without changes here.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

from core.filters import FORWARD_QUOTED, MessageFilter
from core.forwarder import Forwarder
from core.models import Message
from core.ports import AuditLogPort
from core.quotes import QuoteResolver

LOGGER = logging.getLogger(__name__)


class MessageProcessor:
    """Orchestrates filter evaluation, match logging and forwarding."""

    def __init__(
        self,
        filters: Iterable[MessageFilter],
        forwarder: Forwarder,
        audit: AuditLogPort,
        resolver: Optional[QuoteResolver] = None,
    ) -> None:
        self._filters = list(filters)
        self._forwarder = forwarder
        self._audit = audit
        self._resolver = resolver or QuoteResolver()

    def _log_inbound(self, message: Message) -> None:
        try:
            self._audit.append_inbound_message(message)
        except Exception:
            LOGGER.exception("Failed to log inbound message %s", message.key.id)

    async def handle(self, message: Message) -> int:
        """Process one inbound message. Returns the number of filters that matched."""

        self._log_inbound(message)
        if message.content is None:
            return 0

        matched = 0
        for message_filter in self._filters:
            if not message_filter.matches(message):
                continue
            matched += 1
            LOGGER.info("Message %s matched filter: %s", message.key.id, message_filter.describe())
            message_filter.record_match(message, self._audit)

            target = message
            if message_filter.forward == FORWARD_QUOTED:
                # Fall back to the reply itself when the quote cannot be rebuilt.
                target = self._resolver.resolve(message) or message
            await self._forwarder.forward(target, topic_source=message)
        return matched


class MessageDispatcher:
    """Run message handlers concurrently, keeping per-conversation order.

    Messages from different chats are handled in parallel; messages from the
    same chat wait for each other so they reach Telegram in arrival order.
    """

    def __init__(self, handler: Callable[[Message], Awaitable[object]]) -> None:
        self._handler = handler
        self._locks: dict[str, asyncio.Lock] = {}
        # Handlers holding or waiting on each lock; the lock is dropped at zero.
        self._users: dict[str, int] = {}
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_conversations(self) -> int:
        return len(self._locks)

    def dispatch(self, messages: Iterable[Message]) -> None:
        for message in messages:
            task = asyncio.create_task(self._run(message))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, message: Message) -> None:
        jid = message.key.remote_jid
        lock = self._locks.setdefault(jid, asyncio.Lock())
        self._users[jid] = self._users.get(jid, 0) + 1
        try:
            async with lock:
                try:
                    await self._handler(message)
                except Exception:
                    LOGGER.exception("Error while processing message %s", message.key.id)
        finally:
            self._users[jid] -= 1
            if not self._users[jid]:
                del self._users[jid]
                del self._locks[jid]

    async def drain(self) -> None:
        """Wait for every dispatched message to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks))
