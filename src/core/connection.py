"""WhatsApp session lifecycle.

State machine:

    CONNECTING -> OPEN
    CONNECTING -> CLOSED_RETRYABLE -> CONNECTING   (restart required)
    CONNECTING/OPEN -> CLOSED_FATAL                 (logged out, unknown, too many failures)

Reconnection is an explicit loop rather than recursion. Each attempt opens a
fresh session and tears down every listener it registered before the next
attempt starts.
"""

from __future__ import annotations

import asyncio
from enum import Enum, IntEnum
import logging
from typing import Callable, List, Optional

from core.accounting import ErrorAccounting
from core.errors import ConnectionClosedError
from core.escalation import Escalator
from core.health import HealthMonitor
from core.models import ConnectionUpdate, Message
from core.ports import (
    CONNECTION_UPDATE,
    CREDS_UPDATE,
    MESSAGES_UPSERT,
    ChallengePresenter,
    CredentialStore,
    Credentials,
    SessionPort,
    SessionProvider,
)

LOGGER = logging.getLogger(__name__)

TOO_MANY_FAILURES = "too many consecutive connection failures"
LOGGED_OUT = "logged out"
CLOSED_UNKNOWN = "connection closed for unknown reasons"

# Only real-time deliveries are relayed; history sync batches arrive as "append".
NOTIFY = "notify"


class SessionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED_RETRYABLE = "closed_retryable"
    CLOSED_FATAL = "closed_fatal"


class DisconnectReason(IntEnum):
    """WhatsApp disconnect status codes the bridge acts on."""

    LOGGED_OUT = 401
    RESTART_REQUIRED = 515


def classify_disconnect(status_code: Optional[int]) -> Optional[DisconnectReason]:
    """Map a disconnect status code to a known reason, or None if unknown."""

    if status_code is None:
        return None
    try:
        return DisconnectReason(status_code)
    except ValueError:
        return None


class ConnectionManager:
    """Owns the WhatsApp session and decides what happens after it closes."""

    def __init__(
        self,
        provider: SessionProvider,
        credentials: CredentialStore,
        accounting: ErrorAccounting,
        escalator: Escalator,
        health_monitor: HealthMonitor,
        on_messages: Callable[[List[Message]], object],
        challenge: Optional[ChallengePresenter] = None,
        reconnect_delay: float = 0.0,
    ) -> None:
        self._provider = provider
        self._credentials = credentials
        self._accounting = accounting
        self._escalator = escalator
        self._health = health_monitor
        self._on_messages = on_messages
        self._challenge = challenge
        self._reconnect_delay = reconnect_delay
        self._state = SessionState.CONNECTING
        self._session: Optional[SessionPort] = None
        self._opened: Optional[asyncio.Future] = None
        self._task: Optional[asyncio.Task] = None
        self.attempts = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[SessionPort]:
        return self._session

    async def start(self) -> SessionPort:
        """Connect and return once the session is open.

        Raises ConnectionClosedError if the lifecycle ended fatally before the
        first open (escalation has already run by then).
        """

        if self._task is None:
            self._opened = asyncio.get_running_loop().create_future()
            self._task = asyncio.create_task(self.run(), name="whatsapp-connection")

        await asyncio.wait({self._opened, self._task}, return_when=asyncio.FIRST_COMPLETED)
        if self._opened.done():
            return self._opened.result()
        self._task.result()
        raise ConnectionClosedError("WhatsApp session closed before it opened")

    async def wait_closed(self) -> None:
        """Block until the lifecycle loop ends."""

        if self._task is not None:
            await self._task

    async def download_media(self, message: Message) -> bytes:
        if self._session is None:
            raise ConnectionClosedError("No open WhatsApp session to download media with")
        return await self._session.download_media(message)

    async def run(self) -> None:
        while True:
            update = await self._attempt()
            if not await self._handle_close(update):
                return
            if self._reconnect_delay > 0:
                await asyncio.sleep(self._reconnect_delay)
            LOGGER.info("Reconnecting...")

    async def _attempt(self) -> ConnectionUpdate:
        """Open one session and wait for it to close."""

        self._state = SessionState.CONNECTING
        self.attempts += 1
        try:
            session = await self._provider.open(self._credentials.load())
        except Exception as exc:
            LOGGER.exception("Failed to open WhatsApp session")
            self._clear_challenge()
            return ConnectionUpdate(state="close", error=exc)

        updates: asyncio.Queue = asyncio.Queue()
        listeners = {
            CREDS_UPDATE: self._save_credentials,
            CONNECTION_UPDATE: updates.put_nowait,
            MESSAGES_UPSERT: self._handle_upsert,
        }
        self._session = session
        for event, handler in listeners.items():
            session.add_listener(event, handler)

        try:
            while True:
                update: ConnectionUpdate = await updates.get()
                if update.qr:
                    self._show_challenge(update.qr)
                if update.state == "open":
                    await self._handle_open(session)
                elif update.state == "close":
                    self._clear_challenge()
                    return update
        finally:
            for event, handler in listeners.items():
                session.remove_listener(event, handler)
            self._health.disarm()
            self._session = None
            try:
                await session.close()
            except Exception:
                LOGGER.exception("Failed to close WhatsApp session")

    async def _handle_open(self, session: SessionPort) -> None:
        self._clear_challenge()
        await self._accounting.reset()
        self._state = SessionState.OPEN
        self._health.arm(session)
        LOGGER.info("Connection established")
        if self._opened is not None and not self._opened.done():
            self._opened.set_result(session)

    async def _handle_close(self, update: ConnectionUpdate) -> bool:
        """Classify a disconnect. Returns True when another attempt should follow."""

        if self._escalator.escalated:
            self._state = SessionState.CLOSED_FATAL
            LOGGER.info("Connection closed during shutdown, not reconnecting")
            await self._escalator.wait()
            return False

        reason = classify_disconnect(update.status_code)
        error = update.error or ConnectionError(f"WhatsApp connection closed (status {update.status_code})")

        if reason is DisconnectReason.RESTART_REQUIRED:
            self._state = SessionState.CONNECTING
            count = await self._accounting.record_failure()
            LOGGER.warning(
                "Connection closed, restart required (%s/%s consecutive failures)",
                count,
                self._accounting.max_failures,
            )
            if self._accounting.limit_reached:
                self._state = SessionState.CLOSED_FATAL
                await self._escalator.escalate(error, TOO_MANY_FAILURES)
                return False
            return True

        self._state = SessionState.CLOSED_FATAL
        if reason is DisconnectReason.LOGGED_OUT:
            LOGGER.warning("Logged out. Deleting auth info...")
            try:
                self._credentials.clear()
            except Exception:
                LOGGER.exception("Failed to delete auth info")
            await self._escalator.escalate(error, LOGGED_OUT)
            return False

        LOGGER.error("Connection closed due to %r", error)
        await self._escalator.escalate(error, CLOSED_UNKNOWN)
        return False

    def _save_credentials(self, credentials: Credentials) -> None:
        try:
            self._credentials.save(credentials)
        except Exception:
            LOGGER.exception("Failed to persist WhatsApp credentials")

    def _handle_upsert(self, messages: List[Message], kind: str = NOTIFY) -> None:
        if self._state is not SessionState.OPEN or kind != NOTIFY:
            return
        self._on_messages(list(messages))

    def _show_challenge(self, qr: str) -> None:
        LOGGER.info("QR code received")
        if self._challenge is not None:
            self._challenge.show(qr)

    def _clear_challenge(self) -> None:
        if self._challenge is not None:
            self._challenge.clear()
