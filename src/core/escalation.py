"""Fatal escalation: alert the operator, write a crash record, exit.

Escalation is a one-way path. Only the first call acts; later calls wait for
that first shutdown to finish instead of starting another.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
import sys
import traceback
from typing import Awaitable, Callable, Optional

from core.formatting import format_alert
from core.models import CrashRecord
from core.ports import AuditLogPort, SenderPort

LOGGER = logging.getLogger(__name__)

SHUTDOWN_EXIT_CODE = 1


def _error_detail(error: Optional[BaseException]) -> str:
    if error is None:
        return "No stack trace"
    lines = traceback.format_exception(type(error), error, error.__traceback__)
    return "".join(lines).strip() or repr(error)


class Escalator:
    def __init__(
        self,
        sender: Optional[SenderPort],
        admin_chat_id: Optional[int],
        audit: AuditLogPort,
        grace_seconds: float = 3.0,
        exit_func: Callable[[int], object] = sys.exit,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._sender = sender
        self._admin_chat_id = admin_chat_id
        self._audit = audit
        self._grace_seconds = grace_seconds
        self._exit = exit_func
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def escalated(self) -> bool:
        return self._task is not None

    async def escalate(self, error: Optional[BaseException], classification: str) -> None:
        """Start the shutdown sequence, or join the one already running.

        The sequence runs in its own task and callers wait on it through a
        shield, so cancelling a caller (a disarmed health monitor, say) never
        stops the process from exiting.
        """

        if self._task is None:
            self._task = asyncio.create_task(
                self._shutdown(error, classification),
                name="fatal-escalation",
            )
        else:
            LOGGER.info("Escalation already in progress, ignoring %s", classification)
        await self.wait()

    async def wait(self) -> None:
        """Block until the running escalation has finished."""

        if self._task is not None:
            await asyncio.shield(self._task)

    async def _shutdown(self, error: Optional[BaseException], classification: str) -> None:
        timestamp = datetime.now(timezone.utc)
        message = str(error) if error is not None and str(error) else "No error message"
        LOGGER.critical("Fatal WhatsApp connection failure (%s): %s", classification, message)

        await self._notify_admin(timestamp, classification, message)
        self._write_crash_record(
            CrashRecord(
                timestamp=timestamp,
                classification=classification,
                message=message,
                detail=_error_detail(error),
            )
        )

        LOGGER.info("Shutting down in %.1fs", self._grace_seconds)
        await self._sleep(self._grace_seconds)
        self._exit(SHUTDOWN_EXIT_CODE)

    async def _notify_admin(self, timestamp: datetime, classification: str, message: str) -> None:
        if self._sender is None or self._admin_chat_id is None:
            LOGGER.warning("No admin chat configured; cannot send the critical error alert")
            return
        try:
            await self._sender.send_text(self._admin_chat_id, format_alert(timestamp, classification, message))
        except Exception:
            LOGGER.exception("Failed to notify admin via Telegram")

    def _write_crash_record(self, record: CrashRecord) -> None:
        try:
            self._audit.append_crash_record(record)
        except Exception:
            LOGGER.exception("Failed to write crash record")
