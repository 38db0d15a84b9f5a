"""Periodic liveness probing for an open WhatsApp session."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from core.accounting import ErrorAccounting
from core.escalation import Escalator
from core.ports import SessionPort

LOGGER = logging.getLogger(__name__)

HEALTH_CHECK_FAILED = "health check failed"


class HealthMonitor:
    """Probe the session every `interval` seconds while it is open.

    A failed probe only counts toward the shared failure window; escalation
    happens once the window's limit is reached.
    """

    def __init__(
        self,
        accounting: ErrorAccounting,
        escalator: Escalator,
        interval: float = 60.0,
        timeout: float = 10.0,
    ) -> None:
        self._accounting = accounting
        self._escalator = escalator
        self._interval = interval
        self._timeout = timeout
        self._task: Optional[asyncio.Task] = None

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self, session: SessionPort) -> None:
        self.disarm()
        self._task = asyncio.create_task(self._run(session), name="whatsapp-health-monitor")

    def disarm(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self, session: SessionPort) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if await self.check(session):
                return

    async def check(self, session: SessionPort) -> bool:
        """Run one probe. Returns True once the failure limit has escalated."""

        try:
            await asyncio.wait_for(session.probe_liveness(), timeout=self._timeout)
        except Exception as exc:
            count = await self._accounting.record_failure()
            LOGGER.warning(
                "Health check failed (%s/%s): %r",
                count,
                self._accounting.max_failures,
                exc,
            )
            if self._accounting.limit_reached:
                await self._escalator.escalate(exc, HEALTH_CHECK_FAILED)
                return True
            return False

        await self._accounting.reset()
        LOGGER.debug("Health check passed")
        return False
