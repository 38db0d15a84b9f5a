from __future__ import annotations

import asyncio
from typing import Iterable, Optional

from core.accounting import ErrorAccounting
from core.escalation import Escalator
from core.health import HEALTH_CHECK_FAILED, HealthMonitor


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class ProbeSession:
    """Session whose liveness probe follows a script of True/False results."""

    def __init__(self, results: Iterable[bool]) -> None:
        self._results = list(results)
        self.probes = 0

    async def probe_liveness(self) -> None:
        self.probes += 1
        ok = self._results.pop(0) if self._results else True
        if not ok:
            raise ConnectionError("presence update failed")


class FakeEscalator:
    def __init__(self) -> None:
        self.calls: list[tuple[Optional[BaseException], str]] = []

    async def escalate(self, error: Optional[BaseException], classification: str) -> None:
        self.calls.append((error, classification))


class RecordingAudit:
    def __init__(self) -> None:
        self.crashes = []

    def append_crash_record(self, record) -> None:
        self.crashes.append(record)


def test_single_failure_only_counts() -> None:
    accounting = ErrorAccounting(max_failures=3, clock=FakeClock())
    escalator = FakeEscalator()
    monitor = HealthMonitor(accounting, escalator, interval=60, timeout=1)

    escalated = asyncio.run(monitor.check(ProbeSession([False])))

    assert escalated is False
    assert accounting.count == 1
    assert escalator.calls == []


def test_success_resets_counter() -> None:
    accounting = ErrorAccounting(max_failures=3, clock=FakeClock())
    escalator = FakeEscalator()
    monitor = HealthMonitor(accounting, escalator, interval=60, timeout=1)
    session = ProbeSession([False, False, True, False])

    async def scenario() -> None:
        for _ in range(4):
            await monitor.check(session)

    asyncio.run(scenario())
    assert accounting.count == 1
    assert escalator.calls == []


def test_three_failures_escalate_once() -> None:
    accounting = ErrorAccounting(max_failures=3, clock=FakeClock())
    escalator = FakeEscalator()
    monitor = HealthMonitor(accounting, escalator, interval=60, timeout=1)
    session = ProbeSession([False, False, False])

    async def scenario() -> list[bool]:
        return [await monitor.check(session) for _ in range(3)]

    assert asyncio.run(scenario()) == [False, False, True]
    assert len(escalator.calls) == 1
    assert escalator.calls[0][1] == HEALTH_CHECK_FAILED


def test_hanging_probe_counts_as_failure() -> None:
    class HangingSession:
        async def probe_liveness(self) -> None:
            await asyncio.sleep(10)

    accounting = ErrorAccounting(max_failures=3, clock=FakeClock())
    monitor = HealthMonitor(accounting, FakeEscalator(), interval=60, timeout=0.01)

    asyncio.run(monitor.check(HangingSession()))
    assert accounting.count == 1


def test_armed_monitor_escalates_and_exits_after_grace_delay() -> None:
    accounting = ErrorAccounting(max_failures=3, clock=FakeClock())
    audit = RecordingAudit()
    events: list[tuple[str, float]] = []

    async def scenario() -> None:
        exited = asyncio.Event()

        async def fake_sleep(seconds: float) -> None:
            events.append(("sleep", seconds))

        def fake_exit(code: int) -> None:
            events.append(("exit", code))
            exited.set()

        escalator = Escalator(None, None, audit, grace_seconds=2, exit_func=fake_exit, sleep=fake_sleep)
        monitor = HealthMonitor(accounting, escalator, interval=0, timeout=1)
        session = ProbeSession([False, False, False, True])
        monitor.arm(session)
        await asyncio.wait_for(exited.wait(), timeout=5)
        # The loop stops after escalating instead of probing again.
        await asyncio.sleep(0.01)
        assert session.probes == 3
        assert not monitor.armed

    asyncio.run(scenario())
    assert events == [("sleep", 2), ("exit", 1)]
    assert len(audit.crashes) == 1
    assert audit.crashes[0].classification == HEALTH_CHECK_FAILED


def test_disarm_stops_probing() -> None:
    accounting = ErrorAccounting(max_failures=3, clock=FakeClock())
    monitor = HealthMonitor(accounting, FakeEscalator(), interval=0.01, timeout=1)
    session = ProbeSession([])

    async def scenario() -> None:
        monitor.arm(session)
        await asyncio.sleep(0.05)
        monitor.disarm()
        probes = session.probes
        await asyncio.sleep(0.05)
        assert session.probes == probes

    asyncio.run(scenario())
    assert not monitor.armed
