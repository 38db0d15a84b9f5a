from __future__ import annotations

import asyncio
from typing import Optional

from core.escalation import SHUTDOWN_EXIT_CODE, Escalator
from core.models import CrashRecord


class FakeSender:
    def __init__(self, fail: bool = False) -> None:
        self.texts: list[tuple[int, str]] = []
        self._fail = fail

    async def send_text(self, chat_id: int, text: str, topic_id: Optional[int] = None) -> None:
        if self._fail:
            raise ConnectionError("telegram down")
        self.texts.append((chat_id, text))


class FakeAudit:
    def __init__(self, fail: bool = False) -> None:
        self.crashes: list[CrashRecord] = []
        self._fail = fail

    def append_crash_record(self, record: CrashRecord) -> None:
        if self._fail:
            raise OSError("read-only filesystem")
        self.crashes.append(record)


class Shutdown:
    """Records sleep and exit calls in order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, float]] = []

    async def sleep(self, seconds: float) -> None:
        self.calls.append(("sleep", seconds))

    def exit(self, code: int) -> None:
        self.calls.append(("exit", code))


def _escalator(sender, audit, shutdown: Shutdown, admin: Optional[int] = 42) -> Escalator:
    return Escalator(
        sender,
        admin,
        audit,
        grace_seconds=3,
        exit_func=shutdown.exit,
        sleep=shutdown.sleep,
    )


def test_escalate_notifies_admin_records_crash_and_exits() -> None:
    sender, audit, shutdown = FakeSender(), FakeAudit(), Shutdown()
    escalator = _escalator(sender, audit, shutdown)

    asyncio.run(escalator.escalate(RuntimeError("stream errored"), "logged out"))

    assert len(sender.texts) == 1
    chat_id, alert = sender.texts[0]
    assert chat_id == 42
    assert "CRITICAL ERROR ALERT" in alert
    assert "logged out" in alert
    assert "stream errored" in alert

    assert len(audit.crashes) == 1
    record = audit.crashes[0]
    assert record.classification == "logged out"
    assert record.message == "stream errored"
    assert "RuntimeError" in record.detail

    assert shutdown.calls == [("sleep", 3), ("exit", SHUTDOWN_EXIT_CODE)]


def test_escalate_runs_only_once() -> None:
    sender, audit, shutdown = FakeSender(), FakeAudit(), Shutdown()
    escalator = _escalator(sender, audit, shutdown)

    async def scenario() -> None:
        await escalator.escalate(RuntimeError("first"), "health check failed")
        await escalator.escalate(RuntimeError("second"), "logged out")

    asyncio.run(scenario())
    assert len(sender.texts) == 1
    assert len(audit.crashes) == 1
    assert shutdown.calls.count(("exit", SHUTDOWN_EXIT_CODE)) == 1


def test_notification_failure_does_not_block_shutdown() -> None:
    audit, shutdown = FakeAudit(), Shutdown()
    escalator = _escalator(FakeSender(fail=True), audit, shutdown)

    asyncio.run(escalator.escalate(None, "connection closed for unknown reasons"))

    assert audit.crashes[0].message == "No error message"
    assert shutdown.calls[-1] == ("exit", SHUTDOWN_EXIT_CODE)


def test_crash_log_failure_does_not_block_shutdown() -> None:
    sender, shutdown = FakeSender(), Shutdown()
    escalator = _escalator(sender, FakeAudit(fail=True), shutdown)

    asyncio.run(escalator.escalate(RuntimeError("boom"), "logged out"))

    assert len(sender.texts) == 1
    assert shutdown.calls[-1] == ("exit", SHUTDOWN_EXIT_CODE)


def test_missing_admin_skips_notification() -> None:
    sender, audit, shutdown = FakeSender(), FakeAudit(), Shutdown()
    escalator = _escalator(sender, audit, shutdown, admin=None)

    asyncio.run(escalator.escalate(RuntimeError("boom"), "logged out"))

    assert sender.texts == []
    assert len(audit.crashes) == 1
    assert shutdown.calls[-1] == ("exit", SHUTDOWN_EXIT_CODE)


def test_cancelled_caller_does_not_stop_shutdown() -> None:
    sender, audit = FakeSender(), FakeAudit()
    exits: list[int] = []

    async def scenario() -> None:
        grace_over = asyncio.Event()

        async def grace(seconds: float) -> None:
            await grace_over.wait()

        escalator = Escalator(sender, 42, audit, grace_seconds=3, exit_func=exits.append, sleep=grace)
        first = asyncio.create_task(escalator.escalate(RuntimeError("presence timeout"), "health check failed"))
        await asyncio.sleep(0.01)
        first.cancel()

        second = asyncio.create_task(escalator.escalate(RuntimeError("stream closed"), "logged out"))
        await asyncio.sleep(0.01)
        assert escalator.escalated
        assert not second.done()

        grace_over.set()
        await asyncio.wait_for(second, timeout=5)
        assert first.cancelled()

    asyncio.run(scenario())
    assert exits == [SHUTDOWN_EXIT_CODE]
    assert [record.classification for record in audit.crashes] == ["health check failed"]
    assert len(sender.texts) == 1
