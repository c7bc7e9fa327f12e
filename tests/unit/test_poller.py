"""Tests for DelayPoller draining and its asyncio loop."""

from __future__ import annotations

import asyncio

from pollflow.core.exceptions import DelayStoreError
from pollflow.models.pipeline import JourneyState
from pollflow.models.submission import Submission
from pollflow.orchestration.poller import DelayPoller
from pollflow.orchestration.router import PipelineRouter
from tests.fakes import (
    FakeClock,
    MemoryDelayStore,
    MemoryJourneyLog,
    RecordingHandler,
    ScriptedReadinessChecker,
)


class StubRouter:
    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.fail_for = fail_for or set()
        self.seen: list[str] = []

    def on_release(self, entry):
        sid = entry.submission.submission_id
        self.seen.append(sid)
        if sid in self.fail_for:
            raise RuntimeError(f"cannot route {sid}")
        return JourneyState.POLLING


def _schedule(store, sid: str, delay: int = 0) -> None:
    store.schedule(Submission(submission_id=sid, delay=delay), 0, delay, journey_id=f"j-{sid}")


class TestDrain:
    def test_releases_only_due_entries(self):
        clock = FakeClock()
        store = MemoryDelayStore(clock=clock)
        router = StubRouter()
        _schedule(store, "now")
        _schedule(store, "later", delay=1000)

        assert DelayPoller(store, router, clock=clock).drain() == 1
        assert router.seen == ["now"]
        assert store.pending() == 1

    def test_drains_past_batch_size(self):
        clock = FakeClock()
        store = MemoryDelayStore(clock=clock)
        router = StubRouter()
        for i in range(7):
            _schedule(store, str(i))

        poller = DelayPoller(store, router, batch_size=3, clock=clock)
        assert poller.drain() == 7
        assert poller.released_total == 7

    def test_one_failing_entry_does_not_block_others(self):
        clock = FakeClock()
        store = MemoryDelayStore(clock=clock)
        router = StubRouter(fail_for={"bad"})
        _schedule(store, "bad")
        _schedule(store, "good")

        assert DelayPoller(store, router, clock=clock).drain() == 2
        assert router.seen == ["bad", "good"]


class TestSleep:
    def test_sleeps_until_next_release(self):
        clock = FakeClock()
        store = MemoryDelayStore(clock=clock)
        poller = DelayPoller(store, StubRouter(), poll_interval=5.0, clock=clock)
        assert poller._sleep_seconds() == 5.0
        _schedule(store, "x", delay=200)
        assert poller._sleep_seconds() == 0.2

    def test_never_negative(self):
        clock = FakeClock()
        store = MemoryDelayStore(clock=clock)
        _schedule(store, "x", delay=10)
        clock.advance(500)
        assert DelayPoller(store, StubRouter(), clock=clock)._sleep_seconds() == 0.0


class FailingOnceStore(MemoryDelayStore):
    def __init__(self) -> None:
        super().__init__()
        self.failed = False

    def release_due(self, now=None, limit=100):
        if not self.failed:
            self.failed = True
            raise DelayStoreError("store offline")
        return super().release_due(now=now, limit=limit)


async def _run_until(poller: DelayPoller, done, timeout: float = 5.0) -> None:
    task = asyncio.create_task(poller.run())
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not done() and loop.time() < deadline:
        await asyncio.sleep(0.01)
    poller.stop()
    await asyncio.wait_for(task, timeout=timeout)


def test_run_loop_completes_a_journey_with_real_delays():
    store = MemoryDelayStore()
    checker = ScriptedReadinessChecker()
    checker.set_script("LIVE", [False, False, True])
    ready = RecordingHandler()
    log = MemoryJourneyLog()
    router = PipelineRouter(
        checker=checker, store=store, ready_handler=ready,
        timeout_handler=RecordingHandler(), listener=log,
    )
    poller = DelayPoller(store, router, poll_interval=0.02)

    journey = router.submit(Submission(submission_id="LIVE", delay=20))
    asyncio.run(_run_until(poller, lambda: bool(ready.outcomes)))

    assert ready.submission_ids() == ["LIVE"]
    assert log.attempts(journey) == [0, 1, 2]
    assert store.pending() == 0


def test_run_loop_survives_store_outage():
    store = FailingOnceStore()
    router = StubRouter()
    _schedule(store, "after-outage")
    poller = DelayPoller(store, router, poll_interval=0.01)

    asyncio.run(_run_until(poller, lambda: bool(router.seen)))

    assert store.failed is True
    assert router.seen == ["after-outage"]


def test_stop_ends_idle_loop():
    poller = DelayPoller(MemoryDelayStore(), StubRouter(), poll_interval=10.0)

    async def scenario():
        task = asyncio.create_task(poller.run())
        await asyncio.sleep(0.05)
        poller.stop()
        await asyncio.wait_for(task, timeout=1.0)

    asyncio.run(scenario())
