"""Test doubles shared by the unit tests."""

from __future__ import annotations

import asyncio
import heapq
from typing import Callable, Optional

from videojobs.models.dto import JobRequest, PollProbe, SubmissionOutcome
from videojobs.scheduler import PollHandle, PollScheduler

SETTLE_ROUNDS = 50


async def settle() -> None:
    """Let every ready task run until the loop goes quiet."""
    for _ in range(SETTLE_ROUNDS):
        await asyncio.sleep(0)


class ManualClock:
    """
    Virtual clock. ``sleep`` parks the caller until ``advance`` moves time
    past its deadline; timers fire in deadline order.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []
        self._timers: list[tuple[float, int, asyncio.Future]] = []
        self._seq = 0

    def time(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._timers, (self.now + delay, self._seq, future))
        self._seq += 1
        await future

    @property
    def pending(self) -> int:
        return sum(1 for _, _, future in self._timers if not future.done())

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        await settle()
        while self._timers and self._timers[0][0] <= target:
            when, _, future = heapq.heappop(self._timers)
            self.now = max(self.now, when)
            if not future.done():
                future.set_result(None)
                await settle()
        self.now = target
        await settle()


class RecordingNotifier:
    def __init__(self) -> None:
        self.snapshots = []
        self.settled = []

    def on_progress(self, snapshot) -> None:
        self.snapshots.append(snapshot)

    def on_settled(self, outcome) -> None:
        self.settled.append(outcome)


class FakeSubmitter:
    """
    Stands in for WebhookClient.

    ``outcomes`` are returned by successive submissions; an
    ``asyncio.Future`` entry blocks until resolved. ``probes`` are returned
    by successive status checks; exceptions are raised, futures awaited.
    Once ``probes`` is exhausted every check reports not ready.
    """

    def __init__(self, outcomes=None, probes=None) -> None:
        self.outcomes = list(outcomes or [])
        self.probes = list(probes or [])
        self.requests: list[JobRequest] = []
        self.status_checks: list[str] = []
        self.closed = False

    async def submit_with_retry(
        self,
        build_request: Callable[[int], JobRequest],
        *,
        ensure_current: Optional[Callable[[], None]] = None,
    ) -> SubmissionOutcome:
        if ensure_current is not None:
            ensure_current()
        self.requests.append(build_request(1))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, asyncio.Future):
            outcome = await outcome
        return outcome

    async def check_status(self, request_id: str) -> PollProbe:
        self.status_checks.append(request_id)
        if not self.probes:
            return PollProbe(ready=False)
        item = self.probes.pop(0)
        if isinstance(item, asyncio.Future):
            item = await item
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self) -> None:
        self.closed = True


class CountingScheduler(PollScheduler):
    """PollScheduler that remembers every loop it started."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.started: list[PollHandle] = []

    def start(self, *args, **kwargs) -> PollHandle:
        handle = super().start(*args, **kwargs)
        self.started.append(handle)
        return handle
