"""
Fixed-interval status polling under a hard deadline.

Each started loop runs as two asyncio tasks: the probe loop and the
deadline. Whichever of them ends the loop stops the other through the
shared PollHandle, so at most one of ``on_probe(ready)`` and
``on_timeout`` ever reports completion.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from videojobs.models.dto import PollProbe
from videojobs.resilience.retry import SleepFunc

logger = logging.getLogger(__name__)

ProbeFunc = Callable[[], Awaitable[PollProbe]]
ProbeCallback = Callable[[PollProbe], None]
TimeoutCallback = Callable[[], None]


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


def log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            f"Poll task {task.get_name()} crashed: {type(exc).__name__}: {exc}",
            exc_info=(type(exc), exc, exc.__traceback__),
        )


class PollHandle:
    """
    Stop handle for one running poll loop.

    ``stop()`` is idempotent. Once called, no pending interval, probe
    result or deadline callback of this loop reaches its callbacks.
    """

    def __init__(self, name: str = "poll") -> None:
        self.name = name
        self.probes_issued = 0
        self._stopped = False
        self._tasks: list[asyncio.Task] = []

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        current = _current_task()
        for task in self._tasks:
            if task is not current and not task.done():
                task.cancel()
        logger.debug(f"Poll loop '{self.name}' stopped after {self.probes_issued} probes")

    def _attach(self, *tasks: asyncio.Task) -> None:
        self._tasks.extend(tasks)


class PollScheduler:
    """
    Starts poll loops.

    Args:
      interval_seconds: Pause between the end of one probe and the start
        of the next (and before the first one).
      timeout_seconds: Hard deadline, measured from ``start()``.
      sleep: Awaitable used for both timers; injectable for tests.
    """

    def __init__(
        self,
        interval_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        *,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if interval_seconds is None or timeout_seconds is None:
            from core.settings import polling_settings

            if interval_seconds is None:
                interval_seconds = polling_settings.POLL_INTERVAL_SECONDS
            if timeout_seconds is None:
                timeout_seconds = polling_settings.POLL_TIMEOUT_SECONDS
        self.interval_seconds = interval_seconds
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep

    def start(
        self,
        probe: ProbeFunc,
        on_probe: ProbeCallback,
        on_timeout: TimeoutCallback,
        interval_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        *,
        name: str = "poll",
    ) -> PollHandle:
        """
        Start a poll loop. Must be called from within a running event loop.

        Returns:
          PollHandle used to stop the loop.
        """
        interval = interval_seconds if interval_seconds is not None else self.interval_seconds
        timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds

        handle = PollHandle(name)
        loop_task = asyncio.create_task(
            self._run_probes(handle, probe, on_probe, interval), name=f"{name}-probes"
        )
        deadline_task = asyncio.create_task(
            self._run_deadline(handle, on_timeout, timeout), name=f"{name}-deadline"
        )
        for task in (loop_task, deadline_task):
            task.add_done_callback(log_task_failure)
        handle._attach(loop_task, deadline_task)

        logger.info(f"Poll loop '{name}' started: every {interval}s, deadline {timeout}s")
        return handle

    async def _run_probes(
        self,
        handle: PollHandle,
        probe: ProbeFunc,
        on_probe: ProbeCallback,
        interval: float,
    ) -> None:
        while not handle.stopped:
            await self._sleep(interval)
            if handle.stopped:
                return

            handle.probes_issued += 1
            try:
                result = await probe()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    f"Probe {handle.probes_issued} of '{handle.name}' failed, "
                    f"retrying next interval: {type(e).__name__}: {e}"
                )
                continue

            if handle.stopped:
                return
            if result.ready:
                handle.stop()
            on_probe(result)

    async def _run_deadline(
        self,
        handle: PollHandle,
        on_timeout: TimeoutCallback,
        timeout: float,
    ) -> None:
        await self._sleep(timeout)
        if handle.stopped:
            return
        logger.warning(
            f"Poll loop '{handle.name}' hit its {timeout}s deadline "
            f"after {handle.probes_issued} probes"
        )
        handle.stop()
        on_timeout()
