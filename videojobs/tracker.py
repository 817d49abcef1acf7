"""
Job coordinator: submission, polling and progress for one job at a time.

Every asynchronous continuation (retry, probe result, deadline, progress
tick) captures the generation it was created under and is dropped if a
later submit() or reset() has minted a newer one.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from videojobs.clients.webhook_client import WebhookClient
from videojobs.core.exceptions import StaleGenerationError
from videojobs.models.dto import (
    Accepted,
    Completed,
    JobRequest,
    JobState,
    PollProbe,
    ProgressSnapshot,
    Rejected,
    SettledOutcome,
    SubmissionOutcome,
    TransportFailure,
)
from videojobs.notifier import ResultNotifier
from videojobs.progress import COMPLETED_SNAPSHOT, estimate
from videojobs.resilience.retry import SleepFunc
from videojobs.scheduler import PollHandle, PollScheduler, log_task_failure
from videojobs.state import JobEvent, transition

logger = logging.getLogger(__name__)

TIMEOUT_ADVISORY = (
    "The video is taking longer than expected. It may still be ready later, "
    "please check back in a few minutes."
)
TRANSPORT_FAILURE_MESSAGE = "Could not reach the transformation service"

Estimator = Callable[[float], ProgressSnapshot]


def fallback_request_id(request: JobRequest) -> str:
    """Job context used for polling when the service returned no request_id."""
    return f"{request.filename}@{request.timestamp.isoformat()}"


class JobTracker:
    """
    Owns the job state machine and everything that may change it.

    Args:
      submitter: Webhook client used for both submission and status checks.
      notifier: Receives progress snapshots and the terminal outcome.
      scheduler: Poll scheduler; defaults to one built from settings.
      estimator: Maps elapsed seconds to a progress snapshot.
      progress_tick_seconds: How often snapshots are emitted while processing.
      clock: Monotonic clock in seconds.
      sleep: Awaitable used by the progress tick.
    """

    def __init__(
        self,
        submitter: WebhookClient,
        notifier: ResultNotifier,
        *,
        scheduler: Optional[PollScheduler] = None,
        estimator: Estimator = estimate,
        progress_tick_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if progress_tick_seconds is None:
            from core.settings import polling_settings

            progress_tick_seconds = polling_settings.PROGRESS_TICK_SECONDS

        self._submitter = submitter
        self._notifier = notifier
        self._scheduler = scheduler or PollScheduler(sleep=sleep)
        self._estimator = estimator
        self._tick_seconds = progress_tick_seconds
        self._clock = clock
        self._sleep = sleep

        self._state = JobState.IDLE
        self._generation = 0
        self._handle: Optional[str] = None
        self._poll: Optional[PollHandle] = None
        self._ticker: Optional[asyncio.Task] = None
        self._started_at: Optional[float] = None
        self._last_request: Optional[JobRequest] = None
        self._last_snapshot: Optional[ProgressSnapshot] = None
        self._outcome: Optional[SettledOutcome] = None
        self._settled = asyncio.Event()

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def handle(self) -> Optional[str]:
        return self._handle

    @property
    def last_snapshot(self) -> Optional[ProgressSnapshot]:
        return self._last_snapshot

    @property
    def outcome(self) -> Optional[SettledOutcome]:
        return self._outcome

    def _log_extra(self, generation: Optional[int] = None) -> dict:
        return {
            "generation": self._generation if generation is None else generation,
            "job_state": self._state.value,
            "request_id": self._handle,
        }

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _ensure_current(self, generation: int) -> None:
        if not self._is_current(generation):
            raise StaleGenerationError(generation, self._generation)

    def _stop_timers(self) -> None:
        if self._poll is not None:
            self._poll.stop()
            self._poll = None
        if self._ticker is not None:
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if self._ticker is not current and not self._ticker.done():
                self._ticker.cancel()
            self._ticker = None

    def reset(self) -> int:
        """
        Abandon the current job: stop its timers, clear the handle and
        return to IDLE under a new generation.

        Returns:
          The new generation.
        """
        self._stop_timers()
        self._generation += 1
        self._state = transition(self._state, JobEvent.RESET)
        self._handle = None
        self._started_at = None
        self._last_request = None
        self._last_snapshot = None
        self._outcome = None
        # Wake anyone waiting on the superseded job
        self._settled.set()
        self._settled = asyncio.Event()
        logger.debug("Tracker reset", extra=self._log_extra())
        return self._generation

    async def submit(self, image: bytes, filename: str, mime_type: str) -> JobState:
        """
        Submit a new job, superseding any previous one.

        Returns once the job is terminal or has moved to PROCESSING (polling
        then continues in the background). Use ``wait_settled()`` to await
        the final outcome.

        Args:
          image: Already-validated image bytes.
          filename: Original file name.
          mime_type: MIME type of the image.

        Returns:
          The tracker state after the submission phase.
        """
        generation = self.reset()
        self._state = transition(self._state, JobEvent.SUBMIT)
        self._started_at = self._clock()
        logger.info(f"Submitting job for {filename}", extra=self._log_extra(generation))

        def build_request(attempt: int) -> JobRequest:
            request = JobRequest(
                image=image, filename=filename, mime_type=mime_type, attempt=attempt
            )
            self._last_request = request
            return request

        try:
            outcome = await self._submitter.submit_with_retry(
                build_request,
                ensure_current=lambda: self._ensure_current(generation),
            )
        except StaleGenerationError as e:
            logger.debug(f"Dropping superseded submission: {e}")
            return self._state
        except asyncio.CancelledError:
            if self._is_current(generation):
                self.reset()
            raise
        except Exception as e:
            if self._is_current(generation):
                self._settle(
                    generation,
                    JobEvent.TRANSPORT_EXHAUSTED,
                    message=f"Submission crashed: {type(e).__name__}: {e}",
                )
            raise

        if not self._is_current(generation):
            logger.debug(
                "Dropping submission outcome of a superseded job",
                extra=self._log_extra(generation),
            )
            return self._state

        self._apply_submission(generation, outcome)
        return self._state

    def _apply_submission(self, generation: int, outcome: SubmissionOutcome) -> None:
        if isinstance(outcome, Completed):
            self._settle(generation, JobEvent.COMPLETED, url=outcome.result_url)
        elif isinstance(outcome, Accepted):
            self._start_processing(generation, outcome)
        elif isinstance(outcome, Rejected):
            self._settle(generation, JobEvent.REJECTED, message=outcome.reason)
        elif isinstance(outcome, TransportFailure):
            self._settle(
                generation,
                JobEvent.TRANSPORT_EXHAUSTED,
                message=f"{TRANSPORT_FAILURE_MESSAGE}: {outcome.cause}",
            )
        else:
            raise TypeError(f"Unknown submission outcome: {outcome!r}")

    def _start_processing(self, generation: int, outcome: Accepted) -> None:
        self._state = transition(self._state, JobEvent.ACCEPTED)
        self._handle = outcome.handle

        if outcome.handle is not None:
            request_id = outcome.handle
        else:
            request_id = fallback_request_id(self._last_request)
            logger.warning(
                f"Service accepted the job without a request_id, polling as {request_id}",
                extra=self._log_extra(generation),
            )

        async def probe() -> PollProbe:
            return await self._submitter.check_status(request_id)

        self._poll = self._scheduler.start(
            probe,
            lambda result: self._on_probe(generation, result),
            lambda: self._on_timeout(generation),
            name=f"job-{generation}",
        )
        self._ticker = asyncio.create_task(
            self._tick_progress(generation), name=f"job-{generation}-progress"
        )
        self._ticker.add_done_callback(log_task_failure)

        logger.info("Job accepted, polling for result", extra=self._log_extra(generation))
        self._emit_progress()

    def _on_probe(self, generation: int, probe: PollProbe) -> None:
        if not self._is_current(generation) or self._state is not JobState.PROCESSING:
            logger.debug("Dropping stale probe result", extra=self._log_extra(generation))
            return

        if probe.ready:
            self._settle(generation, JobEvent.PROBE_READY, url=probe.result_url)
        elif probe.rejected:
            self._settle(generation, JobEvent.PROBE_REJECTED, message=probe.message)
        else:
            self._state = transition(self._state, JobEvent.PROBE_PENDING)
            self._emit_progress()

    def _on_timeout(self, generation: int) -> None:
        if not self._is_current(generation) or self._state is not JobState.PROCESSING:
            logger.debug("Dropping stale deadline", extra=self._log_extra(generation))
            return
        self._settle(generation, JobEvent.DEADLINE, message=TIMEOUT_ADVISORY)

    async def _tick_progress(self, generation: int) -> None:
        while True:
            await self._sleep(self._tick_seconds)
            if not self._is_current(generation) or self._state is not JobState.PROCESSING:
                return
            self._emit_progress()

    def _emit_progress(self) -> None:
        now = self._clock()
        start = now if self._started_at is None else self._started_at
        elapsed = now - start
        snapshot = self._estimator(elapsed)
        previous = self._last_snapshot
        if previous is not None and snapshot.percentage < previous.percentage:
            snapshot = snapshot.model_copy(update={"percentage": previous.percentage})
        self._last_snapshot = snapshot
        self._notifier.on_progress(snapshot)

    def _settle(
        self,
        generation: int,
        event: JobEvent,
        url: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        new_state = transition(self._state, event)
        self._stop_timers()
        self._state = new_state
        self._handle = None

        if new_state is JobState.SUCCEEDED:
            self._last_snapshot = COMPLETED_SNAPSHOT
            self._notifier.on_progress(COMPLETED_SNAPSHOT)

        outcome = SettledOutcome(
            state=new_state, generation=generation, url=url, message=message
        )
        self._outcome = outcome
        self._settled.set()

        log = logger.info if new_state is JobState.SUCCEEDED else logger.warning
        log(
            f"Job settled as {new_state.value}: {url or message}",
            extra=self._log_extra(generation),
        )
        self._notifier.on_settled(outcome)

    async def wait_settled(self, timeout: Optional[float] = None) -> Optional[SettledOutcome]:
        """
        Wait for the current job's terminal outcome.

        Returns:
          The outcome, or None if the wait timed out or the job was
          superseded by reset()/submit() while waiting.
        """
        generation = self._generation
        event = self._settled
        try:
            await asyncio.wait_for(event.wait(), timeout)
        except asyncio.TimeoutError:
            return None
        if not self._is_current(generation):
            return None
        return self._outcome

    async def aclose(self) -> None:
        """Stop all timers and close the webhook client."""
        self.reset()
        await self._submitter.aclose()
