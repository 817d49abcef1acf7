"""Job state machine.

States:
- IDLE: Nothing submitted, or the last job was reset
- SUBMITTING: Submission call (with retries) in flight
- PROCESSING: Accepted by the service, polling for the result
- SUCCEEDED / FAILED / TIMED_OUT: Terminal, sticky until submit or reset

The transition table is pure data; JobTracker owns the side effects.

Example:
    >>> transition(JobState.SUBMITTING, JobEvent.ACCEPTED)
    <JobState.PROCESSING: 'processing'>
"""

from enum import Enum

from videojobs.core.exceptions import InvalidTransitionError
from videojobs.models.dto import JobState


class JobEvent(str, Enum):
    """Events that drive the job state machine."""

    SUBMIT = "submit"
    RESET = "reset"
    COMPLETED = "completed"  # Submission returned a valid result URL
    ACCEPTED = "accepted"  # Submission accepted, result not ready
    REJECTED = "rejected"  # Service reported an application failure
    TRANSPORT_EXHAUSTED = "transport_exhausted"  # Retries spent
    PROBE_READY = "probe_ready"
    PROBE_PENDING = "probe_pending"
    PROBE_REJECTED = "probe_rejected"
    DEADLINE = "deadline"


TRANSITIONS: dict[tuple[JobState, JobEvent], JobState] = {
    (JobState.IDLE, JobEvent.SUBMIT): JobState.SUBMITTING,
    (JobState.SUBMITTING, JobEvent.COMPLETED): JobState.SUCCEEDED,
    (JobState.SUBMITTING, JobEvent.ACCEPTED): JobState.PROCESSING,
    (JobState.SUBMITTING, JobEvent.REJECTED): JobState.FAILED,
    (JobState.SUBMITTING, JobEvent.TRANSPORT_EXHAUSTED): JobState.FAILED,
    (JobState.PROCESSING, JobEvent.PROBE_READY): JobState.SUCCEEDED,
    (JobState.PROCESSING, JobEvent.PROBE_PENDING): JobState.PROCESSING,
    (JobState.PROCESSING, JobEvent.PROBE_REJECTED): JobState.FAILED,
    (JobState.PROCESSING, JobEvent.DEADLINE): JobState.TIMED_OUT,
}


def transition(state: JobState, event: JobEvent) -> JobState:
    """Return the state that ``event`` leads to from ``state``.

    RESET is accepted from every state and always leads to IDLE.

    Raises:
        InvalidTransitionError: If the event is not legal in ``state``
    """
    if event is JobEvent.RESET:
        return JobState.IDLE

    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransitionError(state.value, event.value) from None
