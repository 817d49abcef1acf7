"""Unit tests for the job state machine transition table."""

import pytest

from videojobs.core.exceptions import InvalidTransitionError
from videojobs.models.dto import TERMINAL_STATES, JobState
from videojobs.state import JobEvent, transition


class TestTransitions:
    """Tests for legal transitions."""

    @pytest.mark.parametrize(
        "state, event, expected",
        [
            (JobState.IDLE, JobEvent.SUBMIT, JobState.SUBMITTING),
            (JobState.SUBMITTING, JobEvent.COMPLETED, JobState.SUCCEEDED),
            (JobState.SUBMITTING, JobEvent.ACCEPTED, JobState.PROCESSING),
            (JobState.SUBMITTING, JobEvent.REJECTED, JobState.FAILED),
            (JobState.SUBMITTING, JobEvent.TRANSPORT_EXHAUSTED, JobState.FAILED),
            (JobState.PROCESSING, JobEvent.PROBE_READY, JobState.SUCCEEDED),
            (JobState.PROCESSING, JobEvent.PROBE_PENDING, JobState.PROCESSING),
            (JobState.PROCESSING, JobEvent.PROBE_REJECTED, JobState.FAILED),
            (JobState.PROCESSING, JobEvent.DEADLINE, JobState.TIMED_OUT),
        ],
    )
    def test_table(self, state, event, expected):
        assert transition(state, event) is expected

    @pytest.mark.parametrize("state", list(JobState))
    def test_reset_always_returns_to_idle(self, state):
        assert transition(state, JobEvent.RESET) is JobState.IDLE


class TestStickyTerminalStates:
    """Terminal states only leave through RESET."""

    @pytest.mark.parametrize("state", sorted(TERMINAL_STATES, key=lambda s: s.value))
    @pytest.mark.parametrize(
        "event", [e for e in JobEvent if e is not JobEvent.RESET]
    )
    def test_terminal_states_reject_every_automatic_event(self, state, event):
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(state, event)
        assert exc_info.value.details == {"state": state.value, "event": event.value}

    def test_is_terminal_flag(self):
        assert JobState.SUCCEEDED.is_terminal
        assert JobState.TIMED_OUT.is_terminal
        assert not JobState.PROCESSING.is_terminal
        assert not JobState.IDLE.is_terminal


class TestIllegalEvents:
    def test_probe_result_while_submitting_is_illegal(self):
        with pytest.raises(InvalidTransitionError):
            transition(JobState.SUBMITTING, JobEvent.PROBE_READY)

    def test_submit_requires_idle(self):
        with pytest.raises(InvalidTransitionError):
            transition(JobState.PROCESSING, JobEvent.SUBMIT)
