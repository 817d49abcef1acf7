"""
Result notifier contract and a logging implementation.

The presentation layer implements ResultNotifier; the tracker calls it
from the event loop, never concurrently.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from videojobs.models.dto import ProgressSnapshot, SettledOutcome

logger = logging.getLogger(__name__)


@runtime_checkable
class ResultNotifier(Protocol):
    def on_progress(self, snapshot: ProgressSnapshot) -> None: ...

    def on_settled(self, outcome: SettledOutcome) -> None: ...


class LoggingNotifier:
    """Reports progress and the final outcome through the logger."""

    def __init__(self, name: str = "job") -> None:
        self.name = name
        self.last_snapshot: ProgressSnapshot | None = None
        self.outcome: SettledOutcome | None = None

    def on_progress(self, snapshot: ProgressSnapshot) -> None:
        # Only log stage changes and whole-percent steps to keep the log readable
        previous = self.last_snapshot
        self.last_snapshot = snapshot
        if (
            previous is not None
            and previous.stage_label == snapshot.stage_label
            and int(previous.percentage) == int(snapshot.percentage)
        ):
            return
        logger.info(
            f"[{self.name}] {snapshot.stage_label}: {snapshot.percentage:.0f}% "
            f"({snapshot.eta_text})"
        )

    def on_settled(self, outcome: SettledOutcome) -> None:
        self.outcome = outcome
        log = logger.info if outcome.url else logger.warning
        log(
            f"[{self.name}] settled as {outcome.state.value}: "
            f"{outcome.url or outcome.message or '-'}",
            extra={"generation": outcome.generation, "job_state": outcome.state.value},
        )
