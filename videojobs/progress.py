"""
Elapsed-time progress estimate for a job that reports no real progress.

The webhook exposes no progress channel, so everything here is cosmetic:
fixed stage breakpoints and a linear percentage capped below 100.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from videojobs.models.dto import ProgressSnapshot

EXPECTED_DURATION_SECONDS: Final = 240.0
MAX_ESTIMATED_PERCENTAGE: Final = 95.0

COMPLETED_SNAPSHOT: Final = ProgressSnapshot(
    stage_label="complete", percentage=100.0, eta_text="Done"
)


@dataclass(frozen=True)
class Stage:
    starts_at: float
    label: str
    eta_text: str


# Inclusive lower bounds, ascending
STAGES: Final[tuple[Stage, ...]] = (
    Stage(0.0, "analyzing", "2-4 minutes remaining"),
    Stage(15.0, "generating image", "1-3 minutes remaining"),
    Stage(90.0, "generating video", "1-2 minutes remaining"),
    Stage(180.0, "generating video", "Almost done..."),
)


def stage_for(elapsed_seconds: float) -> Stage:
    current = STAGES[0]
    for stage in STAGES:
        if elapsed_seconds >= stage.starts_at:
            current = stage
        else:
            break
    return current


def estimate(elapsed_seconds: float) -> ProgressSnapshot:
    """
    Map elapsed processing time to a progress snapshot.

    Args:
      elapsed_seconds: Seconds since the job was submitted. Negative values
        are treated as zero.

    Returns:
      ProgressSnapshot whose percentage never exceeds 95.
    """
    elapsed = max(0.0, float(elapsed_seconds))
    stage = stage_for(elapsed)
    percentage = min(elapsed / EXPECTED_DURATION_SECONDS * 100.0, MAX_ESTIMATED_PERCENTAGE)
    return ProgressSnapshot(
        stage_label=stage.label,
        percentage=percentage,
        eta_text=stage.eta_text,
    )

