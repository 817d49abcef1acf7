import pytest

from tests.fakes import CountingScheduler, FakeSubmitter, ManualClock, RecordingNotifier
from videojobs.tracker import JobTracker

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def scheduler(clock: ManualClock) -> CountingScheduler:
    return CountingScheduler(5.0, 360.0, sleep=clock.sleep)


@pytest.fixture
def make_tracker(clock, notifier, scheduler):
    def factory(submitter: FakeSubmitter) -> JobTracker:
        return JobTracker(
            submitter,
            notifier,
            scheduler=scheduler,
            progress_tick_seconds=1.0,
            clock=clock.time,
            sleep=clock.sleep,
        )

    return factory


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES
