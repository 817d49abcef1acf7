"""Unit tests for the logging notifier and the structured log formatter."""

import json
import logging
import sys

from tests.fakes import RecordingNotifier
from videojobs.logging.config import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_structured_logging,
)
from videojobs.models.dto import JobState, ProgressSnapshot, SettledOutcome
from videojobs.notifier import LoggingNotifier, ResultNotifier


def snapshot(stage, percentage):
    return ProgressSnapshot(stage_label=stage, percentage=percentage, eta_text="~1 min remaining")


class TestLoggingNotifier:
    def test_implements_protocol(self):
        assert isinstance(LoggingNotifier(), ResultNotifier)
        assert isinstance(RecordingNotifier(), ResultNotifier)

    def test_logs_only_visible_changes(self, caplog):
        notifier = LoggingNotifier(name="me.png")
        with caplog.at_level(logging.INFO, logger="videojobs.notifier"):
            notifier.on_progress(snapshot("uploading", 1.0))
            notifier.on_progress(snapshot("uploading", 1.4))
            notifier.on_progress(snapshot("uploading", 2.1))
            notifier.on_progress(snapshot("analyzing", 2.2))

        assert len(caplog.records) == 3
        assert notifier.last_snapshot.stage_label == "analyzing"
        assert "[me.png] uploading: 1%" in caplog.records[0].getMessage()

    def test_records_outcome(self, caplog):
        notifier = LoggingNotifier()
        outcome = SettledOutcome(state=JobState.TIMED_OUT, generation=4, message="Still working")
        with caplog.at_level(logging.INFO, logger="videojobs.notifier"):
            notifier.on_settled(outcome)

        assert notifier.outcome is outcome
        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.generation == 4
        assert record.job_state == "timed_out"


class TestStructuredFormatter:
    def make_record(self, **extra):
        record = logging.LogRecord(
            name="videojobs.tracker",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Job accepted",
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_emits_json_with_known_extras(self):
        line = StructuredFormatter().format(
            self.make_record(generation=3, request_id="abc", unrelated="x")
        )
        data = json.loads(line)
        assert data["message"] == "Job accepted"
        assert data["level"] == "INFO"
        assert data["generation"] == 3
        assert data["request_id"] == "abc"
        assert "unrelated" not in data
        assert data["timestamp"].endswith("+00:00")

    def test_includes_exception(self):
        try:
            raise ValueError("bad body")
        except ValueError:
            record = self.make_record()
            record.exc_info = sys.exc_info()
        data = json.loads(StructuredFormatter().format(record))
        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad body"

    def test_none_extras_are_omitted(self):
        data = json.loads(StructuredFormatter().format(self.make_record(request_id=None)))
        assert "request_id" not in data


class TestConsoleFormatter:
    def test_appends_job_context(self):
        record = TestStructuredFormatter().make_record(generation=2, job_state="processing")
        line = ConsoleFormatter().format(record)
        assert "Job accepted" in line
        assert line.endswith("[generation=2 job_state=processing]")

    def test_plain_line_without_context(self):
        line = ConsoleFormatter().format(TestStructuredFormatter().make_record())
        assert line.endswith("videojobs.tracker: Job accepted")


def test_configure_installs_single_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_structured_logging(level="debug", json_format=False)
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
