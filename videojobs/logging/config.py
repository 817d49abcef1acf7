"""Structured logging configuration.

Every job log line can carry its generation, state and request id, so one
job's lifecycle can be followed across submission, retries and polling.
Production output is JSON; ``LOG_JSON=false`` gives a readable console line
with the same context appended.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

JOB_CONTEXT_FIELDS = ("generation", "job_state", "request_id")
ATTEMPT_FIELDS = ("attempt", "max_attempts", "delay_seconds")
DIAGNOSTIC_FIELDS = ("duration_ms", "http_status", "error_code", "image_filename")


def job_context(record: logging.LogRecord) -> dict[str, Any]:
    """Collect the known ``extra=`` fields present on a record, in a stable order."""
    context = {}
    for key in JOB_CONTEXT_FIELDS + ATTEMPT_FIELDS + DIAGNOSTIC_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            context[key] = value
    return context


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Example:
        >>> logger.info("Job accepted", extra={"generation": 3, "request_id": "abc"})
        # Output: {"timestamp": "2025-12-05T17:52:00+00:00", "level": "INFO",
        #          "message": "Job accepted", "generation": 3, "request_id": "abc"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(job_context(record))

        if record.exc_info:
            error_type, error, _ = record.exc_info
            log_data["exception"] = {
                "type": error_type.__name__ if error_type else None,
                "message": str(error) if error else None,
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines for local runs, job context appended in brackets."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s", "%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = job_context(record)
        if not context:
            return line
        rendered = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{line} [{rendered}]"


def configure_structured_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Install a single stderr handler on the root logger.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines (True) or console lines (False)
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter() if json_format else ConsoleFormatter())
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper()))

    # Per-request httpx logs duplicate the client's own attempt logging
    for noisy in ("httpx", "httpcore", "asyncio"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
