"""Asynchronous coordinator for slow image-to-video webhook jobs."""

from videojobs.clients.webhook_client import WebhookClient
from videojobs.models.dto import JobState, ProgressSnapshot, SettledOutcome
from videojobs.notifier import LoggingNotifier, ResultNotifier
from videojobs.progress import estimate
from videojobs.scheduler import PollHandle, PollScheduler
from videojobs.tracker import JobTracker

__all__ = [
    "JobState",
    "JobTracker",
    "LoggingNotifier",
    "PollHandle",
    "PollScheduler",
    "ProgressSnapshot",
    "ResultNotifier",
    "SettledOutcome",
    "WebhookClient",
    "estimate",
]
