"""
Typed contracts shared by the submitter, scheduler, tracker and notifier.

Wire models (requests sent to and responses read from the webhook) are
pydantic models; in-process outcomes are frozen dataclasses.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, model_validator

SUCCESS_STATUS = "success"
VALID_URL_SCHEMES = ("http://", "https://")


# Response fields that only carry text; the service is loose about their types
TEXT_FIELDS = ("status", "video_url", "videoUrl", "message", "request_id", "analysisId")


def _as_text(value) -> str | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, list) and value and all(isinstance(item, str) for item in value):
        return "; ".join(value)
    return None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_result_url(url: str | None) -> bool:
    """A result URL is usable only if, trimmed, it is non-empty http(s)."""
    if url is None:
        return False
    url = url.strip()
    return bool(url) and url.startswith(VALID_URL_SCHEMES)


class JobState(str, Enum):
    """Lifecycle of the single tracked job."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({JobState.SUCCEEDED, JobState.FAILED, JobState.TIMED_OUT})


class JobRequest(BaseModel):
    """
    One submission attempt. Built fresh per attempt so that the
    timestamp and attempt counter always describe the outgoing request.
    """

    image: bytes
    filename: str
    mime_type: str = Field(serialization_alias="mimeType")
    timestamp: datetime = Field(default_factory=utc_now)
    attempt: int = Field(default=1, ge=1)

    @field_serializer("image")
    def _encode_image(self, image: bytes) -> str:
        return base64.b64encode(image).decode("ascii")

    @field_serializer("timestamp")
    def _format_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)

    def __repr__(self) -> str:
        # Keep image bytes out of logs and tracebacks
        return (
            f"JobRequest(filename={self.filename!r}, mime_type={self.mime_type!r}, "
            f"attempt={self.attempt}, size={len(self.image)})"
        )

    __str__ = __repr__


class PollRequest(BaseModel):
    """Status check for a job that is still processing remotely."""

    check_status: bool = True
    request_id: str
    timestamp: datetime = Field(default_factory=utc_now)

    @field_serializer("timestamp")
    def _format_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()

    def to_payload(self) -> dict:
        return self.model_dump()


class WebhookResponse(BaseModel):
    """
    Response body for both submissions and status checks.

    Also accepts the legacy shape ``{success, message, videoUrl, analysisId}``
    returned by the first version of the webhook.
    """

    model_config = ConfigDict(extra="ignore")

    status: str = ""
    video_url: str | None = Field(
        default=None, validation_alias=AliasChoices("video_url", "videoUrl")
    )
    message: str | None = None
    request_id: str | None = Field(
        default=None, validation_alias=AliasChoices("request_id", "analysisId")
    )

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("status") is None:
            if "success" in data:
                data["status"] = SUCCESS_STATUS if data.get("success") else "error"
            else:
                data["status"] = ""
        for key in TEXT_FIELDS:
            if key in data:
                data[key] = _as_text(data[key])
        if data["status"] is None:
            data["status"] = ""
        return data

    @property
    def is_success(self) -> bool:
        return self.status == SUCCESS_STATUS

    @property
    def result_url(self) -> str | None:
        """Trimmed video URL when valid, otherwise None."""
        if is_valid_result_url(self.video_url):
            return self.video_url.strip()
        return None


class PollProbe(BaseModel):
    """Outcome of one status check that reached the service."""

    ready: bool
    result_url: str | None = None
    message: str | None = None
    rejected: bool = False


class ProgressSnapshot(BaseModel):
    """Cosmetic progress derived from elapsed time, never persisted."""

    stage_label: str
    percentage: float = Field(ge=0, le=100)
    eta_text: str


@dataclass(frozen=True)
class Completed:
    result_url: str


@dataclass(frozen=True)
class Accepted:
    handle: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class Rejected:
    reason: str


@dataclass(frozen=True)
class TransportFailure:
    cause: str
    http_status: int | None = None


SubmissionOutcome = Union[Completed, Accepted, Rejected, TransportFailure]


@dataclass(frozen=True)
class SettledOutcome:
    """Terminal notification delivered exactly once per generation."""

    state: JobState
    generation: int
    url: str | None = None
    message: str | None = None
