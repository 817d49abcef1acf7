"""Custom exception hierarchy for the video job coordinator.

All exceptions inherit from BaseError and carry structured error information
(code, category, retryability) so callers and logs can classify failures
without string matching.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification and monitoring."""

    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    EXTERNAL_SERVICE = "external_service"
    VALIDATION = "validation"
    COORDINATION = "coordination"


class BaseError(Exception):
    """Base exception for all coordinator errors.

    Attributes:
        message: Human-readable error message
        error_code: Application-specific error code
        category: Error category for classification
        details: Additional context (dict)
        retryable: Whether the operation can be retried
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        category: ErrorCategory,
        details: Optional[dict[str, Any]] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.category = category
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat, log-friendly dict.

        Returns:
            Dict containing standardized error information
        """
        return {
            "type": f"/errors/{self.error_code}",
            "title": self.message,
            "code": self.error_code,
            "detail": self.details.get("detail"),
            "category": self.category.value,
            "retryable": self.retryable,
        }


class ClientError(BaseError):
    """Base for errors caused by the caller's input.

    These are not retryable.
    """

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=kwargs.pop("category", ErrorCategory.CLIENT_ERROR),
            retryable=False,
            **kwargs,
        )


class ValidationError(ClientError):
    """Input validation failed.

    Args:
        message: Validation error description
        field: Name of the field that failed validation
        details: Additional validation context
    """

    def __init__(self, message: str, field: str, **kwargs):
        additional_details = kwargs.pop("details", {})
        additional_details["field"] = field
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            category=ErrorCategory.VALIDATION,
            details=additional_details,
            **kwargs,
        )


class PayloadTooLargeError(ClientError):
    """Image exceeds the size limit accepted by the transformation service.

    Args:
        max_size_mb: Maximum allowed size in MB
        actual_size_mb: Actual file size in MB
    """

    def __init__(self, max_size_mb: int, actual_size_mb: float):
        super().__init__(
            message=f"File too large: {actual_size_mb:.2f}MB (max: {max_size_mb}MB)",
            error_code="PAYLOAD_TOO_LARGE",
            details={"max_size_mb": max_size_mb, "actual_size_mb": actual_size_mb},
        )


class ServerError(BaseError):
    """Base for failures outside the caller's control."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=kwargs.pop("category", ErrorCategory.SERVER_ERROR),
            retryable=kwargs.pop("retryable", False),
            **kwargs,
        )


class ExternalServiceError(ServerError):
    """Transformation webhook failure.

    Args:
        service_name: Name of the external service
        error_type: Type of error ("timeout", "unavailable", "http_error",
            "malformed_response")
        details: Additional error context
    """

    def __init__(self, service_name: str, error_type: str, **kwargs):
        additional_details = kwargs.pop("details", {})
        additional_details.update(
            {
                "service": service_name,
                "error_type": error_type,
            }
        )
        message = kwargs.pop("message", None) or f"{service_name} service {error_type}"

        super().__init__(
            message=message,
            error_code=f"{service_name.upper()}_{error_type.upper()}",
            category=ErrorCategory.EXTERNAL_SERVICE,
            retryable=kwargs.pop("retryable", True),
            details=additional_details,
            **kwargs,
        )


class TransportError(ExternalServiceError):
    """Network-level fault or non-2xx HTTP response.

    Retryable within the submission attempt budget; during polling it is
    logged and the loop continues.

    Args:
        error_type: "timeout", "unavailable", "http_error" or "malformed_response"
        http_status: Upstream HTTP status, when a response was received
        cause: Underlying exception text
    """

    def __init__(
        self,
        error_type: str,
        http_status: Optional[int] = None,
        cause: Optional[str] = None,
    ):
        details: dict[str, Any] = {"detail": cause}
        if http_status is not None:
            details["http_status"] = http_status
        super().__init__(
            service_name="webhook",
            error_type=error_type,
            details=details,
            retryable=True,
        )
        self.http_status = http_status
        self.cause = cause


class StaleGenerationError(BaseError):
    """A continuation belongs to a superseded job generation.

    Internal only: raised to unwind a retry chain that no longer matters and
    dropped by the tracker without notifying anyone.
    """

    def __init__(self, captured: int, current: int):
        super().__init__(
            message=f"Generation {captured} superseded by {current}",
            error_code="STALE_GENERATION",
            category=ErrorCategory.COORDINATION,
            details={"captured": captured, "current": current},
        )
        self.captured = captured
        self.current = current


class InvalidTransitionError(BaseError):
    """The state machine received an event that is not legal in its state."""

    def __init__(self, state: str, event: str):
        super().__init__(
            message=f"Event '{event}' is not allowed in state '{state}'",
            error_code="INVALID_TRANSITION",
            category=ErrorCategory.COORDINATION,
            details={"state": state, "event": event},
        )
        self.state = state
        self.event = event
