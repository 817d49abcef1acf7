import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from videojobs.core.exceptions import TransportError
from videojobs.models.dto import (
    Accepted,
    Completed,
    JobRequest,
    PollProbe,
    PollRequest,
    Rejected,
    SubmissionOutcome,
    TransportFailure,
    WebhookResponse,
)
from videojobs.resilience.retry import RetryConfig, SleepFunc, retry_with_backoff

logger = logging.getLogger(__name__)

MAX_LOGGED_BODY_CHARS = 500


def classify_submission(response: WebhookResponse) -> SubmissionOutcome:
    """Map a 2xx submission response to an outcome.

    A success without a valid video URL is not ready yet, never Completed.
    """
    if not response.is_success:
        return Rejected(
            reason=response.message or f"Service reported status '{response.status}'"
        )

    url = response.result_url
    if url is not None:
        return Completed(result_url=url)

    return Accepted(handle=response.request_id, message=response.message)


def classify_probe(response: WebhookResponse) -> PollProbe:
    """Map a 2xx status-check response to a probe result."""
    if not response.is_success:
        return PollProbe(
            ready=False,
            rejected=True,
            message=response.message or f"Service reported status '{response.status}'",
        )

    url = response.result_url
    return PollProbe(ready=url is not None, result_url=url, message=response.message)


class WebhookClient:
    """Async client for the transformation webhook.

    One endpoint serves both submissions and status checks. Use as an
    async context manager, or call ``aclose()`` when done.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        auth: Optional[tuple[str, str]] = None,
        *,
        retry_config: Optional[RetryConfig] = None,
        sleep: SleepFunc = asyncio.sleep,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if url is None or timeout is None:
            from core.settings import webhook_settings

            if url is None:
                url = webhook_settings.WEBHOOK_URL
            if timeout is None:
                timeout = webhook_settings.WEBHOOK_TIMEOUT_SECONDS

        self.url = url
        self.timeout = timeout
        self.auth = auth
        self.retry_config = retry_config or RetryConfig()
        self._sleep = sleep
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        logger.info(
            f"WebhookClient initialized with URL: {self.url}, timeout: {self.timeout}s"
        )

    async def __aenter__(self) -> "WebhookClient":
        self._get_client()
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                auth=self.auth,
                transport=self._transport,
            )
        return self._client

    async def _post(self, payload: dict) -> WebhookResponse:
        """POST one JSON payload and parse the response body.

        Raises:
            TransportError: On network errors, non-2xx responses and bodies
                that are not a JSON object of the expected shape.
        """
        client = self._get_client()
        started = time.perf_counter()
        try:
            response = await client.post(
                self.url,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        except httpx.TimeoutException as e:
            raise TransportError("timeout", cause=str(e) or type(e).__name__) from e
        except httpx.HTTPError as e:
            raise TransportError("unavailable", cause=str(e) or type(e).__name__) from e

        duration_ms = int((time.perf_counter() - started) * 1000)

        if not response.is_success:
            logger.warning(
                f"Webhook HTTP error: {response.status_code} - "
                f"{response.text[:MAX_LOGGED_BODY_CHARS]}",
                extra={"http_status": response.status_code, "duration_ms": duration_ms},
            )
            raise TransportError(
                "http_error",
                http_status=response.status_code,
                cause=f"HTTP {response.status_code}",
            )

        try:
            parsed = WebhookResponse.model_validate(response.json())
        except ValueError as e:
            logger.warning(
                f"Webhook returned an unreadable body: {response.text[:MAX_LOGGED_BODY_CHARS]}",
                extra={"http_status": response.status_code, "duration_ms": duration_ms},
            )
            raise TransportError(
                "malformed_response",
                http_status=response.status_code,
                cause=f"Malformed response body: {e}",
            ) from e

        logger.debug(
            f"Webhook responded with status '{parsed.status}'",
            extra={
                "http_status": response.status_code,
                "duration_ms": duration_ms,
                "request_id": parsed.request_id,
            },
        )
        return parsed

    async def send(self, request: JobRequest) -> SubmissionOutcome:
        """Perform exactly one submission call and classify the result.

        Args:
            request: The submission attempt to send.

        Returns:
            Completed, Accepted, Rejected or TransportFailure.
        """
        try:
            response = await self._post(request.to_payload())
        except TransportError as e:
            return TransportFailure(cause=e.cause or e.message, http_status=e.http_status)
        return classify_submission(response)

    async def submit_with_retry(
        self,
        build_request: Callable[[int], JobRequest],
        *,
        ensure_current: Optional[Callable[[], None]] = None,
    ) -> SubmissionOutcome:
        """Submit a job, retrying only transport failures.

        Args:
            build_request: Builds a fresh request for the given attempt
                number (1-based), so each retry carries its own timestamp.
            ensure_current: Called before every attempt; raises to abandon a
                submission that has been superseded.

        Returns:
            The first non-transport outcome, or the final TransportFailure
            once the attempt budget is spent.
        """
        attempt = 0

        async def _attempt() -> SubmissionOutcome:
            nonlocal attempt
            if ensure_current is not None:
                ensure_current()
            attempt += 1
            request = build_request(attempt)
            logger.info(
                f"Submitting {request.filename} ({len(request.image)} bytes), "
                f"attempt {attempt}/{self.retry_config.max_attempts}",
                extra={"attempt": attempt, "image_filename": request.filename},
            )
            response = await self._post(request.to_payload())
            return classify_submission(response)

        try:
            return await retry_with_backoff(
                _attempt, self.retry_config, (TransportError,), sleep=self._sleep
            )
        except TransportError as e:
            return TransportFailure(cause=e.cause or e.message, http_status=e.http_status)

    async def check_status(self, request_id: str) -> PollProbe:
        """Send one status check.

        Raises:
            TransportError: If the check did not reach a usable response.
        """
        response = await self._post(PollRequest(request_id=request_id).to_payload())
        return classify_probe(response)


def create_webhook_client_from_env() -> WebhookClient:
    """Factory function to create WebhookClient from centralized settings."""
    from core.settings import webhook_settings

    return WebhookClient(
        url=webhook_settings.WEBHOOK_URL,
        timeout=webhook_settings.WEBHOOK_TIMEOUT_SECONDS,
        auth=webhook_settings.auth,
        retry_config=RetryConfig.from_settings(),
    )
