"""Async retry logic with exponential backoff.

Provides the bounded retry used for webhook submissions.

Example:
    >>> from videojobs.resilience.retry import retry_with_backoff, RetryConfig
    >>> config = RetryConfig(max_attempts=3, initial_delay_seconds=2.0)
    >>> result = await retry_with_backoff(
    ...     send_once,
    ...     config,
    ...     (TransportError,),
    ... )
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Tuple, Type

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class RetryConfig:
    """Configuration for retry logic.

    Attributes:
        max_attempts: Maximum number of attempts (including initial)
        initial_delay_seconds: Delay before the first retry
        max_delay_seconds: Maximum delay between retries
        exponential_base: Base for exponential backoff (delay *= base ** attempt)
        jitter: Whether to add random jitter to delays
    """

    max_attempts: int = 3
    initial_delay_seconds: float = 2.0
    max_delay_seconds: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = False

    @classmethod
    def from_settings(cls) -> "RetryConfig":
        from core.settings import retry_settings

        return cls(
            max_attempts=retry_settings.SUBMIT_MAX_ATTEMPTS,
            initial_delay_seconds=retry_settings.SUBMIT_INITIAL_DELAY_SECONDS,
            exponential_base=retry_settings.SUBMIT_BACKOFF_BASE,
        )

    def delay_for(self, failed_attempts: int) -> float:
        """Delay after the given number of failed attempts (1-based).

        With the defaults: 2s after the first failure, 4s after the second.
        """
        delay = min(
            self.initial_delay_seconds * (self.exponential_base ** (failed_attempts - 1)),
            self.max_delay_seconds,
        )
        if self.jitter:
            delay = delay * (0.5 + random.random())
        return delay


async def retry_with_backoff(
    func: Callable[..., Awaitable[Any]],
    config: RetryConfig,
    retryable_exceptions: Tuple[Type[Exception], ...],
    *args,
    sleep: SleepFunc = asyncio.sleep,
    **kwargs,
) -> Any:
    """Await ``func`` until it succeeds or the attempt budget is spent.

    There is no delay before the first attempt. Exceptions outside
    ``retryable_exceptions`` propagate immediately.

    Args:
        func: Coroutine function to execute
        config: Retry configuration
        retryable_exceptions: Tuple of exception types that trigger retry
        *args: Positional arguments for func
        sleep: Awaitable used for the backoff delay
        **kwargs: Keyword arguments for func

    Returns:
        Result from the successful call

    Raises:
        The last retryable exception if all attempts fail
    """
    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except retryable_exceptions as e:
            if attempt == config.max_attempts:
                logger.error(
                    f"All {config.max_attempts} attempts failed: {type(e).__name__}: {e}",
                    extra={"attempt": attempt, "max_attempts": config.max_attempts},
                )
                raise

            delay = config.delay_for(attempt)
            logger.warning(
                f"Attempt {attempt}/{config.max_attempts} failed: {type(e).__name__}: {e}. "
                f"Retrying in {delay:.2f}s...",
                extra={
                    "attempt": attempt,
                    "max_attempts": config.max_attempts,
                    "delay_seconds": delay,
                },
            )
            await sleep(delay)

    raise ValueError(f"max_attempts must be >= 1, got {config.max_attempts}")
