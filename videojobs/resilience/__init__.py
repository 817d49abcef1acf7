"""Resilience utilities for webhook calls.

- Retry Logic: Handles transient transport errors during submission
"""

from videojobs.resilience.retry import RetryConfig, retry_with_backoff

__all__ = [
    "retry_with_backoff",
    "RetryConfig",
]
