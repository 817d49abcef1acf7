"""Application startup validation checks.

Validates critical settings before a job is ever submitted.
Settings classes define data, this module validates behavior.
"""

import logging
import re

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"^https?://.+")


def validate_all_settings() -> None:
    """Validate all critical settings at startup.

    Fails fast if the environment is misconfigured rather than on the first
    submission.

    Raises:
        RuntimeError: If any critical setting is missing or invalid
    """
    from core.settings import polling_settings, retry_settings, webhook_settings

    url = webhook_settings.WEBHOOK_URL.strip()
    if not url:
        error_msg = (
            "Missing critical environment variables:\n"
            "  - WEBHOOK_URL (required for the transformation webhook)\n"
            "\nPlease check your .env file or environment configuration."
        )
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    if not URL_PATTERN.match(url):
        error_msg = (
            f"Invalid URL formats:\n  - WEBHOOK_URL={url} "
            "(must start with http:// or https://)"
        )
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    interval = polling_settings.POLL_INTERVAL_SECONDS
    timeout = polling_settings.POLL_TIMEOUT_SECONDS
    tick = polling_settings.PROGRESS_TICK_SECONDS

    if interval <= 0 or timeout <= 0 or tick <= 0:
        raise RuntimeError(
            "POLL_INTERVAL_SECONDS, POLL_TIMEOUT_SECONDS and PROGRESS_TICK_SECONDS "
            f"must be positive, got {interval}, {timeout}, {tick}"
        )

    if interval >= timeout:
        raise RuntimeError(
            f"POLL_INTERVAL_SECONDS ({interval}) "
            f"must be shorter than POLL_TIMEOUT_SECONDS ({timeout})"
        )

    if retry_settings.SUBMIT_MAX_ATTEMPTS < 1:
        raise RuntimeError(
            f"SUBMIT_MAX_ATTEMPTS must be >= 1, got {retry_settings.SUBMIT_MAX_ATTEMPTS}"
        )

    logger.info("All critical settings validated successfully")
    logger.info(f"  - Webhook: {url}")
    logger.info(f"  - Polling: every {interval}s, deadline {timeout}s")
    logger.info(
        f"  - Retry: {retry_settings.SUBMIT_MAX_ATTEMPTS} attempts, "
        f"initial delay {retry_settings.SUBMIT_INITIAL_DELAY_SECONDS}s"
    )
