#!/usr/bin/env python3
"""
Submit one image to the transformation webhook and wait for the video.

Usage:
    python main.py photo.jpg --url https://example.com/webhook/image-analysis
"""

from dotenv import load_dotenv

load_dotenv()

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from core.settings import app_settings, polling_settings, webhook_settings
from core.validation import validate_all_settings
from videojobs.clients.webhook_client import WebhookClient
from videojobs.core.exceptions import ClientError
from videojobs.logging.config import configure_structured_logging
from videojobs.models.dto import JobState
from videojobs.notifier import LoggingNotifier
from videojobs.resilience.retry import RetryConfig
from videojobs.scheduler import PollScheduler
from videojobs.tracker import JobTracker
from videojobs.utils.file_detection import load_image

logger = logging.getLogger(__name__)

EXIT_CODES = {
    JobState.SUCCEEDED: 0,
    JobState.FAILED: 1,
    JobState.TIMED_OUT: 2,
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Turn an image into a video via the webhook")
    parser.add_argument("image", type=Path, help="Image file to submit")
    parser.add_argument(
        "--url",
        type=str,
        default=None,
        help="Webhook URL (default: WEBHOOK_URL from the environment)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=polling_settings.POLL_INTERVAL_SECONDS,
        help="Seconds between status checks",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=polling_settings.POLL_TIMEOUT_SECONDS,
        help="Seconds to wait for the video before giving up",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    try:
        image, mime_type = load_image(args.image, app_settings.MAX_IMAGE_SIZE_MB)
    except ClientError as e:
        logger.error(f"{args.image}: {e.message}", extra={"error_code": e.error_code})
        return 1
    except OSError as e:
        logger.error(f"{args.image}: cannot read file: {e.strerror or e}")
        return 1

    notifier = LoggingNotifier(name=args.image.name)
    client = WebhookClient(
        url=args.url or webhook_settings.WEBHOOK_URL,
        timeout=webhook_settings.WEBHOOK_TIMEOUT_SECONDS,
        auth=webhook_settings.auth,
        retry_config=RetryConfig.from_settings(),
    )
    tracker = JobTracker(
        client,
        notifier,
        scheduler=PollScheduler(args.interval, args.timeout),
    )

    try:
        await tracker.submit(image, args.image.name, mime_type)
        outcome = await tracker.wait_settled()
    finally:
        await tracker.aclose()

    if outcome is None:
        return 1
    print(outcome.url or outcome.message)
    return EXIT_CODES[outcome.state]


def main(argv: list[str] | None = None) -> int:
    configure_structured_logging(level=app_settings.LOG_LEVEL, json_format=app_settings.LOG_JSON)
    args = parse_args(argv)
    if args.url is None:
        validate_all_settings()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
