"""
Centralized application settings using Pydantic.

All environment variables are read once at startup and validated.
Use this instead of scattered os.getenv() calls throughout the codebase.
"""

from pydantic import SecretStr
from pydantic_settings import BaseSettings


class WebhookSettings(BaseSettings):
    """Transformation webhook configuration."""

    WEBHOOK_URL: str = ""
    WEBHOOK_USERNAME: str | None = None
    WEBHOOK_PASSWORD: SecretStr | None = None
    WEBHOOK_TIMEOUT_SECONDS: float = 30.0

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}

    @property
    def auth(self) -> tuple[str, str] | None:
        """Basic auth pair, only when both parts are configured."""
        if self.WEBHOOK_USERNAME and self.WEBHOOK_PASSWORD:
            return self.WEBHOOK_USERNAME, self.WEBHOOK_PASSWORD.get_secret_value()
        return None


class PollingSettings(BaseSettings):
    """Status polling and progress tick configuration."""

    POLL_INTERVAL_SECONDS: float = 5.0
    POLL_TIMEOUT_SECONDS: float = 360.0
    PROGRESS_TICK_SECONDS: float = 1.0

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class RetrySettings(BaseSettings):
    """Submission retry configuration."""

    SUBMIT_MAX_ATTEMPTS: int = 3
    SUBMIT_INITIAL_DELAY_SECONDS: float = 2.0
    SUBMIT_BACKOFF_BASE: float = 2.0

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class AppSettings(BaseSettings):
    """General application settings."""

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    MAX_IMAGE_SIZE_MB: int = 10

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


# Singleton instances - loaded once at module import
webhook_settings = WebhookSettings()
polling_settings = PollingSettings()
retry_settings = RetrySettings()
app_settings = AppSettings()
