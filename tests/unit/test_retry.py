"""Unit tests for async retry logic with exponential backoff."""

import pytest

from videojobs.resilience.retry import RetryConfig, retry_with_backoff


class Recorder:
    """Records backoff delays instead of sleeping."""

    def __init__(self):
        self.delays = []

    async def sleep(self, delay):
        self.delays.append(delay)


class Flaky:
    """Fails ``failures`` times with ``exc_type``, then returns 'success'."""

    def __init__(self, failures, exc_type=ConnectionError):
        self.failures = failures
        self.exc_type = exc_type
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc_type(f"failure {self.calls}")
        return "success"


class TestRetryBasics:
    """Tests for basic retry functionality."""

    @pytest.mark.asyncio
    async def test_immediate_success_no_retry(self):
        recorder = Recorder()
        func = Flaky(0)
        result = await retry_with_backoff(
            func, RetryConfig(), (ConnectionError,), sleep=recorder.sleep
        )
        assert result == "success"
        assert func.calls == 1
        assert recorder.delays == []

    @pytest.mark.asyncio
    async def test_retries_on_specified_exception(self):
        recorder = Recorder()
        func = Flaky(1)
        result = await retry_with_backoff(
            func, RetryConfig(), (ConnectionError,), sleep=recorder.sleep
        )
        assert result == "success"
        assert func.calls == 2
        assert recorder.delays == [2.0]

    @pytest.mark.asyncio
    async def test_raises_after_max_attempts(self):
        recorder = Recorder()
        func = Flaky(10)
        with pytest.raises(ConnectionError) as exc_info:
            await retry_with_backoff(
                func, RetryConfig(max_attempts=3), (ConnectionError,), sleep=recorder.sleep
            )
        assert "failure 3" in str(exc_info.value)
        assert func.calls == 3
        assert recorder.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_does_not_retry_on_other_exceptions(self):
        recorder = Recorder()
        func = Flaky(1, exc_type=TypeError)
        with pytest.raises(TypeError):
            await retry_with_backoff(
                func, RetryConfig(), (ConnectionError,), sleep=recorder.sleep
            )
        assert func.calls == 1
        assert recorder.delays == []

    @pytest.mark.asyncio
    async def test_passes_arguments_through(self):
        async def add(a, b=0):
            return a + b

        assert await retry_with_backoff(add, RetryConfig(), (ValueError,), 2, b=3) == 5


class TestRetryConfiguration:
    """Tests for retry configuration."""

    def test_default_delays_are_two_then_four_seconds(self):
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.delay_for(1) == 2.0
        assert config.delay_for(2) == 4.0

    def test_max_delay_cap(self):
        config = RetryConfig(initial_delay_seconds=10.0, max_delay_seconds=15.0)
        assert config.delay_for(3) == 15.0

    def test_jitter_stays_within_bounds(self):
        config = RetryConfig(initial_delay_seconds=2.0, jitter=True)
        for _ in range(50):
            assert 1.0 <= config.delay_for(1) <= 3.0

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self):
        recorder = Recorder()
        func = Flaky(5)
        with pytest.raises(ConnectionError):
            await retry_with_backoff(
                func, RetryConfig(max_attempts=1), (ConnectionError,), sleep=recorder.sleep
            )
        assert func.calls == 1
        assert recorder.delays == []

    def test_from_settings(self, monkeypatch):
        from core import settings

        monkeypatch.setattr(
            settings,
            "retry_settings",
            settings.RetrySettings(SUBMIT_MAX_ATTEMPTS=5, SUBMIT_INITIAL_DELAY_SECONDS=1.5),
        )
        config = RetryConfig.from_settings()
        assert config.max_attempts == 5
        assert config.initial_delay_seconds == 1.5
        assert config.exponential_base == 2.0
