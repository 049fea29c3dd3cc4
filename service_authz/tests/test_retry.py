"""
Unit tests for the retry decorator.
"""

import pytest

from shared.retry import RetryConfig, RetryError, _calculate_delay, retry_on_exception

NO_DELAY = RetryConfig(max_attempts=3, base_delay=0, jitter=False)


class TestRetryOnException:
    """Test cases for retry_on_exception."""

    @pytest.mark.asyncio
    async def test_success_after_failures(self):
        calls = []

        @retry_on_exception((ConnectionError,), NO_DELAY)
        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("down")
            return "ok"

        assert await flaky() == "ok"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_exhausted(self):
        @retry_on_exception((ConnectionError,), NO_DELAY)
        async def always_down():
            raise ConnectionError("down")

        with pytest.raises(RetryError) as exc_info:
            await always_down()

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_exception, ConnectionError)
        assert exc_info.value.__cause__ is exc_info.value.last_exception

    @pytest.mark.asyncio
    async def test_unlisted_exception_not_retried(self):
        calls = []

        @retry_on_exception((ConnectionError,), NO_DELAY)
        async def broken():
            calls.append(1)
            raise KeyError("bad")

        with pytest.raises(KeyError):
            await broken()

        assert len(calls) == 1


class TestCalculateDelay:

    def test_exponential(self):
        config = RetryConfig(base_delay=0.2, jitter=False)

        assert [_calculate_delay(n, config) for n in (1, 2, 3)] == pytest.approx([0.2, 0.4, 0.8])

    def test_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=2.0, jitter=False)

        assert _calculate_delay(5, config) == 2.0

    def test_jitter_bounded(self):
        config = RetryConfig(base_delay=1.0, jitter=True)

        for _ in range(50):
            assert 0.9 <= _calculate_delay(1, config) <= 1.1
