"""
Unit tests for the retry helper and log redaction.
"""

from unittest.mock import AsyncMock

import pytest

from shared.errors import DataUnavailable, ValidationError
from shared.logging import add_request_context, redact_session_material, set_request_id
from shared.retry import RetryConfig, call_with_retry


NO_DELAY = RetryConfig(max_attempts=3, base_delay=0.0, jitter=False)


class TestRetry:

    def test_backoff_is_capped(self):
        config = RetryConfig(base_delay=0.2, max_delay=1.0, jitter=False)
        assert [config.delay_for(n) for n in (1, 2, 3, 4)] == [0.2, 0.4, 0.8, 1.0]

    @pytest.mark.asyncio
    async def test_recovers_from_transient_failure(self):
        func = AsyncMock(side_effect=[DataUnavailable(), "ok"])
        func.__name__ = "load"

        assert await call_with_retry(func, exceptions=(DataUnavailable,), config=NO_DELAY) == "ok"
        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_reraises_after_last_attempt(self):
        func = AsyncMock(side_effect=DataUnavailable())
        func.__name__ = "load"

        with pytest.raises(DataUnavailable):
            await call_with_retry(func, exceptions=(DataUnavailable,), config=NO_DELAY)
        assert func.await_count == 3

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self):
        func = AsyncMock(side_effect=ValidationError())
        func.__name__ = "load"

        with pytest.raises(ValidationError):
            await call_with_retry(func, exceptions=(DataUnavailable,), config=NO_DELAY)
        assert func.await_count == 1


class TestLogProcessors:

    def test_session_material_is_redacted(self):
        event = redact_session_material(None, "info", {"event": "x", "token": "eyJ...", "user_id": "u1"})
        assert event == {"event": "x", "token": "[redacted]", "user_id": "u1"}

    def test_request_id_is_attached(self):
        set_request_id("req-7")
        event = add_request_context(None, "info", {"event": "x"})
        assert event["request_id"] == "req-7"
