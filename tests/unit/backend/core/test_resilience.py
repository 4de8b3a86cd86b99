"""Unit tests for eshop.backend.core.resilience."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from eshop.backend.core.config_schema import CircuitBreakerSchema, RetrySchema
from eshop.backend.core.exceptions import ExternalServiceError
from eshop.backend.core.resilience import (
    ResilienceLogger,
    call_with_resilience,
    create_circuit_breaker,
    get_breaker_states,
    get_circuit_breaker,
    log_retry,
)


@pytest.fixture
def fast_retry(override_config):
    """Three attempts without backoff sleeps, breaker opening after two failed calls."""
    override_config(
        "channels",
        retry=RetrySchema(max_attempts=3, backoff_multiplier=0, backoff_max=0),
        circuit_breaker=CircuitBreakerSchema(fail_max=2, timeout_duration=60),
    )


class TestResilienceLogger:
    def test_state_change_open(self):
        """Opening the circuit should log at error level."""
        rl = ResilienceLogger("telegram")
        mock_cb = MagicMock()
        mock_cb.fail_counter = 5

        with patch("eshop.backend.core.resilience.logger") as mock_logger:
            rl.state_change(mock_cb, "closed", "open")
            mock_logger.error.assert_called_once()
            assert "circuit_breaker_opened" in str(mock_logger.error.call_args)

    def test_state_change_half_open(self):
        rl = ResilienceLogger("flexibee")
        mock_cb = MagicMock()
        mock_cb.fail_counter = 3

        with patch("eshop.backend.core.resilience.logger") as mock_logger:
            rl.state_change(mock_cb, "open", "half-open")
            mock_logger.info.assert_called_once()
            assert "circuit_breaker_half_open" in str(mock_logger.info.call_args)

    def test_failure(self):
        """Recording a failure should log at warning level."""
        rl = ResilienceLogger("smtp")
        mock_cb = MagicMock()
        mock_cb.fail_counter = 2

        with patch("eshop.backend.core.resilience.logger") as mock_logger:
            rl.failure(mock_cb, ConnectionError("timeout"))
            mock_logger.warning.assert_called_once()
            assert "circuit_breaker_failure" in str(mock_logger.warning.call_args)


class TestLogRetry:
    def test_emits_structured_event(self):
        mock_state = MagicMock()
        mock_state.attempt_number = 2
        mock_state.fn.__name__ = "send_message"
        mock_state.outcome_timestamp = 1000.5
        mock_state.start_time = 1000.0
        mock_state.outcome.failed = True
        mock_state.outcome.exception.return_value = ConnectionError("fail")

        with patch("eshop.backend.core.resilience.logger") as mock_logger:
            log_retry(mock_state, dependency="telegram")
            call_args = mock_logger.warning.call_args
            assert "telegram" in call_args[0][0]
            assert call_args[1]["extra"]["resilience_event"] == "retry_attempt"
            assert call_args[1]["extra"]["attempt"] == 2
            assert call_args[1]["extra"]["duration_ms"] == 500

    def test_handles_no_outcome(self):
        mock_state = MagicMock()
        mock_state.attempt_number = 1
        mock_state.fn.__name__ = "fetch"
        mock_state.outcome_timestamp = None
        mock_state.start_time = None
        mock_state.outcome = None

        with patch("eshop.backend.core.resilience.logger") as mock_logger:
            log_retry(mock_state)
            call_args = mock_logger.warning.call_args
            assert "fetch" in call_args[0][0]
            assert call_args[1]["extra"]["duration_ms"] is None
            assert call_args[1]["extra"]["error"] is None


class TestCircuitBreakers:
    def test_create_circuit_breaker(self):
        cb = create_circuit_breaker("messenger", fail_max=3, timeout_duration=15)
        assert cb.fail_max == 3
        assert cb.timeout_duration == timedelta(seconds=15)
        assert isinstance(cb.listeners[0], ResilienceLogger)
        assert cb.listeners[0].dependency == "messenger"

    def test_shared_breaker_per_dependency(self):
        assert get_circuit_breaker("flexibee") is get_circuit_breaker("flexibee")
        assert get_circuit_breaker("flexibee") is not get_circuit_breaker("smtp")

    def test_breaker_sized_from_channels_config(self):
        cb = get_circuit_breaker("telegram")
        assert cb.fail_max == 5
        assert cb.timeout_duration == timedelta(seconds=60)

    def test_states_report_closed_breaker(self):
        get_circuit_breaker("telegram")
        assert get_breaker_states() == {"telegram": {"state": "closed", "failure_count": 0}}


class TestCallWithResilience:
    async def test_returns_result(self):
        func = AsyncMock(return_value="ok")
        result = await call_with_resilience("telegram", func, 1, text="hi")
        assert result == "ok"
        func.assert_awaited_once_with(1, text="hi")

    async def test_retries_listed_errors(self, fast_retry):
        func = AsyncMock(side_effect=[ConnectionError("down"), ConnectionError("down"), "ok"])
        result = await call_with_resilience("messenger", func, retry_on=(ConnectionError,))
        assert result == "ok"
        assert func.await_count == 3

    async def test_gives_up_after_max_attempts(self, fast_retry):
        func = AsyncMock(side_effect=ConnectionError("down"))
        with pytest.raises(ConnectionError):
            await call_with_resilience("messenger", func, retry_on=(ConnectionError,))
        assert func.await_count == 3

    async def test_other_errors_are_not_retried(self, fast_retry):
        func = AsyncMock(side_effect=ValueError("bad payload"))
        with pytest.raises(ValueError):
            await call_with_resilience("messenger", func, retry_on=(ConnectionError,))
        assert func.await_count == 1

    async def test_open_breaker_short_circuits(self, fast_retry):
        func = AsyncMock(side_effect=ConnectionError("down"))
        for _ in range(2):
            with pytest.raises((ConnectionError, ExternalServiceError)):
                await call_with_resilience("flexibee", func, retry_on=())

        calls_before = func.await_count
        with pytest.raises(ExternalServiceError, match="flexibee"):
            await call_with_resilience("flexibee", func, retry_on=())
        assert func.await_count == calls_before
        assert get_breaker_states()["flexibee"]["state"] == "open"

    async def test_timeout_becomes_external_error(self, fast_retry):
        async def slow() -> None:
            await asyncio.sleep(1)

        with pytest.raises(ExternalServiceError, match="smtp") as exc_info:
            await call_with_resilience("smtp", slow, retry_on=(), timeout=0.01)
        assert isinstance(exc_info.value.__cause__, TimeoutError)
        assert get_breaker_states()["smtp"]["failure_count"] == 1

    async def test_timeout_is_retried_by_default(self, fast_retry):
        func = AsyncMock(side_effect=[TimeoutError(), "ok"])
        assert await call_with_resilience("telegram", func) == "ok"
        assert func.await_count == 2
