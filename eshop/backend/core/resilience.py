"""
Resilience Infrastructure.

Circuit breaker listener, retry callback and the composed call wrapper used
for every outbound integration (Telegram, Messenger, SMTP, FlexiBee).

Stack order, outside-in:
    Circuit Breaker (aiobreaker) → Retry (tenacity) → Semaphore → Timeout → Call

Usage:
    from eshop.backend.core.resilience import call_with_resilience

    response = await call_with_resilience(
        "flexibee",
        client.post, url, json=payload,
        retry_on=(httpx.TransportError,),
        timeout=20,
    )
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import timedelta
from functools import partial
from typing import Any, TypeVar

import aiobreaker
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from eshop.backend.core.concurrency import get_semaphore
from eshop.backend.core.exceptions import ExternalServiceError
from eshop.backend.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_breakers: dict[str, aiobreaker.CircuitBreaker] = {}


def _state_name(state: Any) -> str:
    """'open', 'closed' or 'half-open' for a breaker state object, enum member or string."""
    inner = getattr(state, "state", state)
    name = getattr(inner, "name", None) or str(inner)
    return name.lower().replace("_", "-")


class ResilienceLogger(aiobreaker.CircuitBreakerListener):
    """Circuit breaker listener that emits structured resilience events.

    Filter them with:
        jq 'select(.resilience_event != null)' logs/system.jsonl
    """

    def __init__(self, dependency: str) -> None:
        self.dependency = dependency

    def state_change(self, cb: aiobreaker.CircuitBreaker, old_state: Any, new_state: Any) -> None:
        event_map = {
            "open": "circuit_breaker_opened",
            "half-open": "circuit_breaker_half_open",
            "closed": "circuit_breaker_closed",
        }
        old_str = _state_name(old_state)
        new_str = _state_name(new_state)
        event = event_map.get(new_str, f"circuit_breaker_{new_str}")
        log_level = "error" if new_str == "open" else "info"

        getattr(logger, log_level)(
            f"Circuit breaker {self.dependency}: {old_str} -> {new_str}",
            extra={
                "resilience_event": event,
                "dependency": self.dependency,
                "failure_count": cb.fail_counter,
            },
        )

    def failure(self, cb: aiobreaker.CircuitBreaker, exception: Exception) -> None:
        logger.warning(
            f"Circuit breaker {self.dependency}: failure recorded",
            extra={
                "resilience_event": "circuit_breaker_failure",
                "dependency": self.dependency,
                "failure_count": cb.fail_counter,
                "error": str(exception),
            },
        )


def log_retry(retry_state: Any, dependency: str | None = None) -> None:
    """Tenacity before_sleep callback that emits structured retry events.

    Args:
        retry_state: tenacity.RetryCallState instance
        dependency: Name to log; defaults to the retried function name
    """
    duration_ms = None
    if retry_state.outcome_timestamp and retry_state.start_time:
        duration_ms = round((retry_state.outcome_timestamp - retry_state.start_time) * 1000)

    error = None
    if retry_state.outcome and retry_state.outcome.failed:
        error = str(retry_state.outcome.exception())

    name = dependency or getattr(retry_state.fn, "__name__", "unknown")

    logger.warning(
        f"Retrying {name} (attempt {retry_state.attempt_number})",
        extra={
            "resilience_event": "retry_attempt",
            "dependency": name,
            "attempt": retry_state.attempt_number,
            "duration_ms": duration_ms,
            "error": error,
        },
    )


def create_circuit_breaker(
    dependency: str,
    fail_max: int = 5,
    timeout_duration: int = 30,
) -> aiobreaker.CircuitBreaker:
    """Create a circuit breaker with structured logging.

    Args:
        dependency: Name of the external dependency (for logging)
        fail_max: Number of failures before opening
        timeout_duration: Seconds to wait before half-open test
    """
    return aiobreaker.CircuitBreaker(
        fail_max=fail_max,
        timeout_duration=timedelta(seconds=timeout_duration),
        listeners=[ResilienceLogger(dependency)],
    )


def get_circuit_breaker(dependency: str) -> aiobreaker.CircuitBreaker:
    """Shared breaker per dependency, sized from channels.yaml."""
    if dependency not in _breakers:
        from eshop.backend.core.config import get_app_config

        breaker_config = get_app_config().channels.circuit_breaker
        _breakers[dependency] = create_circuit_breaker(
            dependency,
            fail_max=breaker_config.fail_max,
            timeout_duration=breaker_config.timeout_duration,
        )
    return _breakers[dependency]


def get_breaker_states() -> dict[str, dict[str, Any]]:
    """State and failure count per created breaker."""
    return {
        name: {"state": _state_name(breaker.current_state), "failure_count": breaker.fail_counter}
        for name, breaker in _breakers.items()
    }


def reset_circuit_breakers() -> None:
    """Forget all breakers. Used on shutdown and between tests."""
    _breakers.clear()


async def call_with_resilience(
    dependency: str,
    func: Callable[..., Awaitable[T]],
    *args: Any,
    retry_on: tuple[type[BaseException], ...] = (ConnectionError, TimeoutError),
    timeout: float | None = None,
    **kwargs: Any,
) -> T:
    """
    Run an outbound call through breaker, retry, semaphore and timeout.

    Raises:
        ExternalServiceError: When the breaker is open or the call times out
    """
    from eshop.backend.core.config import get_app_config

    retry_config = get_app_config().channels.retry
    retrying = AsyncRetrying(
        stop=stop_after_attempt(retry_config.max_attempts),
        wait=wait_exponential(multiplier=retry_config.backoff_multiplier, max=retry_config.backoff_max),
        retry=retry_if_exception_type(retry_on),
        before_sleep=partial(log_retry, dependency=dependency),
        reraise=True,
    )

    async def guarded() -> T:
        async for attempt in retrying:
            with attempt:
                async with get_semaphore(dependency):
                    async with asyncio.timeout(timeout):
                        return await func(*args, **kwargs)
        raise RuntimeError("unreachable")

    try:
        return await get_circuit_breaker(dependency).call_async(guarded)
    except aiobreaker.CircuitBreakerError as e:
        raise ExternalServiceError(f"Služba {dependency} je dočasne nedostupná.") from e
    except TimeoutError as e:
        raise ExternalServiceError(f"Služba {dependency} neodpovedala včas.") from e
