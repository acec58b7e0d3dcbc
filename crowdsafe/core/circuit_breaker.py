# crowdsafe/core/circuit_breaker.py
"""
Circuit breaker for the LLM analysis call.
Keeps event submission fast when Anthropic is down by failing straight to
the deterministic analysis.
"""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from crowdsafe.core.config import settings
from crowdsafe.core.exceptions import CircuitBreakerOpenError

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitBreaker:
    """
    Async circuit breaker for external API calls.

    Usage:
        breaker = CircuitBreaker("anthropic")

        async with breaker:
            result = await external_api_call()
    """

    def __init__(
        self,
        name: str,
        fail_max: Optional[int] = None,
        reset_timeout: Optional[int] = None,
        exclude_exceptions: Optional[tuple] = None,
    ):
        """
        Initialize circuit breaker.

        Limits not given here come from settings. Exceptions listed in
        `exclude_exceptions` pass through without counting as failures.
        """
        self.name = name
        self.fail_max = fail_max or settings.CIRCUIT_BREAKER_FAIL_MAX
        self.reset_timeout = reset_timeout or settings.CIRCUIT_BREAKER_TIMEOUT
        self.exclude_exceptions = exclude_exceptions or ()

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[datetime] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        return self._state

    @property
    def is_open(self) -> bool:
        """Check if circuit is open (failing)."""
        return self._state == CircuitState.OPEN

    async def __aenter__(self):
        """Context manager entry - check if request allowed."""
        await self._before_call()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - record success/failure."""
        if exc_type is None:
            await self._on_success()
        elif not issubclass(exc_type, self.exclude_exceptions):
            await self._on_failure(exc_val)
        return False  # Don't suppress exceptions

    async def call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Run an async callable through the breaker."""
        async with self:
            return await func(*args, **kwargs)

    async def _before_call(self) -> None:
        """Check circuit state before allowing call."""
        async with self._lock:
            if self._state != CircuitState.OPEN:
                return

            if self._should_attempt_reset():
                self._state = CircuitState.HALF_OPEN
                logger.info(f"Circuit breaker {self.name} entering HALF_OPEN state")
                return
            raise CircuitBreakerOpenError(self.name)

    async def _on_success(self) -> None:
        """Handle successful call."""
        async with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                logger.info(f"Circuit breaker {self.name} recovered, closing circuit")
            self._reset()

    async def _on_failure(self, exception: BaseException) -> None:
        """Handle failed call."""
        async with self._lock:
            self._failure_count += 1
            self._last_failure_time = datetime.now(timezone.utc)

            logger.warning(
                f"Circuit breaker {self.name} failure {self._failure_count}/{self.fail_max}: "
                f"{type(exception).__name__}: {exception}"
            )

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning(f"Circuit breaker {self.name} reopened after failed recovery")
            elif self._failure_count >= self.fail_max:
                self._state = CircuitState.OPEN
                logger.warning(
                    f"Circuit breaker {self.name} opened after {self._failure_count} failures"
                )

    def _should_attempt_reset(self) -> bool:
        """Check if enough time has passed to attempt recovery."""
        if self._last_failure_time is None:
            return True
        elapsed = (datetime.now(timezone.utc) - self._last_failure_time).total_seconds()
        return elapsed >= self.reset_timeout

    def _reset(self) -> None:
        """Reset circuit to closed state."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = None

    def get_stats(self) -> dict:
        """Get circuit breaker statistics."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "fail_max": self.fail_max,
            "reset_timeout": self.reset_timeout,
            "last_failure_time": (
                self._last_failure_time.isoformat() if self._last_failure_time else None
            ),
        }


_circuit_breakers: dict[str, CircuitBreaker] = {}


def get_circuit_breaker(name: str) -> CircuitBreaker:
    """Get or create a circuit breaker by name so state survives across calls."""
    if name not in _circuit_breakers:
        _circuit_breakers[name] = CircuitBreaker(name=name)
    return _circuit_breakers[name]


def get_anthropic_breaker() -> CircuitBreaker:
    """Shared breaker for the Anthropic analysis call."""
    return get_circuit_breaker("anthropic")


def get_all_breaker_stats() -> list[dict]:
    """Stats for every breaker created so far."""
    return [breaker.get_stats() for breaker in _circuit_breakers.values()]
