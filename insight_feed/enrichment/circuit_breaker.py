"""Circuit breaker guarding calls to an analysis provider.

When a provider fails repeatedly, further calls fail fast with
CircuitOpenError instead of waiting on timeouts item after item. After a
cool-down a single trial call is let through to test recovery.

Usage:
    breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=60.0, name="openai")
    raw = await breaker.call(client_call, content)
"""

import enum
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised instead of calling through an open circuit."""


class CircuitBreaker:
    """CLOSED -> OPEN -> HALF_OPEN -> CLOSED state machine for async calls.

    Args:
        failure_threshold: Consecutive failures that open the circuit.
        recovery_timeout: Seconds the circuit stays open before a trial call.
        name: Provider name used in log lines and errors.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        name: str = "analysis",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.name = name
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0

    @property
    def state(self) -> CircuitState:
        """Current state, moving OPEN to HALF_OPEN once the cool-down has passed."""
        if (
            self._state == CircuitState.OPEN
            and self._clock() - self._opened_at >= self.recovery_timeout
        ):
            self._transition(CircuitState.HALF_OPEN)
        return self._state

    @property
    def failures(self) -> int:
        return self._failures

    async def call(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run fn through the breaker.

        Raises:
            CircuitOpenError: If the circuit is open.
        """
        if self.state == CircuitState.OPEN:
            remaining = self.recovery_timeout - (self._clock() - self._opened_at)
            raise CircuitOpenError(
                f"{self.name} circuit is open; retry in {max(remaining, 0.0):.0f}s"
            )

        try:
            result = await fn(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def reset(self) -> None:
        """Force the breaker back to CLOSED."""
        self._failures = 0
        self._transition(CircuitState.CLOSED)

    def _on_success(self) -> None:
        self._failures = 0
        if self._state != CircuitState.CLOSED:
            self._transition(CircuitState.CLOSED)

    def _on_failure(self) -> None:
        self._failures += 1
        if self._state == CircuitState.HALF_OPEN or self._failures >= self.failure_threshold:
            self._opened_at = self._clock()
            self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        if new_state == self._state:
            return
        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(
            "Circuit breaker %s: %s -> %s (failures=%d)",
            self.name,
            self._state.value,
            new_state.value,
            self._failures,
        )
        self._state = new_state
