"""Circuit breaker shared by every outbound provider client.

CLOSED lets calls through and counts consecutive failures. Reaching the
threshold moves to OPEN, which rejects calls until ``recovery_timeout``
has elapsed. The next call then runs in HALF_OPEN: success closes the
circuit, failure re-opens it.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum

from blogforge.core.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class CircuitBreakerConfig:
    failure_threshold: int
    recovery_timeout: float


class CircuitBreaker:
    """Async-safe circuit breaker for a single named provider."""

    def __init__(self, config: CircuitBreakerConfig, name: str = "default") -> None:
        self._config = config
        self._name = name
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float | None = None
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    def _transition(self, new_state: CircuitState) -> None:
        previous = self._state
        self._state = new_state
        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(
            f"Circuit breaker {self._name}: {previous.value} -> {new_state.value}",
            extra={
                "circuit_name": self._name,
                "previous_state": previous.value,
                "new_state": new_state.value,
                "failure_count": self._failure_count,
                "recovery_timeout": self._config.recovery_timeout,
            },
        )

    def _recovery_due(self) -> bool:
        if self._opened_at is None:
            return False
        return time.monotonic() - self._opened_at >= self._config.recovery_timeout

    async def can_execute(self) -> bool:
        """Return True if a call may be attempted right now."""
        async with self._lock:
            if self._state == CircuitState.OPEN:
                if not self._recovery_due():
                    return False
                self._transition(CircuitState.HALF_OPEN)
            return True

    async def record_success(self) -> None:
        async with self._lock:
            self._failure_count = 0
            self._opened_at = None
            if self._state != CircuitState.CLOSED:
                self._transition(CircuitState.CLOSED)

    async def record_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            if self._state == CircuitState.HALF_OPEN or (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self._config.failure_threshold
            ):
                self._opened_at = time.monotonic()
                self._transition(CircuitState.OPEN)
