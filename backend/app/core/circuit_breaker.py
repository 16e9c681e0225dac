"""Circuit breaker pattern for database resilience.

When the database fails repeatedly, the breaker "opens" and rejects calls
immediately instead of piling more requests onto a struggling server.

States:
    CLOSED: Normal operation, calls pass through
    OPEN: Database is failing, calls are rejected until ``next_attempt``
    HALF_OPEN: Trial calls are allowed to probe for recovery

Transitions:
    CLOSED -> OPEN: When consecutive failures reach ``failure_threshold``
    OPEN -> HALF_OPEN: On the first call at or after ``next_attempt``
    HALF_OPEN -> CLOSED: When ``success_threshold`` trial calls succeed
    HALF_OPEN -> OPEN: On any failure during the trial
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker behavior."""

    failure_threshold: int = 5
    """Number of consecutive failures before opening the circuit."""

    recovery_timeout: float = 30.0
    """Seconds the circuit stays OPEN before allowing a trial call."""

    success_threshold: int = 2
    """Number of successful trial calls in HALF_OPEN before closing."""

    enabled: bool = True
    """Whether the circuit breaker is enabled."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.recovery_timeout < 0:
            raise ValueError("recovery_timeout must be non-negative")
        if self.success_threshold < 1:
            raise ValueError("success_threshold must be at least 1")


class CircuitBreakerOpen(Exception):
    """Exception raised when a call is rejected by an open circuit."""

    def __init__(self, name: str, time_until_retry: float):
        self.name = name
        self.time_until_retry = time_until_retry
        super().__init__(
            f"Circuit breaker '{name}' is OPEN. Retry in {time_until_retry:.1f}s"
        )


class CircuitBreaker:
    """Circuit breaker protecting a single dependency.

    Only exceptions that are instances of ``failure_exceptions`` count as
    failures; anything else (validation errors, HTTP errors raised by
    business logic) passes through without affecting the state.

    Thread-safe implementation using a re-entrant lock.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        failure_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
        clock: Callable[[], float] = time.time,
    ):
        """Initialize circuit breaker.

        Args:
            name: Name of the dependency this breaker protects
            config: Circuit breaker configuration (uses defaults if not provided)
            failure_exceptions: Exception types that count as failures
            clock: Time source returning epoch seconds (injectable for tests)
        """
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.failure_exceptions = failure_exceptions
        self._clock = clock
        self._lock = threading.RLock()
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._successes = 0
        self._next_attempt: Optional[float] = None

        logger.debug(
            f"CircuitBreaker initialized for {name} "
            f"(threshold={self.config.failure_threshold}, "
            f"recovery={self.config.recovery_timeout}s)"
        )

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        with self._lock:
            return self._state

    @property
    def is_available(self) -> bool:
        """Whether a call made now would be allowed through."""
        if not self.config.enabled:
            return True
        with self._lock:
            if self._state != CircuitState.OPEN:
                return True
            return self._next_attempt is not None and self._clock() >= self._next_attempt

    def _transition_to(self, new_state: CircuitState, reason: str) -> None:
        """Transition to a new state. Must be called while holding the lock."""
        old_state = self._state
        if old_state == new_state:
            return

        log = logger.warning if new_state == CircuitState.OPEN else logger.info
        log(
            f"Circuit breaker [{self.name}]: "
            f"{old_state.value} -> {new_state.value} ({reason})"
        )
        self._state = new_state

        if new_state == CircuitState.OPEN:
            self._next_attempt = self._clock() + self.config.recovery_timeout
            self._successes = 0
        elif new_state == CircuitState.HALF_OPEN:
            self._successes = 0
        elif new_state == CircuitState.CLOSED:
            self._failures = 0
            self._successes = 0
            self._next_attempt = None

    def before_call(self) -> None:
        """Gate a call through the breaker.

        Raises:
            CircuitBreakerOpen: If the circuit is OPEN and the recovery
                timeout has not elapsed yet.
        """
        if not self.config.enabled:
            return

        with self._lock:
            if self._state != CircuitState.OPEN:
                return

            now = self._clock()
            if self._next_attempt is not None and now >= self._next_attempt:
                self._transition_to(CircuitState.HALF_OPEN, "Recovery timeout elapsed")
                return

            time_until_retry = max(0.0, (self._next_attempt or now) - now)
            raise CircuitBreakerOpen(self.name, time_until_retry)

    def record_success(self) -> None:
        """Record a successful call."""
        if not self.config.enabled:
            return

        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._successes += 1
                if self._successes >= self.config.success_threshold:
                    self._transition_to(
                        CircuitState.CLOSED,
                        f"Success threshold ({self.config.success_threshold}) met",
                    )
            else:
                self._failures = 0

    def record_failure(self) -> None:
        """Record a failed call."""
        if not self.config.enabled:
            return

        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.OPEN, "Failure during HALF_OPEN trial")
                return

            self._failures += 1
            if (
                self._state == CircuitState.CLOSED
                and self._failures >= self.config.failure_threshold
            ):
                self._transition_to(
                    CircuitState.OPEN,
                    f"Failure threshold reached ({self._failures} consecutive)",
                )

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Execute a function with circuit breaker protection.

        Raises:
            CircuitBreakerOpen: If the circuit is open
            Exception: Whatever the function raises
        """
        self.before_call()
        try:
            result = func(*args, **kwargs)
        except self.failure_exceptions:
            self.record_failure()
            raise
        self.record_success()
        return result

    def get_state(self) -> Dict[str, Any]:
        """Snapshot of the breaker for monitoring endpoints."""
        with self._lock:
            next_attempt = None
            if self._next_attempt is not None:
                next_attempt = datetime.fromtimestamp(
                    self._next_attempt, tz=timezone.utc
                ).isoformat()
            return {
                "name": self.name,
                "state": self._state.value,
                "failures": self._failures,
                "successes": self._successes,
                "nextAttempt": next_attempt,
            }

    def reset(self) -> None:
        """Reset circuit breaker to its initial CLOSED state."""
        with self._lock:
            old_state = self._state
            self._state = CircuitState.CLOSED
            self._failures = 0
            self._successes = 0
            self._next_attempt = None
            logger.info(f"Circuit breaker [{self.name}] reset from {old_state.value}")


# Connectivity errors only; constraint violations mean the database is healthy
DB_FAILURE_EXCEPTIONS: Tuple[Type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    PoolTimeoutError,
)

db_circuit_breaker = CircuitBreaker(
    "database",
    CircuitBreakerConfig(
        failure_threshold=3,
        recovery_timeout=10.0,
        success_threshold=2,
    ),
    failure_exceptions=DB_FAILURE_EXCEPTIONS,
)
