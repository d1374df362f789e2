"""Per-adapter circuit breaker.

Stops dispatching to an adapter that keeps failing, for a cooldown window.

States:
    CLOSED: Normal operation, calls pass through
    OPEN: Calls skipped until the cooldown elapses
    HALF_OPEN: Exactly one trial call allowed to test recovery

Transitions:
    CLOSED -> OPEN        consecutive failures reach failure_threshold
    OPEN -> HALF_OPEN     first allow_request() after the cooldown elapses
    HALF_OPEN -> CLOSED   trial call succeeds
    HALF_OPEN -> OPEN     trial call fails

Each breaker owns its own lock, so updates for unrelated adapters never
contend with each other.

Example:
    >>> breaker = CircuitBreaker("kb", failure_threshold=3, cooldown_duration=30.0)
    >>> if breaker.allow_request():
    ...     try:
    ...         result = await adapter.verify(claim)
    ...         breaker.record_success()
    ...     except Exception:
    ...         breaker.record_failure()
"""

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import structlog

from factgate.verification.schemas import CircuitBreakerState, CircuitState


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class CircuitBreaker:
    """Failure-tracking state machine for one adapter.

    Attributes:
        name: Adapter name this breaker guards
        failure_threshold: Consecutive failures before opening
        cooldown_duration: Seconds to stay open before a trial call
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        cooldown_duration: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self.name = name
        self.failure_threshold = failure_threshold
        self.cooldown_duration = cooldown_duration
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._last_failure_time: Optional[datetime] = None
        self._cooldown_deadline = 0.0
        self._cooldown_until: Optional[datetime] = None
        self._trial_in_flight = False
        self._logger = structlog.get_logger().bind(component="CircuitBreaker", adapter=name)

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    def allow_request(self) -> bool:
        """Decide whether the adapter may be dispatched now.

        An OPEN breaker whose cooldown has elapsed moves to HALF_OPEN and
        grants the single trial call. While that trial is outstanding every
        other request is refused.
        """
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                if self._clock() < self._cooldown_deadline:
                    return False
                self._transition_to(CircuitState.HALF_OPEN)

            if self._trial_in_flight:
                return False
            self._trial_in_flight = True
            return True

    def record_success(self) -> None:
        """Reset the failure streak and close the circuit."""
        with self._lock:
            self._consecutive_failures = 0
            self._trial_in_flight = False
            if self._state != CircuitState.CLOSED:
                self._transition_to(CircuitState.CLOSED)

    def record_failure(self) -> None:
        """Count a failure; open the circuit at the threshold or on a failed trial."""
        with self._lock:
            self._consecutive_failures += 1
            self._last_failure_time = utcnow()

            if self._state == CircuitState.HALF_OPEN:
                self._trial_in_flight = False
                self._open()
            elif (
                self._state == CircuitState.CLOSED
                and self._consecutive_failures >= self.failure_threshold
            ):
                self._open()

    def release_trial(self) -> None:
        """Give back a half-open trial slot that was granted but never dispatched."""
        with self._lock:
            self._trial_in_flight = False

    def reset(self) -> None:
        """Force the breaker back to CLOSED with a clean failure count."""
        with self._lock:
            self._consecutive_failures = 0
            self._last_failure_time = None
            self._trial_in_flight = False
            self._cooldown_until = None
            self._cooldown_deadline = 0.0
            self._state = CircuitState.CLOSED

    def snapshot(self) -> CircuitBreakerState:
        """Immutable view of the current state for status reporting."""
        with self._lock:
            return CircuitBreakerState(
                state=self._state,
                consecutive_failures=self._consecutive_failures,
                last_failure_time=self._last_failure_time,
                cooldown_until=self._cooldown_until,
            )

    def _open(self) -> None:
        self._cooldown_deadline = self._clock() + self.cooldown_duration
        self._cooldown_until = utcnow() + timedelta(seconds=self.cooldown_duration)
        self._transition_to(CircuitState.OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        if new_state == CircuitState.CLOSED:
            self._cooldown_until = None
        self._logger.info(
            "circuit_state_changed",
            old_state=old_state.value,
            new_state=new_state.value,
            consecutive_failures=self._consecutive_failures,
        )


__all__ = ["CircuitBreaker", "utcnow"]
