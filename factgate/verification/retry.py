"""Adapter-agnostic retry policy applied at the adapter invocation boundary.

Adapters no longer carry their own retry-with-backoff loops; the
orchestrator wraps every adapter call in the adapter's RetryPolicy
(or the global default). The whole retry sequence runs inside the
adapter's deadline, so retries never extend a request's latency bound.

Usage:
    policy = RetryPolicy(max_attempts=3, base_delay=0.5)
    result = await policy.call(adapter.verify, claim, context)
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from factgate.verification.errors import FactGateError


def is_retryable_error(error: BaseException) -> bool:
    """Default retry predicate.

    FactGate errors carry their own ``retryable`` flag; otherwise only
    connection failures and timeouts raised by the adapter itself qualify.
    """
    if isinstance(error, FactGateError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff retry configuration.

    Attributes:
        max_attempts: Total attempts including the first (1 disables retry)
        base_delay: Delay before the first retry, in seconds
        multiplier: Growth factor applied to each subsequent delay
        max_delay: Cap for a single delay, in seconds
        retry_on: Predicate deciding whether an exception is retryable
    """

    max_attempts: int = 1
    base_delay: float = 0.1
    multiplier: float = 2.0
    max_delay: float = 2.0
    retry_on: Callable[[BaseException], bool] = field(default=is_retryable_error)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryPolicy":
        """Build the global default policy from FactGateSettings."""
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            multiplier=settings.retry_multiplier,
            max_delay=settings.retry_max_delay,
        )

    def delay_for(self, retry_number: int) -> float:
        """Backoff before the given retry (1-based), capped at max_delay."""
        return min(self.max_delay, self.base_delay * self.multiplier ** (retry_number - 1))

    async def call(
        self,
        fn: Callable[..., Awaitable[Any]],
        *args: Any,
        on_retry: Optional[Callable[[int, BaseException], None]] = None,
        **kwargs: Any,
    ) -> Any:
        """Await ``fn(*args, **kwargs)``, retrying retryable failures.

        Args:
            fn: Coroutine function to invoke.
            on_retry: Called with (attempt_number, error) before each backoff sleep.

        Returns:
            The first successful result.

        Raises:
            The last exception once attempts are exhausted or the error is not retryable.
        """
        if self.max_attempts == 1:
            return await fn(*args, **kwargs)

        def _before_sleep(retry_state: RetryCallState) -> None:
            if on_retry is not None and retry_state.outcome is not None:
                on_retry(retry_state.attempt_number, retry_state.outcome.exception())

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.base_delay,
                exp_base=self.multiplier,
                max=self.max_delay,
            ),
            retry=retry_if_exception(self.retry_on),
            before_sleep=_before_sleep,
            reraise=True,
        )

        result = None
        async for attempt in retrying:
            with attempt:
                result = await fn(*args, **kwargs)
        return result


__all__ = ["RetryPolicy", "is_retryable_error"]
