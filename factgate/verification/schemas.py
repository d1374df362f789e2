"""Verification domain schemas.

Defines the data structures shared by the registry, orchestrator,
aggregator and cache:

- 3 verdicts (VERIFIED, CONTRADICTED, UNCERTAIN), per adapter and in aggregate
- 4 aggregation strategies (weighted-average, majority-vote, pessimistic, optimistic)
- 3 fallback strategies (fail, partial, ignore)
- Circuit breaker states (closed, open, half-open)

VerificationResult and AggregatedResult are immutable once produced.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from factgate.verification.retry import RetryPolicy


class Verdict(str, Enum):
    """Outcome reported by one adapter or by the aggregate.

    VERIFIED: Evidence supports the claim.
    CONTRADICTED: Evidence contradicts the claim.
    UNCERTAIN: Not enough evidence either way.
    """

    VERIFIED = "verified"
    CONTRADICTED = "contradicted"
    UNCERTAIN = "uncertain"


class AggregationStrategy(str, Enum):
    """Policy used to combine per-adapter results into one verdict."""

    WEIGHTED_AVERAGE = "weighted-average"
    MAJORITY_VOTE = "majority-vote"
    PESSIMISTIC = "pessimistic"
    OPTIMISTIC = "optimistic"


class FallbackStrategy(str, Enum):
    """Behavior when adapters fail to contribute.

    FAIL: Raise AllAdaptersFailed when no adapter produced a result.
    PARTIAL: Degrade gracefully; flag the result partial and list failures.
    IGNORE: Degrade gracefully; flag the result partial but omit the failure list.
    """

    FAIL = "fail"
    PARTIAL = "partial"
    IGNORE = "ignore"


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class VerificationResult(BaseModel):
    """Verdict from a single adapter for a single claim."""

    model_config = ConfigDict(frozen=True)

    source_id: str = Field(..., min_length=1, description="Name of the reporting adapter")
    verdict: Verdict = Field(..., description="Adapter verdict")
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Adapter confidence in its verdict (0.0-1.0)",
    )
    reasoning: str = Field(default="", description="Explanation of the verdict")
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Adapter-specific metadata (matches, thresholds, ...)",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the result was produced",
    )


class AggregatedResult(BaseModel):
    """Combined verdict over every adapter that contributed.

    ``sources`` is ordered highest confidence first (ties by source_id).
    ``partial`` is True when at least one selected adapter did not contribute;
    those adapters are listed in ``unavailable``.
    """

    model_config = ConfigDict(frozen=True)

    claim: str
    overall: Verdict
    confidence: float = Field(..., ge=0.0, le=1.0)
    sources: list[VerificationResult] = Field(default_factory=list)
    combined_reasoning: str = ""
    processing_time: float = Field(default=0.0, ge=0.0, description="Seconds")
    partial: bool = False
    unavailable: list[str] = Field(default_factory=list)
    strategy: AggregationStrategy = AggregationStrategy.WEIGHTED_AVERAGE
    cache_hit: bool = False


class AdapterMetadata(BaseModel):
    """Registry-owned metadata for one adapter.

    weight: Relative weight for weighted-average aggregation (equal by default).
    timeout: Per-adapter deadline in seconds; None uses the global default.
    enabled: Disabled adapters are excluded from snapshots.
    retry: Invocation retry policy; None uses the global default.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    weight: float = Field(default=1.0, ge=0.0)
    timeout: Optional[float] = Field(default=None, gt=0.0)
    enabled: bool = True
    retry: Optional[RetryPolicy] = None


class CircuitBreakerState(BaseModel):
    """Point-in-time view of one adapter's circuit breaker."""

    model_config = ConfigDict(frozen=True)

    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = Field(default=0, ge=0)
    last_failure_time: Optional[datetime] = None
    cooldown_until: Optional[datetime] = None


class AdapterStats(BaseModel):
    """Running call statistics for one registered adapter."""

    total_calls: int = 0
    successes: int = 0
    errors: int = 0
    timeouts: int = 0
    skipped: int = 0
    retries: int = 0
    avg_response_time: float = 0.0

    def record_response_time(self, elapsed: float) -> None:
        """Fold one settled call's duration into the running average."""
        settled = self.successes + self.errors + self.timeouts
        if settled <= 0:
            self.avg_response_time = elapsed
            return
        self.avg_response_time += (elapsed - self.avg_response_time) / settled


class AdapterInfo(BaseModel):
    """Introspection record returned by list_adapters()."""

    name: str
    description: str = ""
    weight: float
    timeout: Optional[float] = None
    enabled: bool
    circuit: CircuitBreakerState
    stats: AdapterStats


class VerifyOptions(BaseModel):
    """Per-request options.

    adapters: Restrict dispatch to these adapter names (None = all enabled).
    strategy: Aggregation strategy override.
    context: Opaque context passed to every adapter's verify().
    use_cache: Serve from and populate the result cache.
    """

    adapters: Optional[list[str]] = None
    strategy: Optional[AggregationStrategy] = None
    context: dict[str, Any] = Field(default_factory=dict)
    use_cache: bool = True


__all__ = [
    "Verdict",
    "AggregationStrategy",
    "FallbackStrategy",
    "CircuitState",
    "VerificationResult",
    "AggregatedResult",
    "AdapterMetadata",
    "CircuitBreakerState",
    "AdapterStats",
    "AdapterInfo",
    "VerifyOptions",
]
