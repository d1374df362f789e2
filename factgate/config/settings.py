"""Application settings using Pydantic BaseSettings for environment variable management."""

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from factgate.verification.errors import InvalidConfiguration
from factgate.verification.schemas import AggregationStrategy, FallbackStrategy


class AdapterConfig(BaseModel):
    """Per-adapter overrides applied when an adapter is registered by name."""

    weight: float = Field(default=1.0, ge=0.0)
    timeout: float | None = Field(default=None, gt=0.0)
    enabled: bool = True


class FactGateSettings(BaseSettings):
    """
    Global verification settings loaded from environment variables.

    Every option has a safe default, so an empty environment yields a
    working configuration. Variables use the ``FACTGATE_`` prefix, e.g.
    ``FACTGATE_DEFAULT_TIMEOUT=2.5``.

    Attributes:
        default_timeout: Per-adapter deadline in seconds when metadata has none
        request_timeout: Overall request deadline in seconds
        max_concurrency: Maximum in-flight adapter calls across all requests
        strategy: Default aggregation strategy
        fallback_strategy: Behavior when adapters fail (fail, partial, ignore)
        cache_ttl: Result cache time-to-live in seconds (0 disables caching)
        cache_max_entries: Result cache LRU capacity
        failure_threshold: Consecutive failures before a circuit opens
        cooldown_duration: Seconds an open circuit waits before a trial call
        max_claim_length: Longest accepted claim, in characters
        retry_max_attempts: Default adapter invocation attempts (1 = no retry)
        retry_base_delay: First retry backoff delay in seconds
        retry_multiplier: Exponential backoff multiplier
        retry_max_delay: Upper bound for a single backoff delay
        precheck_availability: Probe is_available() before dispatch
        builtin_adapters: Built-in validators registered by the engine factory
        adapters: Per-adapter weight/timeout/enabled overrides keyed by name
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format (json for production, console for dev)
    """

    default_timeout: float = Field(
        default=5.0,
        gt=0.0,
        description="Per-adapter deadline in seconds"
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0.0,
        description="Overall request deadline in seconds"
    )
    max_concurrency: int = Field(
        default=10,
        ge=1,
        description="Maximum adapter dispatches in flight across all requests"
    )
    strategy: AggregationStrategy = Field(
        default=AggregationStrategy.WEIGHTED_AVERAGE,
        description="Default aggregation strategy"
    )
    fallback_strategy: FallbackStrategy = Field(
        default=FallbackStrategy.PARTIAL,
        description="fail raises AllAdaptersFailed, partial and ignore degrade"
    )
    cache_ttl: float = Field(
        default=300.0,
        ge=0.0,
        description="Result cache TTL in seconds"
    )
    cache_max_entries: int = Field(
        default=1000,
        ge=1,
        description="Result cache capacity before LRU eviction"
    )
    failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive failures that open an adapter circuit"
    )
    cooldown_duration: float = Field(
        default=30.0,
        ge=0.0,
        description="Seconds an open circuit rejects calls"
    )
    max_claim_length: int = Field(
        default=10_000,
        ge=1,
        description="Maximum claim length in characters"
    )
    retry_max_attempts: int = Field(
        default=1,
        ge=1,
        description="Adapter invocation attempts, including the first"
    )
    retry_base_delay: float = Field(
        default=0.1,
        ge=0.0,
        description="First retry delay in seconds"
    )
    retry_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Retry backoff multiplier"
    )
    retry_max_delay: float = Field(
        default=2.0,
        ge=0.0,
        description="Maximum single retry delay in seconds"
    )
    precheck_availability: bool = Field(
        default=False,
        description="Call is_available() before dispatching an adapter"
    )
    builtin_adapters: list[str] = Field(
        default_factory=lambda: ["contradiction-detector", "pattern-validator"],
        description="Built-in validators registered by VerificationEngine.create"
    )
    adapters: dict[str, AdapterConfig] = Field(
        default_factory=dict,
        description="Per-adapter overrides keyed by adapter name"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: json or console"
    )

    model_config = {
        "env_prefix": "FACTGATE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


def load_settings(**overrides) -> FactGateSettings:
    """
    Build settings from the environment plus explicit overrides.

    Raises:
        InvalidConfiguration: If any option fails validation
    """
    try:
        return FactGateSettings(**overrides)
    except ValidationError as e:
        raise InvalidConfiguration(
            f"Invalid FactGate configuration: {e.error_count()} error(s)",
            context={"errors": [err["loc"] for err in e.errors()]},
        ) from e


# Singleton instance - import this throughout the application
settings = load_settings()
