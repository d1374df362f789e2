"""Verification core: registry, orchestration, aggregation and caching.

Core workflow:
1. AdapterRegistry holds adapters, their metadata and circuit breakers
2. ResultCache collapses identical concurrent requests and serves recent results
3. VerificationOrchestrator fans a claim out to adapters under deadlines
4. ConfidenceAggregator combines the settled results into one verdict

VerificationEngine wires these together behind a single public API.
"""

# Lazy imports: settings import errors/schemas from this package
__all__ = [
    "AdapterRegistry",
    "CircuitBreaker",
    "ConfidenceAggregator",
    "ResultCache",
    "RetryPolicy",
    "VerificationEngine",
    "VerificationOrchestrator",
]


def __getattr__(name: str):
    """Lazy import verification components."""
    if name == "AdapterRegistry":
        from factgate.verification.registry import AdapterRegistry
        return AdapterRegistry
    elif name == "CircuitBreaker":
        from factgate.verification.circuit_breaker import CircuitBreaker
        return CircuitBreaker
    elif name == "ConfidenceAggregator":
        from factgate.verification.aggregator import ConfidenceAggregator
        return ConfidenceAggregator
    elif name == "ResultCache":
        from factgate.verification.cache import ResultCache
        return ResultCache
    elif name == "RetryPolicy":
        from factgate.verification.retry import RetryPolicy
        return RetryPolicy
    elif name == "VerificationEngine":
        from factgate.verification.engine import VerificationEngine
        return VerificationEngine
    elif name == "VerificationOrchestrator":
        from factgate.verification.orchestrator import VerificationOrchestrator
        return VerificationOrchestrator
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
