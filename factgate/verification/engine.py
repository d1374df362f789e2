"""Public entry point wiring registry, cache, orchestrator and aggregator.

Usage:
    engine = await VerificationEngine.create()
    await engine.register_adapter(StaticFactsAdapter(["Water boils at 100°C at sea level"]))
    result = await engine.verify("Water boils at 100°C at sea level")
    print(result.overall, result.confidence, result.combined_reasoning)
"""

from typing import Any, Dict, Iterable, List, Optional

from factgate.adapters import BUILTIN_ADAPTERS
from factgate.config.logging import get_logger
from factgate.config.settings import FactGateSettings
from factgate.config.settings import settings as default_settings
from factgate.verification.aggregator import ConfidenceAggregator
from factgate.verification.cache import ResultCache
from factgate.verification.errors import InvalidConfiguration
from factgate.verification.orchestrator import VerificationOrchestrator
from factgate.verification.registry import AdapterRegistry
from factgate.verification.schemas import (
    AdapterInfo,
    AdapterMetadata,
    AggregatedResult,
    CircuitBreakerState,
    VerifyOptions,
)


class VerificationEngine:
    """
    Verification façade for the protocol layer.

    Requests flow: cache/single-flight -> orchestrator -> aggregator.
    Registry changes clear cached results, since a cached "all adapters"
    verdict no longer reflects the adapter set.
    """

    def __init__(
        self,
        registry: Optional[AdapterRegistry] = None,
        settings: Optional[FactGateSettings] = None,
        orchestrator: Optional[VerificationOrchestrator] = None,
        cache: Optional[ResultCache] = None,
    ):
        """
        Initialize the engine. Components not supplied are built from settings.

        Args:
            registry: Adapter registry
            settings: FactGate settings (module singleton if omitted)
            orchestrator: Orchestrator bound to ``registry``
            cache: Result cache
        """
        self.settings = settings or default_settings
        self.registry = registry or AdapterRegistry(
            failure_threshold=self.settings.failure_threshold,
            cooldown_duration=self.settings.cooldown_duration,
        )
        self.orchestrator = orchestrator or VerificationOrchestrator.from_settings(
            self.registry,
            self.settings,
            ConfidenceAggregator(self.settings.strategy),
        )
        self.cache = cache or ResultCache(
            ttl=self.settings.cache_ttl,
            max_entries=self.settings.cache_max_entries,
        )
        self.logger = get_logger("VerificationEngine")

    @classmethod
    async def create(
        cls,
        settings: Optional[FactGateSettings] = None,
        adapters: Iterable[Any] = (),
        register_builtins: bool = True,
    ) -> "VerificationEngine":
        """
        Build an engine and register the built-in plus any given adapters.

        Raises:
            InvalidConfiguration: A configured built-in adapter name is unknown
            InvalidAdapter: An adapter violates the contract or its name collides
        """
        engine = cls(settings=settings)

        if register_builtins:
            for name in engine.settings.builtin_adapters:
                factory = BUILTIN_ADAPTERS.get(name)
                if factory is None:
                    raise InvalidConfiguration(
                        f"Unknown built-in adapter: {name}",
                        context={"available": sorted(BUILTIN_ADAPTERS)},
                    )
                await engine.register_adapter(factory())

        for adapter in adapters:
            await engine.register_adapter(adapter)

        engine.logger.info(f"Verification engine ready with {len(engine.registry)} adapter(s)")
        return engine

    def metadata_for(self, name: str) -> AdapterMetadata:
        """Default metadata for an adapter, applying settings.adapters overrides."""
        override = self.settings.adapters.get(name)
        if override is None:
            return AdapterMetadata()
        return AdapterMetadata(
            weight=override.weight,
            timeout=override.timeout,
            enabled=override.enabled,
        )

    async def register_adapter(
        self,
        adapter: Any,
        metadata: Optional[AdapterMetadata] = None,
    ) -> AdapterInfo:
        """Register an adapter; metadata defaults to the configured override."""
        name = getattr(adapter, "name", None)
        if metadata is None and isinstance(name, str):
            metadata = self.metadata_for(name)
        entry = await self.registry.register(adapter, metadata)
        self.cache.clear()
        return entry.info()

    async def unregister_adapter(self, name: str) -> bool:
        """Remove an adapter for new requests; in-flight requests are unaffected."""
        removed = await self.registry.unregister(name)
        if removed:
            self.cache.clear()
        return removed

    async def set_adapter_enabled(self, name: str, enabled: bool) -> bool:
        updated = await self.registry.set_enabled(name, enabled)
        if updated:
            self.cache.clear()
        return updated

    async def verify(
        self,
        claim: str,
        options: Optional[VerifyOptions] = None,
    ) -> AggregatedResult:
        """
        Verify a claim.

        Goes through the result cache unless ``options.use_cache`` is False.

        Raises:
            InvalidClaim, AdapterNotFound, AllAdaptersFailed
        """
        options = options or VerifyOptions()
        if not options.use_cache:
            return await self.orchestrator.verify(claim, options)
        return await self.verify_cached(claim, options)

    async def verify_cached(
        self,
        claim: str,
        options: Optional[VerifyOptions] = None,
    ) -> AggregatedResult:
        """Verify through the cache: hits skip dispatch, identical concurrent calls share one."""
        options = options or VerifyOptions()
        self.orchestrator.validate_claim(claim)
        key = self.cache.make_key(claim, options.adapters, options.strategy)
        return await self.cache.get_or_compute(key, lambda: self.orchestrator.verify(claim, options))

    def list_adapters(self) -> List[AdapterInfo]:
        return self.registry.list_adapters()

    def get_adapter_status(self) -> Dict[str, CircuitBreakerState]:
        return self.registry.statuses()

    def clear_cache(self) -> None:
        self.cache.clear()
        self.logger.info("Result cache cleared")

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get engine statistics for monitoring.

        Returns:
            Dictionary with registry and cache stats
        """
        return {
            "registry": self.registry.get_statistics(),
            "cache": self.cache.stats(),
            "strategy": self.orchestrator.aggregator.default_strategy.value,
            "fallback_strategy": self.orchestrator.fallback_strategy.value,
        }


__all__ = ["VerificationEngine"]
