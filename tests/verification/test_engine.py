"""End-to-end tests for VerificationEngine.

Tests cover:
- Factory wiring (built-in adapters, settings overrides, unknown built-ins)
- verify() through the cache, use_cache=False bypass
- Single-flight across concurrent engine calls
- Registration lifecycle and introspection
- Scenarios: agreeing sources, one failure, empty claim, tie on equal confidence
"""

import asyncio

import pytest

from factgate.adapters.base import BaseAdapter
from factgate.adapters.knowledge_base import StaticFactsAdapter
from factgate.config.settings import AdapterConfig, load_settings
from factgate.verification.engine import VerificationEngine
from factgate.verification.errors import InvalidAdapter, InvalidClaim, InvalidConfiguration
from factgate.verification.schemas import (
    AdapterMetadata,
    AggregationStrategy,
    CircuitState,
    Verdict,
    VerifyOptions,
)


class CountingAdapter(BaseAdapter):
    def __init__(self, name: str, verdict: Verdict = Verdict.VERIFIED, confidence: float = 0.9, delay: float = 0.0):
        super().__init__(name=name, description=f"{name} test adapter")
        self.verdict = verdict
        self.confidence = confidence
        self.delay = delay
        self.calls = 0

    async def verify(self, claim, context=None):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.make_result(self.verdict, self.confidence, f"{self.name} checked")


class BrokenAdapter(BaseAdapter):
    name = "broken"

    async def verify(self, claim, context=None):
        raise RuntimeError("database offline")


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def settings():
    return load_settings(builtin_adapters=[], default_timeout=1.0, request_timeout=2.0)


@pytest.fixture
def engine(settings) -> VerificationEngine:
    return VerificationEngine(settings=settings)


# ── Factory Tests ────────────────────────────────────────────────────────


class TestFactory:
    @pytest.mark.asyncio
    async def test_builtins_registered_by_default(self) -> None:
        engine = await VerificationEngine.create(load_settings())

        names = [info.name for info in engine.list_adapters()]
        assert names == ["contradiction-detector", "pattern-validator"]

    @pytest.mark.asyncio
    async def test_unknown_builtin_rejected(self) -> None:
        with pytest.raises(InvalidConfiguration, match="Unknown built-in adapter"):
            await VerificationEngine.create(load_settings(builtin_adapters=["telepathy"]))

    @pytest.mark.asyncio
    async def test_settings_overrides_applied_at_registration(self) -> None:
        settings = load_settings(
            builtin_adapters=[],
            adapters={"kb": AdapterConfig(weight=2.5, timeout=0.5, enabled=False)},
        )
        engine = await VerificationEngine.create(settings, adapters=[CountingAdapter("kb")])

        info = engine.list_adapters()[0]
        assert info.weight == 2.5
        assert info.timeout == 0.5
        assert info.enabled is False

    @pytest.mark.asyncio
    async def test_explicit_metadata_wins(self, engine: VerificationEngine) -> None:
        info = await engine.register_adapter(CountingAdapter("kb"), AdapterMetadata(weight=4.0))

        assert info.weight == 4.0
        assert info.description == "kb test adapter"


# ── Scenario Tests ───────────────────────────────────────────────────────


class TestScenarios:
    @pytest.mark.asyncio
    async def test_two_verified_sources(self, engine: VerificationEngine) -> None:
        await engine.register_adapter(CountingAdapter("a", confidence=0.9), AdapterMetadata(weight=0.5))
        await engine.register_adapter(CountingAdapter("b", confidence=0.8), AdapterMetadata(weight=0.5))

        result = await engine.verify("Water boils at 100°C at sea level")

        assert result.overall == Verdict.VERIFIED
        assert result.confidence == pytest.approx(0.85)

    @pytest.mark.asyncio
    async def test_one_failure_one_uncertain(self, engine: VerificationEngine) -> None:
        await engine.register_adapter(BrokenAdapter())
        await engine.register_adapter(CountingAdapter("ok", Verdict.UNCERTAIN, 0.4))

        result = await engine.verify("The meeting happened on Tuesday")

        assert result.overall == Verdict.UNCERTAIN
        assert result.confidence == pytest.approx(0.4)
        assert result.partial is True
        assert result.unavailable == ["broken"]

    @pytest.mark.asyncio
    async def test_empty_claim_rejected_without_dispatch(self, engine: VerificationEngine) -> None:
        adapter = CountingAdapter("a")
        await engine.register_adapter(adapter)

        with pytest.raises(InvalidClaim):
            await engine.verify("")
        assert adapter.calls == 0

    @pytest.mark.asyncio
    async def test_majority_tie_broken_by_source_id(self, engine: VerificationEngine) -> None:
        await engine.register_adapter(CountingAdapter("B", Verdict.CONTRADICTED, 0.9))
        await engine.register_adapter(CountingAdapter("A", Verdict.VERIFIED, 0.9))

        result = await engine.verify(
            "Contested claim",
            VerifyOptions(strategy=AggregationStrategy.MAJORITY_VOTE),
        )

        assert result.overall == Verdict.VERIFIED
        assert result.confidence == pytest.approx(0.5)
        assert [s.source_id for s in result.sources] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_builtins_flag_misinformation(self) -> None:
        engine = await VerificationEngine.create(load_settings())

        result = await engine.verify("Vaccines cause autism")

        assert result.overall == Verdict.CONTRADICTED
        by_source = {s.source_id: s for s in result.sources}
        assert by_source["pattern-validator"].verdict == Verdict.CONTRADICTED

    @pytest.mark.asyncio
    async def test_knowledge_base_verifies_known_fact(self, engine: VerificationEngine) -> None:
        await engine.register_adapter(StaticFactsAdapter(["Water boils at 100°C at sea level"]))

        result = await engine.verify("water boils at 100°C at sea level")

        assert result.overall == Verdict.VERIFIED
        assert result.confidence == pytest.approx(1.0)


# ── Cache Tests ──────────────────────────────────────────────────────────


class TestEngineCache:
    @pytest.mark.asyncio
    async def test_repeat_verify_served_from_cache(self, engine: VerificationEngine) -> None:
        adapter = CountingAdapter("a")
        await engine.register_adapter(adapter)

        first = await engine.verify("The sky is blue")
        second = await engine.verify("  the SKY is blue ")

        assert adapter.calls == 1
        assert first.cache_hit is False
        assert second.cache_hit is True
        assert second.sources == first.sources
        assert second.confidence == first.confidence

    @pytest.mark.asyncio
    async def test_use_cache_false_bypasses(self, engine: VerificationEngine) -> None:
        adapter = CountingAdapter("a")
        await engine.register_adapter(adapter)

        await engine.verify("claim")
        result = await engine.verify("claim", VerifyOptions(use_cache=False))

        assert adapter.calls == 2
        assert result.cache_hit is False

    @pytest.mark.asyncio
    async def test_concurrent_identical_claims_dispatch_once(self, engine: VerificationEngine) -> None:
        adapter = CountingAdapter("a", delay=0.05)
        await engine.register_adapter(adapter)

        results = await asyncio.gather(*(engine.verify_cached("Same claim") for _ in range(8)))

        assert adapter.calls == 1
        assert len({r.confidence for r in results}) == 1
        assert engine.cache_stats()["dispatches"] == 1

    @pytest.mark.asyncio
    async def test_registry_change_clears_cache(self, engine: VerificationEngine) -> None:
        adapter = CountingAdapter("a")
        await engine.register_adapter(adapter)
        await engine.verify("claim")

        await engine.register_adapter(CountingAdapter("b"))
        result = await engine.verify("claim")

        assert adapter.calls == 2
        assert len(result.sources) == 2

    @pytest.mark.asyncio
    async def test_unregister_during_in_flight_request(self, engine: VerificationEngine) -> None:
        await engine.register_adapter(CountingAdapter("keep"))
        await engine.register_adapter(CountingAdapter("gone", delay=0.1))

        first = asyncio.ensure_future(engine.verify("the claim"))
        await asyncio.sleep(0.01)
        await engine.unregister_adapter("gone")

        second = await engine.verify("the claim")
        third = await engine.verify("the claim")

        assert [s.source_id for s in (await first).sources] == ["gone", "keep"]
        assert [s.source_id for s in second.sources] == ["keep"]
        assert second.cache_hit is False
        assert [s.source_id for s in third.sources] == ["keep"]
        assert third.cache_hit is True

    @pytest.mark.asyncio
    async def test_clear_cache(self, engine: VerificationEngine) -> None:
        adapter = CountingAdapter("a")
        await engine.register_adapter(adapter)
        await engine.verify("claim")

        engine.clear_cache()
        await engine.verify("claim")

        assert adapter.calls == 2


# ── Lifecycle / Introspection Tests ──────────────────────────────────────


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_duplicate_registration_rejected(self, engine: VerificationEngine) -> None:
        await engine.register_adapter(CountingAdapter("a"))

        with pytest.raises(InvalidAdapter):
            await engine.register_adapter(CountingAdapter("a"))

    @pytest.mark.asyncio
    async def test_unregister(self, engine: VerificationEngine) -> None:
        await engine.register_adapter(CountingAdapter("a"))

        assert await engine.unregister_adapter("a") is True
        assert await engine.unregister_adapter("a") is False
        assert engine.list_adapters() == []

    @pytest.mark.asyncio
    async def test_disable_adapter(self, engine: VerificationEngine) -> None:
        adapter = CountingAdapter("a")
        await engine.register_adapter(adapter)
        await engine.register_adapter(CountingAdapter("b"))

        assert await engine.set_adapter_enabled("a", False) is True
        result = await engine.verify("claim")

        assert adapter.calls == 0
        assert [s.source_id for s in result.sources] == ["b"]

    @pytest.mark.asyncio
    async def test_adapter_status_and_statistics(self, engine: VerificationEngine) -> None:
        await engine.register_adapter(BrokenAdapter())
        await engine.verify("claim", VerifyOptions(use_cache=False))

        status = engine.get_adapter_status()
        assert status["broken"].state == CircuitState.CLOSED
        assert status["broken"].consecutive_failures == 1

        info = engine.list_adapters()[0]
        assert info.stats.total_calls == 1
        assert info.stats.errors == 1

        stats = engine.get_statistics()
        assert stats["registry"]["total_adapters"] == 1
        assert stats["strategy"] == "weighted-average"
        assert stats["fallback_strategy"] == "partial"
