"""Tests for ConfidenceAggregator strategies and deterministic tie-breaking.

Tests cover:
- Weighted average (equal weights, custom weights, zero weights)
- Majority vote, pessimistic and optimistic strategies
- Tie-break on equal confidence (lexically smallest source_id wins)
- Order independence of the aggregated output
- Empty input (UNCERTAIN at 0.0) and partial/unavailable reporting
- Combined reasoning content
"""

import itertools

import pytest

from factgate.verification.aggregator import ConfidenceAggregator, rank_results
from factgate.verification.schemas import (
    AggregationStrategy,
    Verdict,
    VerificationResult,
)


def make_result(source_id: str, verdict: Verdict, confidence: float, reasoning: str = "") -> VerificationResult:
    return VerificationResult(
        source_id=source_id,
        verdict=verdict,
        confidence=confidence,
        reasoning=reasoning,
    )


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def aggregator() -> ConfidenceAggregator:
    return ConfidenceAggregator()


@pytest.fixture
def mixed_results() -> list[VerificationResult]:
    return [
        make_result("a", Verdict.VERIFIED, 0.9, "matched encyclopedia"),
        make_result("b", Verdict.VERIFIED, 0.7),
        make_result("c", Verdict.CONTRADICTED, 0.6),
    ]


# ── Weighted Average Tests ───────────────────────────────────────────────


class TestWeightedAverage:
    def test_two_agreeing_sources(self, aggregator: ConfidenceAggregator) -> None:
        results = [
            make_result("a", Verdict.VERIFIED, 0.9),
            make_result("b", Verdict.VERIFIED, 0.7),
        ]
        aggregated = aggregator.aggregate(results, claim="Water boils at 100°C")

        assert aggregated.overall == Verdict.VERIFIED
        assert aggregated.confidence == pytest.approx(0.8)
        assert aggregated.partial is False
        assert aggregated.unavailable == []
        assert [s.source_id for s in aggregated.sources] == ["a", "b"]

    @pytest.mark.parametrize("confidence", [0.0, 0.35, 0.8, 1.0])
    @pytest.mark.parametrize(
        "strategy",
        [
            AggregationStrategy.WEIGHTED_AVERAGE,
            AggregationStrategy.PESSIMISTIC,
            AggregationStrategy.OPTIMISTIC,
        ],
    )
    @pytest.mark.parametrize("count", [1, 3, 5])
    def test_identical_confidence_equal_weights_preserved(
        self,
        aggregator: ConfidenceAggregator,
        confidence: float,
        strategy: AggregationStrategy,
        count: int,
    ) -> None:
        results = [make_result(f"s{i}", Verdict.VERIFIED, confidence) for i in range(count)]

        aggregated = aggregator.aggregate(results, strategy=strategy)

        assert aggregated.confidence == pytest.approx(confidence)

    def test_mixed_verdicts_majority_weight_wins(
        self,
        aggregator: ConfidenceAggregator,
        mixed_results: list[VerificationResult],
    ) -> None:
        aggregated = aggregator.aggregate(mixed_results)

        assert aggregated.overall == Verdict.VERIFIED
        assert aggregated.confidence == pytest.approx((0.9 + 0.7 + 0.6) / 3)

    def test_custom_weights_shift_verdict(self, aggregator: ConfidenceAggregator) -> None:
        results = [
            make_result("kb", Verdict.VERIFIED, 0.6),
            make_result("fact-db", Verdict.CONTRADICTED, 0.6),
        ]
        aggregated = aggregator.aggregate(results, weights={"kb": 1.0, "fact-db": 3.0})

        assert aggregated.overall == Verdict.CONTRADICTED
        assert aggregated.confidence == pytest.approx(0.6)

    def test_weights_normalized_over_contributors(self, aggregator: ConfidenceAggregator) -> None:
        results = [make_result("a", Verdict.VERIFIED, 0.8)]
        aggregated = aggregator.aggregate(results, weights={"a": 5.0, "missing": 100.0})

        assert aggregated.confidence == pytest.approx(0.8)

    def test_all_zero_weights_fall_back_to_equal(self, aggregator: ConfidenceAggregator) -> None:
        results = [
            make_result("a", Verdict.VERIFIED, 1.0),
            make_result("b", Verdict.VERIFIED, 0.5),
        ]
        aggregated = aggregator.aggregate(results, weights={"a": 0.0, "b": 0.0})

        assert aggregated.confidence == pytest.approx(0.75)


# ── Other Strategy Tests ─────────────────────────────────────────────────


class TestStrategies:
    def test_majority_vote(
        self,
        aggregator: ConfidenceAggregator,
        mixed_results: list[VerificationResult],
    ) -> None:
        aggregated = aggregator.aggregate(mixed_results, strategy=AggregationStrategy.MAJORITY_VOTE)

        assert aggregated.overall == Verdict.VERIFIED
        assert aggregated.confidence == pytest.approx(2 / 3)
        assert aggregated.strategy == AggregationStrategy.MAJORITY_VOTE

    def test_pessimistic_takes_lowest(
        self,
        aggregator: ConfidenceAggregator,
        mixed_results: list[VerificationResult],
    ) -> None:
        aggregated = aggregator.aggregate(mixed_results, strategy=AggregationStrategy.PESSIMISTIC)

        assert aggregated.overall == Verdict.CONTRADICTED
        assert aggregated.confidence == pytest.approx(0.6)

    def test_optimistic_takes_highest(
        self,
        aggregator: ConfidenceAggregator,
        mixed_results: list[VerificationResult],
    ) -> None:
        aggregated = aggregator.aggregate(mixed_results, strategy=AggregationStrategy.OPTIMISTIC)

        assert aggregated.overall == Verdict.VERIFIED
        assert aggregated.confidence == pytest.approx(0.9)

    def test_strategy_accepts_string_value(self, aggregator: ConfidenceAggregator) -> None:
        results = [make_result("a", Verdict.UNCERTAIN, 0.4)]
        aggregated = aggregator.aggregate(results, strategy="optimistic")

        assert aggregated.strategy == AggregationStrategy.OPTIMISTIC

    def test_default_strategy_from_constructor(self) -> None:
        aggregator = ConfidenceAggregator(AggregationStrategy.PESSIMISTIC)
        results = [
            make_result("a", Verdict.VERIFIED, 0.9),
            make_result("b", Verdict.UNCERTAIN, 0.2),
        ]
        aggregated = aggregator.aggregate(results)

        assert aggregated.overall == Verdict.UNCERTAIN
        assert aggregated.confidence == pytest.approx(0.2)


# ── Tie-break Tests ──────────────────────────────────────────────────────


class TestTieBreak:
    def test_equal_confidence_opposite_verdicts_weighted(self, aggregator: ConfidenceAggregator) -> None:
        results = [
            make_result("B", Verdict.CONTRADICTED, 0.9),
            make_result("A", Verdict.VERIFIED, 0.9),
        ]
        aggregated = aggregator.aggregate(results)

        # Equal votes: the lexically smallest source_id decides
        assert aggregated.overall == Verdict.VERIFIED
        assert aggregated.confidence == pytest.approx(0.9)
        assert [s.source_id for s in aggregated.sources] == ["A", "B"]

    def test_equal_confidence_opposite_verdicts_majority(self, aggregator: ConfidenceAggregator) -> None:
        results = [
            make_result("B", Verdict.CONTRADICTED, 0.9),
            make_result("A", Verdict.VERIFIED, 0.9),
        ]
        aggregated = aggregator.aggregate(results, strategy=AggregationStrategy.MAJORITY_VOTE)

        assert aggregated.overall == Verdict.VERIFIED
        assert aggregated.confidence == pytest.approx(0.5)

    def test_tie_goes_to_highest_confidence_first(self, aggregator: ConfidenceAggregator) -> None:
        results = [
            make_result("a", Verdict.CONTRADICTED, 0.5),
            make_result("z", Verdict.VERIFIED, 0.9),
            make_result("b", Verdict.CONTRADICTED, 0.5),
            make_result("y", Verdict.VERIFIED, 0.1),
        ]
        aggregated = aggregator.aggregate(results, strategy=AggregationStrategy.MAJORITY_VOTE)

        assert aggregated.overall == Verdict.VERIFIED

    def test_pessimistic_tie_uses_smallest_source_id(self, aggregator: ConfidenceAggregator) -> None:
        results = [
            make_result("b", Verdict.CONTRADICTED, 0.3),
            make_result("a", Verdict.UNCERTAIN, 0.3),
        ]
        aggregated = aggregator.aggregate(results, strategy=AggregationStrategy.PESSIMISTIC)

        assert aggregated.overall == Verdict.UNCERTAIN

    @pytest.mark.parametrize("strategy", list(AggregationStrategy))
    def test_output_independent_of_input_order(
        self,
        aggregator: ConfidenceAggregator,
        mixed_results: list[VerificationResult],
        strategy: AggregationStrategy,
    ) -> None:
        outcomes = {
            (
                agg.overall,
                round(agg.confidence, 9),
                tuple(s.source_id for s in agg.sources),
                agg.combined_reasoning,
            )
            for agg in (
                aggregator.aggregate(list(order), strategy=strategy)
                for order in itertools.permutations(mixed_results)
            )
        }
        assert len(outcomes) == 1


# ── Empty / Partial Tests ────────────────────────────────────────────────


class TestEmptyAndPartial:
    def test_empty_results_uncertain_zero(self, aggregator: ConfidenceAggregator) -> None:
        aggregated = aggregator.aggregate([], claim="Anything")

        assert aggregated.overall == Verdict.UNCERTAIN
        assert aggregated.confidence == 0.0
        assert aggregated.sources == []
        assert aggregated.combined_reasoning == "No sources responded"
        assert aggregated.partial is False

    def test_empty_results_with_failures(self, aggregator: ConfidenceAggregator) -> None:
        aggregated = aggregator.aggregate([], unavailable=["kb", "api"])

        assert aggregated.overall == Verdict.UNCERTAIN
        assert aggregated.confidence == 0.0
        assert aggregated.partial is True
        assert aggregated.unavailable == ["api", "kb"]
        assert "all selected adapters failed" in aggregated.combined_reasoning

    def test_partial_flag_and_unavailable(self, aggregator: ConfidenceAggregator) -> None:
        results = [make_result("a", Verdict.VERIFIED, 0.85)]
        aggregated = aggregator.aggregate(results, unavailable=["slow", "slow"])

        assert aggregated.overall == Verdict.VERIFIED
        assert aggregated.confidence == pytest.approx(0.85)
        assert aggregated.partial is True
        assert aggregated.unavailable == ["slow"]

    def test_partial_override_without_listing_failures(self, aggregator: ConfidenceAggregator) -> None:
        results = [make_result("a", Verdict.VERIFIED, 0.85)]
        aggregated = aggregator.aggregate(results, unavailable=[], partial=True)

        assert aggregated.partial is True
        assert aggregated.unavailable == []

    def test_claim_and_processing_time_echoed(self, aggregator: ConfidenceAggregator) -> None:
        aggregated = aggregator.aggregate(
            [make_result("a", Verdict.VERIFIED, 0.5)],
            claim="The sky is blue",
            processing_time=0.25,
        )

        assert aggregated.claim == "The sky is blue"
        assert aggregated.processing_time == pytest.approx(0.25)
        assert aggregated.cache_hit is False


# ── Reasoning Tests ──────────────────────────────────────────────────────


class TestReasoning:
    def test_reasoning_lists_agreement_and_disagreement(
        self,
        aggregator: ConfidenceAggregator,
        mixed_results: list[VerificationResult],
    ) -> None:
        reasoning = aggregator.aggregate(mixed_results, unavailable=["slow"]).combined_reasoning

        assert reasoning.startswith("weighted-average: overall verified")
        assert "2 agreed (a, b)" in reasoning
        assert "1 disagreed (c: contradicted)" in reasoning
        assert "unavailable: slow" in reasoning
        assert "strongest source a (0.90): matched encyclopedia" in reasoning

    def test_unanimous_reasoning(self, aggregator: ConfidenceAggregator) -> None:
        results = [make_result("a", Verdict.CONTRADICTED, 0.9)]
        reasoning = aggregator.aggregate(results).combined_reasoning

        assert "0 disagreed" in reasoning


class TestRankResults:
    def test_sorted_by_confidence_then_source_id(self) -> None:
        results = [
            make_result("c", Verdict.VERIFIED, 0.5),
            make_result("b", Verdict.VERIFIED, 0.9),
            make_result("a", Verdict.VERIFIED, 0.5),
        ]
        assert [r.source_id for r in rank_results(results)] == ["b", "a", "c"]
