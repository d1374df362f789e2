"""Confidence aggregation over per-adapter verification results.

Combines heterogeneous, possibly contradictory adapter verdicts into one
AggregatedResult. Aggregation is a pure function of its inputs: results
are re-sorted (confidence descending, then source_id ascending) before
anything else, so the order in which adapters finished never matters.

Strategies:
- weighted-average (default): weights normalized over contributing adapters;
  confidence = sum(confidence x weight); verdict = largest confidence-weighted vote
- majority-vote: verdict = most frequent; confidence = share of results agreeing
- pessimistic: lowest confidence and its verdict
- optimistic: highest confidence and its verdict

Tie-break (weighted-average and majority-vote): among the tied verdicts,
take the verdict of the first result in sorted order, i.e. the highest
confidence result, and on equal confidence the lexically smallest source_id.

Usage:
    aggregator = ConfidenceAggregator()
    aggregated = aggregator.aggregate(results, unavailable=["kb"], claim=claim)
"""

import math
from typing import Callable, Iterable, Mapping, Optional, Sequence

from factgate.verification.schemas import (
    AggregatedResult,
    AggregationStrategy,
    Verdict,
    VerificationResult,
)

# Tolerance when comparing vote totals for ties
_TIE_TOLERANCE = 1e-9

_VERDICT_PHRASES: dict[Verdict, str] = {
    Verdict.VERIFIED: "verified",
    Verdict.CONTRADICTED: "contradicted",
    Verdict.UNCERTAIN: "uncertain",
}


def rank_results(results: Iterable[VerificationResult]) -> list[VerificationResult]:
    """Sort results by confidence descending, then source_id ascending."""
    return sorted(results, key=lambda r: (-r.confidence, r.source_id))


class ConfidenceAggregator:
    """Deterministic, side-effect-free verdict aggregation."""

    def __init__(
        self,
        default_strategy: AggregationStrategy = AggregationStrategy.WEIGHTED_AVERAGE,
    ) -> None:
        """Initialize ConfidenceAggregator.

        Args:
            default_strategy: Strategy used when aggregate() is not given one.
        """
        self.default_strategy = AggregationStrategy(default_strategy)
        self._strategies: dict[
            AggregationStrategy,
            Callable[[list[VerificationResult], Mapping[str, float]], tuple[Verdict, float]],
        ] = {
            AggregationStrategy.WEIGHTED_AVERAGE: self._weighted_average,
            AggregationStrategy.MAJORITY_VOTE: self._majority_vote,
            AggregationStrategy.PESSIMISTIC: self._pessimistic,
            AggregationStrategy.OPTIMISTIC: self._optimistic,
        }

    def aggregate(
        self,
        results: Sequence[VerificationResult],
        unavailable: Optional[Iterable[str]] = None,
        strategy: Optional[AggregationStrategy] = None,
        *,
        claim: str = "",
        weights: Optional[Mapping[str, float]] = None,
        processing_time: float = 0.0,
        partial: Optional[bool] = None,
    ) -> AggregatedResult:
        """Combine per-adapter results into one verdict.

        Args:
            results: Settled results from contributing adapters.
            unavailable: Names of selected adapters that did not contribute.
            strategy: Aggregation strategy (defaults to the aggregator's).
            claim: Claim text echoed into the result.
            weights: Raw adapter weights by name; missing names weigh 1.0.
            processing_time: Seconds spent producing the results.
            partial: Override the partial flag when failures are not listed
                in ``unavailable`` (defaults to whether any are).

        Returns:
            AggregatedResult. An empty ``results`` yields UNCERTAIN at 0.0.
        """
        strategy = AggregationStrategy(strategy or self.default_strategy)
        missing = sorted(set(unavailable or ()))
        if partial is None:
            partial = bool(missing)
        ranked = rank_results(results)

        if not ranked:
            return AggregatedResult(
                claim=claim,
                overall=Verdict.UNCERTAIN,
                confidence=0.0,
                sources=[],
                combined_reasoning=self._no_sources_reasoning(missing),
                processing_time=processing_time,
                partial=partial,
                unavailable=missing,
                strategy=strategy,
            )

        verdict, confidence = self._strategies[strategy](ranked, weights or {})
        confidence = max(0.0, min(1.0, confidence))

        return AggregatedResult(
            claim=claim,
            overall=verdict,
            confidence=confidence,
            sources=ranked,
            combined_reasoning=self._build_reasoning(ranked, verdict, confidence, missing, strategy),
            processing_time=processing_time,
            partial=partial,
            unavailable=missing,
            strategy=strategy,
        )

    # -- strategies ---------------------------------------------------------

    def _weighted_average(
        self,
        ranked: list[VerificationResult],
        weights: Mapping[str, float],
    ) -> tuple[Verdict, float]:
        normalized = self._normalize_weights(ranked, weights)

        confidence = 0.0
        votes: dict[Verdict, float] = {}
        for result, weight in zip(ranked, normalized):
            confidence += result.confidence * weight
            votes[result.verdict] = votes.get(result.verdict, 0.0) + result.confidence * weight

        return self._pick_verdict(votes, ranked), confidence

    def _majority_vote(
        self,
        ranked: list[VerificationResult],
        weights: Mapping[str, float],
    ) -> tuple[Verdict, float]:
        counts: dict[Verdict, float] = {}
        for result in ranked:
            counts[result.verdict] = counts.get(result.verdict, 0) + 1

        verdict = self._pick_verdict(counts, ranked)
        return verdict, counts[verdict] / len(ranked)

    def _pessimistic(
        self,
        ranked: list[VerificationResult],
        weights: Mapping[str, float],
    ) -> tuple[Verdict, float]:
        lowest = ranked[-1].confidence
        chosen = next(r for r in ranked if r.confidence == lowest)
        return chosen.verdict, chosen.confidence

    def _optimistic(
        self,
        ranked: list[VerificationResult],
        weights: Mapping[str, float],
    ) -> tuple[Verdict, float]:
        return ranked[0].verdict, ranked[0].confidence

    # -- helpers ------------------------------------------------------------

    @staticmethod
    def _normalize_weights(
        ranked: list[VerificationResult],
        weights: Mapping[str, float],
    ) -> list[float]:
        """Normalize weights of contributing adapters so they sum to 1.

        All-zero weights fall back to equal shares.
        """
        raw = [max(0.0, float(weights.get(r.source_id, 1.0))) for r in ranked]
        total = sum(raw)
        if total <= 0:
            return [1.0 / len(ranked)] * len(ranked)
        return [w / total for w in raw]

    @staticmethod
    def _pick_verdict(
        totals: dict[Verdict, float],
        ranked: list[VerificationResult],
    ) -> Verdict:
        """Verdict with the largest total; ties go to the first ranked result."""
        best = max(totals.values())
        tied = {
            verdict
            for verdict, total in totals.items()
            if math.isclose(total, best, rel_tol=0.0, abs_tol=_TIE_TOLERANCE)
        }
        if len(tied) == 1:
            return next(iter(tied))
        return next(r.verdict for r in ranked if r.verdict in tied)

    @staticmethod
    def _no_sources_reasoning(missing: list[str]) -> str:
        if missing:
            return (
                "No sources responded: all selected adapters failed or were "
                f"unavailable ({', '.join(missing)})"
            )
        return "No sources responded"

    @staticmethod
    def _build_reasoning(
        ranked: list[VerificationResult],
        verdict: Verdict,
        confidence: float,
        missing: list[str],
        strategy: AggregationStrategy,
    ) -> str:
        agreeing = [r for r in ranked if r.verdict == verdict]
        disagreeing = [r for r in ranked if r.verdict != verdict]

        parts = [
            f"{strategy.value}: overall {_VERDICT_PHRASES[verdict]} "
            f"(confidence {confidence:.2f}) from {len(ranked)} source(s)",
            f"{len(agreeing)} agreed ({', '.join(r.source_id for r in agreeing)})",
        ]
        if disagreeing:
            parts.append(
                f"{len(disagreeing)} disagreed ("
                + ", ".join(f"{r.source_id}: {r.verdict.value}" for r in disagreeing)
                + ")"
            )
        else:
            parts.append("0 disagreed")
        if missing:
            parts.append(f"unavailable: {', '.join(missing)}")

        top = ranked[0]
        if top.reasoning:
            parts.append(f"strongest source {top.source_id} ({top.confidence:.2f}): {top.reasoning}")

        return "; ".join(parts)


__all__ = ["ConfidenceAggregator", "rank_results"]
