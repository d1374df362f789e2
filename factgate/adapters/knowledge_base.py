"""Knowledge-base adapters: similarity search turned into a verdict.

KnowledgeBaseAdapter subclasses supply search(); the base class maps the
best match through a SimilarityVerdictPolicy:

| Similarity                                 | Verdict       | Reasoning band |
|--------------------------------------------|---------------|----------------|
| >= verify_threshold                        | VERIFIED      | high           |
| >= verify_threshold x moderate_ratio       | UNCERTAIN     | moderate       |
| <= contradict_threshold (if configured)    | CONTRADICTED  | low            |
| otherwise                                  | UNCERTAIN     | low            |

Low similarity only means "nothing similar is known", so contradiction is
off unless ``contradict_threshold`` is set explicitly.

StaticFactsAdapter is a dependency-free in-memory implementation scored
with difflib, suitable for tests and small curated fact lists.
"""

import re
from abc import abstractmethod
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from factgate.adapters.base import BaseAdapter
from factgate.config.logging import get_logger
from factgate.verification.schemas import Verdict, VerificationResult

_WHITESPACE_RE = re.compile(r"\s+")


class KnowledgeMatch(BaseModel):
    """One search hit from a knowledge base."""

    fact: str = Field(..., description="Text of the known fact")
    similarity: float = Field(..., ge=0.0, le=1.0, description="Similarity to the claim")
    source: str = Field(default="knowledge base", description="Where the fact comes from")
    metadata: Dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class SimilarityVerdictPolicy:
    """Maps a best-match similarity score to a verdict.

    Attributes:
        verify_threshold: Similarity at or above which the claim is verified
        moderate_ratio: Fraction of verify_threshold that counts as moderate
        contradict_threshold: Similarity at or below which the claim is
            contradicted (None never contradicts)
    """

    verify_threshold: float = 0.8
    moderate_ratio: float = 0.6
    contradict_threshold: Optional[float] = None

    def __post_init__(self) -> None:
        if not 0.0 < self.verify_threshold <= 1.0:
            raise ValueError("verify_threshold must be in (0, 1]")
        if not 0.0 <= self.moderate_ratio <= 1.0:
            raise ValueError("moderate_ratio must be in [0, 1]")
        if self.contradict_threshold is not None and not (
            0.0 <= self.contradict_threshold < self.verify_threshold * self.moderate_ratio
        ):
            raise ValueError("contradict_threshold must be below the moderate band")

    def band(self, similarity: float) -> str:
        if similarity >= self.verify_threshold:
            return "high"
        if similarity >= self.verify_threshold * self.moderate_ratio:
            return "moderate"
        return "low"

    def verdict_for(self, similarity: float) -> Verdict:
        if similarity >= self.verify_threshold:
            return Verdict.VERIFIED
        if self.contradict_threshold is not None and similarity <= self.contradict_threshold:
            return Verdict.CONTRADICTED
        return Verdict.UNCERTAIN

    def confidence_for(self, similarity: float) -> float:
        """Similarity backs verified/uncertain; its complement backs contradicted."""
        if self.verdict_for(similarity) == Verdict.CONTRADICTED:
            return 1.0 - similarity
        return similarity


class KnowledgeBaseAdapter(BaseAdapter):
    """
    Base for adapters backed by a searchable store of known facts.

    Subclasses implement search(); errors raised there propagate to the
    orchestrator, which applies the adapter's retry policy and circuit
    breaker. Raise TransientAdapterError for failures worth retrying.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        description: Optional[str] = None,
        policy: Optional[SimilarityVerdictPolicy] = None,
        top_k: int = 5,
    ):
        super().__init__(name=name, description=description)
        if top_k < 1:
            raise ValueError("top_k must be >= 1")
        self.policy = policy or SimilarityVerdictPolicy()
        self.top_k = top_k

    @abstractmethod
    async def search(
        self,
        claim: str,
        context: Dict[str, Any],
        top_k: int,
    ) -> List[KnowledgeMatch]:
        """Return up to ``top_k`` matches for the claim."""

    async def verify(
        self,
        claim: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> VerificationResult:
        matches = await self.search(claim, context or {}, self.top_k)
        return self.analyze(claim, matches)

    def analyze(self, claim: str, matches: Iterable[KnowledgeMatch]) -> VerificationResult:
        """Turn search hits into a verdict using the best match."""
        ranked = sorted(matches, key=lambda m: -m.similarity)[: self.top_k]
        if not ranked:
            return self.make_result(
                Verdict.UNCERTAIN,
                0.0,
                "No matching facts found in knowledge base",
                queried_top_k=self.top_k,
                matches_found=0,
            )

        best = ranked[0]
        similarity = best.similarity
        return self.make_result(
            self.policy.verdict_for(similarity),
            self.policy.confidence_for(similarity),
            self._reasoning(ranked, similarity),
            best_match={"fact": best.fact, "source": best.source, "similarity": similarity},
            all_matches=[
                {"fact": m.fact, "source": m.source, "similarity": m.similarity} for m in ranked
            ],
            threshold=self.policy.verify_threshold,
            matches_found=len(ranked),
        )

    def _reasoning(self, ranked: List[KnowledgeMatch], similarity: float) -> str:
        best = ranked[0]
        percent = f"{similarity * 100:.1f}%"
        band = self.policy.band(similarity)
        if band == "high":
            return f'High similarity ({percent}) with verified fact from {best.source}: "{best.fact}"'
        if band == "moderate":
            return (
                f"Moderate similarity ({percent}) with known facts. Found {len(ranked)} "
                "potentially relevant facts, but confidence is below threshold."
            )
        if self.policy.verdict_for(similarity) == Verdict.CONTRADICTED:
            return (
                f"Low similarity ({percent}) with known facts. Claim conflicts with "
                f"or is absent from {best.source}."
            )
        return (
            f"Low similarity ({percent}) with known facts. Claim may be novel or "
            "requires verification from additional sources."
        )


FactEntry = Union[str, KnowledgeMatch, Dict[str, Any]]


def normalize_text(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text.strip().casefold())


class StaticFactsAdapter(KnowledgeBaseAdapter):
    """
    In-memory knowledge base over a fixed list of facts.

    Usage:
        kb = StaticFactsAdapter([
            "Water boils at 100°C at sea level",
            {"fact": "The Eiffel Tower is in Paris", "source": "encyclopedia"},
        ])
        result = await kb.verify("water boils at 100°C at sea level")
    """

    name = "static-facts"
    description = "In-memory fact list scored by text similarity"

    def __init__(
        self,
        facts: Iterable[FactEntry] = (),
        source: str = "static facts",
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.default_source = source
        self._facts: List[KnowledgeMatch] = []
        for fact in facts:
            self.add_fact(fact)
        self.logger = get_logger("StaticFactsAdapter", adapter=self.name)

    def add_fact(self, fact: FactEntry, source: Optional[str] = None) -> None:
        """Add a known fact (plain text, dict or KnowledgeMatch)."""
        if isinstance(fact, KnowledgeMatch):
            entry = fact.model_copy(update={"similarity": 1.0})
        elif isinstance(fact, dict):
            entry = KnowledgeMatch(
                fact=fact["fact"],
                similarity=1.0,
                source=fact.get("source") or source or self.default_source,
                metadata=fact.get("metadata") or {},
            )
        else:
            entry = KnowledgeMatch(fact=str(fact), similarity=1.0, source=source or self.default_source)
        self._facts.append(entry)

    @property
    def facts(self) -> List[str]:
        return [f.fact for f in self._facts]

    async def is_available(self) -> bool:
        return bool(self._facts)

    async def search(
        self,
        claim: str,
        context: Dict[str, Any],
        top_k: int,
    ) -> List[KnowledgeMatch]:
        normalized = normalize_text(claim)
        scored = [
            fact.model_copy(
                update={"similarity": SequenceMatcher(None, normalized, normalize_text(fact.fact)).ratio()}
            )
            for fact in self._facts
        ]
        scored.sort(key=lambda m: (-m.similarity, m.fact))
        self.logger.debug(f"Scored {len(scored)} facts for claim")
        return scored[:top_k]


__all__ = [
    "KnowledgeMatch",
    "SimilarityVerdictPolicy",
    "KnowledgeBaseAdapter",
    "StaticFactsAdapter",
    "normalize_text",
]
