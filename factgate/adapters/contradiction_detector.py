"""Built-in contradiction detector.

Splits a claim into clauses and looks for assertions that cannot all hold:

| Finding            | Trigger                                              | Verdict              |
|--------------------|------------------------------------------------------|----------------------|
| negation           | same subject, same predicate, opposite polarity      | CONTRADICTED (0.90)  |
| antonym            | same subject, antonymous predicates, same polarity   | CONTRADICTED (0.85)  |
| statement_negation | no copula, near-identical wording, opposite polarity | CONTRADICTED (0.85)  |
| partial_negation   | opposite polarity with only partial overlap          | UNCERTAIN (0.3-0.7)  |

Clauses may also be checked against trusted statements passed as
``context["reference_claims"]``.

Pure and stateless: no I/O, input capped at ``max_chars`` and
``max_clauses`` so a pathological claim cannot blow the time budget.
Never raises; unusable input yields UNCERTAIN with confidence 0.0.
"""

import re
from dataclasses import dataclass
from itertools import combinations
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from factgate.adapters.base import BaseAdapter
from factgate.config.logging import get_logger
from factgate.config.patterns import (
    ANTONYM_PAIRS,
    ARTICLES,
    CLAUSE_SEPARATORS,
    CONTRACTION_PATTERN,
    COPULA_PATTERN,
    NEGATION_TOKENS,
    STOP_WORDS,
)
from factgate.verification.schemas import Verdict, VerificationResult

NEGATION_CONFIDENCE = 0.9
ANTONYM_CONFIDENCE = 0.85
STATEMENT_NEGATION_CONFIDENCE = 0.85
NEUTRAL_CONFIDENCE = 0.5

_TOKEN_RE = re.compile(r"[a-z0-9%]+")
_CLAUSE_SPLIT_RE = re.compile(CLAUSE_SEPARATORS)
_CONTRACTION_RE = re.compile(CONTRACTION_PATTERN)
_COPULA_RE = re.compile(rf"^(?P<subject>.+?)\s+(?:{COPULA_PATTERN})\s+(?P<predicate>.+)$")


def _stem(token: str) -> str:
    """Crude plural/third-person stripping so 'causes' matches 'cause'."""
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


def _content(tokens: Iterable[str], negations: FrozenSet[str] = NEGATION_TOKENS) -> FrozenSet[str]:
    return frozenset(_stem(t) for t in tokens if t not in STOP_WORDS and t not in negations)


def _jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


@dataclass(frozen=True)
class Assertion:
    """One clause reduced to subject, predicate and polarity.

    ``subject`` is empty when the clause has no copula ("X is Y").
    """

    text: str
    subject: str
    predicate: FrozenSet[str]
    tokens: FrozenSet[str]
    negated: bool


@dataclass(frozen=True)
class ContradictionFinding:
    """A pair of assertions that conflict fully or partially."""

    kind: str
    first: str
    second: str
    score: float
    contradiction: bool
    reference: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "first": self.first,
            "second": self.second,
            "score": round(self.score, 4),
            "contradiction": self.contradiction,
            "reference": self.reference,
        }


class ContradictionDetector(BaseAdapter):
    """
    Detects self-contradictory claims and conflicts with reference statements.

    Usage:
        detector = ContradictionDetector()
        result = await detector.verify("The bridge is open, but the bridge is closed")
        # result.verdict == Verdict.CONTRADICTED
    """

    name = "contradiction-detector"
    description = "Built-in detector for negated and antonymous assertion pairs"

    def __init__(
        self,
        antonym_pairs: Optional[Sequence[Tuple[str, str]]] = None,
        negation_tokens: Optional[Iterable[str]] = None,
        max_chars: int = 5000,
        max_clauses: int = 40,
        strong_overlap: float = 0.8,
        partial_overlap: float = 0.4,
        name: Optional[str] = None,
    ):
        """
        Initialize the contradiction detector.

        Args:
            antonym_pairs: Mutually exclusive predicate words (default library if omitted)
            negation_tokens: Words that flip polarity (default library if omitted)
            max_chars: Characters of claim text analyzed
            max_clauses: Clauses analyzed per claim and per reference set
            strong_overlap: Predicate overlap for a clear negation match
            partial_overlap: Predicate overlap for a partial match
            name: Registry name override
        """
        super().__init__(name=name)
        self.negation_tokens = frozenset(negation_tokens or NEGATION_TOKENS)
        self.max_chars = max_chars
        self.max_clauses = max_clauses
        self.strong_overlap = strong_overlap
        self.partial_overlap = partial_overlap

        self._antonyms: Dict[str, set] = {}
        # Keyed by stemmed form, matching how predicates are tokenized
        for left, right in antonym_pairs if antonym_pairs is not None else ANTONYM_PAIRS:
            left, right = _stem(left.lower()), _stem(right.lower())
            self._antonyms.setdefault(left, set()).add(right)
            self._antonyms.setdefault(right, set()).add(left)

        self.logger = get_logger("ContradictionDetector", adapter=self.name)

    async def verify(
        self,
        claim: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> VerificationResult:
        try:
            references = (context or {}).get("reference_claims") or []
            if isinstance(references, str):
                references = [references]
            return self.detect(claim, references)
        except Exception as e:
            self.logger.warning(f"Contradiction analysis failed: {e}")
            return self.make_result(Verdict.UNCERTAIN, 0.0, f"Claim could not be analyzed: {e}")

    def detect(self, claim: Any, reference_claims: Sequence[str] = ()) -> VerificationResult:
        """
        Analyze a claim synchronously.

        Args:
            claim: Claim text (non-strings and blank text yield confidence 0.0)
            reference_claims: Trusted statements the claim must not contradict

        Returns:
            VerificationResult from this adapter
        """
        if not isinstance(claim, str) or not claim.strip():
            return self.make_result(Verdict.UNCERTAIN, 0.0, "Empty or non-text claim; nothing to analyze")

        assertions = self.parse(claim)
        references = [
            a
            for text in reference_claims
            if isinstance(text, str)
            for a in self.parse(text)
        ][: self.max_clauses]

        findings: List[ContradictionFinding] = []
        for a, b in combinations(assertions, 2):
            finding = self._compare(a, b)
            if finding is not None:
                findings.append(finding)
        for a in assertions:
            for ref in references:
                finding = self._compare(a, ref, reference=True)
                if finding is not None:
                    findings.append(finding)

        details = {
            "clauses": len(assertions),
            "references": len(references),
            "findings": [f.to_dict() for f in findings],
        }

        contradictions = [f for f in findings if f.contradiction]
        if contradictions:
            best = max(contradictions, key=lambda f: f.score)
            self.logger.debug(f"Contradiction found: {best.kind}")
            return self.make_result(Verdict.CONTRADICTED, best.score, self._describe(best), **details)

        if findings:
            best = max(findings, key=lambda f: f.score)
            return self.make_result(Verdict.UNCERTAIN, best.score, self._describe(best), **details)

        return self.make_result(
            Verdict.UNCERTAIN,
            NEUTRAL_CONFIDENCE,
            f"No contradiction pattern found across {len(assertions)} clause(s)",
            **details,
        )

    def parse(self, text: str) -> List[Assertion]:
        """Split text into clauses and reduce each to an Assertion."""
        normalized = _CONTRACTION_RE.sub(" not", text[: self.max_chars].lower())
        clauses = [c.strip() for c in _CLAUSE_SPLIT_RE.split(normalized)]
        return [self._parse_clause(c) for c in clauses if _TOKEN_RE.search(c)][: self.max_clauses]

    def _parse_clause(self, clause: str) -> Assertion:
        tokens = _TOKEN_RE.findall(clause)
        negated = sum(1 for t in tokens if t in self.negation_tokens) % 2 == 1

        subject = ""
        predicate = _content(tokens, self.negation_tokens)
        match = _COPULA_RE.match(clause)
        if match:
            subject = " ".join(
                t
                for t in _TOKEN_RE.findall(match.group("subject"))
                if t not in ARTICLES and t not in STOP_WORDS and t not in self.negation_tokens
            )
            predicate = _content(_TOKEN_RE.findall(match.group("predicate")), self.negation_tokens)

        return Assertion(
            text=clause,
            subject=subject,
            predicate=predicate,
            tokens=_content(tokens, self.negation_tokens),
            negated=negated,
        )

    def _compare(
        self,
        a: Assertion,
        b: Assertion,
        reference: bool = False,
    ) -> Optional[ContradictionFinding]:
        if a.subject and a.subject == b.subject:
            if a.negated == b.negated:
                antonym = self._antonym_between(a.predicate, b.predicate)
                if antonym:
                    return ContradictionFinding("antonym", a.text, b.text, ANTONYM_CONFIDENCE, True, reference)
                return None
            overlap = _jaccard(a.predicate, b.predicate)
            strong_kind, strong_score = "negation", NEGATION_CONFIDENCE
        else:
            if a.negated == b.negated:
                return None
            overlap = _jaccard(a.tokens, b.tokens)
            strong_kind, strong_score = "statement_negation", STATEMENT_NEGATION_CONFIDENCE

        if overlap >= self.strong_overlap:
            return ContradictionFinding(strong_kind, a.text, b.text, strong_score, True, reference)
        if overlap >= self.partial_overlap:
            score = 0.3 + 0.4 * overlap
            return ContradictionFinding("partial_negation", a.text, b.text, score, False, reference)
        return None

    def _antonym_between(self, first: FrozenSet[str], second: FrozenSet[str]) -> Optional[Tuple[str, str]]:
        for word in sorted(first):
            opposites = self._antonyms.get(word)
            if not opposites:
                continue
            for other in sorted(second):
                if other in opposites:
                    return word, other
        return None

    @staticmethod
    def _describe(finding: ContradictionFinding) -> str:
        target = "reference statement" if finding.reference else "another part of the claim"
        if finding.kind == "antonym":
            return f"Antonymous assertions: '{finding.first}' conflicts with {target} '{finding.second}'"
        if finding.contradiction:
            return f"Negated assertion: '{finding.first}' is denied by {target} '{finding.second}'"
        return f"Possible contradiction: '{finding.first}' partially negated by {target} '{finding.second}'"


__all__ = ["ContradictionDetector", "ContradictionFinding", "Assertion"]
