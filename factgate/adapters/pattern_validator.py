"""Built-in pattern validator for known misinformation.

Matches a claim against a weighted pattern library. Each pattern
contributes ``weight x score`` where score is 1.0 for a regex match or the
fuzzy similarity (difflib) between the pattern's canonical phrase and the
closest window of the claim. Contributions combine as a noisy-or:

    strength = 1 - prod(1 - weight_i x score_i)

strength >= threshold -> CONTRADICTED with confidence = strength
otherwise             -> UNCERTAIN with neutral confidence (0.5)

Pure and stateless: no I/O, claim text and fuzzy windows are capped so
evaluation stays within a small fixed budget.
"""

import re
from dataclasses import dataclass, replace
from difflib import SequenceMatcher
from typing import Any, Dict, List, Mapping, Optional, Sequence

from factgate.adapters.base import BaseAdapter
from factgate.config.logging import get_logger
from factgate.config.patterns import DEFAULT_PATTERN_LIBRARY, MisinformationPattern
from factgate.verification.schemas import Verdict, VerificationResult

NEUTRAL_CONFIDENCE = 0.5

_WORD_RE = re.compile(r"[a-z0-9%']+")


@dataclass(frozen=True)
class PatternMatch:
    """A pattern that fired against the claim."""

    name: str
    category: str
    weight: float
    score: float
    method: str  # "regex" or "fuzzy"

    @property
    def strength(self) -> float:
        return self.weight * self.score

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "weight": self.weight,
            "score": round(self.score, 4),
            "method": self.method,
        }


class PatternValidator(BaseAdapter):
    """
    Flags claims that match known misinformation or manipulative framing.

    Per-pattern configuration:
        validator = PatternValidator(overrides={
            "flat-earth": {"weight": 0.5},
            "everyone-knows": {"enabled": False},
        })
    """

    name = "pattern-validator"
    description = "Built-in matcher for known misinformation and fallacy patterns"

    def __init__(
        self,
        patterns: Optional[Sequence[MisinformationPattern]] = None,
        overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
        threshold: float = 0.6,
        fuzzy: bool = True,
        fuzzy_threshold: float = 0.8,
        max_chars: int = 5000,
        max_fuzzy_tokens: int = 150,
        name: Optional[str] = None,
    ):
        """
        Initialize the pattern validator.

        Args:
            patterns: Pattern library (default library if omitted)
            overrides: Per-pattern {"weight": float, "enabled": bool} by name
            threshold: Combined strength at which a claim is contradicted
            fuzzy: Enable fuzzy phrase matching
            fuzzy_threshold: Minimum similarity for a fuzzy match
            max_chars: Characters of claim text analyzed
            max_fuzzy_tokens: Leading tokens scanned by fuzzy matching
            name: Registry name override

        Raises:
            ValueError: If an override names an unknown pattern or a weight is out of range
        """
        super().__init__(name=name)
        library = {p.name: p for p in (patterns if patterns is not None else DEFAULT_PATTERN_LIBRARY)}

        for pattern_name, changes in (overrides or {}).items():
            if pattern_name not in library:
                raise ValueError(f"Unknown pattern override: {pattern_name}")
            library[pattern_name] = replace(library[pattern_name], **dict(changes))

        for pattern in library.values():
            if not 0.0 <= pattern.weight <= 1.0:
                raise ValueError(f"Pattern weight out of range for {pattern.name}: {pattern.weight}")

        self.patterns: List[MisinformationPattern] = list(library.values())
        self.threshold = threshold
        self.fuzzy = fuzzy
        self.fuzzy_threshold = fuzzy_threshold
        self.max_chars = max_chars
        self.max_fuzzy_tokens = max_fuzzy_tokens
        self._compiled = {
            p.name: re.compile(p.pattern, re.IGNORECASE) for p in self.patterns if p.enabled
        }
        self.logger = get_logger("PatternValidator", adapter=self.name)

    async def verify(
        self,
        claim: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> VerificationResult:
        try:
            return self.evaluate(claim)
        except Exception as e:
            self.logger.warning(f"Pattern evaluation failed: {e}")
            return self.make_result(Verdict.UNCERTAIN, 0.0, f"Claim could not be analyzed: {e}")

    def evaluate(self, claim: Any) -> VerificationResult:
        """Score a claim against the library synchronously."""
        if not isinstance(claim, str) or not claim.strip():
            return self.make_result(Verdict.UNCERTAIN, 0.0, "Empty or non-text claim; nothing to analyze")

        matches = self.match(claim)
        strength = self.combined_strength(matches)
        details = {
            "matches": [m.to_dict() for m in matches],
            "strength": round(strength, 4),
            "threshold": self.threshold,
        }

        if matches and strength >= self.threshold:
            names = ", ".join(m.name for m in matches)
            self.logger.debug(f"Misinformation pattern matched: {names}")
            return self.make_result(
                Verdict.CONTRADICTED,
                strength,
                f"Matches known misinformation pattern(s): {names} (strength {strength:.2f})",
                **details,
            )

        if matches:
            names = ", ".join(m.name for m in matches)
            reasoning = (
                f"Weak pattern match (strength {strength:.2f} below "
                f"{self.threshold:.2f}): {names}"
            )
        else:
            reasoning = "No known misinformation pattern matched"
        return self.make_result(Verdict.UNCERTAIN, NEUTRAL_CONFIDENCE, reasoning, **details)

    def match(self, claim: str) -> List[PatternMatch]:
        """All enabled patterns matching the claim, strongest first."""
        text = claim[: self.max_chars].lower()
        tokens = _WORD_RE.findall(text)[: self.max_fuzzy_tokens] if self.fuzzy else []

        matches: List[PatternMatch] = []
        for pattern in self.patterns:
            if not pattern.enabled:
                continue
            if self._compiled[pattern.name].search(text):
                matches.append(PatternMatch(pattern.name, pattern.category, pattern.weight, 1.0, "regex"))
                continue
            if tokens and pattern.phrase:
                score = self._fuzzy_score(pattern.phrase, tokens)
                if score >= self.fuzzy_threshold:
                    matches.append(PatternMatch(pattern.name, pattern.category, pattern.weight, score, "fuzzy"))

        matches.sort(key=lambda m: (-m.strength, m.name))
        return matches

    @staticmethod
    def combined_strength(matches: Sequence[PatternMatch]) -> float:
        remaining = 1.0
        for m in matches:
            remaining *= 1.0 - m.strength
        return 1.0 - remaining

    def _fuzzy_score(self, phrase: str, tokens: List[str]) -> float:
        """Best similarity between the phrase and any claim window of similar length."""
        phrase = phrase.lower()
        size = len(phrase.split())
        matcher = SequenceMatcher(None, autojunk=False)
        matcher.set_seq2(phrase)

        best = 0.0
        for width in (size - 1, size, size + 1):
            if width < 1 or width > len(tokens):
                continue
            for start in range(len(tokens) - width + 1):
                matcher.set_seq1(" ".join(tokens[start:start + width]))
                if matcher.real_quick_ratio() < self.fuzzy_threshold:
                    continue
                if matcher.quick_ratio() < self.fuzzy_threshold:
                    continue
                best = max(best, matcher.ratio())
        return best


__all__ = ["PatternValidator", "PatternMatch"]
