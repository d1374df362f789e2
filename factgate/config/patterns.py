"""Default pattern libraries for the built-in validators.

Contradiction detection:
- NEGATION_TOKENS: words that flip the polarity of an assertion
- ANTONYM_PAIRS: predicates that cannot both hold for the same subject
- CLAUSE_SEPARATORS: where one claim is split into independent assertions

Misinformation detection:
- MISINFORMATION_PATTERNS: weighted library of well-known false claims
- RHETORICAL_PATTERNS: low-weight markers of manipulative framing

Both libraries are plain data and can be replaced or extended per validator.
"""

from dataclasses import dataclass

NEGATION_TOKENS = frozenset({
    "not", "no", "never", "none", "nothing", "neither", "nor", "cannot",
})

# Contractions are expanded before tokenizing ("isn't" -> "is not")
CONTRACTION_PATTERN = r"n't\b"

COPULA_PATTERN = r"is|are|was|were|will be|has been|have been|had been|can be|be"

CLAUSE_SEPARATORS = r"[.;!?]+|,|\bbut\b|\bhowever\b|\bwhile\b|\balthough\b|\bwhereas\b|\byet\b"

ARTICLES = frozenset({"the", "a", "an", "this", "that", "these", "those"})

STOP_WORDS = frozenset({
    "the", "a", "an", "of", "in", "on", "at", "to", "for", "by", "with",
    "and", "or", "it", "its", "this", "that", "these", "those", "be",
    "is", "are", "was", "were", "been", "has", "have", "had", "will",
    "do", "does", "did", "very", "really", "also", "just", "than", "as",
})

ANTONYM_PAIRS = [
    # Truth / existence
    ("true", "false"),
    ("real", "fake"),
    ("alive", "dead"),
    ("present", "absent"),
    ("possible", "impossible"),
    ("legal", "illegal"),
    ("guilty", "innocent"),
    # Quantity / direction
    ("everywhere", "nowhere"),
    ("increase", "decrease"),
    ("increased", "decreased"),
    ("increasing", "decreasing"),
    ("rise", "fall"),
    ("rose", "fell"),
    ("higher", "lower"),
    ("more", "less"),
    ("above", "below"),
    ("maximum", "minimum"),
    # Physical properties
    ("hot", "cold"),
    ("round", "flat"),
    ("open", "closed"),
    ("full", "empty"),
    ("wet", "dry"),
    ("heavy", "light"),
    # Evaluation
    ("safe", "dangerous"),
    ("safe", "unsafe"),
    ("effective", "ineffective"),
    ("healthy", "unhealthy"),
    ("harmless", "harmful"),
    ("beneficial", "harmful"),
    ("success", "failure"),
    ("successful", "unsuccessful"),
    ("win", "lose"),
    ("won", "lost"),
    ("accepted", "rejected"),
    ("approved", "rejected"),
    ("confirmed", "denied"),
    ("before", "after"),
]


@dataclass(frozen=True)
class MisinformationPattern:
    """One entry of the misinformation library.

    Attributes:
        name: Stable identifier used for per-pattern overrides
        pattern: Regular expression matched case-insensitively
        weight: Strength contributed by a full match (0.0-1.0)
        phrase: Canonical wording used for fuzzy matching ("" disables fuzzy)
        category: Grouping reported in result details
        enabled: Disabled patterns are skipped
    """

    name: str
    pattern: str
    weight: float
    phrase: str = ""
    category: str = "misinformation"
    enabled: bool = True


MISINFORMATION_PATTERNS = [
    MisinformationPattern(
        name="vaccines-autism",
        pattern=r"vaccin\w*\s+(?:\w+\s+){0,3}(?:cause|causes|caused|lead\s+to|leads\s+to)\s+autism",
        weight=0.9,
        phrase="vaccines cause autism",
        category="health",
    ),
    MisinformationPattern(
        name="flat-earth",
        pattern=r"(?:the\s+)?earth\s+(?:is|was)\s+(?:actually\s+)?flat",
        weight=0.9,
        phrase="the earth is flat",
        category="science",
    ),
    MisinformationPattern(
        name="5g-covid",
        pattern=r"5g\s+(?:\w+\s+){0,3}(?:spread|spreads|cause|causes|caused)\s+(?:covid|coronavirus|the\s+virus)",
        weight=0.9,
        phrase="5g spreads covid",
        category="health",
    ),
    MisinformationPattern(
        name="moon-landing-hoax",
        pattern=r"moon\s+landings?\s+(?:was|were)\s+(?:faked|fake|staged|a\s+hoax)",
        weight=0.85,
        phrase="the moon landing was faked",
        category="history",
    ),
    MisinformationPattern(
        name="ten-percent-brain",
        pattern=r"(?:we|humans|people)\s+only\s+use\s+10\s*(?:%|percent)\s+of\s+(?:our|their)\s+brains?",
        weight=0.8,
        phrase="humans only use 10 percent of their brain",
        category="science",
    ),
    MisinformationPattern(
        name="great-wall-from-space",
        pattern=r"great\s+wall\s+(?:of\s+china\s+)?(?:is|can\s+be)\s+(?:easily\s+)?(?:visible|seen)\s+from\s+(?:space|the\s+moon)",
        weight=0.75,
        phrase="the great wall of china is visible from space",
        category="science",
    ),
    MisinformationPattern(
        name="lightning-never-twice",
        pattern=r"lightning\s+never\s+strikes\s+(?:the\s+same\s+place\s+)?twice",
        weight=0.7,
        phrase="lightning never strikes the same place twice",
        category="science",
    ),
    MisinformationPattern(
        name="sugar-hyperactivity",
        pattern=r"sugar\s+(?:makes|causes)\s+(?:children|kids)\s+hyperactive",
        weight=0.6,
        phrase="sugar makes children hyperactive",
        category="health",
    ),
    MisinformationPattern(
        name="goldfish-memory",
        pattern=r"goldfish\s+(?:only\s+)?(?:have|has)\s+a\s+(?:three|3)[\s-]second\s+memory",
        weight=0.6,
        phrase="goldfish have a three second memory",
        category="science",
    ),
    MisinformationPattern(
        name="climate-hoax",
        pattern=r"(?:climate\s+change|global\s+warming)\s+(?:is|was)\s+(?:a\s+)?(?:hoax|myth|scam)",
        weight=0.85,
        phrase="climate change is a hoax",
        category="science",
    ),
]

RHETORICAL_PATTERNS = [
    MisinformationPattern(
        name="everyone-knows",
        pattern=r"\beveryone\s+knows\b",
        weight=0.2,
        category="rhetoric",
    ),
    MisinformationPattern(
        name="hundred-percent-proven",
        pattern=r"\b100\s*(?:%|percent)\s+(?:proven|true|certain)\b",
        weight=0.3,
        category="rhetoric",
    ),
    MisinformationPattern(
        name="suppressed-truth",
        pattern=r"they\s+(?:don't|do\s+not)\s+want\s+you\s+to\s+know",
        weight=0.35,
        category="rhetoric",
    ),
    MisinformationPattern(
        name="doctors-hate",
        pattern=r"doctors\s+hate\b",
        weight=0.35,
        category="rhetoric",
    ),
    MisinformationPattern(
        name="miracle-cure",
        pattern=r"\bmiracle\s+cure\b",
        weight=0.3,
        category="rhetoric",
    ),
]

DEFAULT_PATTERN_LIBRARY = MISINFORMATION_PATTERNS + RHETORICAL_PATTERNS


__all__ = [
    "NEGATION_TOKENS",
    "CONTRACTION_PATTERN",
    "COPULA_PATTERN",
    "CLAUSE_SEPARATORS",
    "ARTICLES",
    "STOP_WORDS",
    "ANTONYM_PAIRS",
    "MisinformationPattern",
    "MISINFORMATION_PATTERNS",
    "RHETORICAL_PATTERNS",
    "DEFAULT_PATTERN_LIBRARY",
]
