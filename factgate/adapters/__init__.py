"""Verification adapters.

Every adapter implements verify(claim, context) and is_available():
- ContradictionDetector: built-in, flags self-contradictory claims
- PatternValidator: built-in, flags known misinformation patterns
- KnowledgeBaseAdapter: base for similarity-search backed sources
- StaticFactsAdapter: in-memory knowledge base over a fact list
"""

from factgate.adapters.base import BaseAdapter, VerificationAdapter, invoke, validate_adapter
from factgate.adapters.contradiction_detector import ContradictionDetector
from factgate.adapters.knowledge_base import (
    KnowledgeBaseAdapter,
    KnowledgeMatch,
    SimilarityVerdictPolicy,
    StaticFactsAdapter,
)
from factgate.adapters.pattern_validator import PatternValidator

# Built-in adapters constructible by name from settings.builtin_adapters
BUILTIN_ADAPTERS = {
    ContradictionDetector.name: ContradictionDetector,
    PatternValidator.name: PatternValidator,
}

__all__ = [
    "BaseAdapter",
    "VerificationAdapter",
    "invoke",
    "validate_adapter",
    "ContradictionDetector",
    "PatternValidator",
    "KnowledgeBaseAdapter",
    "KnowledgeMatch",
    "SimilarityVerdictPolicy",
    "StaticFactsAdapter",
    "BUILTIN_ADAPTERS",
]
