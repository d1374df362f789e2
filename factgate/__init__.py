"""FactGate verification core.

Coordinates pluggable fact-verification adapters, isolates their failures
and aggregates their verdicts into one confidence-scored result.
"""

__version__ = "0.1.0"
