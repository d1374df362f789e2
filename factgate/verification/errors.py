"""Error taxonomy for the verification core.

Caller-facing errors (surfaced directly):
- InvalidClaim: empty, non-string or oversized claim, rejected before dispatch
- InvalidAdapter: adapter violates the contract at registration time
- AdapterNotFound: an explicitly requested adapter is not registered
- AllAdaptersFailed: zero usable results under the ``fail`` fallback strategy
- InvalidConfiguration: settings failed validation (fatal at initialization)

Per-adapter errors (recovered inside the orchestrator, never raised to callers):
- AdapterError: unexpected failure during dispatch
- AdapterTimeout: adapter deadline exceeded, result discarded
- AdapterUnavailable: circuit open or availability probe failed, skipped
- TransientAdapterError: retryable failure an adapter may raise itself
"""

from typing import Any, Optional


class FactGateError(Exception):
    """Base exception for all verification core errors.

    Attributes:
        message: Human-readable description
        retryable: Whether repeating the operation may succeed
        context: Structured metadata for logging
    """

    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        retryable: Optional[bool] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.retryable = self.default_retryable if retryable is None else retryable
        self.context = dict(context or {})

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logging."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "retryable": self.retryable,
            **self.context,
        }


class InvalidClaim(FactGateError):
    """Claim is empty, not a string, or longer than the configured maximum."""


class InvalidAdapter(FactGateError):
    """Adapter does not satisfy the verify/is_available contract or its name collides."""


class AdapterNotFound(FactGateError):
    """An adapter named in the request is not registered."""

    def __init__(self, names: list[str]) -> None:
        self.names = sorted(names)
        super().__init__(
            f"Adapter(s) not registered: {', '.join(self.names)}",
            context={"adapters": self.names},
        )


class InvalidConfiguration(FactGateError):
    """Configuration failed validation."""


class AllAdaptersFailed(FactGateError):
    """No adapter produced a usable result and the fallback strategy is ``fail``."""

    def __init__(self, claim: str, unavailable: list[str]) -> None:
        self.claim = claim
        self.unavailable = list(unavailable)
        super().__init__(
            f"All adapters failed ({len(self.unavailable)} unavailable)",
            context={"unavailable": self.unavailable},
        )


class AdapterError(FactGateError):
    """Failure of a single adapter during dispatch."""

    def __init__(self, adapter: str, message: str, **kwargs: Any) -> None:
        self.adapter = adapter
        context = kwargs.pop("context", None) or {}
        context.setdefault("adapter", adapter)
        super().__init__(message, context=context, **kwargs)


class AdapterTimeout(AdapterError):
    """Adapter did not settle before its deadline."""

    def __init__(self, adapter: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(
            adapter,
            f"Adapter '{adapter}' exceeded its {timeout:.2f}s deadline",
            context={"timeout": timeout},
        )


class AdapterUnavailable(AdapterError):
    """Adapter skipped without dispatch (circuit open or probe failed)."""


class TransientAdapterError(AdapterError):
    """Temporary adapter failure; eligible for retry."""

    default_retryable = True


__all__ = [
    "FactGateError",
    "InvalidClaim",
    "InvalidAdapter",
    "AdapterNotFound",
    "InvalidConfiguration",
    "AllAdaptersFailed",
    "AdapterError",
    "AdapterTimeout",
    "AdapterUnavailable",
    "TransientAdapterError",
]
