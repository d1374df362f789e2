"""Adapter contract shared by built-in validators and external knowledge sources.

Every adapter exposes exactly two operations:
- verify(claim, context) -> VerificationResult
- is_available() -> bool (best-effort, side-effect-free health probe)

The contract is checked once, at registration time, by validate_adapter().
Adapters may implement either operation as a coroutine or as a plain
function; plain functions are run in a worker thread so they never block
the event loop.
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from factgate.verification.errors import InvalidAdapter
from factgate.verification.schemas import Verdict, VerificationResult

REQUIRED_OPERATIONS = ("verify", "is_available")


@runtime_checkable
class VerificationAdapter(Protocol):
    """Structural type of a registrable adapter."""

    name: str
    description: str

    def verify(self, claim: str, context: Optional[dict[str, Any]] = None) -> Any: ...

    def is_available(self) -> Any: ...


class BaseAdapter(ABC):
    """
    Convenience base for adapters.

    Subclasses set ``name``/``description`` (or pass them to __init__) and
    implement verify(). is_available() defaults to True, which suits pure,
    dependency-free adapters.
    """

    name: str = ""
    description: str = ""

    def __init__(self, name: Optional[str] = None, description: Optional[str] = None):
        if name is not None:
            self.name = name
        if description is not None:
            self.description = description

    @abstractmethod
    async def verify(
        self,
        claim: str,
        context: Optional[dict[str, Any]] = None,
    ) -> VerificationResult:
        """Verify a claim and report a verdict."""

    async def is_available(self) -> bool:
        return True

    def make_result(
        self,
        verdict: Verdict,
        confidence: float,
        reasoning: str,
        **details: Any,
    ) -> VerificationResult:
        """Build a VerificationResult attributed to this adapter."""
        return VerificationResult(
            source_id=self.name,
            verdict=verdict,
            confidence=max(0.0, min(1.0, confidence)),
            reasoning=reasoning,
            details=details,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def validate_adapter(adapter: Any) -> None:
    """
    Check an adapter against the contract.

    Raises:
        InvalidAdapter: If the adapter is a class rather than an instance, has
            no usable name, or lacks a callable verify/is_available.
    """
    if adapter is None or isinstance(adapter, type):
        raise InvalidAdapter(
            "Adapter must be an instance implementing verify() and is_available()",
            context={"adapter": repr(adapter)},
        )

    name = getattr(adapter, "name", None)
    if not isinstance(name, str) or not name.strip():
        raise InvalidAdapter(
            "Adapter must have a non-empty string 'name'",
            context={"adapter": repr(adapter)},
        )

    missing = [op for op in REQUIRED_OPERATIONS if not callable(getattr(adapter, op, None))]
    if missing:
        raise InvalidAdapter(
            f"Adapter '{name}' does not implement: {', '.join(missing)}",
            context={"adapter": name, "missing": missing},
        )


async def invoke(fn: Callable[..., Any], *args: Any) -> Any:
    """Call an adapter operation whether it is async or sync.

    Sync callables run in a worker thread; cancelling the awaiting task stops
    the wait but not the thread, whose eventual result is dropped.
    """
    if inspect.iscoroutinefunction(fn):
        return await fn(*args)

    result = await asyncio.to_thread(fn, *args)
    if inspect.isawaitable(result):
        result = await result
    return result


__all__ = [
    "VerificationAdapter",
    "BaseAdapter",
    "validate_adapter",
    "invoke",
    "REQUIRED_OPERATIONS",
]
