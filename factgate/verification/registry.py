"""Adapter registry with point-in-time snapshots for dispatch.

Owns the registered adapters plus their metadata (weight, timeout,
enabled), circuit breaker and call statistics. Writes are serialized by
an asyncio lock and publish a fresh immutable snapshot; readers take the
current snapshot without locking, so an adapter added or removed during
a fan-out never affects that fan-out.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from factgate.adapters.base import validate_adapter
from factgate.config.logging import get_logger
from factgate.verification.circuit_breaker import CircuitBreaker
from factgate.verification.errors import InvalidAdapter
from factgate.verification.schemas import (
    AdapterInfo,
    AdapterMetadata,
    AdapterStats,
    CircuitBreakerState,
    CircuitState,
)


@dataclass(frozen=True)
class RegistryEntry:
    """A registered adapter with its metadata, circuit breaker and stats.

    The entry itself is immutable; ``breaker`` and ``stats`` are the
    per-adapter mutable cells updated by the orchestrator.
    """

    adapter: Any
    metadata: AdapterMetadata
    breaker: CircuitBreaker
    stats: AdapterStats

    @property
    def name(self) -> str:
        return self.adapter.name

    @property
    def description(self) -> str:
        description = getattr(self.adapter, "description", "")
        return description if isinstance(description, str) else ""

    def info(self) -> AdapterInfo:
        return AdapterInfo(
            name=self.name,
            description=self.description,
            weight=self.metadata.weight,
            timeout=self.metadata.timeout,
            enabled=self.metadata.enabled,
            circuit=self.breaker.snapshot(),
            stats=self.stats.model_copy(),
        )


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable, ordered view of the registry for one verification request.

    Attributes:
        entries: Enabled entries in registration order
        registered: Names of every registered adapter, enabled or not
    """

    entries: tuple = ()
    registered: frozenset = frozenset()

    def names(self) -> List[str]:
        return [entry.name for entry in self.entries]

    def get(self, name: str) -> Optional[RegistryEntry]:
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


class AdapterRegistry:
    """
    Instance-owned registry of verification adapters.

    Features:
    - Contract check at registration (InvalidAdapter on violation or name collision)
    - One circuit breaker and one stats record per adapter
    - Lock-free immutable snapshots for dispatch
    - Runtime enable/disable without re-registration
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        cooldown_duration: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the adapter registry.

        Args:
            failure_threshold: Consecutive failures before an adapter's circuit opens
            cooldown_duration: Seconds an open circuit waits before a trial call
            clock: Monotonic clock shared by the circuit breakers
        """
        self._entries: Dict[str, RegistryEntry] = {}
        self._snapshot = RegistrySnapshot()
        self._lock = asyncio.Lock()
        self._failure_threshold = failure_threshold
        self._cooldown_duration = cooldown_duration
        self._clock = clock
        self.logger = get_logger("AdapterRegistry")

    async def register(
        self,
        adapter: Any,
        metadata: Optional[AdapterMetadata] = None,
    ) -> RegistryEntry:
        """
        Register an adapter.

        Args:
            adapter: Object implementing verify() and is_available()
            metadata: Weight/timeout/enabled/retry settings (defaults if omitted)

        Returns:
            The new registry entry

        Raises:
            InvalidAdapter: Contract violation or duplicate name
        """
        validate_adapter(adapter)
        metadata = metadata or AdapterMetadata()

        async with self._lock:
            if adapter.name in self._entries:
                raise InvalidAdapter(
                    f"Adapter name already registered: {adapter.name}",
                    context={"adapter": adapter.name},
                )

            entry = RegistryEntry(
                adapter=adapter,
                metadata=metadata,
                breaker=CircuitBreaker(
                    adapter.name,
                    failure_threshold=self._failure_threshold,
                    cooldown_duration=self._cooldown_duration,
                    clock=self._clock,
                ),
                stats=AdapterStats(),
            )
            self._entries[adapter.name] = entry
            self._publish()

        self.logger.info(f"Adapter registered: {adapter.name}",
                         weight=metadata.weight,
                         timeout=metadata.timeout,
                         enabled=metadata.enabled)
        return entry

    async def unregister(self, name: str) -> bool:
        """
        Remove an adapter. In-flight requests holding an older snapshot are unaffected.

        Returns:
            True if removed, False if no adapter had that name
        """
        async with self._lock:
            if name not in self._entries:
                self.logger.debug(f"Adapter not found for unregistration: {name}")
                return False

            del self._entries[name]
            self._publish()

        self.logger.info(f"Adapter unregistered: {name}")
        return True

    async def set_enabled(self, name: str, enabled: bool) -> bool:
        """
        Enable or disable a registered adapter for new requests.

        Returns:
            True if updated, False if no adapter had that name
        """
        async with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                return False

            self._entries[name] = RegistryEntry(
                adapter=entry.adapter,
                metadata=entry.metadata.model_copy(update={"enabled": enabled}),
                breaker=entry.breaker,
                stats=entry.stats,
            )
            self._publish()

        self.logger.info(f"Adapter {'enabled' if enabled else 'disabled'}: {name}")
        return True

    def snapshot(self) -> RegistrySnapshot:
        """Current immutable snapshot of enabled adapters."""
        return self._snapshot

    def get(self, name: str) -> Optional[RegistryEntry]:
        return self._entries.get(name)

    def list_adapters(self) -> List[AdapterInfo]:
        """Introspection records for every registered adapter, enabled or not."""
        return [entry.info() for entry in list(self._entries.values())]

    def statuses(self) -> Dict[str, CircuitBreakerState]:
        """Circuit breaker state per registered adapter."""
        return {name: entry.breaker.snapshot() for name, entry in list(self._entries.items())}

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get registry statistics for monitoring.

        Returns:
            Dictionary with registry stats
        """
        entries = list(self._entries.values())
        return {
            "total_adapters": len(entries),
            "enabled_adapters": sum(1 for e in entries if e.metadata.enabled),
            "open_circuits": sum(1 for e in entries if e.breaker.state == CircuitState.OPEN),
            "adapters": [e.name for e in entries],
        }

    def _publish(self) -> None:
        """Replace the published snapshot. Caller holds the lock."""
        self._snapshot = RegistrySnapshot(
            entries=tuple(e for e in self._entries.values() if e.metadata.enabled),
            registered=frozenset(self._entries),
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries
