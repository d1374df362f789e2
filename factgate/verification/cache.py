"""Result cache with single-flight request coalescing.

Wraps the orchestrator: concurrent callers asking for the same key share
one dispatch, and settled results are served for ``ttl`` seconds
without dispatching any adapter.

Keys combine the normalized claim (case-folded, trimmed), the sorted
adapter selection ("*" for all enabled adapters) and the aggregation
strategy. Adapter context is not part of the key.

Eviction is lazy for TTL (expired entries are dropped on access) and
LRU once ``max_entries`` is exceeded.

Usage:
    cache = ResultCache(ttl=300, max_entries=1000)
    key = cache.make_key(claim, adapters=["kb"], strategy=None)
    result = await cache.get_or_compute(key, lambda: orchestrator.verify(claim))
"""

import asyncio
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple

from factgate.config.logging import get_logger
from factgate.verification.schemas import AggregatedResult, AggregationStrategy

CacheKey = Tuple[str, str, str]

ALL_ADAPTERS = "*"


def normalize_claim(claim: str) -> str:
    """Case-fold and trim claim text for keying."""
    return claim.strip().casefold()


class ResultCache:
    """
    TTL + LRU cache of AggregatedResult with per-key single-flight.

    Only results with at least one contributing source are stored, so a
    transient total outage is never replayed from cache.
    """

    def __init__(
        self,
        ttl: float = 300.0,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the result cache.

        Args:
            ttl: Seconds a result stays fresh (0 disables storage)
            max_entries: LRU capacity
            clock: Monotonic clock used for expiry
        """
        if ttl < 0:
            raise ValueError("ttl must be >= 0")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        # key -> (result, expiry)
        self._data: "OrderedDict[CacheKey, Tuple[AggregatedResult, float]]" = OrderedDict()
        self._inflight: Dict[CacheKey, asyncio.Task] = {}
        # Bumped by clear(); computations started under an older generation never store
        self._generation = 0
        self._hits = 0
        self._misses = 0
        self._coalesced = 0
        self._dispatches = 0
        self._evictions = 0
        self.logger = get_logger("ResultCache")

    @staticmethod
    def make_key(
        claim: str,
        adapters: Optional[Iterable[str]] = None,
        strategy: Optional[AggregationStrategy] = None,
    ) -> CacheKey:
        """Build the cache key for a request."""
        signature = ALL_ADAPTERS if adapters is None else ",".join(sorted(set(adapters)))
        strategy_part = AggregationStrategy(strategy).value if strategy else ""
        return (normalize_claim(claim), signature, strategy_part)

    def get(self, key: CacheKey) -> Optional[AggregatedResult]:
        """Fresh cached result for ``key``, or None. Refreshes LRU position."""
        entry = self._data.get(key)
        if entry is None:
            return None
        result, expiry = entry
        if self._clock() >= expiry:
            del self._data[key]
            return None
        self._data.move_to_end(key)
        return result

    def put(self, key: CacheKey, result: AggregatedResult) -> None:
        """Store a result, evicting least recently used entries over capacity."""
        if self.ttl <= 0:
            return
        self._data.pop(key, None)
        self._data[key] = (result.model_copy(update={"cache_hit": False}), self._clock() + self.ttl)
        while len(self._data) > self.max_entries:
            evicted, _ = self._data.popitem(last=False)
            self._evictions += 1
            self.logger.debug(f"Evicted cache entry: {evicted[0][:60]}")

    async def get_or_compute(
        self,
        key: CacheKey,
        compute: Callable[[], Awaitable[AggregatedResult]],
    ) -> AggregatedResult:
        """
        Serve ``key`` from cache, join an in-flight computation, or start one.

        Cache hits are returned with ``cache_hit=True``. Callers that join
        an in-flight computation receive the same settled result (or the
        same exception) as the caller that started it.
        """
        cached = self.get(key)
        if cached is not None:
            self._hits += 1
            return cached.model_copy(update={"cache_hit": True})

        task = self._inflight.get(key)
        if task is None:
            self._misses += 1
            self._dispatches += 1
            task = asyncio.ensure_future(self._fill(key, compute, self._generation))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._settle(key, t))
        else:
            self._coalesced += 1
            self.logger.debug(f"Joined in-flight verification: {key[0][:60]}")

        # Shielded so one caller's cancellation does not fail the others
        return await asyncio.shield(task)

    async def _fill(
        self,
        key: CacheKey,
        compute: Callable[[], Awaitable[AggregatedResult]],
        generation: int,
    ) -> AggregatedResult:
        result = await compute()
        if result.sources and generation == self._generation:
            self.put(key, result)
        return result

    def _settle(self, key: CacheKey, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the exception retrieved when every waiter was cancelled
        if not task.cancelled():
            task.exception()

    def invalidate(self, claim: str) -> int:
        """Drop every cached entry for a claim, whatever the adapter selection.

        Returns:
            Number of entries removed
        """
        normalized = normalize_claim(claim)
        stale = [key for key in self._data if key[0] == normalized]
        for key in stale:
            del self._data[key]
        return len(stale)

    def clear(self) -> None:
        """Remove all cached entries and detach in-flight computations.

        Callers already waiting on a detached computation still receive its
        result, but new callers start a fresh one and the detached result
        is never stored.
        """
        self._data.clear()
        self._inflight.clear()
        self._generation += 1

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics for monitoring.

        Returns:
            Dictionary with cache stats
        """
        lookups = self._hits + self._misses + self._coalesced
        return {
            "entries": len(self._data),
            "max_entries": self.max_entries,
            "ttl": self.ttl,
            "hits": self._hits,
            "misses": self._misses,
            "coalesced": self._coalesced,
            "dispatches": self._dispatches,
            "evictions": self._evictions,
            "in_flight": len(self._inflight),
            "hit_rate": self._hits / lookups if lookups else 0.0,
        }

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]


__all__ = ["ResultCache", "CacheKey", "normalize_claim", "ALL_ADAPTERS"]
